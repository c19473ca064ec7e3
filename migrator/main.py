import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from sqlalchemy import text
from alembic.config import Config
from alembic import command
from migrator.core.config import settings
from migrator.core.logging import configure_logging
from migrator.api.routes import router as api_router
from migrator.db.session import engine

configure_logging(settings.log_level)
log = logging.getLogger(__name__)


def wait_for_database(max_retries: int = 30, retry_delay: float = 1.0) -> None:
    """Block until the run database accepts connections."""
    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            log.info("Database connection successful")
            return
        except Exception as e:
            if attempt < max_retries - 1:
                log.warning(f"Database not ready, retrying in {retry_delay}s "
                            f"(attempt {attempt + 1}/{max_retries}): {e}")
                time.sleep(retry_delay)
            else:
                log.error(f"Database connection failed after {max_retries} attempts")
                raise


def run_migrations() -> None:
    """Run Alembic migrations to head."""
    log.info("Running database migrations...")
    command.upgrade(Config("alembic.ini"), "head")
    log.info("Database migrations completed successfully")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Starting API server...")
    try:
        wait_for_database()
        run_migrations()
    except Exception as e:
        log.error(f"API startup failed: {e}", exc_info=True)
        raise
    yield
    log.info("Shutting down API server...")


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan
)
app.include_router(api_router, prefix="/v1")
