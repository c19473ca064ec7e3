from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from migrator.core.config import settings


class Base(DeclarativeBase):
    pass


# SQLite connections are shared between the API thread pool and the request thread
_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
