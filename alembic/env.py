from logging.config import fileConfig
from alembic import context
from migrator.core.config import settings
from migrator.db.session import Base, engine
from migrator.db import models  # noqa

config = context.config
# alembic.ini carries no logging sections; the API configures logging itself
if config.config_file_name and config.file_config.has_section("formatters"):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata
# Run tables are altered through copy-and-move on SQLite
batch_mode = settings.database_url.startswith("sqlite")


def run_migrations_offline():
    context.configure(url=settings.database_url, target_metadata=target_metadata,
                      literal_binds=True, render_as_batch=batch_mode)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    # Reuse the application engine so SQLite connect args stay in one place
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=batch_mode)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
