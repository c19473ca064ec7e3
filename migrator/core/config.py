from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_name: str = "script-migrator-platform"
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    log_level: str = "INFO"

    database_url: str = "sqlite:///./migrator.db"
    redis_url: str = "redis://localhost:6379/0"

    workspaces_dir: str = "/data/workspaces"
    default_persistence: str = "postgres"

settings = Settings()
