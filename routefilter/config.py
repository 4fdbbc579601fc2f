from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "RouteFilter"
    debug: bool = False

    # Accepts any stdlib level name plus TRACE
    log_level: str = "INFO"

    # JSON scheduler configuration loaded at startup.
    # Empty: the service starts with no filter configured and waits for a reload.
    scheduler_config_path: str = ""


settings = Settings()
