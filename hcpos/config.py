from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    APP_ENV: str = "dev"
    DB_URL: str = "sqlite:///./hc_pos.db"
    TZ: str = "UTC"
    LOG_LEVEL: str = "INFO"
    NOTIFICATION_LOG_SIZE: int = 500
    LOW_STOCK_DEFAULT_THRESHOLD: int = 10
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
settings = Settings()
