from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Inventory Costing API"
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Jakarta"

    # Database
    DATABASE_URL: str = "sqlite:///./inventory.db"

    # JWT
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Inventory engine
    COST_PRECISION: int = 8
    COST_CASCADE_MAX_ATTEMPTS: int = 2
    CANCELLED_ITEM_EXPIRY_HOURS: int = 24

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_postgres(self) -> bool:
        return self.DATABASE_URL.startswith("postgresql")

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
