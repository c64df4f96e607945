"""Настройки приложения, читаются из переменных окружения и .env."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # База данных
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "ridehail"

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    # Поиск водителя
    NEAREST_DRIVER_RADIUS_KM: float = 10.0
    NEAREST_DRIVER_CANDIDATES: int = 20

    # Регистрация
    VERIFICATION_CODE_TTL_MINUTES: int = 10

    # Штраф за отмену после принятия заказа водителем (в центах)
    CANCEL_PENALTY_CENTS: int = 10000

    # Тарифы (в центах)
    BASE_FARE_CENTS: int = 500
    PER_KM_CENTS: int = 800
    PER_MINUTE_CENTS: int = 200
    COMMISSION_CENTS: int = 2000

    @property
    def database_url_asyncpg(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


settings = Settings()
