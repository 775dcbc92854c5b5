from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='forbid',
    )

    DATABASE_URL: str
    JWT_SECRET_KEY: str
    APP_ENV: str = 'development'
    CORS_ORIGINS: str = 'http://localhost:3001'
    LOG_LEVEL: str = 'INFO'

    JWT_ALGORITHM: str = 'HS256'

    DEFAULT_PASSING_SCORE: float = 70.0
    SCORM_12_SUSPEND_DATA_LIMIT: int = 4096
    SCORM_2004_SUSPEND_DATA_LIMIT: int | None = None
    MAX_PAGE_SIZE: int = 100

    @field_validator('DATABASE_URL')
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        if not value.startswith(('postgresql', 'sqlite')):
            raise ValueError('DATABASE_URL must point to PostgreSQL (or SQLite for local runs)')
        return value

    @field_validator('JWT_SECRET_KEY')
    @classmethod
    def validate_jwt_secret_strength(cls, value: str) -> str:
        if len(value) < 32:
            raise ValueError('JWT secrets must be at least 32 characters')
        return value

    @field_validator('DEFAULT_PASSING_SCORE')
    @classmethod
    def validate_passing_score(cls, value: float) -> float:
        if value < 0 or value > 100:
            raise ValueError('DEFAULT_PASSING_SCORE must be between 0 and 100')
        return value

    @field_validator('LOG_LEVEL')
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.CORS_ORIGINS.split(',') if item.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
