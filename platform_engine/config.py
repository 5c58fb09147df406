from __future__ import annotations
from typing import Optional

from pydantic import Field, AliasChoices, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # === Storage / DB ===
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "DB_URL"),
    )
    POSTGRES_DSN: Optional[str] = None  # legacy name, see _backfill_dsn

    SQL_ECHO: bool = False
    DB_POOL_PRE_PING: bool = True

    # dev-only: create_all on start instead of migrations
    INIT_DB_ON_START: bool = False

    # === Materials ===
    MATERIAL_FILENAME_MAX_LEN: int = 255
    MATERIAL_DESCRIPTION_MAX_LEN: int = 4000
    MATERIAL_MAX_BYTES: int = Field(0, description="0 = no size limit")

    # === Logs ===
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    log_sql: str = Field(default="WARNING", alias="LOG_SQL")

    @field_validator("log_level", "log_sql", mode="before")
    @classmethod
    def _v_level(cls, v):
        if v is None or v == "":
            return "INFO"
        return str(v).strip().upper()

    @field_validator("MATERIAL_FILENAME_MAX_LEN", "MATERIAL_DESCRIPTION_MAX_LEN")
    @classmethod
    def _v_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @model_validator(mode="after")
    def _backfill_dsn(self):
        # совместимость DSN/URL
        if not self.DATABASE_URL and self.POSTGRES_DSN:
            self.DATABASE_URL = self.POSTGRES_DSN
        if not self.DATABASE_URL:
            self.DATABASE_URL = "postgresql+asyncpg://app:app@db:5432/app"
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
