"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./planner_admin.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class StoreSettings(BaseModel):
    # Upper bound for a single store round trip; ``None`` disables the deadline.
    timeout_seconds: Optional[float] = Field(default=10.0, gt=0)


class DirectorySettings(BaseModel):
    batch_size: int = Field(default=500, ge=1, le=10_000)


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Planner Admin Directory"

    database: DatabaseSettings = DatabaseSettings()
    store: StoreSettings = StoreSettings()
    directory: DirectorySettings = DirectorySettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def store_timeout(self) -> Optional[float]:
        return self.store.timeout_seconds


@lru_cache()
def get_settings() -> Settings:
    return Settings()
