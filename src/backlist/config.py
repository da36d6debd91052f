from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")

DEFAULT_IGNORED_DIRS = (
    ".git",
    "node_modules",
    "dist",
    "build",
    "out",
    "coverage",
    ".next",
    ".nuxt",
    ".turbo",
    ".cache",
    ".backlist",
)


class Settings(BaseSettings):
    """
    Analyzer configuration.

    Loaded from BACKLIST_* environment variables (and a local .env), so the
    CLI and library callers share the same defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="BACKLIST_",
        env_file=".env",
        extra="ignore",
    )

    extensions: Annotated[tuple[str, ...], NoDecode] = DEFAULT_EXTENSIONS
    ignored_dirs: Annotated[tuple[str, ...], NoDecode] = DEFAULT_IGNORED_DIRS
    max_file_bytes: int = 2_000_000
    workers: Optional[int] = None
    contracts_path: Optional[str] = None
    debug: bool = False

    @field_validator("extensions", "ignored_dirs", mode="before")
    @classmethod
    def _split_csv(cls, v: object) -> object:
        # BACKLIST_EXTENSIONS=".js,.ts" -> (".js", ".ts")
        if isinstance(v, str):
            return tuple(s.strip() for s in v.split(",") if s.strip())
        return v

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(e.lower() if e.startswith(".") else f".{e.lower()}" for e in v)

    @field_validator("workers")
    @classmethod
    def _positive_workers(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("workers must be >= 1")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
