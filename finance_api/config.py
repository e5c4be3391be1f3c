import os
from dataclasses import dataclass, field
from typing import List

ALGORITHM = "HS256"
DEFAULT_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days
SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./app.db"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = SQLITE_FALLBACK_URL
    secret_key: str = "super-secret-key-change-me"
    access_token_expire_minutes: int = DEFAULT_TOKEN_EXPIRE_MINUTES
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_json: bool = True
    sql_echo: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        # Prefer PostgreSQL if provided, otherwise fall back to SQLite (so server always boots)
        database_url = os.getenv("DATABASE_URL", "").strip() or SQLITE_FALLBACK_URL
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=database_url,
            secret_key=os.getenv("SECRET_KEY", cls.secret_key),
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", DEFAULT_TOKEN_EXPIRE_MINUTES)
            ),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("LOG_JSON", True),
            sql_echo=_env_bool("SQL_ECHO", False),
        )
