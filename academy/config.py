import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

root = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=root / ".env")

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def setup_logging():
    logging.basicConfig(level=logging.INFO)


def _flag(raw: Optional[str], default: bool = False) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _database_url(source: Mapping[str, str]) -> Optional[str]:
    url = source.get("DATABASE_URL", "").strip()
    if url:
        return url

    host = source.get("DB_HOST")
    user = source.get("DB_USER")
    name = source.get("DB_NAME")
    if not (host and user and name):
        return None
    port = source.get("DB_PORT", "5432")
    password = source.get("DB_PASS", "")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the process environment."""

    database_url: Optional[str] = None
    db_echo: bool = False
    app_env: str = "development"
    demo_mode: bool = False
    public_host: str = "localhost"
    static_hosting_domain: str = "github.io"
    storage_url: Optional[str] = None
    storage_key: Optional[str] = None
    storage_bucket: str = "course-files"
    secret_key: str = "SUPER_SECRET_JWT_KEY"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    admin_domain: str = "login-learning.com"
    retry_attempts: int = 3
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    login_path: str = "/login"
    dashboard_path: str = "/dashboard"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        source = os.environ if env is None else env

        origins = [
            origin.strip()
            for origin in source.get("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]
        return cls(
            database_url=_database_url(source),
            db_echo=_flag(source.get("DB_ECHO")),
            app_env=source.get("APP_ENV", "development").strip().lower(),
            demo_mode=_flag(source.get("DEMO_MODE")),
            public_host=source.get("PUBLIC_HOST", "localhost").strip().lower(),
            static_hosting_domain=source.get("STATIC_HOSTING_DOMAIN", "github.io").strip().lower(),
            storage_url=source.get("STORAGE_URL") or None,
            storage_key=source.get("STORAGE_KEY") or None,
            storage_bucket=source.get("STORAGE_BUCKET", "course-files"),
            secret_key=source.get("SECRET_KEY", "SUPER_SECRET_JWT_KEY"),
            algorithm=source.get("ALGORITHM", "HS256"),
            access_token_expire_minutes=int(source.get("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
            admin_domain=source.get("ADMIN_DOMAIN", "login-learning.com").strip().lower(),
            retry_attempts=max(1, int(source.get("RETRY_ATTEMPTS", "3"))),
            cors_origins=origins,
            login_path=source.get("LOGIN_PATH", "/login"),
            dashboard_path=source.get("DASHBOARD_PATH", "/dashboard"),
        )


def get_cors_settings(settings: Settings):
    return {
        "allow_origins": settings.cors_origins,
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }
