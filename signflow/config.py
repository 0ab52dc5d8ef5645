import os
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Settings:
    database_url: str
    upload_dir: str
    max_upload_bytes: int
    log_level: str
    token_ttl_minutes: int
    allowed_origins: List[str] = field(default_factory=list)


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def load_settings() -> Settings:
    origins = _getenv("ALLOWED_ORIGINS", "http://localhost:5173")
    return Settings(
        database_url=_getenv("DATABASE_URL", "sqlite:///./signflow.db"),
        upload_dir=_getenv("UPLOAD_DIR", "uploads"),
        max_upload_bytes=int(_getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        token_ttl_minutes=int(_getenv("TOKEN_TTL_MINUTES", str(24 * 60))),
        allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )


settings = load_settings()
