import logging
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

# -----------------------------
# Configuration & Logging
# -----------------------------
load_dotenv()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def _split_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass
class Settings:
    database_url: str = "sqlite:///./library.db"
    pool_size: int = 10
    pool_timeout: float = 30.0
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 4000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("LIBRARY_DB_URL", cls.database_url),
            pool_size=int(os.getenv("LIBRARY_POOL_SIZE", cls.pool_size)),
            pool_timeout=float(os.getenv("LIBRARY_POOL_TIMEOUT", cls.pool_timeout)),
            log_level=os.getenv("LIBRARY_LOG", cls.log_level).upper(),
            cors_origins=_split_origins(os.getenv("LIBRARY_CORS_ORIGINS", "*")),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", cls.port)),
        )


def configure_logging(level: str = "INFO") -> logging.Logger:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logger = logging.getLogger("library")
    logger.setLevel(level)
    return logger
