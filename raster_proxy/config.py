import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


@dataclass(frozen=True)
class EngineSettings:
    port: int
    log_level: str
    source_url: str
    timeout: float
    retries: int
    cache_ttl: float
    cache_size: int
    gaussian_size: int
    random_seed: Optional[int]
    flatten_output: bool

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            port=int(os.getenv("PORT", "5500")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            source_url=os.getenv("SOURCE_URL", ""),
            timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            retries=int(os.getenv("SOURCE_RETRIES", "2")),
            cache_ttl=float(os.getenv("CACHE_TTL", "5")),
            cache_size=int(os.getenv("CACHE_SIZE", "16")),
            gaussian_size=int(os.getenv("GAUSSIAN_N", "5")),
            random_seed=_optional_int("RANDOM_SEED"),
            flatten_output=os.getenv("FLATTEN_OUTPUT", "1").lower() not in ("0", "false", "no"),
        )


SETTINGS = EngineSettings.from_env()


# Background used when flattening RGBA pixels to RGB.
BACKGROUND: Tuple[int, int, int] = (0, 0, 0)


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=SETTINGS.log_level)
    return logging.getLogger("raster_proxy")
