"""
Service configuration for the auction core.

Operational limits for the serialized auction service. Auction rules
(min bid, increments, timer) live in AuctionSettings, seeded from the
tournament.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "CRICAUCTION_"


@dataclass
class ServiceConfig:
    """Service-wide configuration parameters"""

    # Serialization
    lock_timeout: float = 3.0  # Max seconds to wait for an auction's lock
    tick_interval: float = 1.0  # Countdown clock granularity in seconds

    # Broadcast
    subscriber_queue_size: int = 256  # Events buffered per client before dropping

    # Paths
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")
    db_name: str = "auction.db"

    log_level: int = logging.INFO

    def ensure_dirs(self) -> None:
        """Create necessary directories"""
        self.data_dir.mkdir(exist_ok=True, parents=True)
        self.log_dir.mkdir(exist_ok=True, parents=True)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


# Global config instance (can be overridden)
config = ServiceConfig()


def _env(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return value if value not in (None, "") else None


def load_config(env_file: Optional[str] = None) -> ServiceConfig:
    """
    Load configuration from the environment.

    Variables use the CRICAUCTION_ prefix (CRICAUCTION_LOCK_TIMEOUT,
    CRICAUCTION_TICK_INTERVAL, CRICAUCTION_DATA_DIR, ...). A .env file is
    read first; existing environment variables win.

    Args:
        env_file: Optional path to a .env file

    Returns:
        ServiceConfig instance
    """
    load_dotenv(dotenv_path=env_file, override=False)

    cfg = ServiceConfig()

    lock_timeout = _env("LOCK_TIMEOUT")
    if lock_timeout is not None:
        cfg.lock_timeout = float(lock_timeout)

    tick_interval = _env("TICK_INTERVAL")
    if tick_interval is not None:
        cfg.tick_interval = float(tick_interval)

    queue_size = _env("SUBSCRIBER_QUEUE_SIZE")
    if queue_size is not None:
        cfg.subscriber_queue_size = int(queue_size)

    data_dir = _env("DATA_DIR")
    if data_dir is not None:
        cfg.data_dir = Path(data_dir).expanduser()

    log_dir = _env("LOG_DIR")
    if log_dir is not None:
        cfg.log_dir = Path(log_dir).expanduser()

    db_name = _env("DB_NAME")
    if db_name is not None:
        cfg.db_name = db_name

    log_level = _env("LOG_LEVEL")
    if log_level is not None:
        level = logging.getLevelName(log_level.upper())
        if isinstance(level, int):
            cfg.log_level = level

    return cfg
