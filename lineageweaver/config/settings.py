"""
Lineageweaver Sync Engine Configuration Settings
"""
import os
from typing import Optional
from dataclasses import dataclass, field

from dotenv import load_dotenv


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default value"""
    return os.getenv(key, default)


def get_env_int(key: str, default: int = 0) -> int:
    """Get environment variable as integer"""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get environment variable as float"""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get environment variable as boolean"""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on')


@dataclass
class DatabaseSettings:
    """Local embedded store configuration"""

    database_url: str = field(default_factory=lambda: get_env("DATABASE_URL", "sqlite:///./lineageweaver.db"))
    database_echo: bool = field(default_factory=lambda: get_env_bool("DATABASE_ECHO", False))


@dataclass
class RemoteStoreSettings:
    """Remote per-tenant document store configuration"""

    remote_base_url: str = field(default_factory=lambda: get_env("REMOTE_BASE_URL", "http://localhost:8080/api/v1"))
    remote_api_token: Optional[str] = field(default_factory=lambda: get_env("REMOTE_API_TOKEN") or None)
    remote_timeout: int = field(default_factory=lambda: get_env_int("REMOTE_TIMEOUT", 30))
    remote_verify_ssl: bool = field(default_factory=lambda: get_env_bool("REMOTE_VERIFY_SSL", True))


@dataclass
class SyncSettings:
    """Synchronization engine configuration"""

    # Remote batched writes: commit at the threshold, never reach the ceiling
    batch_threshold: int = field(default_factory=lambda: get_env_int("SYNC_BATCH_THRESHOLD", 450))
    batch_ceiling: int = field(default_factory=lambda: get_env_int("SYNC_BATCH_CEILING", 500))

    # Connectivity monitor
    connectivity_probe_host: str = field(default_factory=lambda: get_env("SYNC_PROBE_HOST", "8.8.8.8"))
    connectivity_probe_port: int = field(default_factory=lambda: get_env_int("SYNC_PROBE_PORT", 53))
    connectivity_probe_timeout: float = field(default_factory=lambda: get_env_float("SYNC_PROBE_TIMEOUT", 3.0))
    connectivity_poll_interval: float = field(default_factory=lambda: get_env_float("SYNC_POLL_INTERVAL", 15.0))


@dataclass
class AppSettings:
    """Application configuration settings"""

    app_name: str = field(default_factory=lambda: get_env("APP_NAME", "Lineageweaver Sync"))
    app_version: str = field(default_factory=lambda: get_env("APP_VERSION", "1.0.0"))
    debug: bool = field(default_factory=lambda: get_env_bool("DEBUG", False))
    log_level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_dir: str = field(default_factory=lambda: get_env("LOG_DIR", "logs"))


@dataclass
class Settings:
    """Main settings class that combines all configuration sections"""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    remote: RemoteStoreSettings = field(default_factory=RemoteStoreSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    app: AppSettings = field(default_factory=AppSettings)


# Load .env file if it exists
load_dotenv()

# Global settings instance
settings = Settings()
