"""Configuration management for invoify."""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class StorageConfig:
    """Document store backend configuration."""
    backend: str = "json"  # json, redis
    working_dir: str = "./invoify_data"

    # Redis specific settings
    redis_url: str = "redis://localhost:6379"
    redis_password: Optional[str] = None
    redis_prefix: str = "invoify"
    redis_max_connections: int = 50
    redis_connection_timeout: float = 5.0
    redis_socket_timeout: float = 5.0
    redis_health_check_interval: int = 30

    @classmethod
    def from_env(cls) -> 'StorageConfig':
        """Create config from environment variables."""
        return cls(
            backend=os.getenv("STORAGE_BACKEND", "json"),
            working_dir=os.getenv("STORAGE_WORKING_DIR", "./invoify_data"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            redis_password=os.getenv("REDIS_PASSWORD", None),
            redis_prefix=os.getenv("REDIS_PREFIX", "invoify"),
            redis_max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "50")),
            redis_connection_timeout=float(os.getenv("REDIS_CONNECTION_TIMEOUT", "5.0")),
            redis_socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "5.0")),
            redis_health_check_interval=int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30")),
        )

    def __post_init__(self):
        """Validate configuration."""
        valid_backends = {"json", "redis"}
        if self.backend not in valid_backends:
            raise ValueError(f"Unknown storage backend: {self.backend}. Available: {valid_backends}")
        if self.redis_max_connections <= 0:
            raise ValueError(f"redis_max_connections must be positive, got {self.redis_max_connections}")


@dataclass(frozen=True)
class BackupConfig:
    """Backup archive and export configuration."""
    backup_dir: str = "./backups"
    default_keep: int = 10
    pdf_batch_size: int = 10
    pdf_max_invoices: int = 200

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        return cls(
            backup_dir=os.getenv("BACKUP_DIR", "./backups"),
            default_keep=int(os.getenv("BACKUP_DEFAULT_KEEP", "10")),
            pdf_batch_size=int(os.getenv("PDF_BATCH_SIZE", "10")),
            pdf_max_invoices=int(os.getenv("PDF_MAX_INVOICES", "200")),
        )

    def __post_init__(self):
        """Validate configuration."""
        if self.default_keep <= 0:
            raise ValueError(f"default_keep must be positive, got {self.default_keep}")
        if self.pdf_batch_size <= 0:
            raise ValueError(f"pdf_batch_size must be positive, got {self.pdf_batch_size}")
        if self.pdf_max_invoices <= 0:
            raise ValueError(f"pdf_max_invoices must be positive, got {self.pdf_max_invoices}")


@dataclass(frozen=True)
class InvoifyConfig:
    """Top-level configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)

    @classmethod
    def from_env(cls) -> 'InvoifyConfig':
        """Create complete config from environment variables."""
        return cls(
            storage=StorageConfig.from_env(),
            backup=BackupConfig.from_env(),
        )

    def to_dict(self) -> dict:
        """Flatten into the ``global_config`` dict handed to storage backends."""
        config_dict = {
            'working_dir': self.storage.working_dir,
        }

        if self.storage.backend == "redis":
            config_dict['redis_url'] = self.storage.redis_url
            config_dict['redis_password'] = self.storage.redis_password
            config_dict['redis_prefix'] = self.storage.redis_prefix
            config_dict['redis_max_connections'] = self.storage.redis_max_connections
            config_dict['redis_connection_timeout'] = self.storage.redis_connection_timeout
            config_dict['redis_socket_timeout'] = self.storage.redis_socket_timeout
            config_dict['redis_health_check_interval'] = self.storage.redis_health_check_interval

        return config_dict
