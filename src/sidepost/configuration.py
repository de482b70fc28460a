"""
Configuration Management for Sidepost

🔧 Unified Configuration System:
Environment-aware settings for the persistence adapters and logging. The
active configuration is process-wide; it is created from ``SIDEPOST_*``
environment variables on first access unless one was set explicitly.
"""

import logging
import logging.handlers
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union


class Environment(Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class PersistenceConfig:
    """Persistence adapter configuration"""
    default_adapter: str = "memory"
    adapters: Dict[str, Dict[str, Any]] = field(default_factory=lambda: {
        "memory": {},
        "sql": {
            "url": "sqlite://",
            "echo": False,
        },
    })


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class SidepostConfig:
    """Complete sidepost configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Custom configuration
    custom: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_environment(cls, environment: Environment) -> 'SidepostConfig':
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.logging.level = "DEBUG"

        elif environment == Environment.TESTING:
            config.persistence.adapters["sql"]["url"] = "sqlite://"
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.debug = False
            config.logging.level = "INFO"
            config.logging.file_path = "/var/log/sidepost/sidepost.log"

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'SidepostConfig':
        """Create configuration from dictionary"""
        environment = Environment(config_dict.get("environment", Environment.DEVELOPMENT.value))
        config = cls.for_environment(environment)

        if "debug" in config_dict:
            config.debug = bool(config_dict["debug"])

        persistence = config_dict.get("persistence", {})
        if "default_adapter" in persistence:
            config.persistence.default_adapter = persistence["default_adapter"]
        for name, options in persistence.get("adapters", {}).items():
            config.persistence.adapters.setdefault(name, {}).update(options or {})

        for key, value in config_dict.get("logging", {}).items():
            if hasattr(config.logging, key):
                setattr(config.logging, key, value)

        config.custom.update(config_dict.get("custom", {}))
        return config

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'SidepostConfig':
        """Load configuration from a JSON or YAML file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix == '.json':
            import json
            with open(config_path) as f:
                config_dict = json.load(f)
        elif config_path.suffix in ('.yml', '.yaml'):
            import yaml
            with open(config_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        return cls.from_dict(config_dict)

    @classmethod
    def from_environment(cls) -> 'SidepostConfig':
        """Create configuration from environment variables"""
        env_name = os.getenv('SIDEPOST_ENV', 'development')
        environment = Environment(env_name)

        config = cls.for_environment(environment)

        # Override with environment variables
        if os.getenv('SIDEPOST_DEBUG'):
            config.debug = os.getenv('SIDEPOST_DEBUG').lower() == 'true'

        if os.getenv('SIDEPOST_DATABASE_URL'):
            config.persistence.adapters["sql"]["url"] = os.getenv('SIDEPOST_DATABASE_URL')

        if os.getenv('SIDEPOST_DEFAULT_ADAPTER'):
            config.persistence.default_adapter = os.getenv('SIDEPOST_DEFAULT_ADAPTER')

        if os.getenv('SIDEPOST_LOG_LEVEL'):
            config.logging.level = os.getenv('SIDEPOST_LOG_LEVEL').upper()

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            "environment": self.environment.value,
            "debug": self.debug,
            "persistence": {
                "default_adapter": self.persistence.default_adapter,
                "adapters": self.persistence.adapters,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file_path": self.logging.file_path,
                "max_file_size": self.logging.max_file_size,
                "backup_count": self.logging.backup_count,
            },
            "custom": self.custom,
        }


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Attach handlers to the ``sidepost`` logger.

    Args:
        config: Logging settings; defaults to the active configuration's

    Returns:
        The configured ``sidepost`` logger
    """
    config = config or get_config().logging
    logger = logging.getLogger("sidepost")
    logger.setLevel(config.level)

    for handler in list(logger.handlers):
        if getattr(handler, "_sidepost", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(config.format)
    handlers = [logging.StreamHandler()]
    if config.file_path:
        Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._sidepost = True
        logger.addHandler(handler)

    return logger


# Global configuration management
_current_config: Optional[SidepostConfig] = None


def set_config(config: Optional[SidepostConfig]):
    """Set the global configuration (``None`` resets to environment defaults)"""
    global _current_config
    _current_config = config


def get_config() -> SidepostConfig:
    """Get the current global configuration"""
    global _current_config

    if _current_config is None:
        # Auto-create from environment if not set
        _current_config = SidepostConfig.from_environment()

    return _current_config


def configure_from_file(config_path: Union[str, Path]):
    """Configure sidepost from file"""
    config = SidepostConfig.from_file(config_path)
    set_config(config)
    return config


def configure_from_dict(config_dict: Dict[str, Any]):
    """Configure sidepost from dictionary"""
    config = SidepostConfig.from_dict(config_dict)
    set_config(config)
    return config


# Export main components
__all__ = [
    "SidepostConfig", "Environment", "PersistenceConfig", "LoggingConfig",
    "configure_logging", "set_config", "get_config",
    "configure_from_file", "configure_from_dict",
]
