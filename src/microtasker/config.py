"""Configuration management for MicroTasker."""

import logging
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .task import TimeEstimate


logger = logging.getLogger(__name__)


def _default_jwt_secret() -> str:
    return os.getenv('MICROTASKER_JWT_SECRET') or os.getenv('JWT_SECRET') or secrets.token_urlsafe(64)


@dataclass
class ConfigModel:
    """Global configuration model for MicroTasker."""

    # Storage
    data_dir: str = "~/.microtasker"
    database_name: str = "microtasker.db"

    # Authentication
    jwt_secret: str = field(default_factory=_default_jwt_secret)
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 30
    bcrypt_rounds: int = 12

    # Quick capture
    default_time_estimate: TimeEstimate = TimeEstimate.SHORT
    medium_sets_time_estimate: bool = False  # '#medium' also means 5-10 min
    tag_aliases: Dict[str, str] = field(default_factory=dict)  # extra tag -> canonical tag

    # Web server
    host: str = "127.0.0.1"
    port: int = 8080
    cors_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ])
    log_level: str = "INFO"

    def __post_init__(self):
        """Post-initialization setup."""
        self.data_dir = os.path.expanduser(self.data_dir)
        if isinstance(self.default_time_estimate, str):
            self.default_time_estimate = TimeEstimate(self.default_time_estimate)
        self.tag_aliases = {str(k).lower(): str(v).lower() for k, v in (self.tag_aliases or {}).items()}

    @property
    def database_path(self) -> Path:
        """Location of the SQLite database file."""
        return Path(self.data_dir) / self.database_name

    def ensure_data_dir(self) -> Path:
        path = Path(self.data_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def to_yaml(self) -> str:
        """Serialize config to YAML.

        The JWT secret is left out; it comes from the environment.
        """
        data = {
            "data_dir": self.data_dir,
            "database_name": self.database_name,
            "jwt_algorithm": self.jwt_algorithm,
            "access_token_expire_minutes": self.access_token_expire_minutes,
            "refresh_token_expire_days": self.refresh_token_expire_days,
            "bcrypt_rounds": self.bcrypt_rounds,
            "default_time_estimate": self.default_time_estimate.value,
            "medium_sets_time_estimate": self.medium_sets_time_estimate,
            "tag_aliases": self.tag_aliases,
            "host": self.host,
            "port": self.port,
            "cors_origins": self.cors_origins,
            "log_level": self.log_level,
        }
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ConfigModel":
        """Deserialize config from YAML, ignoring unknown keys."""
        data = yaml.safe_load(yaml_str) or {}

        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        if "default_time_estimate" in data:
            try:
                data["default_time_estimate"] = TimeEstimate(data["default_time_estimate"])
            except ValueError:
                data["default_time_estimate"] = TimeEstimate.SHORT

        return cls(**{key: value for key, value in data.items() if key in known})

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> "ConfigModel":
        """Apply environment variable overrides in place."""
        env = os.environ if environ is None else environ

        if env.get('MICROTASKER_DATA_DIR'):
            self.data_dir = os.path.expanduser(env['MICROTASKER_DATA_DIR'])
        secret = env.get('MICROTASKER_JWT_SECRET') or env.get('JWT_SECRET')
        if secret:
            self.jwt_secret = secret
        if env.get('MICROTASKER_LOG_LEVEL'):
            self.log_level = env['MICROTASKER_LOG_LEVEL'].upper()
        return self

    def get_config_path(self) -> Path:
        """Get the config file path."""
        return Path(self.data_dir) / "config.yaml"


def default_config_path() -> Path:
    env_path = os.getenv('MICROTASKER_CONFIG')
    if env_path:
        return Path(os.path.expanduser(env_path))
    return Path(os.path.expanduser("~/.microtasker")) / "config.yaml"


class Config:
    """Configuration manager for MicroTasker."""

    _instance: Optional[ConfigModel] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> ConfigModel:
        """Load configuration from file, falling back to defaults."""
        if cls._instance is not None and config_path is None:
            return cls._instance

        if config_path is None:
            config_path = default_config_path()

        config = ConfigModel()
        if config_path.exists():
            try:
                config = ConfigModel.from_yaml(config_path.read_text())
                logger.info(f"Loaded configuration from {config_path}")
            except (OSError, yaml.YAMLError, TypeError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")

        config.apply_env()
        cls._instance = config
        return config

    @classmethod
    def save(cls, config: ConfigModel, config_path: Optional[Path] = None) -> Path:
        """Save configuration to file."""
        if config_path is None:
            config_path = config.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(config.to_yaml())
        logger.info(f"Configuration saved to {config_path}")
        return config_path

    @classmethod
    def get(cls) -> ConfigModel:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def set(cls, config: Optional[ConfigModel]) -> None:
        """Install a configuration instance (used by tests and the CLI)."""
        cls._instance = config


def get_config() -> ConfigModel:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> ConfigModel:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: ConfigModel, config_path: Optional[Path] = None) -> Path:
    """Save configuration to file."""
    return Config.save(config, config_path)


def as_dict(config: ConfigModel) -> Dict[str, Any]:
    """Configuration as a plain dict, with the secret masked."""
    data = yaml.safe_load(config.to_yaml())
    data["jwt_secret"] = "***"
    return data
