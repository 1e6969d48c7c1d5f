"""
Configuration Management for honk-bridge

Settings are grouped into dataclass sections and loaded in layers:

1. dataclass defaults
2. ``base.yaml`` in the configuration directory
3. ``<environment>.yaml`` in the configuration directory
4. environment variables ``HONK_BRIDGE_<SECTION>_<FIELD>``

Usage:
    from honk_bridge.config import get_config, ConfigManager

    config = get_config()
    g1_url = config.srs.g1_url

    # Explicit environment and directory
    manager = ConfigManager(env="production", config_dir=Path("/etc/honk-bridge"))
    prod_config = manager.load_config()
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .foreign import DEFAULT_MAX_RESPONSE_BYTES
from .srs.network import DEFAULT_G1_URL, DEFAULT_G2_URL, G2_MODES

logger = logging.getLogger(__name__)

ENV_PREFIX = "HONK_BRIDGE_"


class Environment(str, Enum):
    """Supported deployment environments"""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Supported logging levels"""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ResponseFraming(str, Enum):
    """How many length prefixes wrap a proof response"""

    SINGLE = "single"
    DOUBLE = "double"


@dataclass
class NativeConfig:
    """Native engine settings"""

    library_path: Optional[str] = None
    free_symbol: str = "free"
    max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES


@dataclass
class SrsConfig:
    """SRS source and cache settings"""

    # Local file; when unset the network source is used
    path: Optional[str] = None

    g1_url: str = DEFAULT_G1_URL
    g2_url: str = DEFAULT_G2_URL
    g2_mode: str = "bundled"  # bundled, network
    timeout: float = 60.0
    retry_attempts: int = 3
    retry_backoff: float = 0.5

    # Cache policy
    retry_on_failure: bool = True
    min_points: int = 0


@dataclass
class ProverConfig:
    """Proof orchestration settings"""

    variant: str = "ultra_honk"  # ultra_honk, ultra_keccak_honk
    response_framing: ResponseFraming = ResponseFraming.DOUBLE
    recursive: bool = False
    honk_recursion: bool = True


@dataclass
class LoggingConfig:
    """Logging settings"""

    level: LogLevel = LogLevel.INFO
    log_file: Optional[str] = None
    rich: bool = True


@dataclass
class HonkBridgeConfig:
    """Main configuration class containing all settings"""

    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    native: NativeConfig = field(default_factory=NativeConfig)
    srs: SrsConfig = field(default_factory=SrsConfig)
    prover: ProverConfig = field(default_factory=ProverConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Validate configuration consistency"""
        if self.srs.g2_mode not in G2_MODES:
            raise ValueError(f"Invalid G2 mode: {self.srs.g2_mode}")

        if self.srs.timeout <= 0:
            raise ValueError(f"SRS timeout must be positive: {self.srs.timeout}")

        if self.srs.retry_attempts < 0:
            raise ValueError(
                f"Retry attempts must be non-negative: {self.srs.retry_attempts}"
            )

        if self.srs.min_points < 0:
            raise ValueError(f"min_points must be non-negative: {self.srs.min_points}")

        if self.prover.variant not in ("ultra_honk", "ultra_keccak_honk"):
            raise ValueError(f"Invalid proof variant: {self.prover.variant}")

        if self.native.max_response_bytes <= 0:
            raise ValueError(
                f"max_response_bytes must be positive: {self.native.max_response_bytes}"
            )

        if self.environment == Environment.PRODUCTION:
            if self.srs.path is None and not self.srs.g1_url.startswith("https://"):
                logger.warning("Fetching the SRS over plain HTTP in production")

        logger.debug("Configuration validation passed")


SECTIONS = {
    "native": NativeConfig,
    "srs": SrsConfig,
    "prover": ProverConfig,
    "logging": LoggingConfig,
}

# Enum-typed fields, converted from their string form when loaded
_ENUM_FIELDS = {
    ("prover", "response_framing"): ResponseFraming,
    ("logging", "level"): LogLevel,
}


class ConfigManager:
    """Configuration manager for loading and managing settings"""

    def __init__(self, env: Optional[str] = None, config_dir: Optional[Path] = None):
        self.env = Environment(env) if env else self._detect_environment()
        self.config_dir = config_dir or self._get_default_config_dir()
        self._config_cache: Optional[HonkBridgeConfig] = None

    def _detect_environment(self) -> Environment:
        """Detect current environment from environment variables"""
        env_var = os.getenv("HONK_BRIDGE_ENV", "development").lower()
        try:
            return Environment(env_var)
        except ValueError:
            logger.warning(
                f"Unknown environment '{env_var}', defaulting to development"
            )
            return Environment.DEVELOPMENT

    def _get_default_config_dir(self) -> Path:
        """Get default configuration directory"""
        locations = [
            Path.cwd() / "config",
            Path.home() / ".honk-bridge",
            Path("/etc/honk-bridge"),
        ]

        for location in locations:
            if location.exists():
                return location

        return Path.cwd()

    def load_config(self) -> HonkBridgeConfig:
        """Load configuration from files and environment variables"""
        if self._config_cache is not None:
            return self._config_cache

        config_dict: Dict[str, Any] = {}

        base_config_path = self.config_dir / "base.yaml"
        if base_config_path.exists():
            config_dict.update(self._load_yaml_config(base_config_path))

        env_config_path = self.config_dir / f"{self.env.value}.yaml"
        if env_config_path.exists():
            env_config = self._load_yaml_config(env_config_path)
            config_dict = self._deep_merge(config_dict, env_config)

        env_overrides = self._load_env_overrides()
        config_dict = self._deep_merge(config_dict, env_overrides)

        config = self._dict_to_config(config_dict)
        config.validate()

        self._config_cache = config
        return config

    def _load_yaml_config(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from YAML file"""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        return loaded

    def _load_env_overrides(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables

        ``HONK_BRIDGE_SRS_G1_URL`` becomes ``srs.g1_url``: the first segment
        names the section, the remainder is the field name.
        """
        overrides: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            config_key = key[len(ENV_PREFIX) :].lower()
            if config_key in ("debug", "environment"):
                overrides[config_key] = self._parse_env_value(value)
                continue

            section, _, field_name = config_key.partition("_")
            if section not in SECTIONS or not field_name:
                continue
            overrides.setdefault(section, {})[field_name] = self._parse_env_value(value)

        return overrides

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type"""
        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        if value.isdigit():
            return int(value)

        try:
            return float(value)
        except ValueError:
            pass

        try:
            return json.loads(value)
        except (json.JSONDecodeError, ValueError):
            pass

        return value

    def _deep_merge(
        self, base: Dict[str, Any], override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> HonkBridgeConfig:
        """Convert dictionary to configuration object"""
        config = HonkBridgeConfig()

        if "environment" in config_dict:
            config.environment = Environment(config_dict["environment"])
        else:
            config.environment = self.env

        if "debug" in config_dict:
            config.debug = bool(config_dict["debug"])

        for section_name in SECTIONS:
            section_dict = config_dict.get(section_name)
            if not section_dict:
                continue
            section_config = getattr(config, section_name)

            for field_name, field_value in section_dict.items():
                if not hasattr(section_config, field_name):
                    logger.warning(
                        f"Unknown configuration field: {section_name}.{field_name}"
                    )
                    continue
                enum_cls = _ENUM_FIELDS.get((section_name, field_name))
                if enum_cls is not None:
                    field_value = enum_cls(field_value)
                setattr(section_config, field_name, field_value)

        return config

    def save_config(
        self, config: HonkBridgeConfig, path: Optional[Path] = None
    ) -> None:
        """Save configuration to file"""
        if path is None:
            path = self.config_dir / f"{self.env.value}.yaml"

        config_dict = config_to_dict(config)

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2)

        logger.info(f"Configuration saved to {path}")

    def reload_config(self) -> HonkBridgeConfig:
        """Reload configuration from files"""
        self._config_cache = None
        return self.load_config()


def config_to_dict(config: HonkBridgeConfig) -> Dict[str, Any]:
    """Convert configuration object to a plain dictionary"""
    result: Dict[str, Any] = {
        "environment": config.environment.value,
        "debug": config.debug,
    }

    for section_name in SECTIONS:
        section_config = getattr(config, section_name)
        section: Dict[str, Any] = {}
        for f in fields(section_config):
            value = getattr(section_config, f.name)
            section[f.name] = value.value if isinstance(value, Enum) else value
        result[section_name] = section

    return result


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None
_config: Optional[HonkBridgeConfig] = None


def get_config_manager(env: Optional[str] = None) -> ConfigManager:
    """Get or create global configuration manager"""
    global _config_manager
    if _config_manager is None or (env and _config_manager.env.value != env):
        _config_manager = ConfigManager(env=env)
    return _config_manager


def get_config(env: Optional[str] = None, reload: bool = False) -> HonkBridgeConfig:
    """Get current configuration"""
    global _config

    if _config is None or reload or (env and _config.environment.value != env):
        config_manager = get_config_manager(env)
        _config = (
            config_manager.reload_config() if reload else config_manager.load_config()
        )

    return _config


def set_config(config: Optional[HonkBridgeConfig]) -> None:
    """Set global configuration (``None`` forces a reload on next access)"""
    global _config
    _config = config


def is_production() -> bool:
    """Check if running in production environment"""
    return get_config().environment == Environment.PRODUCTION


__all__ = [
    "HonkBridgeConfig",
    "NativeConfig",
    "SrsConfig",
    "ProverConfig",
    "LoggingConfig",
    "ResponseFraming",
    "ConfigManager",
    "Environment",
    "LogLevel",
    "config_to_dict",
    "get_config",
    "get_config_manager",
    "set_config",
    "is_production",
]
