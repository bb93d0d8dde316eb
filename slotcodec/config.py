"""
slotcodec Configuration System

Configuration management with YAML files, environment variables and
validation.

Configuration Sources (in order of precedence):
    1. Environment variables (SLOTCODEC_*)
    2. Runtime overrides and loaded files
    3. Default values

Codec calls never read this live: each call takes a frozen ``CodecOptions``
snapshot up front, so a concurrent change cannot affect a call in flight.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from slotcodec.schema import SortOrder

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ValidationError(ConfigError):
    """Configuration validation error."""
    pass


def _is_int(x: Any) -> bool:
    return isinstance(x, int) and not isinstance(x, bool)


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding and validation.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Get the current value."""
        # Check environment variable first
        if self.env_var and self.env_var in os.environ:
            env_value = os.environ[self.env_var]
            return self._coerce(env_value)

        # Return set value or default
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ValidationError(f"Invalid value for config: {value!r}")
        self._value = value

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        try:
            if target_type == bool:
                return value.lower() in ("true", "1", "yes", "on")  # type: ignore
            elif target_type == int:
                return int(value)  # type: ignore
            else:
                return value  # type: ignore
        except ValueError as exc:
            raise ValidationError(f"{self.env_var}={value!r}: {exc}") from exc


@dataclass(frozen=True)
class CodecOptions:
    """Immutable per-call view of the configuration."""
    cell_width: Optional[int] = None
    uint32_numbers: bool = True
    sort_order: SortOrder = SortOrder.ASCENDING
    max_schema_bytes: int = 4 * 1024 * 1024
    max_payload_bytes: int = 4 * 1024 * 1024
    subject_key: str = "credentialSubject"


@dataclass
class SequentialConfig:
    """Configuration for Sequential-Fill packing."""
    cell_width: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=0,
        env_var="SLOTCODEC_CELL_WIDTH",
        description="Fixed bytes per field not packed as a uint32 cell (0 = minimal encoding)",
        validator=lambda x: _is_int(x) and 0 <= x <= 32,
    ))
    jsonld_sort_order: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="ascending",
        env_var="SLOTCODEC_JSONLD_SORT_ORDER",
        description="JSON-LD field order (ascending, descending)",
        validator=lambda x: x in ("ascending", "descending"),
    ))


@dataclass
class EncodingConfig:
    """Byte encoding of payload values."""
    uint32_numbers: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="SLOTCODEC_UINT32_NUMBERS",
        description="Pack JSON numbers as 4-byte little-endian uint32 cells (false = minimal encoding)",
        validator=lambda x: isinstance(x, bool),
    ))


@dataclass
class LimitsConfig:
    """Input size limits."""
    max_schema_bytes: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=4 * 1024 * 1024,  # 4MB
        env_var="SLOTCODEC_MAX_SCHEMA_BYTES",
        description="Largest schema document accepted",
        validator=lambda x: _is_int(x) and x > 0,
    ))
    max_payload_bytes: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=4 * 1024 * 1024,  # 4MB
        env_var="SLOTCODEC_MAX_PAYLOAD_BYTES",
        description="Largest payload document accepted",
        validator=lambda x: _is_int(x) and x > 0,
    ))


@dataclass
class MerklizedConfig:
    """Configuration for path-based slot resolution."""
    subject_key: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="credentialSubject",
        env_var="SLOTCODEC_SUBJECT_KEY",
        description="Document member that holds the credential subject",
        validator=lambda x: isinstance(x, str) and bool(x) and "." not in x,
    ))


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="warning",
        env_var="SLOTCODEC_LOG_LEVEL",
        description="Log level (debug, info, warning, error, critical)",
        validator=lambda x: x in LOG_LEVELS,
    ))


@dataclass
class CodecConfig:
    """
    Root configuration for slotcodec.

    Aggregates all component configurations and provides
    snapshot/export functionality.
    """
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    sequential: SequentialConfig = field(default_factory=SequentialConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    merklized: MerklizedConfig = field(default_factory=MerklizedConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False)

    def snapshot(self) -> CodecOptions:
        """Freeze the current values into ``CodecOptions``."""
        width = self.sequential.cell_width.get()
        return CodecOptions(
            cell_width=width or None,
            uint32_numbers=self.encoding.uint32_numbers.get(),
            sort_order=SortOrder(self.sequential.jsonld_sort_order.get()),
            max_schema_bytes=self.limits.max_schema_bytes.get(),
            max_payload_bytes=self.limits.max_payload_bytes.get(),
            subject_key=self.merklized.subject_key.get(),
        )


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = CodecConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @property
    def config(self) -> CodecConfig:
        """Get the current configuration."""
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must hold a mapping: {path}")
        self._apply_dict(data)
        self._config_paths.append(path)
        logger.info(f"loaded configuration from {path}")

    def load_defaults(self) -> None:
        """Load default configuration files if they exist."""
        default_paths = [
            Path("slotcodec.yaml"),
            Path.home() / ".slotcodec" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                self.load_from_file(path)

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                path = f"{prefix}{key}"
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown config key: {path}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{path}.")
                else:
                    raise ConfigError(f"Expected a mapping at config key: {path}")

        apply_to_config(self._config, data, "")

    def _lookup(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, "__dataclass_fields__") or part not in obj.__dataclass_fields__:
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("sequential.cell_width", 4)
        """
        attr = self._lookup(path)
        if isinstance(attr, ConfigValue):
            attr.set(value)
        else:
            raise ConfigError(f"Invalid config path: {path}")

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("limits.max_schema_bytes")
        """
        obj = self._lookup(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def reset(self) -> None:
        """Drop loaded files and overrides, back to defaults."""
        self._config = CodecConfig()
        self._config_paths = []

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value!r}")
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def snapshot(self) -> CodecOptions:
        """Validate and freeze the current configuration."""
        errors = self.validate()
        if errors:
            raise ValidationError("; ".join(errors))
        return self._config.snapshot()


def get_config() -> CodecConfig:
    """Get the current slotcodec configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()
