"""Configuration management for the cleanup advisor."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

DEFAULT_SAFE_EXTENSIONS: frozenset[str] = frozenset({
    ".tmp",
    ".temp",
    ".log",
    ".bak",
    ".old",
    ".chk",
    ".dmp",
    ".err",
    ".cache",
    ".msi.old",
})

DEFAULT_RISKY_EXTENSIONS: frozenset[str] = frozenset({
    ".exe",
    ".dll",
    ".sys",
    ".ocx",
    ".drv",
    ".dat",
    ".db",
    ".pst",
    ".xls",
    ".xlsx",
    ".doc",
    ".docx",
    ".pdf",
})

DEFAULT_TEMP_DIR_TOKENS: frozenset[str] = frozenset({
    "temp",
    "tmp",
    "cache",
    "caches",
    "log",
    "logs",
    "crash",
    "minidump",
    "reports",
    "report",
    "backups",
    "bak",
})

DEFAULT_MODULE_EXTENSIONS: frozenset[str] = frozenset({".dll", ".sys"})

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

WEIGHT_MIN = 0
WEIGHT_MAX = 100


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a boolean from YAML or string input.

    Args:
        value: Raw value (bool, int, str or None).
        default: Returned when value is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in {"true", "yes", "on", "1"}


def normalize_extension(ext: str) -> str:
    """Lowercase an extension and ensure a leading dot."""
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return ext


@dataclass(frozen=True)
class WeightConfig:
    """The nine weights of the scoring model."""

    age: int = 30
    access_age: int = 10
    temp_location: int = 10
    extension: int = 15
    redundancy: int = 15
    attributes_penalty: int = 10
    recent_write_penalty: int = 10
    recent_create_penalty: int = 10
    size_bonus: int = 5

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Weight {f.name} must be an integer, got {value!r}")
            if not WEIGHT_MIN <= value <= WEIGHT_MAX:
                raise ValueError(f"Weight {f.name} must be between {WEIGHT_MIN} and {WEIGHT_MAX}, got {value}")

    @property
    def max_positive(self) -> int:
        return (
            self.age + self.access_age + self.temp_location + self.extension + self.redundancy + self.size_bonus
        )

    @property
    def max_negative(self) -> int:
        return self.recent_write_penalty + self.recent_create_penalty + self.attributes_penalty

    def to_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WeightConfig:
        """Build weights from a mapping, ignoring unknown keys."""
        data = _section(data, "weights")
        known = {f.name for f in fields(cls)}
        return cls(**{key: int(value) for key, value in data.items() if key in known})


@dataclass(frozen=True)
class ClassificationRules:
    """Extension sets and directory tokens consulted by the scoring engine."""

    safe_extensions: frozenset[str] = DEFAULT_SAFE_EXTENSIONS
    risky_extensions: frozenset[str] = DEFAULT_RISKY_EXTENSIONS
    temp_dir_tokens: frozenset[str] = DEFAULT_TEMP_DIR_TOKENS
    module_extensions: frozenset[str] = DEFAULT_MODULE_EXTENSIONS

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ClassificationRules:
        """Build rules from a mapping; missing lists keep their defaults."""
        data = _section(data, "classification")
        kwargs: dict[str, frozenset[str]] = {}
        for key in ("safe_extensions", "risky_extensions", "module_extensions"):
            if key in data:
                kwargs[key] = frozenset(normalize_extension(str(e)) for e in _list(data[key], key) if e)
        if "temp_dir_tokens" in data:
            tokens = _list(data["temp_dir_tokens"], "temp_dir_tokens")
            kwargs["temp_dir_tokens"] = frozenset(str(t).strip().lower() for t in tokens if t)
        return cls(**kwargs)

    def to_dict(self) -> dict[str, list[str]]:
        return {f.name: sorted(getattr(self, f.name)) for f in fields(self)}


@dataclass
class AdvisorConfig:
    """Options for one advisor run."""

    # Scan scope
    root: Path = field(default_factory=lambda: Path("."))
    recurse: bool = False
    top: int = 200
    min_size: int = 0  # bytes

    # Scoring model
    weights: WeightConfig = field(default_factory=WeightConfig)
    rules: ClassificationRules = field(default_factory=ClassificationRules)

    # Export targets, skipped when None
    csv_path: Path | None = None
    json_path: Path | None = None
    markdown_path: Path | None = None

    # Logging
    log_file: Path | None = None
    log_level: str = "INFO"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".config/cleanup-advisor/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> AdvisorConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration, or defaults if the file does not exist.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return cls._from_dict(_section(data, "configuration file"))

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> AdvisorConfig:
        """Create config from dictionary."""
        config = cls()

        if "scan" in data:
            scan = _section(data["scan"], "scan")
            if "root" in scan:
                config.root = _expand(scan["root"])
            config.recurse = parse_bool(scan.get("recurse"), config.recurse)
            if "top" in scan:
                config.top = int(scan["top"])
            if "min_size" in scan:
                config.min_size = int(scan["min_size"])

        if "weights" in data:
            config.weights = WeightConfig.from_dict(data["weights"])

        if "classification" in data:
            config.rules = ClassificationRules.from_dict(data["classification"])

        if "export" in data:
            export = _section(data["export"], "export")
            if export.get("csv"):
                config.csv_path = _expand(export["csv"])
            if export.get("json"):
                config.json_path = _expand(export["json"])
            if export.get("markdown"):
                config.markdown_path = _expand(export["markdown"])

        if "logging" in data:
            logging_cfg = _section(data["logging"], "logging")
            if logging_cfg.get("file"):
                config.log_file = _expand(logging_cfg["file"])
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        if config.top < 1:
            raise ValueError(f"scan.top must be at least 1, got {config.top}")
        if config.min_size < 0:
            raise ValueError(f"scan.min_size must not be negative, got {config.min_size}")

        return config

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "scan": {
                "root": str(self.root),
                "recurse": self.recurse,
                "top": self.top,
                "min_size": self.min_size,
            },
            "weights": self.weights.to_dict(),
            "classification": self.rules.to_dict(),
            "export": {
                "csv": str(self.csv_path) if self.csv_path else None,
                "json": str(self.json_path) if self.json_path else None,
                "markdown": str(self.markdown_path) if self.markdown_path else None,
            },
            "logging": {
                "file": str(self.log_file) if self.log_file else None,
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def _expand(value: Any) -> Path:
    return Path(os.path.expanduser(str(value)))


def _section(value: Any, name: str) -> dict[str, Any]:
    """Return a config mapping; an empty YAML section counts as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a mapping, got {type(value).__name__}")
    return value


def _list(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list, got {type(value).__name__}")
    return value
