"""
Configuration for devsweep.

Settings live in a YAML file (``~/.config/devsweep/config.yaml`` by default)
split into sections:

    general:     trash vs. delete, worker counts, walk caps
    categories:  default category and risk selection
    heuristic:   heuristic cache detection thresholds and search roots
    risk:        which risk levels need confirmation
    ignore:      paths never reported or touched
"""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

import yaml

from devsweep.exceptions import ConfigError, ValidationError
from devsweep.models import Category, RiskLevel

logger = logging.getLogger(__name__)

APP_NAME = "devsweep"
CONFIG_FILENAME = "config.yaml"

# Searched below the home directory when no heuristic search roots are set.
DEFAULT_PROJECT_DIRS = ("Projects", "projects", "Code", "code", "Development", "dev", "src")


@dataclass
class GeneralConfig:
    use_trash: bool = True
    parallel_threads: int = 0  # 0 = let the thread pool decide
    max_parallel_categories: int = 4
    per_entry_confirmation: bool = False
    max_walk_depth: int = 64
    max_walk_entries: int = 1_000_000


@dataclass
class CategoryConfig:
    enabled: list = field(default_factory=list)  # empty = every category
    min_risk: Optional[str] = None
    max_risk: Optional[str] = None


@dataclass
class HeuristicConfig:
    enabled: bool = True
    size_threshold_mb: int = 100
    stale_days: int = 30
    max_depth: int = 3
    search_roots: list = field(default_factory=list)


@dataclass
class RiskConfig:
    confirm_high_risk: bool = True
    confirm_medium_risk: bool = False


@dataclass
class IgnoreConfig:
    paths: list = field(default_factory=list)


_SECTIONS = {
    "general": GeneralConfig,
    "categories": CategoryConfig,
    "heuristic": HeuristicConfig,
    "risk": RiskConfig,
    "ignore": IgnoreConfig,
}


def default_config_path() -> Path:
    """``$XDG_CONFIG_HOME/devsweep/config.yaml`` or ``~/.config/devsweep/config.yaml``."""
    base = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(base) if base else Path.home() / ".config"
    return config_home / APP_NAME / CONFIG_FILENAME


def _build_section(name: str, cls: type, data: Any) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValidationError(f"Section '{name}' must be a mapping, got {type(data).__name__}")

    defaults = cls()
    known = {f.name for f in fields(cls)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key: {name}.{key}")
            continue
        default = getattr(defaults, key)
        if value is not None and default is not None and not _same_kind(default, value):
            raise ValidationError(
                f"{name}.{key} must be {type(default).__name__}, got {type(value).__name__}"
            )
        values[key] = value
    return cls(**values)


def _same_kind(default: Any, value: Any) -> bool:
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, type(default))


@dataclass
class SweepConfig:
    """Complete, validated configuration handed to the pipeline."""

    general: GeneralConfig = field(default_factory=GeneralConfig)
    categories: CategoryConfig = field(default_factory=CategoryConfig)
    heuristic: HeuristicConfig = field(default_factory=HeuristicConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SweepConfig":
        """
        Build a configuration from parsed YAML.

        Raises:
            ValidationError: If a section or value has the wrong type.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ValidationError("Configuration root must be a mapping")
        for key in data:
            if key not in _SECTIONS:
                logger.warning(f"Ignoring unknown configuration section: {key}")
        sections = {name: _build_section(name, section, data.get(name)) for name, section in _SECTIONS.items()}
        config = cls(**sections)
        config.validate()
        return config

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def load(cls, path: Path | str) -> "SweepConfig":
        """
        Load configuration from a YAML file.

        Raises:
            ConfigError: If the file cannot be read or parsed, or is invalid.
        """
        path = Path(path).expanduser()
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read configuration {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        logger.debug(f"Loaded configuration from {path}")
        return cls.from_dict(data)

    @classmethod
    def load_or_default(cls, path: Path | str | None = None) -> "SweepConfig":
        """Load ``path`` if given, else the default file if present, else defaults."""
        if path is not None:
            return cls.load(path)
        default_path = default_config_path()
        if default_path.exists():
            return cls.load(default_path)
        return cls()

    def save(self, path: Path | str | None = None) -> Path:
        """Write the configuration as YAML and return the path written."""
        path = Path(path).expanduser() if path else default_config_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                yaml.safe_dump(self.to_dict(), f, sort_keys=False, default_flow_style=False)
        except OSError as e:
            raise ConfigError(f"Cannot write configuration {path}: {e}") from e
        return path

    def validate(self) -> None:
        """
        Check values that a type check cannot catch.

        Raises:
            ValidationError: On the first invalid value.
        """
        general = self.general
        if general.parallel_threads < 0:
            raise ValidationError("general.parallel_threads must be >= 0")
        if general.max_parallel_categories < 1:
            raise ValidationError("general.max_parallel_categories must be >= 1")
        if general.max_walk_depth < 1 or general.max_walk_entries < 1:
            raise ValidationError("general.max_walk_depth and max_walk_entries must be >= 1")

        heuristic = self.heuristic
        if heuristic.size_threshold_mb < 0:
            raise ValidationError("heuristic.size_threshold_mb must be >= 0")
        if heuristic.stale_days < 0:
            raise ValidationError("heuristic.stale_days must be >= 0")
        if heuristic.max_depth < 1:
            raise ValidationError("heuristic.max_depth must be >= 1")
        for root in heuristic.search_roots:
            if not Path(str(root)).expanduser().is_dir():
                raise ValidationError(f"heuristic.search_roots: not a directory: {root}")

        try:
            Category.parse_many(self.categories.enabled)
            low = RiskLevel.parse(self.categories.min_risk)
            high = RiskLevel.parse(self.categories.max_risk)
        except ConfigError as e:
            raise ValidationError(str(e)) from e
        if low is not None and high is not None and low > high:
            raise ValidationError("categories.min_risk is higher than categories.max_risk")

    # Derived values used by the pipeline

    @property
    def selected_categories(self) -> set[Category]:
        return Category.parse_many(self.categories.enabled)

    @property
    def min_risk(self) -> Optional[RiskLevel]:
        return RiskLevel.parse(self.categories.min_risk)

    @property
    def max_risk(self) -> Optional[RiskLevel]:
        return RiskLevel.parse(self.categories.max_risk)

    @property
    def heuristic_min_size(self) -> int:
        return self.heuristic.size_threshold_mb * 1024 * 1024

    @property
    def heuristic_min_age(self) -> timedelta:
        return timedelta(days=self.heuristic.stale_days)

    @property
    def ignore_paths(self) -> list[Path]:
        return [Path(str(p)).expanduser() for p in self.ignore.paths]

    def heuristic_search_roots(self, home: Optional[Path] = None) -> list[Path]:
        """Configured search roots, or home plus the common project folders that exist."""
        if self.heuristic.search_roots:
            return [Path(str(p)).expanduser() for p in self.heuristic.search_roots]
        home = home or Path.home()
        roots = [home]
        roots.extend(home / d for d in DEFAULT_PROJECT_DIRS if (home / d).is_dir())
        return roots
