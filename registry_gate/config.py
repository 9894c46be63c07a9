"""
Validator configuration.

Settings are resolved in layers: built-in defaults, then an optional YAML
file (``config/validator.yaml`` or ``--config``), then environment variables,
then command-line flags applied by the caller.

Environment Variables:
    GITHUB_TOKEN                  - token sent when fetching raw descriptor files
    REGISTRY_GATE_WORKERS         - number of entries resolved concurrently
    REGISTRY_GATE_FAIL_ON_SKIPPED - treat skipped entries as failures ("1"/"true")
"""

import os
import shlex
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from registry_gate.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("config/validator.yaml")
MANIFEST_FILENAME = "packages.json"
INSTALL_DIR = Path(__file__).resolve().parent

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for '{key}': {value!r}")


@dataclass
class ValidatorConfig:
    """Explicit settings for a validation run."""
    search_paths: List[Path] = field(default_factory=list)
    temp_root: Optional[Path] = None
    describe_command: List[str] = field(default_factory=lambda: ["swift", "package", "dump-package"])
    descriptor_filename: str = "Package.swift"
    branches: List[str] = field(default_factory=lambda: ["master"])
    fetch_timeout: float = 30.0
    describe_timeout: float = 300.0
    fetch_retries: int = 3
    max_workers: int = 1
    fail_on_skipped: bool = False
    github_token: Optional[str] = None
    user_agent: str = "registry-gate/1.0"

    def __post_init__(self):
        if isinstance(self.search_paths, (str, Path)):
            self.search_paths = [self.search_paths]
        if not isinstance(self.search_paths, (list, tuple)):
            raise ConfigError("search_paths must be a path or a list of paths")
        self.search_paths = [Path(p) for p in self.search_paths]
        if self.temp_root is not None:
            self.temp_root = Path(self.temp_root)
        if isinstance(self.describe_command, str):
            self.describe_command = shlex.split(self.describe_command)
        if isinstance(self.branches, str):
            self.branches = [self.branches]
        self.fail_on_skipped = _parse_bool(self.fail_on_skipped, "fail_on_skipped")
        self.validate()

    def validate(self):
        """Raise ConfigError for values the pipeline cannot run with."""
        if not self.describe_command:
            raise ConfigError("describe_command must not be empty")
        if not self.branches or not all(isinstance(b, str) and b for b in self.branches):
            raise ConfigError("branches must be a non-empty list of branch names")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.fetch_retries < 0:
            raise ConfigError(f"fetch_retries must not be negative, got {self.fetch_retries}")
        for key in ("fetch_timeout", "describe_timeout"):
            if getattr(self, key) <= 0:
                raise ConfigError(f"{key} must be positive, got {getattr(self, key)}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ValidatorConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        try:
            return cls(**dict(data))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @classmethod
    def load(cls, config_file: Optional[str] = None,
             environ: Optional[Mapping[str, str]] = None) -> "ValidatorConfig":
        """Load defaults, then the YAML file, then environment overrides."""
        environ = os.environ if environ is None else environ
        data = _read_config_file(config_file)
        data.update(_environment_overrides(environ))
        config = cls.from_mapping(data)
        logger.debug(f"Validator configuration loaded: workers={config.max_workers}, "
                     f"branches={config.branches}, fail_on_skipped={config.fail_on_skipped}")
        return config


def _read_config_file(config_file: Optional[str]) -> Dict[str, Any]:
    if config_file:
        path = Path(config_file)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
    else:
        path = DEFAULT_CONFIG_FILE
        if not path.exists():
            return {}

    logger.info(f"Loading configuration from {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _environment_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    token = environ.get("GITHUB_TOKEN")
    if token:
        overrides["github_token"] = token

    workers = environ.get("REGISTRY_GATE_WORKERS")
    if workers:
        try:
            overrides["max_workers"] = int(workers)
        except ValueError:
            raise ConfigError(f"REGISTRY_GATE_WORKERS must be an integer, got {workers!r}")

    fail_on_skipped = environ.get("REGISTRY_GATE_FAIL_ON_SKIPPED")
    if fail_on_skipped is not None:
        overrides["fail_on_skipped"] = _parse_bool(fail_on_skipped, "REGISTRY_GATE_FAIL_ON_SKIPPED")
    return overrides


def default_search_paths(explicit: Optional[str] = None, cwd: Optional[Path] = None,
                         install_dir: Optional[Path] = None) -> List[Path]:
    """
    Candidate manifest locations in lookup order.

    Args:
        explicit: Path given on the command line, if any
        cwd: Working directory to look in (defaults to the process cwd)
        install_dir: Tool install location used as the last fallback
    """
    candidates = []
    if explicit:
        candidates.append(Path(explicit))
    candidates.append((cwd or Path.cwd()) / MANIFEST_FILENAME)
    candidates.append((install_dir or INSTALL_DIR) / MANIFEST_FILENAME)
    return candidates
