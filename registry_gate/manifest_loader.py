"""
Locates and parses the package manifest.

The manifest is a JSON array of repository URLs (a YAML list is accepted for
``.yaml``/``.yml`` files). File order is preserved and defines each entry's
index.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlsplit

import yaml

from registry_gate.errors import ManifestNotFoundError, ManifestParseError
from registry_gate.models import Manifest, ManifestEntry, ManifestFormat

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


def detect_format(path: Path) -> ManifestFormat:
    if path.suffix.lower() in YAML_SUFFIXES:
        return ManifestFormat.YAML
    return ManifestFormat.JSON


def invalid_url_reason(value: str) -> Optional[str]:
    """Why a manifest string is not an absolute URL, or None when it is."""
    if not value:
        return "empty string"
    if any(ch.isspace() or not ch.isprintable() for ch in value):
        return "contains whitespace or control characters"
    try:
        parts = urlsplit(value)
    except ValueError as e:
        return str(e)
    if not parts.scheme or not parts.netloc:
        return "not an absolute URL"
    return None


def find_manifest(search_paths: Iterable[Path]) -> Path:
    """Return the first candidate path that exists."""
    candidates = [Path(p) for p in search_paths]
    for candidate in candidates:
        if candidate.exists():
            logger.debug(f"Using manifest at {candidate}")
            return candidate
        logger.debug(f"No manifest at {candidate}")
    raise ManifestNotFoundError(candidates)


def load_manifest(path: Path) -> Manifest:
    """Parse a manifest file into an ordered, read-only Manifest."""
    path = Path(path)
    manifest_format = detect_format(path)
    logger.info(f"Loading manifest from {path}")

    try:
        with open(path, encoding="utf-8") as f:
            if manifest_format is ManifestFormat.YAML:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
        raise ManifestParseError(path, str(e)) from e
    except OSError as e:
        raise ManifestParseError(path, f"unreadable: {e}") from e

    if not isinstance(data, list):
        raise ManifestParseError(path, f"expected a list of URLs, got {type(data).__name__}")

    entries = []
    for index, value in enumerate(data):
        if not isinstance(value, str):
            raise ManifestParseError(path, f"entry {index} is not a string: {value!r}")
        reason = invalid_url_reason(value)
        if reason:
            raise ManifestParseError(path, f"entry {index} is not a valid URL ({reason}): {value!r}")
        entries.append(ManifestEntry(index=index, url=value))

    logger.info(f"Loaded {len(entries)} package URLs")
    return Manifest(path=path, entries=tuple(entries), format=manifest_format)


def locate_and_load(search_paths: Iterable[Path]) -> Manifest:
    return load_manifest(find_manifest(search_paths))
