"""
Network-free manifest checks.

Checks run in a fixed order (extension, duplicates, sort) and stop at the
first one that fails. Each check reports every offending entry at once.
Writing the sorted manifest is a separate step the caller sequences after
detection.
"""

import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import yaml

from registry_gate.models import (
    DuplicateGroup,
    InvalidExtension,
    Manifest,
    ManifestEntry,
    ManifestFormat,
    UnsortedEntry,
    ValidationViolation,
    normalize_url,
)

logger = logging.getLogger(__name__)

GIT_SUFFIX = ".git"


def check_extensions(entries: Sequence[ManifestEntry]) -> Optional[InvalidExtension]:
    """Flag every entry whose URL path does not end in a literal .git."""
    logger.info("Checking all urls are valid.")
    invalid = [entry for entry in entries if not entry.path.endswith(GIT_SUFFIX)]
    if invalid:
        return InvalidExtension(entries=tuple(invalid))
    return None


def check_duplicates(entries: Sequence[ManifestEntry]) -> Optional[DuplicateGroup]:
    """Group entries by case-folded URL and flag groups with several members."""
    logger.info("Checking for duplicate packages.")
    groups: Dict[str, List[int]] = {}
    for entry in entries:
        groups.setdefault(entry.normalized_key, []).append(entry.index)

    duplicates = tuple(
        (key, tuple(indices)) for key, indices in groups.items() if len(indices) > 1
    )
    if duplicates:
        return DuplicateGroup(groups=duplicates)
    return None


def sort_urls(urls: Sequence[str]) -> List[str]:
    return sorted(urls, key=normalize_url)


def check_sorted(entries: Sequence[ManifestEntry]) -> Optional[UnsortedEntry]:
    """Compare the manifest order with its case-folded sort, position by position."""
    logger.info("Checking packages are sorted.")
    original = [entry.url for entry in entries]
    expected = sort_urls(original)
    positions = tuple(
        (index, url) for index, (url, wanted) in enumerate(zip(original, expected)) if url != wanted
    )
    if positions:
        return UnsortedEntry(positions=positions, sorted_urls=tuple(expected))
    return None


LOCAL_CHECKS: List[Callable[[Sequence[ManifestEntry]], Optional[ValidationViolation]]] = [
    check_extensions,
    check_duplicates,
    check_sorted,
]


def run_local_checks(manifest: Manifest) -> Optional[ValidationViolation]:
    """Run the checks in order and return the first violation found, if any."""
    for check in LOCAL_CHECKS:
        violation = check(manifest.entries)
        if violation is not None:
            logger.error(f"✗ {violation.describe()}")
            return violation
    logger.info(f"✓ Local checks passed for {len(manifest)} entries")
    return None


def sorted_manifest_path(path: Path) -> Path:
    """packages.json -> packages.sorted.json; a suffixless path gets .sorted.json"""
    return path.with_name(f"{path.stem}.sorted{path.suffix or '.json'}")


def serialize_urls(urls: Sequence[str], manifest_format: ManifestFormat) -> str:
    if manifest_format is ManifestFormat.YAML:
        return yaml.safe_dump(list(urls), default_flow_style=False, allow_unicode=True)
    # json never escapes "/", so the output matches hand-edited manifests
    return json.dumps(list(urls), indent=2, ensure_ascii=False) + "\n"


def write_sorted_manifest(manifest: Manifest, sorted_urls: Sequence[str]) -> Optional[Path]:
    """
    Write the corrected manifest next to the original.

    Best effort: a failed write is logged and reported as None so the caller
    can still fail the run with the original violation.
    """
    output_path = sorted_manifest_path(manifest.path)
    try:
        output_path.write_text(serialize_urls(sorted_urls, manifest.format), encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write sorted manifest to {output_path}: {e}")
        return None

    logger.info(f"Sorted manifest has been saved to: {output_path}")
    return output_path
