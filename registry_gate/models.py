"""
Data model shared by the loader, the invariant checks, the descriptor
resolver and the report.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple
from urllib.parse import urlsplit


class ManifestFormat(Enum):
    """Serialization formats a manifest may be stored in."""
    JSON = "json"
    YAML = "yaml"


class HostKind(Enum):
    """Git hosting providers whose descriptor files can be located."""
    GITHUB = "github.com"


class ViolationKind(Enum):
    """Local invariant violation types, in the order the checks run."""
    INVALID_EXTENSION = "invalid_extension"
    DUPLICATE_GROUP = "duplicate_group"
    UNSORTED_ENTRY = "unsorted_entry"


class OutcomeStatus(Enum):
    """Result of verifying a single entry against its host."""
    VALID = "valid"
    SKIPPED_NO_PRODUCT = "skipped_no_product"
    SKIPPED_UNFETCHABLE = "skipped_unfetchable"
    HARD_FAILURE = "hard_failure"

    @property
    def is_skip(self) -> bool:
        return self in (OutcomeStatus.SKIPPED_NO_PRODUCT, OutcomeStatus.SKIPPED_UNFETCHABLE)


def normalize_url(url: str) -> str:
    """Key used for duplicate and ordering comparisons. Never fetched."""
    return url.casefold()


@dataclass(frozen=True)
class ManifestEntry:
    """A single URL in the manifest together with its position."""
    index: int
    url: str

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme

    @property
    def host(self) -> Optional[str]:
        # hostname would lowercase; host matching is exact
        netloc = urlsplit(self.url).netloc.rpartition("@")[2]
        if not netloc.startswith("["):
            netloc = netloc.partition(":")[0]
        return netloc or None

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def normalized_key(self) -> str:
        return normalize_url(self.url)


@dataclass(frozen=True)
class Manifest:
    """A loaded manifest. Corrections are emitted as new sequences."""
    path: Path
    entries: Tuple[ManifestEntry, ...]
    format: ManifestFormat = ManifestFormat.JSON

    @property
    def urls(self) -> List[str]:
        return [entry.url for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


class ValidationViolation:
    """Base class for local invariant violations."""
    kind: ClassVar[ViolationKind]

    def describe(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.describe()}


@dataclass(frozen=True)
class InvalidExtension(ValidationViolation):
    """Every entry whose path lacks the .git suffix."""
    kind: ClassVar[ViolationKind] = ViolationKind.INVALID_EXTENSION
    entries: Tuple[ManifestEntry, ...]

    def describe(self) -> str:
        listed = ", ".join(f"[{e.index}] {e.url}" for e in self.entries)
        return f"Invalid URLs missing .git extension: {listed}"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["entries"] = [{"index": e.index, "url": e.url} for e in self.entries]
        return data


@dataclass(frozen=True)
class DuplicateGroup(ValidationViolation):
    """Groups of entries sharing a normalized key, with their original indices."""
    kind: ClassVar[ViolationKind] = ViolationKind.DUPLICATE_GROUP
    groups: Tuple[Tuple[str, Tuple[int, ...]], ...]

    def describe(self) -> str:
        lines = [f"  {key}: indices {list(indices)}" for key, indices in self.groups]
        return "Duplicate URLs:\n" + "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["groups"] = {key: list(indices) for key, indices in self.groups}
        return data


@dataclass(frozen=True)
class UnsortedEntry(ValidationViolation):
    """Positions that differ from the case-folded sort, plus the sorted list."""
    kind: ClassVar[ViolationKind] = ViolationKind.UNSORTED_ENTRY
    positions: Tuple[Tuple[int, str], ...]
    sorted_urls: Tuple[str, ...]

    def describe(self) -> str:
        listed = ", ".join(f"({index}, {url})" for index, url in self.positions)
        return f"packages.json is not sorted: {listed}"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["positions"] = [{"index": index, "url": url} for index, url in self.positions]
        return data


@dataclass
class Product:
    name: str


@dataclass
class PackageDescriptor:
    """Normalized package metadata reported by the description tool."""
    name: str
    products: List[Product] = field(default_factory=list)


@dataclass
class EntryOutcome:
    """Outcome of remote verification for one manifest entry."""
    entry: ManifestEntry
    status: OutcomeStatus
    message: str = ""
    descriptor_url: Optional[str] = None
    descriptor: Optional[PackageDescriptor] = None
    work_dir: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.entry.index,
            "url": self.entry.url,
            "status": self.status.value,
            "message": self.message,
            "descriptor_url": self.descriptor_url,
            "package": self.descriptor.name if self.descriptor else None,
            "products": [p.name for p in self.descriptor.products] if self.descriptor else [],
        }
