"""
Host classification and raw descriptor URL construction.

Both functions are pure; nothing here touches the network.
"""

import posixpath
from typing import Callable, Dict, Tuple
from urllib.parse import urlunsplit

from registry_gate.errors import InvalidURLError, UnsupportedHostError
from registry_gate.models import HostKind, ManifestEntry

RAW_GITHUB_HOST = "raw.githubusercontent.com"
DEFAULT_BRANCH = "master"
DEFAULT_DESCRIPTOR_FILENAME = "Package.swift"

_HOSTS_BY_NAME = {kind.value: kind for kind in HostKind}


def classify_host(entry: ManifestEntry) -> HostKind:
    """Map the entry's host to a known provider by exact string match."""
    host = entry.host
    if not host:
        raise InvalidURLError(entry.url)
    try:
        return _HOSTS_BY_NAME[host]
    except KeyError:
        raise UnsupportedHostError(host, entry.url) from None


def repository_coordinates(entry: ManifestEntry) -> Tuple[str, str]:
    """
    Return (owner, repository) from the last two path segments.

    The repository segment has its extension stripped, so
    ``/Alice/Foo.git`` yields ``("Alice", "Foo")``.
    """
    segments = [segment for segment in entry.path.split("/") if segment]
    if not segments:
        raise InvalidURLError(entry.url)
    repository = posixpath.splitext(segments[-1])[0]
    owner = segments[-2] if len(segments) > 1 else ""
    return owner, repository


def _github_descriptor_url(entry: ManifestEntry, branch: str, filename: str) -> str:
    owner, repository = repository_coordinates(entry)
    # https://raw.githubusercontent.com/[USER-NAME]/[REPOSITORY-NAME]/[BRANCH-NAME]/[FILE-PATH]
    path = "/".join(["", owner, repository, branch, filename])
    return urlunsplit(("https", RAW_GITHUB_HOST, path, "", ""))


DESCRIPTOR_URL_BUILDERS: Dict[HostKind, Callable[[ManifestEntry, str, str], str]] = {
    HostKind.GITHUB: _github_descriptor_url,
}


def descriptor_url(entry: ManifestEntry, host: HostKind, branch: str = DEFAULT_BRANCH,
                   filename: str = DEFAULT_DESCRIPTOR_FILENAME) -> str:
    """Raw-content URL of the entry's package descriptor on the given branch."""
    return DESCRIPTOR_URL_BUILDERS[host](entry, branch, filename)
