"""
Exception hierarchy for registry-gate.

Manifest errors abort before any entry is processed, host errors abort the
remote verification loop at the first offending entry, and descriptor errors
only ever skip the entry that raised them.
"""


class RegistryGateError(Exception):
    """Base exception for all validation failures."""
    pass


class ConfigError(RegistryGateError):
    """Raised when the validator configuration is malformed."""
    pass


class ManifestNotFoundError(RegistryGateError):
    """None of the candidate manifest paths exist."""

    def __init__(self, candidates):
        self.candidates = list(candidates)
        searched = ", ".join(str(c) for c in self.candidates) or "<none>"
        super().__init__(f"Unable to find packages.json to validate (searched: {searched})")


class ManifestParseError(RegistryGateError):
    """The manifest is not a well-formed sequence of URL strings."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse manifest {path}: {reason}")


class InvalidURLError(RegistryGateError):
    """An entry has no host component."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL: {url}")


class UnsupportedHostError(RegistryGateError):
    """An entry points at a git host with no known descriptor layout."""

    def __init__(self, host: str, url: str = ""):
        self.host = host
        self.url = url
        super().__init__(f"Unsupported Git Host: {host}")


class DescriptorError(RegistryGateError):
    """Base class for recoverable, per-entry descriptor failures."""
    pass


class DescriptorFetchError(DescriptorError):
    """The raw descriptor file could not be downloaded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class DescriptorDecodeError(DescriptorError):
    """The description tool failed or produced undecodable output."""
    pass
