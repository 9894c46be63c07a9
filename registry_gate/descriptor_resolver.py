"""
Remote verification of a single manifest entry.

For each entry the resolver downloads the raw ``Package.swift`` from the
entry's host, writes it into a fresh temporary directory and runs an external
description tool there (``swift package dump-package`` by default). The tool's
JSON output is decoded into a PackageDescriptor.

Every failure in this module is recoverable: the entry is reported as skipped
and the caller moves on to the next one.

Both the fetcher and the description tool are injectable so the verification
loop can run without network access or a Swift toolchain.
"""

import json
import logging
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from registry_gate.config import ValidatorConfig
from registry_gate.errors import DescriptorDecodeError, DescriptorFetchError
from registry_gate.hosts import descriptor_url
from registry_gate.models import (
    EntryOutcome,
    HostKind,
    ManifestEntry,
    OutcomeStatus,
    PackageDescriptor,
    Product,
)

logger = logging.getLogger(__name__)


class DescriptorFetcher(ABC):
    """Downloads raw descriptor files."""

    @abstractmethod
    def fetch(self, url: str) -> bytes:
        """Return the file content or raise DescriptorFetchError."""
        pass


class HTTPDescriptorFetcher(DescriptorFetcher):
    """requests-based fetcher with retry on rate limiting and server errors."""

    def __init__(self, timeout: float = 30.0, retries: int = 3, token: Optional[str] = None,
                 user_agent: str = "registry-gate/1.0"):
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        if token:
            self.session.headers["Authorization"] = f"token {token}"

        retry_strategy = Retry(
            total=retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    @classmethod
    def from_config(cls, config: ValidatorConfig) -> "HTTPDescriptorFetcher":
        return cls(
            timeout=config.fetch_timeout,
            retries=config.fetch_retries,
            token=config.github_token,
            user_agent=config.user_agent,
        )

    def fetch(self, url: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise DescriptorFetchError(url, str(e)) from e
        return response.content


def parse_descriptor(raw: Union[str, bytes]) -> PackageDescriptor:
    """Decode ``{name: str, products: [{name: str}]}``, ignoring other keys."""
    try:
        data: Any = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DescriptorDecodeError(f"Output is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DescriptorDecodeError("Descriptor must be a JSON object")
    name = data.get("name")
    if not isinstance(name, str):
        raise DescriptorDecodeError("Descriptor field 'name' must be a string")
    products = data.get("products")
    if not isinstance(products, list):
        raise DescriptorDecodeError("Descriptor field 'products' must be a list")

    parsed = []
    for position, product in enumerate(products):
        if not isinstance(product, dict) or not isinstance(product.get("name"), str):
            raise DescriptorDecodeError(f"Product {position} has no string 'name'")
        parsed.append(Product(name=product["name"]))
    return PackageDescriptor(name=name, products=parsed)


class DescriptorTool(ABC):
    """Produces a PackageDescriptor from a directory holding the descriptor file."""

    @abstractmethod
    def describe(self, directory: Path) -> PackageDescriptor:
        """Return the descriptor or raise DescriptorDecodeError."""
        pass


class SwiftPackageDumpTool(DescriptorTool):
    """Runs ``swift package dump-package`` in the working directory."""

    def __init__(self, command=None, timeout: float = 300.0):
        self.command = list(command or ["swift", "package", "dump-package"])
        self.timeout = timeout

    def describe(self, directory: Path) -> PackageDescriptor:
        logger.debug(f"Running {' '.join(self.command)} in {directory}")
        try:
            result = subprocess.run(
                self.command,
                cwd=directory,
                capture_output=True,
                timeout=self.timeout,
                check=False
            )
        except FileNotFoundError as e:
            raise DescriptorDecodeError(f"Description tool not found: {self.command[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise DescriptorDecodeError(f"Description tool timed out after {self.timeout:.0f}s") from e
        except OSError as e:
            raise DescriptorDecodeError(f"Failed to launch description tool: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
            raise DescriptorDecodeError(
                f"Description tool exited with code {result.returncode}: {stderr}"
            )
        return parse_descriptor(result.stdout)


class DescriptorResolver:
    """Turns a classified entry into an EntryOutcome."""

    def __init__(self, config: ValidatorConfig, fetcher: Optional[DescriptorFetcher] = None,
                 tool: Optional[DescriptorTool] = None):
        self.config = config
        self.fetcher = fetcher or HTTPDescriptorFetcher.from_config(config)
        self.tool = tool or SwiftPackageDumpTool(config.describe_command, config.describe_timeout)

    def fetch_descriptor(self, entry: ManifestEntry, host: HostKind):
        """
        Try each configured branch in order.

        Returns:
            Tuple of (url that succeeded, content)

        Raises:
            DescriptorFetchError: from the last branch attempted
        """
        last_error = None
        for branch in self.config.branches:
            url = descriptor_url(entry, host, branch, self.config.descriptor_filename)
            try:
                return url, self.fetcher.fetch(url)
            except DescriptorFetchError as e:
                logger.debug(f"Descriptor not available on branch '{branch}': {e}")
                last_error = e
        raise last_error

    def make_work_dir(self) -> Path:
        """A fresh directory per entry; left in place for the environment to clean up."""
        if self.config.temp_root is not None:
            self.config.temp_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix="registry-gate-", dir=self.config.temp_root))

    def resolve(self, entry: ManifestEntry, host: HostKind) -> EntryOutcome:
        try:
            url, content = self.fetch_descriptor(entry, host)
        except DescriptorFetchError as e:
            logger.warning(f"⚠️  Invalid Swift Package at: {entry.url}")
            logger.warning(f"Fetch error: {e.reason}")
            return EntryOutcome(
                entry=entry,
                status=OutcomeStatus.SKIPPED_UNFETCHABLE,
                message=f"Descriptor could not be fetched: {e.reason}",
                descriptor_url=e.url,
            )

        work_dir = self.make_work_dir()
        (work_dir / self.config.descriptor_filename).write_bytes(content)

        try:
            descriptor = self.tool.describe(work_dir)
        except DescriptorDecodeError as e:
            logger.warning(f"⚠️  Invalid Swift Package at: {entry.url}")
            logger.warning(f"Decoding error: {e}")
            return EntryOutcome(
                entry=entry,
                status=OutcomeStatus.SKIPPED_UNFETCHABLE,
                message=f"Descriptor could not be decoded: {e}",
                descriptor_url=url,
                work_dir=work_dir,
            )

        if not descriptor.products:
            logger.warning(f"⚠️  No product listed for: {entry.url}")
            return EntryOutcome(
                entry=entry,
                status=OutcomeStatus.SKIPPED_NO_PRODUCT,
                message=f"Package '{descriptor.name}' declares no products",
                descriptor_url=url,
                descriptor=descriptor,
                work_dir=work_dir,
            )

        logger.info(f"✓ {entry.url}: {descriptor.name} "
                    f"({len(descriptor.products)} product{'s' if len(descriptor.products) != 1 else ''})")
        return EntryOutcome(
            entry=entry,
            status=OutcomeStatus.VALID,
            descriptor_url=url,
            descriptor=descriptor,
            work_dir=work_dir,
        )
