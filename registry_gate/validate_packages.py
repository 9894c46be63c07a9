#!/usr/bin/env python3
"""
registry-gate - Package List Validation

Validates a packages.json manifest of Swift package repository URLs before it
is merged.

Usage:
    registry-gate [MANIFEST] [--workers N] [--branch NAME] [--fail-on-skipped]
    python -m registry_gate [MANIFEST] ...

Checks:
- Every URL ends in .git
- No URL appears twice, ignoring letter case
- URLs are sorted, ignoring letter case (a corrected packages.sorted.json is
  written next to the manifest when they are not)
- Every URL points at a supported host and its Package.swift can be fetched,
  described and declares at least one product

Exit status is 0 when validation succeeds and 1 otherwise. Packages whose
descriptor cannot be fetched or declares no products are reported as skipped
and only fail the run with --fail-on-skipped.
"""

import sys
import argparse
import shlex
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from registry_gate.config import ValidatorConfig, default_search_paths
from registry_gate.descriptor_resolver import DescriptorResolver
from registry_gate.errors import (
    ConfigError,
    InvalidURLError,
    ManifestNotFoundError,
    ManifestParseError,
    UnsupportedHostError,
)
from registry_gate.hosts import classify_host, repository_coordinates
from registry_gate.invariants import run_local_checks, write_sorted_manifest
from registry_gate.manifest_loader import locate_and_load
from registry_gate.models import (
    EntryOutcome,
    HostKind,
    Manifest,
    ManifestEntry,
    OutcomeStatus,
    UnsortedEntry,
)
from registry_gate.report import EXIT_FAILURE, ValidationReport

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class PackageListValidator:
    """Runs the full validation pipeline for one manifest."""

    def __init__(self, config: ValidatorConfig, resolver: Optional[DescriptorResolver] = None):
        self.config = config
        self.resolver = resolver or DescriptorResolver(config)

    def run(self) -> ValidationReport:
        report = ValidationReport(fail_on_skipped=self.config.fail_on_skipped)

        try:
            manifest = locate_and_load(self.config.search_paths)
        except (ManifestNotFoundError, ManifestParseError) as e:
            logger.error(f"✗ {e}")
            report.fatal_error = str(e)
            return report

        report.manifest_path = manifest.path
        report.entry_count = len(manifest)

        violation = run_local_checks(manifest)
        if violation is not None:
            report.violation = violation
            if isinstance(violation, UnsortedEntry):
                report.sorted_manifest_path = write_sorted_manifest(manifest, violation.sorted_urls)
            return report

        self.verify_entries(manifest, report)
        return report

    def classify_entries(self, entries: Sequence[ManifestEntry]
                         ) -> Tuple[List[Tuple[ManifestEntry, HostKind]], Optional[EntryOutcome]]:
        """
        Classify entries in order, stopping at the first unusable URL.

        Returns:
            Entries ahead of the first failure with their hosts, and the
            hard-failure outcome for that entry if there was one
        """
        planned = []
        for entry in entries:
            try:
                host = classify_host(entry)
                repository_coordinates(entry)
                planned.append((entry, host))
            except (InvalidURLError, UnsupportedHostError) as e:
                return planned, EntryOutcome(
                    entry=entry, status=OutcomeStatus.HARD_FAILURE, message=str(e)
                )
        return planned, None

    def _resolve(self, planned: Tuple[ManifestEntry, HostKind]) -> EntryOutcome:
        entry, host = planned
        try:
            return self.resolver.resolve(entry, host)
        except OSError as e:
            logger.warning(f"⚠️  Could not prepare working directory for {entry.url}: {e}")
            return EntryOutcome(
                entry=entry,
                status=OutcomeStatus.SKIPPED_UNFETCHABLE,
                message=f"Working directory error: {e}",
            )

    def verify_entries(self, manifest: Manifest, report: ValidationReport):
        """Resolve every entry and record outcomes in manifest order."""
        planned, failure = self.classify_entries(manifest.entries)
        logger.info(f"Verifying {len(planned)} packages with {self.config.max_workers} worker(s)")

        if self.config.max_workers > 1 and len(planned) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                outcomes = list(executor.map(self._resolve, planned))
        else:
            outcomes = [self._resolve(item) for item in planned]

        for outcome in outcomes:
            report.add_outcome(outcome)

        if failure is not None:
            logger.error(f"✗ {failure.message}")
            report.add_outcome(failure)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate a package list manifest")
    parser.add_argument("manifest", nargs="?",
                        help="Path to packages.json (defaults to ./packages.json)")
    parser.add_argument("--config", type=str,
                        help="YAML configuration file (default: config/validator.yaml)")
    parser.add_argument("--workers", type=int,
                        help="Number of packages verified concurrently")
    parser.add_argument("--branch", action="append", dest="branches",
                        help="Branch to fetch Package.swift from; repeat to try several in order")
    parser.add_argument("--fail-on-skipped", action="store_true",
                        help="Fail when a package is unfetchable or declares no products")
    parser.add_argument("--describe-command", type=str,
                        help="Command that prints the package description as JSON")
    parser.add_argument("--output-file", type=str,
                        help="Write the validation report as JSON to this file")
    parser.add_argument("--log-file", type=str,
                        help="Also write log output to this file")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")
    return parser.parse_args(argv)


def configure_logging(debug: bool = False, log_file: Optional[str] = None):
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


def build_config(args: argparse.Namespace) -> ValidatorConfig:
    """Load the configuration and apply command-line overrides."""
    config = ValidatorConfig.load(args.config)

    if args.manifest:
        config.search_paths = default_search_paths(args.manifest)
    elif not config.search_paths:
        config.search_paths = default_search_paths()
    if args.workers is not None:
        config.max_workers = args.workers
    if args.branches:
        config.branches = args.branches
    if args.fail_on_skipped:
        config.fail_on_skipped = True
    if args.describe_command:
        config.describe_command = shlex.split(args.describe_command)

    config.validate()
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.debug, args.log_file)

    try:
        config = build_config(args)
        report = PackageListValidator(config).run()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILURE
    except Exception as e:
        logger.error(f"Package list validation failed: {e}")
        return EXIT_FAILURE

    if args.output_file:
        try:
            report.save(args.output_file)
        except OSError as e:
            logger.error(f"Failed to save validation report to {args.output_file}: {e}")
            return EXIT_FAILURE

    print()
    for line in report.render():
        print(line)
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
