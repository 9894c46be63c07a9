"""
Aggregates local check results and per-entry outcomes into a verdict.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from registry_gate.models import EntryOutcome, OutcomeStatus, ValidationViolation

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@dataclass
class ValidationReport:
    """Everything a validation run found, in manifest order."""
    manifest_path: Optional[Path] = None
    entry_count: int = 0
    violation: Optional[ValidationViolation] = None
    sorted_manifest_path: Optional[Path] = None
    outcomes: List[EntryOutcome] = field(default_factory=list)
    fatal_error: Optional[str] = None
    fail_on_skipped: bool = False
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def add_outcome(self, outcome: EntryOutcome):
        self.outcomes.append(outcome)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def hard_failures(self) -> List[EntryOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.HARD_FAILURE]

    @property
    def skipped(self) -> List[EntryOutcome]:
        return [o for o in self.outcomes if o.status.is_skip]

    @property
    def passed(self) -> bool:
        if self.fatal_error or self.violation is not None or self.hard_failures:
            return False
        if self.fail_on_skipped and self.skipped:
            return False
        return True

    @property
    def exit_code(self) -> int:
        return EXIT_SUCCESS if self.passed else EXIT_FAILURE

    def render(self) -> List[str]:
        """Human-readable summary lines."""
        lines = []
        if self.manifest_path is not None:
            lines.append(f"Manifest: {self.manifest_path} ({self.entry_count} packages)")

        if self.fatal_error:
            lines.append(f"Error: {self.fatal_error}")

        if self.violation is not None:
            lines.append(f"Error: {self.violation.describe()}")
            if self.sorted_manifest_path is not None:
                lines.append(f"Sorted manifest has been saved to:\n {self.sorted_manifest_path}")

        if self.outcomes:
            lines.append(f"  Valid: {self.count(OutcomeStatus.VALID)}")
            lines.append(f"  Skipped (unfetchable): {self.count(OutcomeStatus.SKIPPED_UNFETCHABLE)}")
            lines.append(f"  Skipped (no product): {self.count(OutcomeStatus.SKIPPED_NO_PRODUCT)}")
            for outcome in self.skipped:
                lines.append(f"    [{outcome.entry.index}] {outcome.entry.url}: {outcome.message}")
            for outcome in self.hard_failures:
                lines.append(f"  Failed: [{outcome.entry.index}] {outcome.entry.url}: {outcome.message}")

        if self.passed:
            lines.append("Validation Succeeded.")
        elif self.fail_on_skipped and self.skipped and not (
            self.fatal_error or self.violation or self.hard_failures
        ):
            lines.append("Validation Failed: skipped packages are treated as failures.")
        else:
            lines.append("Validation Failed.")
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": {
                "generated_at": self.generated_at,
                "manifest": str(self.manifest_path) if self.manifest_path else None,
                "total_packages": self.entry_count,
                "fail_on_skipped": self.fail_on_skipped,
            },
            "summary": {
                "passed": self.passed,
                "exit_code": self.exit_code,
                "valid_count": self.count(OutcomeStatus.VALID),
                "skipped_unfetchable_count": self.count(OutcomeStatus.SKIPPED_UNFETCHABLE),
                "skipped_no_product_count": self.count(OutcomeStatus.SKIPPED_NO_PRODUCT),
                "hard_failure_count": len(self.hard_failures),
            },
            "fatal_error": self.fatal_error,
            "violation": self.violation.to_dict() if self.violation is not None else None,
            "sorted_manifest": str(self.sorted_manifest_path) if self.sorted_manifest_path else None,
            "results": [outcome.to_dict() for outcome in self.outcomes],
        }

    def save(self, output_file: str) -> str:
        """Save the report as JSON."""
        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

        logger.info(f"Validation report saved: {output_path}")
        return str(output_path)
