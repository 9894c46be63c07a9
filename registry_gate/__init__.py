"""
registry-gate - validation of package list manifests.

Checks a packages.json list of repository URLs for format, uniqueness and
ordering, then verifies each package descriptor can be fetched and declares
at least one product.
"""

from .config import ValidatorConfig
from .report import ValidationReport
from .validate_packages import PackageListValidator, main

__version__ = "1.0.0"

__all__ = [
    'ValidatorConfig', 'ValidationReport', 'PackageListValidator', 'main'
]
