"""Validator port - interface for PDF/A conformance checks."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import ValidationResult


class ValidatorPort(ABC):
    """Interface for conformance validation."""

    @abstractmethod
    def validate(self, path: Path) -> "ValidationResult":
        """Validate a PDF against the configured profile.

        Non-conformant documents yield an invalid result. Raises
        ConformanceError only if the file cannot be validated at all.
        """
        pass
