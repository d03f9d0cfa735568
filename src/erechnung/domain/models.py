"""Domain models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Upload:
    """An uploaded file as handed over by the request layer."""

    filename: str | None
    content: bytes
    content_type: str | None = "application/pdf"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class ValidationIssue:
    """A failed conformance rule."""

    rule_id: str
    specification: str
    clause: str
    description: str
    context: str | None = None


@dataclass(frozen=True)
class ValidationWarning:
    rule_id: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Result of the PDF/A-3 conformance check."""

    valid: bool
    profile_name: str
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)
    elapsed_ms: int = 0

    @classmethod
    def success(cls, profile_name: str, elapsed_ms: int) -> "ValidationResult":
        return cls(valid=True, profile_name=profile_name, elapsed_ms=elapsed_ms)

    @classmethod
    def failure(
        cls,
        profile_name: str,
        errors: list[ValidationIssue],
        warnings: list[ValidationWarning],
        elapsed_ms: int,
    ) -> "ValidationResult":
        return cls(False, profile_name, list(errors), list(warnings), elapsed_ms)

    @classmethod
    def skipped(cls) -> "ValidationResult":
        return cls.success("Skipped", 0)

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)
