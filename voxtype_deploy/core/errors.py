"""
Error taxonomy for the VoxType deployment engine.

Every error is terminal for the current resolution pass and carries the field
path or catalog key needed to act on it.
"""

from typing import List, Sequence

from pydantic import BaseModel, ConfigDict


class DeployError(Exception):
    """Base class for errors raised during a resolution pass."""

    pass


class SchemaError(DeployError):
    """Raised when an override document references an unknown option."""

    def __init__(self, field_path: str, reason: str = "unknown option"):
        self.field_path = field_path
        self.reason = reason
        where = field_path or "<document>"
        super().__init__(f"{where}: {reason}")


class AmbiguousModelSelection(DeployError):
    """Raised when both or neither of model.name / model.path are set."""

    def __init__(self, name, path):
        self.name = name
        self.path = path
        if name is None and path is None:
            detail = "either model.name or model.path must be set"
        else:
            detail = "cannot set both model.name and model.path"
        super().__init__(detail)


class UnknownModel(DeployError):
    """Raised when a symbolic model name is not in the catalog."""

    def __init__(self, name: str, available: Sequence[str] = ()):
        self.name = name
        self.available = list(available)
        message = f"Unknown model '{name}'"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class IntegrityMismatch(DeployError):
    """Raised when fetched content does not match the pinned digest."""

    def __init__(self, name: str, expected: str, actual: str):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(f"Integrity check failed for model '{name}': expected {expected}, got {actual}")


class FetchError(DeployError):
    """Raised when the fetch collaborator fails. Safe to retry."""

    retryable = True

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class CatalogError(DeployError):
    """Raised when a model catalog file is malformed."""

    pass


class Violation(BaseModel):
    """A single invariant violation on the options tree."""

    model_config = ConfigDict(frozen=True)

    field_path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.field_path}: {self.reason}"


class ValidationError(DeployError):
    """Aggregate of every invariant violation found in one validation pass."""

    def __init__(self, violations: List[Violation]):
        if not violations:
            raise ValueError("ValidationError requires at least one violation")
        self.violations = list(violations)
        lines = "\n".join(f"  - {v}" for v in self.violations)
        super().__init__(f"{len(self.violations)} invalid option(s):\n{lines}")
