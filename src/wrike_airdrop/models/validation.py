"""
Validation report shared by the document validators.
"""

from typing import List
from pydantic import BaseModel, Field

from ..exceptions import DocumentValidationError


class ValidationIssue(BaseModel):
    """A single finding, located by a dotted path inside the document."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class ValidationReport(BaseModel):
    """Errors make a document unusable; warnings are non-fatal lints."""
    document: str
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error(self, path: str, message: str) -> None:
        self.errors.append(ValidationIssue(path=path, message=message))

    def warn(self, path: str, message: str) -> None:
        self.warnings.append(ValidationIssue(path=path, message=message))

    def raise_for_errors(self) -> None:
        if self.errors:
            summary = "; ".join(str(issue) for issue in self.errors)
            raise DocumentValidationError(
                f"{self.document} has {len(self.errors)} structural error(s): {summary}",
                report=self,
            )
