"""
Validation result models.

Shared by the EntityValidator and anything that needs to report
why a record was refused.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'duplicate', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Required fields (what the edit screens insist on)
    Stage 2: Semantic checks (cross-record and arithmetic consistency)
    """

    entity_type: str = Field(
        ...,
        description="Which kind of record was validated"
    )
    entity_id: Optional[str] = None

    required_valid: bool = Field(
        ...,
        description="Did the required-field stage pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did the semantic stage pass?"
    )

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return self.required_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
