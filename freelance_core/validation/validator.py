"""
Two-Stage Entity Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REQUIRED FIELDS:
- The fields the client screens refuse to save without
  (client name, project name + client, invoice client + items + due date)
- Failing here blocks the save

STAGE 2 - SEMANTIC VALIDATION:
- Cross-record checks (invoice number uniqueness)
- Arithmetic consistency (item amount vs quantity * rate)
- Date ordering (due before issue, time log end before start)
- Some checks block (errors), most only inform (warnings)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the caller decides.
"""

from typing import Iterable, Optional

from freelance_core.models.entities import (
    Client,
    Entity,
    Invoice,
    Project,
    ProjectType,
    Task,
    TimeLog,
)
from freelance_core.models.validation import ValidationIssue, ValidationResult


class EntityValidationError(Exception):
    """A record failed validation and was not saved."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(result.error_messages()) or "validation failed"
        super().__init__(f"Invalid {result.entity_type}: {messages}")


def _missing(field: str, message: str, suggested_fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="missing",
        message=message,
        severity="error",
        suggested_fix=suggested_fix,
    )


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class EntityValidator:
    """
    Validates records before they are written to a collection.

    Stage 1 runs on the record alone.
    Stage 2 may look at the rest of the collection (e.g. other invoices).
    """

    def validate(
        self,
        entity: Entity,
        existing: Optional[Iterable[Entity]] = None,
    ) -> ValidationResult:
        """
        Run both stages for any supported entity.

        Args:
            entity: The record about to be saved
            existing: The current collection it will be saved into.
                      The record itself (same id) is ignored.
        """
        others = [item for item in (existing or []) if item.id != entity.id]

        if isinstance(entity, Client):
            required = self._required_client(entity)
            semantic: list[ValidationIssue] = []
        elif isinstance(entity, Project):
            required = self._required_project(entity)
            semantic = self._semantic_project(entity)
        elif isinstance(entity, Task):
            required = self._required_task(entity)
            semantic = []
        elif isinstance(entity, TimeLog):
            required = self._required_time_log(entity)
            semantic = self._semantic_time_log(entity)
        elif isinstance(entity, Invoice):
            required = self._required_invoice(entity)
            semantic = self._semantic_invoice(entity, others)
        else:
            raise TypeError(f"No validation rules for {type(entity).__name__}")

        return ValidationResult(
            entity_type=type(entity).__name__.lower(),
            entity_id=entity.id,
            required_valid=not any(issue.severity == "error" for issue in required),
            semantic_valid=not any(issue.severity == "error" for issue in semantic),
            issues=required + semantic,
        )

    def ensure_valid(
        self,
        entity: Entity,
        existing: Optional[Iterable[Entity]] = None,
    ) -> ValidationResult:
        """validate(), raising EntityValidationError if there are errors."""
        result = self.validate(entity, existing)
        if result.has_errors:
            raise EntityValidationError(result)
        return result

    # -------------------------------------------------------------------------
    # Stage 1: required fields
    # -------------------------------------------------------------------------

    def _required_client(self, client: Client) -> list[ValidationIssue]:
        issues = []
        if _blank(client.name):
            issues.append(_missing("name", "Client name is required"))
        return issues

    def _required_project(self, project: Project) -> list[ValidationIssue]:
        issues = []
        if _blank(project.name):
            issues.append(_missing("name", "Project name is required"))
        if _blank(project.client_id):
            issues.append(_missing(
                "client_id",
                "Please select a client",
                suggested_fix="Every project belongs to a client",
            ))
        return issues

    def _required_task(self, task: Task) -> list[ValidationIssue]:
        issues = []
        if _blank(task.title):
            issues.append(_missing("title", "Task title is required"))
        if _blank(task.project_id):
            issues.append(_missing("project_id", "Task must belong to a project"))
        return issues

    def _required_time_log(self, log: TimeLog) -> list[ValidationIssue]:
        issues = []
        if _blank(log.project_id):
            issues.append(_missing("project_id", "Time must be logged against a project"))
        return issues

    def _required_invoice(self, invoice: Invoice) -> list[ValidationIssue]:
        issues = []
        if _blank(invoice.client_id):
            issues.append(_missing("client_id", "Please select a client"))
        if not invoice.items:
            issues.append(_missing("items", "Please add at least one item"))
        if invoice.due_date is None:
            issues.append(_missing("due_date", "Please set a due date"))
        for index, item in enumerate(invoice.items):
            if _blank(item.description):
                issues.append(_missing(
                    f"items[{index}].description",
                    "Item description is required",
                ))
        return issues

    # -------------------------------------------------------------------------
    # Stage 2: semantic checks
    # -------------------------------------------------------------------------

    def _semantic_project(self, project: Project) -> list[ValidationIssue]:
        issues = []
        if project.project_type == ProjectType.FIXED and project.fixed_budget is None:
            issues.append(ValidationIssue(
                field="fixed_budget",
                issue_type="missing",
                message="Fixed-price project has no budget",
                severity="warning",
            ))
        if project.deadline and project.deadline < project.start_date:
            issues.append(ValidationIssue(
                field="deadline",
                issue_type="inconsistent",
                message="Deadline is before the start date",
                severity="warning",
            ))
        return issues

    def _semantic_time_log(self, log: TimeLog) -> list[ValidationIssue]:
        issues = []
        if log.end_time is not None and log.end_time < log.start_time:
            issues.append(ValidationIssue(
                field="end_time",
                issue_type="inconsistent",
                message="Time log ends before it starts",
                severity="error",
            ))
        return issues

    def _semantic_invoice(
        self,
        invoice: Invoice,
        others: list[Entity],
    ) -> list[ValidationIssue]:
        issues = []

        number = invoice.invoice_number.strip()
        if number and any(
            isinstance(other, Invoice) and other.invoice_number.strip() == number
            for other in others
        ):
            issues.append(ValidationIssue(
                field="invoice_number",
                issue_type="duplicate",
                message=f"Invoice number {number} is already in use",
                severity="error",
                suggested_fix="Pick a different number or leave it blank to generate one",
            ))

        for index, item in enumerate(invoice.items):
            if not item.is_consistent:
                issues.append(ValidationIssue(
                    field=f"items[{index}].amount",
                    issue_type="inconsistent",
                    message=(
                        f"Item amount {item.amount} does not equal "
                        f"quantity {item.quantity} x rate {item.rate}"
                    ),
                    severity="warning",
                    suggested_fix="Recompute the amount from quantity and rate",
                ))

        if invoice.due_date and invoice.due_date < invoice.issue_date:
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="inconsistent",
                message="Due date is before the issue date",
                severity="warning",
            ))

        if invoice.total < 0:
            issues.append(ValidationIssue(
                field="total",
                issue_type="negative_total",
                message=f"Invoice total is negative ({invoice.total})",
                severity="warning",
                suggested_fix="Check that the discount is not larger than the subtotal",
            ))

        return issues
