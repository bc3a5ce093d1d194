"""
Workspace Queries

Read-side helpers for the screens: dereferencing ids, per-project
rollups, search, autofill and the dashboard summary.

DESIGN DECISION: Lookups never raise for a missing record.
References are not enforced (deleting a client leaves its projects and
invoices behind), so a dangling id is a normal state. Lookups return
None, and display helpers return a placeholder label.
"""

from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Iterable, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, Field

from freelance_core.invoicing.summary import summarize_invoices
from freelance_core.models.entities import (
    Client,
    Entity,
    Invoice,
    InvoiceStatus,
    Project,
    ProjectStatus,
    Task,
    TimeLog,
)
from freelance_core.services.storage import CollectionKey, PersistenceStore


E = TypeVar("E", bound=Entity)

UNKNOWN_CLIENT = "Unknown Client"
UNKNOWN_PROJECT = "Unknown Project"


# =============================================================================
# LOOKUPS
# =============================================================================

def find_by_id(items: Iterable[E], entity_id: Optional[str]) -> Optional[E]:
    """The record with entity_id, or None (the not-found sentinel)."""
    if not entity_id:
        return None
    for item in items:
        if item.id == entity_id:
            return item
    return None


def client_display_name(clients: Iterable[Client], client_id: Optional[str]) -> str:
    client = find_by_id(clients, client_id)
    return client.name if client else UNKNOWN_CLIENT


def project_display_name(projects: Iterable[Project], project_id: Optional[str]) -> str:
    project = find_by_id(projects, project_id)
    return project.name if project else UNKNOWN_PROJECT


# =============================================================================
# PER-PROJECT ROLLUPS
# =============================================================================

def tasks_for_project(tasks: Iterable[Task], project_id: str) -> list[Task]:
    return [task for task in tasks if task.project_id == project_id]


def time_logs_for_project(logs: Iterable[TimeLog], project_id: str) -> list[TimeLog]:
    return [log for log in logs if log.project_id == project_id]


def total_minutes(logs: Iterable[TimeLog], project_id: Optional[str] = None) -> int:
    """Minutes logged, optionally restricted to one project."""
    return sum(
        log.duration
        for log in logs
        if project_id is None or log.project_id == project_id
    )


def project_progress(tasks: Iterable[Task], project_id: str) -> float:
    """Percentage of the project's tasks that are completed (0 if it has none)."""
    project_tasks = tasks_for_project(tasks, project_id)
    if not project_tasks:
        return 0.0
    done = sum(1 for task in project_tasks if task.completed)
    return done / len(project_tasks) * 100


def earnings_for(logs: Iterable[TimeLog]) -> Decimal:
    """Sum of duration/60 x rate, each log at its own snapshot rate."""
    return sum((log.earnings for log in logs), Decimal(0))


# =============================================================================
# SEARCH / AUTOFILL
# =============================================================================

def search_clients(clients: Iterable[Client], query: str) -> list[Client]:
    """Case-insensitive substring match on name, company or email."""
    needle = query.strip().lower()
    if not needle:
        return list(clients)
    return [
        client for client in clients
        if needle in client.name.lower()
        or needle in client.company.lower()
        or needle in client.email.lower()
    ]


def filter_projects(
    projects: Iterable[Project],
    query: str = "",
    status: Union[str, ProjectStatus] = "all",
) -> list[Project]:
    """Text match on name/description, combined with a status filter."""
    needle = query.strip().lower()
    wanted = None if status == "all" else ProjectStatus(status)
    return [
        project for project in projects
        if (not needle
            or needle in project.name.lower()
            or needle in project.description.lower())
        and (wanted is None or project.status == wanted)
    ]


def autofill_suggestions(
    values: Iterable[Optional[str]],
    typed: str,
    limit: int = 3,
) -> list[str]:
    """
    Previously entered values that contain what the user is typing.

    Needs at least 2 typed characters. Matching is case-insensitive,
    exact matches are left out, and duplicates collapse to first-seen order.
    """
    if not typed or len(typed) < 2:
        return []
    needle = typed.lower()
    suggestions: dict[str, None] = {}
    for value in values:
        if value and needle in value.lower() and value != typed:
            suggestions.setdefault(value, None)
            if len(suggestions) >= limit:
                break
    return list(suggestions)


# =============================================================================
# TODAY
# =============================================================================

def today_time_logs(
    logs: Iterable[TimeLog],
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> list[TimeLog]:
    """
    Logs recorded on `today`.

    A log belongs to the calendar day of its created_at (when it was
    logged, not when the work started) in tz. None is the machine's
    local zone.
    """
    today = today or datetime.now(tz).date()
    return [log for log in logs if log.created_at.astimezone(tz).date() == today]


# =============================================================================
# DASHBOARD
# =============================================================================

class DashboardSummary(BaseModel):
    """What the dashboard shows at a glance."""

    today_minutes: int
    today_earnings: Decimal
    active_projects: int
    total_unpaid: Decimal
    overdue_count: int
    recent_unpaid_invoices: list[Invoice] = Field(default_factory=list)
    recent_time_logs: list[TimeLog] = Field(default_factory=list)


class WorkspaceQueries:
    """
    Executes read-only queries against the store.

    GUARANTEES:
    - Only returns real stored data
    - A missing or corrupt collection reads as empty, never as an error
    """

    def __init__(self, store: PersistenceStore):
        self._store = store

    async def dashboard(
        self,
        today: Optional[date] = None,
        recent_limit: int = 3,
        tz: Optional[tzinfo] = None,
    ) -> DashboardSummary:
        """
        Load projects, time logs and invoices, and roll them up.

        today and tz pick the calendar day for the today totals; both
        default to the machine's local clock.
        """
        today = today or datetime.now(tz).date()

        projects: Sequence[Project] = await self._store.load_collection(CollectionKey.PROJECTS)
        logs: Sequence[TimeLog] = await self._store.load_collection(CollectionKey.TIME_LOGS)
        invoices: Sequence[Invoice] = await self._store.load_collection(CollectionKey.INVOICES)

        todays = today_time_logs(logs, today, tz)
        summary = summarize_invoices(invoices, today)

        unpaid = [invoice for invoice in invoices if invoice.status != InvoiceStatus.PAID]
        recent_logs = sorted(logs, key=lambda log: log.start_time, reverse=True)

        return DashboardSummary(
            today_minutes=total_minutes(todays),
            today_earnings=earnings_for(todays),
            active_projects=sum(1 for p in projects if p.status == ProjectStatus.ACTIVE),
            total_unpaid=summary.total_unpaid,
            overdue_count=summary.overdue_count,
            recent_unpaid_invoices=unpaid[:recent_limit],
            recent_time_logs=recent_logs[:recent_limit],
        )

    async def client_name(self, client_id: Optional[str]) -> str:
        clients = await self._store.load_collection(CollectionKey.CLIENTS)
        return client_display_name(clients, client_id)

    async def projects_for_client(self, client_id: str) -> list[Project]:
        projects = await self._store.load_collection(CollectionKey.PROJECTS)
        return [project for project in projects if project.client_id == client_id]

    async def invoices_for_client(self, client_id: str) -> list[Invoice]:
        invoices = await self._store.load_collection(CollectionKey.INVOICES)
        return [invoice for invoice in invoices if invoice.client_id == client_id]
