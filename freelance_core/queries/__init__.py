"""Read-side queries package."""

from freelance_core.queries.workspace import (
    UNKNOWN_CLIENT,
    UNKNOWN_PROJECT,
    DashboardSummary,
    WorkspaceQueries,
    autofill_suggestions,
    client_display_name,
    earnings_for,
    filter_projects,
    find_by_id,
    project_display_name,
    project_progress,
    search_clients,
    tasks_for_project,
    time_logs_for_project,
    today_time_logs,
    total_minutes,
)

__all__ = [
    "UNKNOWN_CLIENT",
    "UNKNOWN_PROJECT",
    "DashboardSummary",
    "WorkspaceQueries",
    "autofill_suggestions",
    "client_display_name",
    "earnings_for",
    "filter_projects",
    "find_by_id",
    "project_display_name",
    "project_progress",
    "search_clients",
    "tasks_for_project",
    "time_logs_for_project",
    "today_time_logs",
    "total_minutes",
]
