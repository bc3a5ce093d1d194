"""
Invoice list summaries: what the invoices screen shows above the list.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union

from pydantic import BaseModel

from freelance_core.invoicing.calculator import is_overdue
from freelance_core.models.entities import (
    Invoice,
    InvoiceDisplayStatus,
    InvoiceStatus,
)


class InvoiceSummary(BaseModel):
    total_unpaid: Decimal
    total_paid: Decimal
    overdue_count: int


def summarize_invoices(
    invoices: Iterable[Invoice],
    today: Optional[date] = None,
) -> InvoiceSummary:
    """Unpaid means any status other than paid, drafts included."""
    today = today or date.today()
    total_unpaid = Decimal(0)
    total_paid = Decimal(0)
    overdue_count = 0

    for invoice in invoices:
        if invoice.status == InvoiceStatus.PAID:
            total_paid += invoice.total
        else:
            total_unpaid += invoice.total
        if is_overdue(invoice, today):
            overdue_count += 1

    return InvoiceSummary(
        total_unpaid=total_unpaid,
        total_paid=total_paid,
        overdue_count=overdue_count,
    )


def filter_invoices(
    invoices: Iterable[Invoice],
    status_filter: Union[str, InvoiceDisplayStatus] = "all",
    today: Optional[date] = None,
) -> list[Invoice]:
    """
    Filter by "all", a stored status, or the derived "overdue".

    Filtering on a stored status matches the stored value, so an overdue
    sent invoice appears under both "sent" and "overdue".
    """
    if status_filter == "all":
        return list(invoices)

    wanted = InvoiceDisplayStatus(status_filter)
    if wanted == InvoiceDisplayStatus.OVERDUE:
        today = today or date.today()
        return [invoice for invoice in invoices if is_overdue(invoice, today)]

    return [invoice for invoice in invoices if invoice.status.value == wanted.value]
