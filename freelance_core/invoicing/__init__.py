"""Invoice calculation package."""

from freelance_core.identifiers import generate_invoice_number
from freelance_core.invoicing.calculator import (
    InvoiceTotals,
    apply_totals,
    compute_invoice_totals,
    display_status,
    is_overdue,
    to_decimal,
)
from freelance_core.invoicing.summary import (
    InvoiceSummary,
    filter_invoices,
    summarize_invoices,
)

__all__ = [
    "InvoiceSummary",
    "InvoiceTotals",
    "apply_totals",
    "compute_invoice_totals",
    "display_status",
    "filter_invoices",
    "generate_invoice_number",
    "is_overdue",
    "summarize_invoices",
    "to_decimal",
]
