"""
Invoice Calculator

Pure functions: no I/O, no side effects, no mutation of their inputs.

The order of operations is fixed and NOT commutative:
    1. subtotal        = sum of stored item amounts
    2. discount_amount = subtotal * discount / 100   (percentage)
                       = discount                    (flat)
    3. after_discount  = subtotal - discount_amount
    4. tax_amount      = after_discount * tax / 100  (percentage)
                       = tax                         (flat)
    5. total           = after_discount + tax_amount

Tax is always computed on the discounted amount, never on the subtotal.
Nothing is clamped: a discount larger than the subtotal gives a
negative total, and that is a valid result.

Arithmetic is exact Decimal with no intermediate rounding. Rounding to
currency precision is a display concern (see money.format_currency).
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict

from freelance_core.models.entities import (
    AdjustmentType,
    Invoice,
    InvoiceDisplayStatus,
    InvoiceStatus,
)


Number = Union[Decimal, int, float, str]

_HUNDRED = Decimal(100)


class HasAmount(Protocol):
    amount: Decimal


class InvoiceTotals(BaseModel):
    """Everything derived from items + discount/tax configuration."""
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    discount_amount: Decimal
    after_discount: Decimal
    tax_amount: Decimal
    total: Decimal


def to_decimal(value: Number) -> Decimal:
    """
    Coerce a number to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not the
    binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _adjustment(base: Decimal, value: Decimal, kind: AdjustmentType) -> Decimal:
    if AdjustmentType(kind) == AdjustmentType.PERCENTAGE:
        return base * value / _HUNDRED
    return value


def compute_invoice_totals(
    items: Iterable[HasAmount],
    discount: Number = 0,
    discount_type: AdjustmentType = AdjustmentType.FLAT,
    tax: Number = 0,
    tax_type: AdjustmentType = AdjustmentType.PERCENTAGE,
) -> InvoiceTotals:
    """
    Derive subtotal, discount, tax and total for a list of items.

    The stored item.amount values are summed as-is; quantity * rate is
    not recomputed here. An item whose amount was edited out of line
    with quantity * rate carries that difference into the totals.
    """
    subtotal = sum((to_decimal(item.amount) for item in items), Decimal(0))

    discount_amount = _adjustment(subtotal, to_decimal(discount), discount_type)
    after_discount = subtotal - discount_amount

    tax_amount = _adjustment(after_discount, to_decimal(tax), tax_type)
    total = after_discount + tax_amount

    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        after_discount=after_discount,
        tax_amount=tax_amount,
        total=total,
    )


def apply_totals(invoice: Invoice) -> Invoice:
    """Return a copy of invoice with its derived fields recomputed."""
    totals = compute_invoice_totals(
        invoice.items,
        invoice.discount,
        invoice.discount_type,
        invoice.tax,
        invoice.tax_type,
    )
    return invoice.model_copy(update={
        "subtotal": totals.subtotal,
        "discount_amount": totals.discount_amount,
        "tax_amount": totals.tax_amount,
        "total": totals.total,
    })


# =============================================================================
# DERIVED STATUS
# =============================================================================

def is_overdue(invoice: Invoice, today: Optional[date] = None) -> bool:
    """
    An invoice is overdue iff it is unpaid and its due date has passed.

    Derived at read time; the stored status is never changed.
    """
    today = today or date.today()
    if invoice.status == InvoiceStatus.PAID or invoice.due_date is None:
        return False
    return invoice.due_date < today


def display_status(invoice: Invoice, today: Optional[date] = None) -> InvoiceDisplayStatus:
    """Stored status, or OVERDUE when is_overdue() says so."""
    if is_overdue(invoice, today):
        return InvoiceDisplayStatus.OVERDUE
    return InvoiceDisplayStatus(invoice.status.value)
