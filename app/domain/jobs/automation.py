"""
Job workflow rules: status transitions, totals from line items, payment status
and the manual next-step suggestions shown on the job page
"""

from typing import Iterable

from ...shared.numbering import round_money

JOB_STATUSES = ("draft", "quote", "scheduled", "in_progress", "completed", "invoiced", "cancelled")

ALLOWED_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "draft": ("quote", "scheduled", "cancelled"),
    "quote": ("scheduled", "cancelled"),
    "scheduled": ("in_progress", "cancelled"),
    "in_progress": ("completed",),
    "completed": ("invoiced",),
    "invoiced": (),
    "cancelled": (),
}

# Jobs in these states may still be deleted outright
DELETABLE_STATUSES = ("draft", "quote", "cancelled")


def is_valid_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, ())


def line_item_total(quantity: float, unit_price: float) -> float:
    return round_money(quantity * unit_price)


def normalize_line_items(items: Iterable[dict]) -> list[dict]:
    """Recompute each item's total from quantity x unit_price"""
    normalized = []
    for item in items:
        quantity = float(item.get("quantity", 1))
        unit_price = float(item.get("unit_price", 0))
        normalized.append(
            {
                "description": item.get("description", ""),
                "quantity": quantity,
                "unit_price": unit_price,
                "total": line_item_total(quantity, unit_price),
            }
        )
    return normalized


def calculate_totals(items: Iterable[dict], tax_rate: float) -> dict:
    """subtotal = sum of item totals, tax = subtotal x rate, total = subtotal + tax"""
    subtotal = round_money(sum(item["total"] for item in items))
    tax_amount = round_money(subtotal * (tax_rate or 0))
    return {
        "subtotal": subtotal,
        "tax_rate": tax_rate or 0,
        "tax_amount": tax_amount,
        "total": round_money(subtotal + tax_amount),
    }


def payment_status(total: float, paid: float) -> str:
    if not paid or paid <= 0:
        return "unpaid"
    if paid >= (total or 0):
        return "paid"
    return "partial"


def get_suggestions(job) -> list[str]:
    suggestions = []
    status = job.status
    pay_status = payment_status(job.total or 0, job.total_paid or 0)

    if status == "quote":
        suggestions.append("Convert this quote to a scheduled job")
    if status == "scheduled" and not job.service_date:
        suggestions.append("Set a service date for this scheduled job")
    if status == "in_progress":
        suggestions.append("Mark this job as completed when work is finished")
    if status == "completed":
        suggestions.append("Generate invoice for this completed job")
    if status == "invoiced" and pay_status == "unpaid":
        suggestions.append("Record payment when client pays")
    if pay_status == "partial":
        remaining = (job.total or 0) - (job.total_paid or 0)
        suggestions.append(f"Follow up on remaining balance: ${remaining:.2f}")

    return suggestions
