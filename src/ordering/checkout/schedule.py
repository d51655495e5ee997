"""Delivery scheduling rules applied at checkout.

Buyers pick a date and a one-hour slot. The earliest bookable date is
tomorrow, pushed further out by the supplier's lead time, and must fall on
one of the supplier's delivery weekdays.
"""

from datetime import date, timedelta
from enum import Enum

from ordering.exceptions import DeliveryDateUnavailable
from ordering.pricing.calculator import DeliveryTerms


class TimeSlot(Enum):
    SLOT_08 = "08:00-09:00"
    SLOT_09 = "09:00-10:00"
    SLOT_10 = "10:00-11:00"
    SLOT_11 = "11:00-12:00"
    SLOT_14 = "14:00-15:00"
    SLOT_15 = "15:00-16:00"
    SLOT_16 = "16:00-17:00"
    SLOT_17 = "17:00-18:00"


_WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def earliest_delivery_date(terms: DeliveryTerms, today: date | None = None) -> date:
    today = today or date.today()
    return today + timedelta(days=max(1, terms.lead_time_days))


def validate_delivery_date(delivery_date: date, terms: DeliveryTerms, today: date | None = None) -> None:
    earliest = earliest_delivery_date(terms, today)
    if delivery_date < earliest:
        raise DeliveryDateUnavailable(delivery_date, f"earliest possible delivery is {earliest.isoformat()}")

    days = terms.available_delivery_days
    if days and delivery_date.weekday() not in days:
        names = ", ".join(_WEEKDAY_NAMES[day] for day in sorted(days))
        raise DeliveryDateUnavailable(delivery_date, f"supplier delivers only on {names}")


def next_available_dates(terms: DeliveryTerms, count: int = 5, today: date | None = None) -> list[date]:
    """The next ``count`` dates a buyer could choose, for date pickers."""
    candidate = earliest_delivery_date(terms, today)
    dates = []
    while len(dates) < count:
        if not terms.available_delivery_days or candidate.weekday() in terms.available_delivery_days:
            dates.append(candidate)
        candidate += timedelta(days=1)
    return dates
