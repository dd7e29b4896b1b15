"""
Date interval generation for batch collection.

Intervals are contiguous: each interval starts where the previous one ended,
and the final interval is clamped to the requested end date.
"""

import re
from datetime import date
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field, model_validator

from river_monitor.exceptions import ValidationError
from river_monitor.models.domain import DateInterval

_CADENCE_PATTERN = re.compile(r"^(\d+)([md])$")


class Cadence(BaseModel):
    """Fixed interval step expressed in calendar months or days."""

    model_config = ConfigDict(frozen=True)

    months: int = Field(default=0, ge=0)
    days: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_single_unit(self):
        if self.months == 0 and self.days == 0:
            raise ValueError("Cadence must be a positive number of months or days")
        if self.months and self.days:
            raise ValueError("Cadence is either months or days, not both")
        return self

    @classmethod
    def of_months(cls, months: int) -> "Cadence":
        return cls(months=months)

    @classmethod
    def of_days(cls, days: int) -> "Cadence":
        return cls(days=days)

    @classmethod
    def parse(cls, text: str) -> "Cadence":
        """Parse a compact cadence such as ``3m`` or ``15d``."""
        match = _CADENCE_PATTERN.match(text.strip().lower())
        if not match or int(match.group(1)) == 0:
            raise ValidationError(
                f"Invalid cadence '{text}'. Use e.g. '3m' for months or '15d' for days"
            )
        amount, unit = int(match.group(1)), match.group(2)
        return cls.of_months(amount) if unit == "m" else cls.of_days(amount)

    def offset(self, steps: int) -> relativedelta:
        return relativedelta(months=self.months * steps, days=self.days * steps)


THREE_MONTHS = Cadence.of_months(3)
FIFTEEN_DAYS = Cadence.of_days(15)


def _nominal_end(start: date, cadence: Cadence, step: int) -> Optional[date]:
    """``start + step * cadence``, or None when that lies past ``date.max``."""
    try:
        return start + cadence.offset(step)
    except (ValueError, OverflowError):
        return None


def generate_intervals(start: date, end: date, cadence: Cadence) -> List[DateInterval]:
    """
    Split ``[start, end]`` into consecutive intervals of ``cadence``.

    Interval boundaries are anchored on ``start`` (``start + k * cadence``) so
    month arithmetic does not drift when a month is shorter than the start
    day. Returns an empty list when ``start >= end``.
    """
    intervals: List[DateInterval] = []
    current = start
    step = 1

    while current < end:
        nominal_end = _nominal_end(start, cadence, step)
        # a step past the last representable date ends beyond ``end`` too
        if nominal_end is None or nominal_end >= end:
            intervals.append(DateInterval(start=current, end=end))
            break
        intervals.append(DateInterval(start=current, end=nominal_end))
        current = nominal_end
        step += 1

    return intervals
