import re
from datetime import date, datetime
from typing import Optional, Tuple

from river_monitor.exceptions import ValidationError

ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def validate_coordinates(latitude: float, longitude: float) -> Tuple[bool, Optional[str]]:
    """
    Check WGS84 ranges for a single position.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not (-90 <= latitude <= 90):
        return False, f"Latitude must be between -90 and 90, got {latitude}"

    if not (-180 <= longitude <= 180):
        return False, f"Longitude must be between -180 and 180, got {longitude}"

    return True, None


def parse_date(value: Optional[str], field: str = "date") -> date:
    """
    Parse a ``YYYY-MM-DD`` query value.

    Raises:
        ValidationError: naming ``field`` when the value is missing, not in
            ISO form, or not a real calendar date.
    """
    if not value or not ISO_DATE.match(value):
        raise ValidationError(f"{field} must be in YYYY-MM-DD format, got {value!r}")
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValidationError(f"{field} is not a valid date: {e}")


def parse_date_range(start: str, end: str) -> Tuple[date, date]:
    """Parse a start/end pair; equal dates are allowed, reversed ones are not."""
    start_date = parse_date(start, "startDate")
    end_date = parse_date(end, "endDate")
    if start_date > end_date:
        raise ValidationError(f"startDate {start} is after endDate {end}")
    return start_date, end_date


def parse_float(value: Optional[str], field: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}")
