"""
Date handling for patient demographics.

FHIR ``date`` values may be partial (``YYYY`` or ``YYYY-MM``); both are
read as the first instant of the period.  All datetimes are normalised
to UTC so naive and aware values can be subtracted.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, timezone
from typing import Any, Optional, Union

from lens_toolkit.fhir._constants import AVERAGE_YEAR_SECONDS

logger = logging.getLogger(__name__)

_PARTIAL_DATE = re.compile(r"^(\d{4})(?:-(\d{2}))?$")

DateLike = Union[str, date, datetime]


def parse_fhir_datetime(value: Any) -> Optional[datetime]:
    """Parse a FHIR date/dateTime into an aware UTC datetime.

    Returns ``None`` for anything that cannot be parsed.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        m = _PARTIAL_DATE.match(value.strip())
        try:
            if m:
                dt = datetime(int(m.group(1)), int(m.group(2) or 1), 1)
            else:
                dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def calculate_age(
    birth_date: Any,
    *,
    reference_date: Optional[DateLike] = None,
) -> Optional[int]:
    """Whole years between *birth_date* and *reference_date*.

    Elapsed time is divided by an average 365.25-day year and floored;
    leap days and birthdays are not considered.

    Args:
        birth_date:     FHIR ``birthDate`` value.
        reference_date: The "now" to measure against.  Defaults to the
                        current UTC time.

    Returns:
        The age, or ``None`` when either date is absent or unparsable.
    """
    if not birth_date:
        return None
    born = parse_fhir_datetime(birth_date)
    if born is None:
        logger.debug("Unparsable birthDate %r", birth_date)
        return None

    if reference_date is None:
        now = datetime.now(timezone.utc)
    else:
        now = parse_fhir_datetime(reference_date)
        if now is None:
            return None

    elapsed = (now - born).total_seconds()
    return math.floor(elapsed / AVERAGE_YEAR_SECONDS)
