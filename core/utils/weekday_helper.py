# File: core/utils/weekday_helper.py
# Version: 1.2.0
# Author: vas
# Modified: 2026-10-18

from __future__ import annotations
from datetime import date, timedelta
from typing import Optional, Set

# Working week: Monday(0) .. Friday(4)
WEEKDAYS_MON_FRI: Set[int] = {0, 1, 2, 3, 4}


def is_weekend(day: date) -> bool:
    return day.weekday() not in WEEKDAYS_MON_FRI


def weekdays_between(
    start: Optional[date],
    end: Optional[date],
    *,
    inclusive: bool = False,
) -> Optional[int]:
    """
    Count Mon-Fri dates between two dates.

    Range semantics:
      - inclusive=False (default): [start, end)
      - inclusive=True:            [start, end], as leave periods are given

    Returns 0 for an inverted range and None if either date is missing.

        >>> weekdays_between(date(2025, 4, 28), date(2025, 5, 2), inclusive=True)  # Mon..Fri
        5
        >>> weekdays_between(date(2025, 5, 3), date(2025, 5, 5))  # Sat..Mon, end excluded
        0
    """
    if start is None or end is None:
        return None

    if inclusive:
        end = end + timedelta(days=1)

    total_days = (end - start).days
    if total_days <= 0:
        return 0

    # Full weeks contribute five working days each
    full_weeks, extra_days = divmod(total_days, 7)
    count = full_weeks * len(WEEKDAYS_MON_FRI)

    start_wd = start.weekday()
    for i in range(extra_days):
        if ((start_wd + i) % 7) in WEEKDAYS_MON_FRI:
            count += 1

    return count
