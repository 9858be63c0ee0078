import logging
import re
from itertools import groupby
from typing import Iterable, List

from errors import ValidationError
from intervals import WorkingInterval, overlaps

logger = logging.getLogger(__name__)

CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def sort_availability(intervals: Iterable[WorkingInterval]) -> List[WorkingInterval]:
    return sorted(intervals, key=lambda w: (w.day.index, w.start, w.end))


def validate_and_sort_availability(intervals: Iterable[WorkingInterval]) -> List[WorkingInterval]:
    """Return ``intervals`` ordered by (day, start), or raise ValidationError.

    Ranges must be well formed (``start < end``) and no two ranges of the
    same day may overlap. Ranges that only touch (``end == next.start``)
    are accepted.
    """
    ordered = sort_availability(intervals)

    for interval in ordered:
        for field in ("start", "end"):
            value = getattr(interval, field)
            if not CLOCK_PATTERN.match(value):
                raise ValidationError(
                    f"Invalid time format for {field} on {interval.day.value}: "
                    f"{value!r}. Expected HH:MM.",
                    details={"day": interval.day.value, field: value},
                )

    for day, group in groupby(ordered, key=lambda w: w.day):
        hours = list(group)
        for i, current in enumerate(hours):
            if current.start >= current.end:
                raise ValidationError(
                    f"Invalid time range on {day.value}: start time ({current.start}) "
                    f"must be earlier than end time ({current.end}).",
                    details={"day": day.value, "range": current.to_dict()},
                )

            if i < len(hours) - 1:
                following = hours[i + 1]
                if overlaps(current.range, following.range):
                    raise ValidationError(
                        f"Overlapping time ranges found on {day.value}: "
                        f"{current.range} overlaps with {following.range}.",
                        details={
                            "day": day.value,
                            "ranges": [current.to_dict(), following.to_dict()],
                        },
                    )

    logger.debug("Validated %d working intervals", len(ordered))
    return ordered
