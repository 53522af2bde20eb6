"""
Time-window and page arithmetic shared by the aggregation queries.

A timeline window of ``total_duration_minutes`` is split into 1-indexed
pages of at most PAGE_SIZE one-minute buckets. Page N starts N-1 hours
after the window start (an hour stride, not a bucket-count stride) and
holds ``min(PAGE_SIZE, total_duration_minutes - (N - 1) * PAGE_SIZE)``
buckets.

CHANGELOG:
- 2026-10-20: Report datetime overflow as OutOfRangeError
- 2026-10-12: Initial creation

TODO:
- None
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pvinstallations.services.errors import InvalidArgumentError, OutOfRangeError

PAGE_SIZE = 60
BUCKET_WIDTH = timedelta(minutes=1)
PAGE_STRIDE = timedelta(hours=1)


@dataclass(frozen=True)
class PageWindow:
    """Half-open time slice ``[start, end)`` covered by one timeline page.

    Attributes:
        start: First instant of the page (bucket 0 starts here).
        end: Exclusive end, ``start + size minutes``.
        size: Number of one-minute buckets on the page.
    """

    start: datetime
    end: datetime
    size: int


def to_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime; naive values are taken as UTC.

    Raises:
        OutOfRangeError: If the UTC instant falls outside the datetime range.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    try:
        return dt.astimezone(UTC)
    except OverflowError as exc:
        raise OutOfRangeError("timestamp outside the supported time range") from exc


def range_end(start: datetime, duration_minutes: int) -> datetime:
    """Return the instant ``duration_minutes`` after ``start``.

    Raises:
        OutOfRangeError: If the end falls outside the datetime range.
    """
    try:
        return start + timedelta(minutes=duration_minutes)
    except OverflowError as exc:
        raise OutOfRangeError("range end outside the supported time range") from exc


def page_size(total_duration_minutes: int, page_number: int) -> int:
    """Number of buckets on ``page_number``; zero or negative past the window end."""
    elements_before_page = (page_number - 1) * PAGE_SIZE
    return min(PAGE_SIZE, total_duration_minutes - elements_before_page)


def page_window(
    window_start: datetime,
    total_duration_minutes: int,
    page_number: int,
) -> PageWindow:
    """Compute the time slice covered by one page of a timeline window.

    Args:
        window_start: Start of the whole window.
        total_duration_minutes: Length of the whole window in minutes.
        page_number: 1-indexed page number.

    Returns:
        PageWindow: Start, exclusive end and bucket count of the page.

    Raises:
        InvalidArgumentError: If page_number or total_duration_minutes is < 1.
        OutOfRangeError: If the page starts at or past the end of the window,
            or lies outside the datetime range.
    """
    if page_number < 1:
        raise InvalidArgumentError("`page` number must be greater than 0")
    if total_duration_minutes < 1:
        raise InvalidArgumentError("`duration` must be greater than 0")

    size = page_size(total_duration_minutes, page_number)
    if size <= 0:
        raise OutOfRangeError("page beyond window end")

    try:
        start = window_start + PAGE_STRIDE * (page_number - 1)
        end = start + BUCKET_WIDTH * size
    except OverflowError as exc:
        raise OutOfRangeError("page outside the supported time range") from exc
    return PageWindow(start=start, end=end, size=size)


def bucket_index(page_start: datetime, timestamp: datetime) -> int:
    """Whole minutes elapsed from ``page_start`` to ``timestamp``, floored."""
    return (timestamp - page_start) // BUCKET_WIDTH
