"""
Aggregation service for production-report time series.

Provides the two read-only queries of the API:

- sum_produced_wattage: total produced wattage of an installation over an
  inclusive time range.
- timeline_page: one page of per-minute buckets of a paginated timeline
  window, gap-filled with zero buckets for minutes without reports.

Both fold the samples streamed by a SampleStore into immutable values; no
state is shared between calls.

CHANGELOG:
- 2026-10-20: Document OutOfRangeError for overflowing ranges
- 2026-10-13: Fold samples into immutable Buckets
- 2026-10-12: Initial creation

TODO:
- None
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from pvinstallations.services.errors import InstallationNotFoundError
from pvinstallations.services.store import NotFound, Sample, SampleStore
from pvinstallations.services.windows import (
    bucket_index,
    page_window,
    range_end,
    to_utc,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bucket:
    """Sum of the four power flows of every sample in one minute.

    Attributes:
        produced_wattage: Summed PV production in watts.
        household_wattage: Summed household consumption in watts.
        battery_wattage: Summed battery power in watts.
        grid_wattage: Summed grid power in watts.
    """

    produced_wattage: float = 0.0
    household_wattage: float = 0.0
    battery_wattage: float = 0.0
    grid_wattage: float = 0.0

    def __add__(self, sample: Sample) -> "Bucket":
        if not isinstance(sample, Sample):
            return NotImplemented
        return Bucket(
            produced_wattage=self.produced_wattage + sample.produced_wattage,
            household_wattage=self.household_wattage + sample.household_wattage,
            battery_wattage=self.battery_wattage + sample.battery_wattage,
            grid_wattage=self.grid_wattage + sample.grid_wattage,
        )


ZERO_BUCKET = Bucket()


async def sum_produced_wattage(
    store: SampleStore,
    installation_id: int,
    start: datetime,
    duration_minutes: int,
) -> float:
    """Sum produced wattage over ``[start, start + duration_minutes]``.

    Both ends of the range are inclusive. An empty range sums to 0.0.

    Args:
        store: Sample store to read from.
        installation_id: Installation to aggregate.
        start: Start of the range.
        duration_minutes: Length of the range in minutes.

    Returns:
        float: Total produced wattage.

    Raises:
        InstallationNotFoundError: If the installation does not exist.
        OutOfRangeError: If the range end lies outside the datetime range.
        StoreUnavailableError: If the store read fails.
    """
    start = to_utc(start)
    end = range_end(start, duration_minutes)

    if isinstance(await store.get_installation(installation_id), NotFound):
        raise InstallationNotFoundError(installation_id)

    total = 0.0
    count = 0
    async for sample in store.fetch_samples(
        installation_id, start, end, inclusive_end=True
    ):
        total += sample.produced_wattage
        count += 1

    logger.debug(
        "Range sum: installation_id=%s start=%s end=%s samples=%d total=%s",
        installation_id,
        start.isoformat(),
        end.isoformat(),
        count,
        total,
    )
    return total


async def timeline_page(
    store: SampleStore,
    installation_id: int,
    window_start: datetime,
    total_duration_minutes: int,
    page_number: int,
) -> tuple[Bucket, ...]:
    """Return one page of per-minute buckets of a timeline window.

    The page covers ``[page_start, page_start + size minutes)`` where
    ``page_start`` is ``page_number - 1`` hours after ``window_start``.
    Reports are summed into the bucket of the minute they fall in; minutes
    without reports are ZERO_BUCKET.

    Args:
        store: Sample store to read from.
        installation_id: Installation to aggregate.
        window_start: Start of the whole window.
        total_duration_minutes: Length of the whole window in minutes.
        page_number: 1-indexed page to return.

    Returns:
        tuple[Bucket, ...]: Buckets in minute order, at most 60.

    Raises:
        InvalidArgumentError: If page_number or total_duration_minutes is < 1.
        OutOfRangeError: If the page lies beyond the end of the window.
        StoreUnavailableError: If the store read fails.
    """
    window = page_window(to_utc(window_start), total_duration_minutes, page_number)

    totals: dict[int, Bucket] = {}
    async for sample in store.fetch_samples(
        installation_id, window.start, window.end, inclusive_end=False
    ):
        index = bucket_index(window.start, sample.timestamp)
        if not 0 <= index < window.size:
            logger.warning(
                "Sample at %s outside page [%s, %s) for installation %s",
                sample.timestamp.isoformat(),
                window.start.isoformat(),
                window.end.isoformat(),
                installation_id,
            )
            continue
        totals[index] = totals.get(index, ZERO_BUCKET) + sample

    logger.debug(
        "Timeline page: installation_id=%s page=%d size=%d filled=%d",
        installation_id,
        page_number,
        window.size,
        len(totals),
    )
    return tuple(totals.get(index, ZERO_BUCKET) for index in range(window.size))
