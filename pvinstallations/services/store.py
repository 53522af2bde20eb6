"""
Sample store: read access to installations and production reports.

The aggregation service depends only on the SampleStore protocol. The
SqlSampleStore implementation streams production_reports rows through an
AsyncSession and converts driver failures into StoreUnavailableError so they
are never mistaken for semantic errors.

CHANGELOG:
- 2026-10-20: Ids outside the INTEGER column range are misses, not driver errors
- 2026-10-13: Stream rows with stream_scalars instead of loading them all
- 2026-10-12: Initial creation

TODO:
- None
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pvinstallations.db.models import ProductionReport, PvInstallation
from pvinstallations.services.errors import StoreUnavailableError
from pvinstallations.services.windows import to_utc

logger = logging.getLogger(__name__)

# Ids are stored in a signed 32-bit INTEGER column.
MAX_INSTALLATION_ID = 2**31 - 1


def _storable_id(installation_id: int) -> bool:
    return 1 <= installation_id <= MAX_INSTALLATION_ID


@dataclass(frozen=True)
class Sample:
    """Immutable in-process view of one stored production report."""

    timestamp: datetime
    produced_wattage: float
    household_wattage: float
    battery_wattage: float
    grid_wattage: float
    installation_id: int

    @classmethod
    def from_report(cls, report: ProductionReport) -> "Sample":
        return cls(
            timestamp=to_utc(report.timestamp),
            produced_wattage=report.produced_wattage,
            household_wattage=report.household_wattage,
            battery_wattage=report.battery_wattage,
            grid_wattage=report.grid_wattage,
            installation_id=report.installation_id,
        )


@dataclass(frozen=True)
class Found:
    """Installation lookup hit."""

    installation: PvInstallation


@dataclass(frozen=True)
class NotFound:
    """Installation lookup miss."""

    installation_id: int


InstallationLookup = Found | NotFound


class SampleStore(Protocol):
    def fetch_samples(
        self,
        installation_id: int,
        start: datetime,
        end: datetime,
        *,
        inclusive_end: bool,
    ) -> AsyncIterator[Sample]: ...

    async def get_installation(self, installation_id: int) -> InstallationLookup: ...

    async def installation_exists(self, installation_id: int) -> bool: ...


class SqlSampleStore:
    """SampleStore backed by the production_reports table.

    Attributes:
        session: Async SQLAlchemy session scoped to the current request.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def fetch_samples(
        self,
        installation_id: int,
        start: datetime,
        end: datetime,
        *,
        inclusive_end: bool,
    ) -> AsyncIterator[Sample]:
        """Yield samples for an installation in ascending timestamp order.

        Args:
            installation_id: Installation whose reports are read.
            start: Inclusive lower bound.
            end: Upper bound, inclusive when ``inclusive_end`` is set.
            inclusive_end: Whether reports stamped exactly at ``end`` match.

        Yields:
            Sample: One immutable sample per matching report.

        Raises:
            StoreUnavailableError: If the database read fails.
        """
        if not _storable_id(installation_id):
            return
        upper = (
            ProductionReport.timestamp <= end
            if inclusive_end
            else ProductionReport.timestamp < end
        )
        stmt = (
            select(ProductionReport)
            .where(
                ProductionReport.installation_id == installation_id,
                ProductionReport.timestamp >= start,
                upper,
            )
            .order_by(ProductionReport.timestamp.asc(), ProductionReport.id.asc())
        )
        try:
            result = await self.session.stream_scalars(stmt)
            async for report in result:
                yield Sample.from_report(report)
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "Sample fetch failed for installation %s", installation_id
            )
            raise StoreUnavailableError("Sample store unavailable") from exc

    async def get_installation(self, installation_id: int) -> InstallationLookup:
        """Look up an installation by id.

        Returns:
            Found | NotFound: The installation, or an explicit miss.

        Raises:
            StoreUnavailableError: If the database read fails.
        """
        if not _storable_id(installation_id):
            return NotFound(installation_id)
        try:
            installation = await self.session.get(PvInstallation, installation_id)
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError("Sample store unavailable") from exc
        if installation is None:
            return NotFound(installation_id)
        return Found(installation)

    async def installation_exists(self, installation_id: int) -> bool:
        return isinstance(await self.get_installation(installation_id), Found)
