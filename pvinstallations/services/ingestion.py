"""
Ingestion service for production reports.

Stores one report for an existing installation, stamped with the server's
current UTC time, and invalidates the Redis aggregate cache of that
installation on success.

CHANGELOG:
- 2026-10-14: Invalidate the installation aggregate cache after insert
- 2026-10-11: Initial creation

TODO:
- None
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from pvinstallations.cache.redis_client import invalidate_installation_cache
from pvinstallations.db.models import ProductionReport
from pvinstallations.services.errors import InstallationNotFoundError
from pvinstallations.services.store import SqlSampleStore

logger = logging.getLogger(__name__)


async def record_report(
    db: AsyncSession,
    installation_id: int,
    *,
    produced_wattage: float,
    household_wattage: float,
    battery_wattage: float,
    grid_wattage: float,
) -> ProductionReport:
    """Insert a production report for an installation.

    Args:
        db: Async SQLAlchemy session.
        installation_id: Installation the report belongs to.
        produced_wattage: PV production in watts.
        household_wattage: Household consumption in watts.
        battery_wattage: Battery power in watts.
        grid_wattage: Grid power in watts.

    Returns:
        ProductionReport: The persisted report.

    Raises:
        InstallationNotFoundError: If the installation does not exist.
    """
    if not await SqlSampleStore(db).installation_exists(installation_id):
        raise InstallationNotFoundError(installation_id)

    report = ProductionReport(
        timestamp=datetime.now(UTC),
        produced_wattage=produced_wattage,
        household_wattage=household_wattage,
        battery_wattage=battery_wattage,
        grid_wattage=grid_wattage,
        installation_id=installation_id,
    )
    db.add(report)
    await db.commit()

    logger.info(
        "Ingested report for installation %s at %s",
        installation_id,
        report.timestamp.isoformat(),
    )

    await invalidate_installation_cache(installation_id)
    return report
