"""
Installation registry: create and deactivate PV installations.

Every mutation appends an InstallationLog entry in the same transaction as
the change it records, so the audit trail never diverges from the
installation table.

CHANGELOG:
- 2026-10-12: Record audit entries alongside create/deactivate
- 2026-10-11: Initial creation
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pvinstallations.db.models import InstallationLog, PvInstallation
from pvinstallations.services.errors import InstallationNotFoundError
from pvinstallations.services.store import NotFound, SqlSampleStore

logger = logging.getLogger(__name__)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"


async def _require_installation(
    db: AsyncSession, installation_id: int
) -> PvInstallation:
    lookup = await SqlSampleStore(db).get_installation(installation_id)
    if isinstance(lookup, NotFound):
        raise InstallationNotFoundError(installation_id)
    return lookup.installation


async def create_installation(
    db: AsyncSession,
    *,
    longitude: float,
    latitude: float,
    address: str,
    owner_name: str,
    comments: str | None = None,
) -> PvInstallation:
    """Insert a new active installation and its "created" audit entry.

    Returns:
        PvInstallation: The persisted installation with its id assigned.
    """
    installation = PvInstallation(
        longitude=longitude,
        latitude=latitude,
        address=address,
        owner_name=owner_name,
        is_active=True,
        comments=comments,
    )
    db.add(installation)
    await db.flush()

    db.add(
        InstallationLog(
            action=ACTION_CREATED,
            timestamp=datetime.now(UTC),
            previous_value="",
            next_value=installation.describe(),
            installation_id=installation.id,
        )
    )
    await db.commit()

    logger.info("Created installation %s", installation.id)
    return installation


async def deactivate_installation(
    db: AsyncSession, installation_id: int
) -> PvInstallation:
    """Mark an installation inactive and log the change.

    Deactivating an already inactive installation still appends an entry,
    recording ``False -> False``.

    Args:
        db: Async SQLAlchemy session.
        installation_id: Installation to deactivate.

    Returns:
        PvInstallation: The updated installation.

    Raises:
        InstallationNotFoundError: If the installation does not exist.
    """
    installation = await _require_installation(db, installation_id)

    db.add(
        InstallationLog(
            action=ACTION_UPDATED,
            timestamp=datetime.now(UTC),
            previous_value=str(installation.is_active),
            next_value=str(False),
            installation_id=installation.id,
        )
    )
    installation.is_active = False
    await db.commit()

    logger.info("Deactivated installation %s", installation_id)
    return installation


async def list_installation_logs(
    db: AsyncSession, installation_id: int
) -> list[InstallationLog]:
    """Return the audit trail of an installation, oldest first.

    Raises:
        InstallationNotFoundError: If the installation does not exist.
    """
    await _require_installation(db, installation_id)
    result = await db.execute(
        select(InstallationLog)
        .where(InstallationLog.installation_id == installation_id)
        .order_by(InstallationLog.timestamp.asc(), InstallationLog.id.asc())
    )
    return list(result.scalars().all())
