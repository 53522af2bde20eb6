"""
Installation endpoints: create, deactivate and read the audit log.

POST /v1/installations registers a new active installation.
POST /v1/installations/{id}/deactivate marks it inactive.
GET /v1/installations/{id}/logs returns its audit trail.

CHANGELOG:
- 2026-10-12: Add audit log endpoint
- 2026-10-11: Initial creation

TODO:
- None
"""

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from pvinstallations.api.deps import ApiClient, DbSession
from pvinstallations.services.errors import InstallationNotFoundError
from pvinstallations.services.installations import (
    create_installation,
    deactivate_installation,
    list_installation_logs,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/installations", tags=["installations"])


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class InstallationIn(BaseModel):
    """Payload for registering an installation."""

    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)
    address: str = Field(min_length=1, max_length=1024)
    owner_name: str = Field(min_length=1, max_length=512)
    comments: str | None = Field(default=None, max_length=1024)


class InstallationOut(BaseModel):
    """Installation as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    longitude: float
    latitude: float
    address: str
    owner_name: str
    is_active: bool
    comments: str | None


class InstallationLogOut(BaseModel):
    """One audit entry of an installation."""

    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    action: str
    previous_value: str
    next_value: str
    installation_id: int


def _not_found(exc: InstallationNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("", response_model=InstallationOut, status_code=201)
async def post_installation(
    payload: InstallationIn,
    client: ApiClient,
    db: DbSession,
) -> InstallationOut:
    """Register a new installation.

    Args:
        payload: Validated installation fields.
        client: Authenticated API client.
        db: Async database session.

    Returns:
        InstallationOut: The created installation, always active.
    """
    installation = await create_installation(db, **payload.model_dump())
    logger.debug("Installation %s created by %s", installation.id, client)
    return InstallationOut.model_validate(installation)


@router.post("/{installation_id}/deactivate", response_model=InstallationOut)
async def post_deactivate(
    installation_id: int,
    client: ApiClient,
    db: DbSession,
) -> InstallationOut:
    """Deactivate an installation.

    Raises:
        HTTPException: 404 if the installation does not exist.
    """
    try:
        installation = await deactivate_installation(db, installation_id)
    except InstallationNotFoundError as exc:
        raise _not_found(exc) from exc
    return InstallationOut.model_validate(installation)


@router.get("/{installation_id}/logs", response_model=list[InstallationLogOut])
async def get_logs(
    installation_id: int,
    client: ApiClient,
    db: DbSession,
) -> list[InstallationLogOut]:
    """Return the audit trail of an installation, oldest first.

    Raises:
        HTTPException: 404 if the installation does not exist.
    """
    try:
        logs = await list_installation_logs(db, installation_id)
    except InstallationNotFoundError as exc:
        raise _not_found(exc) from exc
    return [InstallationLogOut.model_validate(entry) for entry in logs]
