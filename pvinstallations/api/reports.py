"""
Production report endpoints: ingestion, range sum and paginated timeline.

POST /v1/installations/{id}/reports stores one report.
GET /v1/installations/{id}/reports sums produced wattage over a range.
GET /v1/installations/{id}/timeline returns one page of per-minute buckets.

The two GET endpoints read through the Redis aggregate cache under the
installation's current cache generation; ingestion advances the generation.

CHANGELOG:
- 2026-10-20: Map datetime overflow to 422, key cache by generation
- 2026-10-14: Read aggregates through the Redis cache
- 2026-10-13: Add paginated timeline endpoint
- 2026-10-12: Initial creation

TODO:
- None
"""

import json
import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from pvinstallations.api.deps import ApiClient, DbSession, get_sample_store
from pvinstallations.cache.redis_client import get_cached, get_generation, set_cached
from pvinstallations.services.aggregation import (
    sum_produced_wattage,
    timeline_page,
)
from pvinstallations.services.errors import (
    InstallationNotFoundError,
    InvalidArgumentError,
    OutOfRangeError,
    StoreUnavailableError,
)
from pvinstallations.services.ingestion import record_report
from pvinstallations.services.store import SampleStore
from pvinstallations.services.windows import to_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/installations", tags=["reports"])

Store = Annotated[SampleStore, Depends(get_sample_store)]


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ReportIn(BaseModel):
    """Power flows reported by an installation; all non-negative."""

    produced_wattage: float = Field(ge=0)
    household_wattage: float = Field(ge=0)
    battery_wattage: float = Field(ge=0)
    grid_wattage: float = Field(ge=0)


class ReportOut(BaseModel):
    """Stored production report."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    produced_wattage: float
    household_wattage: float
    battery_wattage: float
    grid_wattage: float
    installation_id: int


class RangeSumOut(BaseModel):
    """Total produced wattage over a range."""

    total_produced_wattage: float


class BucketOut(BaseModel):
    """Summed power flows of one minute of a timeline page."""

    model_config = ConfigDict(from_attributes=True)

    produced_wattage: float
    household_wattage: float
    battery_wattage: float
    grid_wattage: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _cache_ttl(request: Request) -> int:
    config = request.app.state.config
    try:
        return int(config.get("CACHE_TTL_S", "30"))
    except ValueError:
        logger.warning("Invalid CACHE_TTL_S value, using default 30s")
        return 30


def _store_unavailable(exc: StoreUnavailableError) -> HTTPException:
    return HTTPException(status_code=503, detail="Database unavailable")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post(
    "/{installation_id}/reports",
    response_model=ReportOut,
    status_code=201,
)
async def post_report(
    installation_id: int,
    payload: ReportIn,
    client: ApiClient,
    db: DbSession,
) -> ReportOut:
    """Store a production report stamped with the current UTC time.

    Raises:
        HTTPException: 404 if the installation does not exist.
    """
    try:
        report = await record_report(db, installation_id, **payload.model_dump())
    except InstallationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc
    return ReportOut.model_validate(report)


@router.get("/{installation_id}/reports", response_model=RangeSumOut)
async def get_range_sum(
    request: Request,
    installation_id: int,
    client: ApiClient,
    store: Store,
    timestamp: Annotated[datetime, Query(description="Start of the range.")],
    duration: Annotated[int, Query(description="Range length in minutes.")],
) -> RangeSumOut:
    """Sum produced wattage over ``[timestamp, timestamp + duration]``.

    Args:
        request: The incoming FastAPI request.
        installation_id: Installation to aggregate.
        client: Authenticated API client.
        store: Request-scoped sample store.
        timestamp: Start of the range; naive values are read as UTC.
        duration: Range length in minutes.

    Returns:
        RangeSumOut: Total produced wattage, 0 for an empty range.

    Raises:
        HTTPException: 404 if the installation does not exist.
        HTTPException: 422 if the range lies outside the supported time range.
        HTTPException: 503 if the database is unavailable.
    """
    try:
        start = to_utc(timestamp)
    except OutOfRangeError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    field = f"sum:{start.isoformat()}:{duration}"

    generation = await get_generation(installation_id)
    if generation is not None:
        cached = await get_cached(installation_id, generation, field)
        if cached is not None:
            return RangeSumOut.model_validate_json(cached)

    try:
        total = await sum_produced_wattage(store, installation_id, start, duration)
    except InstallationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except OutOfRangeError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc

    response = RangeSumOut(total_produced_wattage=total)
    if generation is not None:
        await set_cached(
            installation_id,
            generation,
            field,
            response.model_dump_json(),
            _cache_ttl(request),
        )
    return response


@router.get("/{installation_id}/timeline", response_model=list[BucketOut])
async def get_timeline(
    request: Request,
    installation_id: int,
    client: ApiClient,
    store: Store,
    start_timestamp: Annotated[datetime, Query(description="Window start.")],
    duration: Annotated[int, Query(description="Window length in minutes.")],
    page: Annotated[int, Query(description="1-indexed page of 60 minutes.")],
) -> list[BucketOut]:
    """Return one page of per-minute buckets of a timeline window.

    Page N covers up to 60 minutes starting N-1 hours after
    ``start_timestamp``. Minutes without reports are zero buckets.

    Raises:
        HTTPException: 400 if page or duration is less than 1.
        HTTPException: 422 if the page lies beyond the end of the window or
            outside the supported time range.
        HTTPException: 503 if the database is unavailable.
    """
    try:
        start = to_utc(start_timestamp)
    except OutOfRangeError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    field = f"timeline:{start.isoformat()}:{duration}:{page}"

    generation = await get_generation(installation_id)
    if generation is not None:
        cached = await get_cached(installation_id, generation, field)
        if cached is not None:
            return [BucketOut.model_validate(item) for item in json.loads(cached)]

    try:
        buckets = await timeline_page(store, installation_id, start, duration, page)
    except InvalidArgumentError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except OutOfRangeError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc

    response = [BucketOut.model_validate(bucket) for bucket in buckets]
    if generation is not None:
        await set_cached(
            installation_id,
            generation,
            field,
            json.dumps([bucket.model_dump() for bucket in response]),
            _cache_ttl(request),
        )
    return response
