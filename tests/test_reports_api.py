"""
Tests for the production report endpoints.

Covers GET /v1/installations/{id}/reports (range sum), GET
/v1/installations/{id}/timeline (paginated per-minute buckets) and POST
/v1/installations/{id}/reports, including error status mapping and the
Redis aggregate cache.

CHANGELOG:
- 2026-10-20: Cache generations, datetime overflow and oversized ids
- 2026-10-14: Cover cache hits and writes
- 2026-10-13: Add timeline endpoint tests
- 2026-10-12: Initial creation
"""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from pvinstallations.api.deps import get_db, get_sample_store
from pvinstallations.db.models import ProductionReport
from pvinstallations.services.errors import InstallationNotFoundError
from tests.conftest import AUTH_HEADER
from tests.fakes import FakeSampleStore, make_sample

T0 = datetime(2024, 1, 1, tzinfo=UTC)
SUM_URL = "/v1/installations/1/reports"
TIMELINE_URL = "/v1/installations/1/timeline"
ZERO = {
    "produced_wattage": 0.0,
    "household_wattage": 0.0,
    "battery_wattage": 0.0,
    "grid_wattage": 0.0,
}


def _use_store(store: FakeSampleStore) -> None:
    from pvinstallations.api.main import app

    app.dependency_overrides[get_sample_store] = lambda: store


def _override_db_factory(mock_session: AsyncMock):
    """Create a dependency override for get_db that yields mock_session."""

    async def _override():
        yield mock_session

    return _override


def _timeline_params(duration: int = 90, page: int = 1) -> dict:
    return {"start_timestamp": "2024-01-01T00:00:00Z", "duration": duration, "page": page}


# ---------------------------------------------------------------------------
# Range sum
# ---------------------------------------------------------------------------


class TestRangeSum:
    """GET /v1/installations/{id}/reports."""

    def test_sums_produced_wattage(self, client: TestClient) -> None:
        _use_store(
            FakeSampleStore(
                [
                    make_sample(T0, produced_wattage=100),
                    make_sample(T0 + timedelta(minutes=5), produced_wattage=250.5),
                    make_sample(T0 + timedelta(minutes=6), produced_wattage=999),
                ]
            )
        )

        response = client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 5},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 200
        assert response.json() == {"total_produced_wattage": 350.5}

    def test_empty_range_returns_zero(self, client: TestClient) -> None:
        _use_store(FakeSampleStore(installation_ids={1}))

        response = client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 60},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 200
        assert response.json() == {"total_produced_wattage": 0.0}

    def test_unknown_installation_returns_404(self, client: TestClient) -> None:
        _use_store(FakeSampleStore(installation_ids={2}))

        response = client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 60},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 404

    def test_store_unavailable_returns_503(self, client: TestClient) -> None:
        _use_store(FakeSampleStore(installation_ids={1}, fail=True))

        response = client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 60},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 503

    def test_missing_duration_returns_422(self, client: TestClient) -> None:
        _use_store(FakeSampleStore(installation_ids={1}))

        response = client.get(
            SUM_URL, params={"timestamp": "2024-01-01T00:00:00Z"}, headers=AUTH_HEADER
        )

        assert response.status_code == 422

    def test_result_is_cached(self, client: TestClient, mock_redis: AsyncMock) -> None:
        _use_store(FakeSampleStore([make_sample(T0, produced_wattage=7)]))

        client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 5},
            headers=AUTH_HEADER,
        )

        mock_redis.hset.assert_awaited_once()
        key, field, value = mock_redis.hset.call_args.args
        assert key == "aggregates:1:0"
        assert field == "sum:2024-01-01T00:00:00+00:00:5"
        assert json.loads(value) == {"total_produced_wattage": 7.0}
        mock_redis.expire.assert_awaited_once_with("aggregates:1:0", 30)

    def test_cache_hit_skips_store(self, client: TestClient, mock_redis: AsyncMock) -> None:
        store = FakeSampleStore(installation_ids={1})
        _use_store(store)
        mock_redis.hget.return_value = b'{"total_produced_wattage": 42.0}'

        response = client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 5},
            headers=AUTH_HEADER,
        )

        assert response.json() == {"total_produced_wattage": 42.0}
        assert store.fetch_calls == []

    def test_cache_failure_falls_back_to_store(
        self, client: TestClient, mock_redis: AsyncMock
    ) -> None:
        _use_store(FakeSampleStore([make_sample(T0, produced_wattage=3)]))
        mock_redis.hget.side_effect = ConnectionError("redis down")
        mock_redis.hset.side_effect = ConnectionError("redis down")

        response = client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 5},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 200
        assert response.json() == {"total_produced_wattage": 3.0}

    def test_reads_current_generation(
        self, client: TestClient, mock_redis: AsyncMock
    ) -> None:
        _use_store(FakeSampleStore(installation_ids={1}))
        mock_redis.get.return_value = b"3"

        client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 5},
            headers=AUTH_HEADER,
        )

        mock_redis.get.assert_awaited_once_with("aggregates:1:generation")
        assert mock_redis.hget.call_args.args[0] == "aggregates:1:3"
        assert mock_redis.hset.call_args.args[0] == "aggregates:1:3"

    def test_ingest_during_computation_cannot_revive_stale_sum(
        self, client: TestClient, mock_redis: AsyncMock
    ) -> None:
        """A sum computed before an ingest is written under the retired generation."""
        mock_redis.get.return_value = b"4"

        def _ingest_lands() -> None:
            mock_redis.get.return_value = b"5"

        _use_store(
            FakeSampleStore(
                [make_sample(T0, produced_wattage=1)], on_fetch=_ingest_lands
            )
        )
        params = {"timestamp": "2024-01-01T00:00:00Z", "duration": 5}

        client.get(SUM_URL, params=params, headers=AUTH_HEADER)
        assert mock_redis.hset.call_args.args[0] == "aggregates:1:4"

        client.get(SUM_URL, params=params, headers=AUTH_HEADER)
        assert mock_redis.hget.call_args.args[0] == "aggregates:1:5"

    def test_generation_read_failure_bypasses_cache(
        self, client: TestClient, mock_redis: AsyncMock
    ) -> None:
        _use_store(FakeSampleStore([make_sample(T0, produced_wattage=3)]))
        mock_redis.get.side_effect = ConnectionError("redis down")

        response = client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 5},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 200
        assert response.json() == {"total_produced_wattage": 3.0}
        mock_redis.hget.assert_not_awaited()
        mock_redis.hset.assert_not_awaited()

    def test_duration_past_datetime_range_returns_422(self, client: TestClient) -> None:
        _use_store(FakeSampleStore(installation_ids={1}))

        response = client.get(
            SUM_URL,
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 5_000_000_000},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 422
        assert "supported time range" in response.json()["detail"]

    def test_timestamp_below_datetime_min_returns_422(self, client: TestClient) -> None:
        _use_store(FakeSampleStore(installation_ids={1}))

        response = client.get(
            SUM_URL,
            params={"timestamp": "0001-01-01T00:00:00+01:00", "duration": 5},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 422

    def test_oversized_installation_id_returns_404(self, client: TestClient) -> None:
        _use_store(FakeSampleStore(installation_ids={1}))

        response = client.get(
            f"/v1/installations/{2**64}/reports",
            params={"timestamp": "2024-01-01T00:00:00Z", "duration": 5},
            headers=AUTH_HEADER,
        )

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


class TestTimeline:
    """GET /v1/installations/{id}/timeline."""

    def test_first_page_of_ninety_minute_window(self, client: TestClient) -> None:
        _use_store(
            FakeSampleStore(
                [
                    make_sample(T0 + timedelta(minutes=5), 10, 1, 2, 3),
                    make_sample(T0 + timedelta(minutes=5, seconds=30), 5, 1, 2, 3),
                ]
            )
        )

        response = client.get(TIMELINE_URL, params=_timeline_params(), headers=AUTH_HEADER)

        assert response.status_code == 200
        buckets = response.json()
        assert len(buckets) == 60
        assert buckets[5] == {
            "produced_wattage": 15.0,
            "household_wattage": 2.0,
            "battery_wattage": 4.0,
            "grid_wattage": 6.0,
        }
        assert all(b == ZERO for i, b in enumerate(buckets) if i != 5)

    def test_last_partial_page(self, client: TestClient) -> None:
        _use_store(FakeSampleStore([make_sample(T0 + timedelta(minutes=5), 10)]))

        response = client.get(
            TIMELINE_URL, params=_timeline_params(page=2), headers=AUTH_HEADER
        )

        assert response.status_code == 200
        assert response.json() == [ZERO] * 30

    def test_page_zero_returns_400(self, client: TestClient) -> None:
        store = FakeSampleStore()
        _use_store(store)

        response = client.get(
            TIMELINE_URL, params=_timeline_params(page=0), headers=AUTH_HEADER
        )

        assert response.status_code == 400
        assert "page" in response.json()["detail"]
        assert store.fetch_calls == []

    def test_zero_duration_returns_400(self, client: TestClient) -> None:
        _use_store(FakeSampleStore())

        response = client.get(
            TIMELINE_URL, params=_timeline_params(duration=0), headers=AUTH_HEADER
        )

        assert response.status_code == 400
        assert "duration" in response.json()["detail"]

    def test_page_beyond_window_returns_422(self, client: TestClient) -> None:
        _use_store(FakeSampleStore())

        response = client.get(
            TIMELINE_URL, params=_timeline_params(page=3), headers=AUTH_HEADER
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "page beyond window end"

    def test_store_unavailable_returns_503(self, client: TestClient) -> None:
        _use_store(FakeSampleStore(fail=True))

        response = client.get(TIMELINE_URL, params=_timeline_params(), headers=AUTH_HEADER)

        assert response.status_code == 503

    def test_page_past_datetime_range_returns_422(self, client: TestClient) -> None:
        store = FakeSampleStore()
        _use_store(store)

        response = client.get(
            TIMELINE_URL,
            params=_timeline_params(duration=10**10, page=100_000_000),
            headers=AUTH_HEADER,
        )

        assert response.status_code == 422
        assert "supported time range" in response.json()["detail"]
        assert store.fetch_calls == []

    def test_result_is_cached_per_page(
        self, client: TestClient, mock_redis: AsyncMock
    ) -> None:
        _use_store(FakeSampleStore())

        client.get(TIMELINE_URL, params=_timeline_params(page=2), headers=AUTH_HEADER)

        key, field, value = mock_redis.hset.call_args.args
        assert key == "aggregates:1:0"
        assert field == "timeline:2024-01-01T00:00:00+00:00:90:2"
        assert json.loads(value) == [ZERO] * 30

    def test_cache_hit_skips_store(self, client: TestClient, mock_redis: AsyncMock) -> None:
        store = FakeSampleStore()
        _use_store(store)
        cached = [dict(ZERO, produced_wattage=float(i)) for i in range(3)]
        mock_redis.hget.return_value = json.dumps(cached).encode("utf-8")

        response = client.get(
            TIMELINE_URL, params=_timeline_params(duration=3), headers=AUTH_HEADER
        )

        assert response.json() == cached
        assert store.fetch_calls == []


# ---------------------------------------------------------------------------
# Report ingestion
# ---------------------------------------------------------------------------

REPORT_PAYLOAD = {
    "produced_wattage": 3500.0,
    "household_wattage": 1200.0,
    "battery_wattage": 300.0,
    "grid_wattage": 2000.0,
}


class TestPostReport:
    """POST /v1/installations/{id}/reports."""

    @patch("pvinstallations.api.reports.record_report", new_callable=AsyncMock)
    def test_valid_report_returns_201(
        self, mock_record: AsyncMock, client: TestClient
    ) -> None:
        from pvinstallations.api.main import app

        mock_session = AsyncMock()
        app.dependency_overrides[get_db] = _override_db_factory(mock_session)
        mock_record.return_value = ProductionReport(
            id=11,
            timestamp=T0,
            installation_id=1,
            **REPORT_PAYLOAD,
        )

        response = client.post(SUM_URL, json=REPORT_PAYLOAD, headers=AUTH_HEADER)

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == 11
        assert data["installation_id"] == 1
        assert data["produced_wattage"] == 3500.0
        mock_record.assert_awaited_once_with(mock_session, 1, **REPORT_PAYLOAD)

    @patch("pvinstallations.api.reports.record_report", new_callable=AsyncMock)
    def test_unknown_installation_returns_404(
        self, mock_record: AsyncMock, client: TestClient
    ) -> None:
        from pvinstallations.api.main import app

        app.dependency_overrides[get_db] = _override_db_factory(AsyncMock())
        mock_record.side_effect = InstallationNotFoundError(1)

        response = client.post(SUM_URL, json=REPORT_PAYLOAD, headers=AUTH_HEADER)

        assert response.status_code == 404

    @patch("pvinstallations.api.reports.record_report", new_callable=AsyncMock)
    def test_negative_wattage_returns_422(
        self, mock_record: AsyncMock, client: TestClient
    ) -> None:
        from pvinstallations.api.main import app

        app.dependency_overrides[get_db] = _override_db_factory(AsyncMock())

        response = client.post(
            SUM_URL,
            json=dict(REPORT_PAYLOAD, grid_wattage=-1.0),
            headers=AUTH_HEADER,
        )

        assert response.status_code == 422
        mock_record.assert_not_awaited()
