"""
Tests for the JSON API.

The database dependency is pointed at the rolled-back test session and the
reconciliation service at a results cache fed from the feed_matches
fixture, so no network or on-disk database is touched.
"""

import pytest
from fastapi.testclient import TestClient

from betcheck.db.session import get_db
from betcheck.feed.cache import ResultsCache
from betcheck.services.predictions import PredictionRepository
from betcheck.services.reconciliation import ReconciliationService
from betcheck.web.main import app, get_reconciliation_service


@pytest.fixture
def fetch_calls():
    return []


@pytest.fixture
def client(db_session, feed_matches, fetch_calls):
    async def fetch(sport_type, api_date):
        fetch_calls.append((sport_type, api_date))
        return feed_matches

    service = ReconciliationService(ResultsCache(fetch, ttl_seconds=60))

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_reconciliation_service] = lambda: service
    app.state.dates_cache.clear()

    yield TestClient(app)

    app.dependency_overrides.clear()
    app.state.dates_cache.clear()


@pytest.fixture
def stored(db_session, make_prediction):
    PredictionRepository(db_session).upsert_predictions([
        make_prediction("Djokovic N.", "Nadal R.", score_prediction="2:0",
                        date="10th Apr 2025, 18:00 EDT"),
        make_prediction("Sinner J.", "Alcaraz C.", score_prediction="0:2",
                        date="10th Apr 2025, 09:00 EDT"),
        make_prediction("Medvedev D.", "Zverev A.", score_prediction="2:1",
                        standard_date="9th Apr 2025", date="9th Apr 2025"),
    ])


class TestHealthAndValidation:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.parametrize("params", [
        {"sport_type": "squash"},
        {"bet_type": "parlay"},
        {"sport_type": "table-tennis", "bet_type": "spread"},
    ])
    def test_bad_selection(self, client, params):
        assert client.get("/api/dates", params=params).status_code == 400
        assert client.get("/api/predictions", params=params).status_code == 400

    def test_page_size_bounds(self, client):
        assert client.get("/api/predictions", params={"page_size": 0}).status_code == 422
        assert client.get("/api/predictions", params={"page_size": 500}).status_code == 422


class TestDates:

    def test_dates(self, client, stored):
        response = client.get("/api/dates", params={"sport_type": "tennis", "bet_type": "normal"})

        assert response.status_code == 200
        assert response.json() == {
            "sport_type": "tennis",
            "bet_type": "normal",
            "dates": ["10th Apr 2025", "9th Apr 2025"],
        }

    def test_dates_are_memoised(self, client, db_session, stored, make_prediction):
        client.get("/api/dates")
        PredictionRepository(db_session).upsert_predictions([
            make_prediction("A", "B", standard_date="1st May 2025"),
        ])

        dates = client.get("/api/dates").json()["dates"]

        assert "1st May 2025" not in dates

    def test_selection_case_insensitive(self, client, stored):
        response = client.get("/api/dates", params={"sport_type": "Tennis", "bet_type": "NORMAL"})

        assert response.json()["sport_type"] == "tennis"


class TestPredictions:

    def test_reconciled_for_date(self, client, stored, fetch_calls):
        response = client.get("/api/predictions", params={"date": "10th Apr 2025"})

        assert response.status_code == 200
        body = response.json()
        assert body["date"] == "10th Apr 2025"
        assert body["has_more"] is False
        assert [item["team1"] for item in body["items"]] == ["Sinner J.", "Djokovic N."]

        sinner, djokovic = body["items"]
        assert sinner["resolved_score"]["display"] == "2:0 (6:4, 7:5)"
        assert sinner["is_correct"] is False
        assert sinner["swapped"] is True
        assert djokovic["resolved_score"]["display"] == "2:1 (6:4, 3:6)"
        assert djokovic["is_correct"] is True

        assert fetch_calls == [("tennis", "2025-04-10")]

    def test_feed_fetched_once_per_date(self, client, stored, fetch_calls):
        client.get("/api/predictions", params={"date": "10th Apr 2025"})
        client.get("/api/predictions", params={"date": "10th Apr 2025"})

        assert len(fetch_calls) == 1

    def test_listing_without_date(self, client, stored, fetch_calls):
        body = client.get("/api/predictions", params={"page_size": 2}).json()

        assert body["date"] is None
        assert len(body["items"]) == 2
        assert "resolved_score" not in body["items"][0]
        assert body["has_more"] is True

        rest = client.get(
            "/api/predictions", params={"page_size": 2, "cursor": body["next_cursor"]},
        ).json()
        assert [item["team1"] for item in rest["items"]] == ["Medvedev D."]
        assert rest["next_cursor"] is None
        assert fetch_calls == []

    def test_bad_cursor(self, client, stored):
        response = client.get("/api/predictions", params={"cursor": "garbage"})

        assert response.status_code == 400
        assert "Invalid cursor" in response.json()["detail"]

    def test_service_missing(self, client):
        del app.dependency_overrides[get_reconciliation_service]

        response = client.get("/api/predictions")

        assert response.status_code == 503

    @pytest.mark.parametrize("date", ["2025-04-10", "10th Apr 2025, 18:00 EDT", "soon"])
    def test_bad_date(self, client, stored, fetch_calls, date):
        response = client.get("/api/predictions", params={"date": date})

        assert response.status_code == 400
        assert fetch_calls == []
