"""
JSON API over the prediction store and the reconciliation engine.

Endpoints:
- GET /health
- GET /api/dates: dates with predictions for a sport/bet type
- GET /api/predictions: a page of predictions, reconciled against the
  results feed when a date is selected

The results feed client, results cache and reconciliation service are built
once per process in the lifespan handler and kept on app.state.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from betcheck.bet_types import SPORT_BET_TYPES, is_known_bet_type, is_known_sport_type
from betcheck.config import settings
from betcheck.db.session import get_db
from betcheck.feed.cache import ResultsCache, TimedCache
from betcheck.feed.client import ResultsFeedClient
from betcheck.parsers.dates import is_display_date
from betcheck.services.predictions import PredictionRepository, sort_predictions_by_time
from betcheck.services.reconciliation import ReconciliationService

logging.basicConfig(level=settings.log_level, format=settings.log_format)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = ResultsFeedClient()
    app.state.feed_client = client
    app.state.results_cache = ResultsCache(client.fetch_matches)
    app.state.reconciliation = ReconciliationService(app.state.results_cache)
    try:
        yield
    finally:
        await client.aclose()


app = FastAPI(title="BetCheck", lifespan=lifespan)
app.state.dates_cache = TimedCache(ttl_seconds=settings.prediction_cache_ttl_seconds)


def get_reconciliation_service(request: Request) -> ReconciliationService:
    """Dependency returning the process-wide reconciliation service."""
    service = getattr(request.app.state, "reconciliation", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Results feed not initialised")
    return service


def _validate_selection(sport_type: str, bet_type: str) -> tuple[str, str]:
    """Return the lower-cased sport/bet type, or raise a 400."""
    sport = sport_type.strip().lower()
    bet = bet_type.strip().lower()

    if not is_known_sport_type(sport):
        raise HTTPException(status_code=400, detail=f"Unknown sport type: {sport_type}")
    if not is_known_bet_type(bet):
        raise HTTPException(status_code=400, detail=f"Unknown bet type: {bet_type}")
    if bet not in SPORT_BET_TYPES[sport]:
        raise HTTPException(
            status_code=400,
            detail=f"Bet type '{bet}' is not available for {sport}",
        )
    return sport, bet


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/dates")
async def api_dates(
    db: Session = Depends(get_db),
    sport_type: str = Query("tennis", description="tennis or table-tennis"),
    bet_type: str = Query("normal", description="normal, spread or kelly"),
):
    """Dates with predictions, newest first ("10th Apr 2025" format)."""
    sport, bet = _validate_selection(sport_type, bet_type)

    dates_cache: TimedCache = app.state.dates_cache
    dates = dates_cache.get_or_set(
        (sport, bet),
        lambda: PredictionRepository(db).get_prediction_dates(sport, bet),
    )
    return JSONResponse({"sport_type": sport, "bet_type": bet, "dates": dates})


@app.get("/api/predictions")
async def api_predictions(
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
    sport_type: str = Query("tennis", description="tennis or table-tennis"),
    bet_type: str = Query("normal", description="normal, spread or kelly"),
    date: Optional[str] = Query(None, description='Prediction date, e.g. "10th Apr 2025"'),
    page_size: Optional[int] = Query(None, ge=1, le=200, description="Results per page"),
    cursor: Optional[str] = Query(None, description="next_cursor from the previous page"),
):
    """
    A page of predictions.

    Without a date, the whole collection is listed newest first. With a
    date, the page is sorted by kick-off time and every item carries its
    realised score and verdict.
    """
    sport, bet = _validate_selection(sport_type, bet_type)
    if date and not is_display_date(date):
        raise HTTPException(status_code=400, detail=f"Invalid date: {date}")
    repo = PredictionRepository(db)

    try:
        if date:
            page = repo.get_predictions_by_date(sport, bet, date, page_size, cursor)
        else:
            page = repo.get_predictions_by_sport_type(sport, bet, page_size, cursor)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if date:
        reconciled = await service.reconcile(sort_predictions_by_time(page.items), sport, date)
        items = [r.to_dict() for r in reconciled]
    else:
        items = [p.to_dict() for p in page.items]

    return JSONResponse({
        "sport_type": sport,
        "bet_type": bet,
        "date": date,
        "items": items,
        "next_cursor": page.next_cursor,
        "has_more": page.has_more,
    })


# Only for debugging
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "betcheck.web.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
