"""FastAPI application that ranks admin movie reviews by sentiment."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ValidationError

from review_ranker.clients.sentiment import SentimentClient, SentimentError
from review_ranker.config import get_settings
from review_ranker.logging_config import configure_logging
from review_ranker.rate_limit import SlidingWindowRateLimiter
from review_ranker.utils import Ranking, rankable

configure_logging()
LOGGER = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = (
    "Rate limit exceeded. Please wait before submitting another review ranking update."
)

settings = get_settings()
client = SentimentClient(settings)
rate_limiter = SlidingWindowRateLimiter(
    settings.rate_limit_requests, settings.rate_limit_window_seconds
)


async def _sweep_rate_limiter(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        removed = rate_limiter.sweep()
        if removed:
            LOGGER.info("dropped idle rate limit keys", extra={"detail": removed})


@asynccontextmanager
async def lifespan(_: FastAPI):
    interval = settings.rate_limit_sweep_interval_seconds
    if interval <= 0:
        LOGGER.info("rate limit sweeper disabled", extra={"detail": interval})
        yield
        return

    sweeper = asyncio.create_task(_sweep_rate_limiter(interval))
    try:
        yield
    finally:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Movie Review Ranking Service", lifespan=lifespan)


@app.middleware("http")
async def log_unhandled_errors(request: Request, call_next):  # type: ignore[override]
    try:
        return await call_next(request)
    except Exception:
        LOGGER.exception("Unhandled exception", extra={"path": request.url.path})
        raise


class ReviewUpdate(BaseModel):
    admin_review: str = ""


def get_client() -> SentimentClient:
    """Provide the configured sentiment client."""

    return client


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Provide the process-wide review ranking limiter."""

    return rate_limiter


def get_rankings() -> List[Ranking]:
    return list(settings.rankings)


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Return the caller identity forwarded by the upstream gateway."""

    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="User ID not found")
    return user_id


@app.get("/rankings")
def list_rankings(rankings: List[Ranking] = Depends(get_rankings)) -> list:
    """List the rankings a review can be classified into."""

    return [ranking.to_dict() for ranking in rankable(rankings)]


@app.patch("/updatereview/{imdb_id}")
async def update_review(
    imdb_id: str,
    request: Request,
    user_id: str = Depends(get_user_id),
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
    sentiment_client: SentimentClient = Depends(get_client),
    rankings: List[Ranking] = Depends(get_rankings),
) -> dict:
    """Classify an admin review and return the resulting ranking.

    The caller is charged against the limiter before the body is read, so
    malformed requests count too.
    """

    if not limiter.allow(user_id):
        LOGGER.info("review ranking throttled", extra={"user_id": user_id, "imdb_id": imdb_id})
        raise HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)

    try:
        body = ReviewUpdate.model_validate(await request.json())
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail="Invalid request body") from exc

    imdb_id = imdb_id.strip()
    review = body.admin_review.strip()
    if not imdb_id:
        raise HTTPException(status_code=400, detail="Movie Id required")
    if not review:
        raise HTTPException(status_code=400, detail="admin_review is required")

    try:
        ranking = await run_in_threadpool(sentiment_client.classify, review, rankings)
    except SentimentError as exc:
        LOGGER.warning(
            "review ranking failed",
            extra={"user_id": user_id, "imdb_id": imdb_id, "detail": str(exc)},
        )
        raise HTTPException(
            status_code=502, detail="Failed to process review ranking. Please try again later."
        ) from exc
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to rank review", extra={"user_id": user_id, "imdb_id": imdb_id})
        raise HTTPException(status_code=500, detail="Unable to rank review.") from exc

    return {
        "imdb_id": imdb_id,
        "admin_review": review,
        "ranking": ranking.to_dict(),
        "ranking_name": ranking.name,
    }
