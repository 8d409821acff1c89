"""
Neediness scoring — an advisory ranking signal for pending requests.

A listing owner reviewing requests can see how needy each seeker appears,
as judged by an external text classifier (scale 1.000 to 10.000). The
score is display-only: it never changes which request can be accepted,
the order requests are stored in, or any other lifecycle rule.

The scorer is injected. The default NeutralScorer gives every request the
neutral score without any I/O; HttpNeedinessScorer calls the classifier
service. Any scoring failure (timeout, transport error, bad status,
malformed body, missing ids) falls back to the neutral score for the
affected requests and is logged, never raised.

Wire format of the classifier:
    POST NEEDINESS_SCORER_URL
    {"messages": [{"id": "<request id>", "message": "..."}]}
    ->
    [{"id": "<request id>", "score": 7.432}, ...]
"""

import logging
import uuid
from typing import Protocol

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from donation_exchange.config import settings

logger = logging.getLogger(__name__)


class MessageToScore(BaseModel):
    id: uuid.UUID
    message: str


class ScoredMessage(BaseModel):
    id: uuid.UUID
    score: float


_scored_batch = TypeAdapter(list[ScoredMessage])


class NeedinessScorer(Protocol):
    async def score(self, batch: list[MessageToScore]) -> dict[uuid.UUID, float]:
        ...


class NeutralScorer:
    """Default scorer: every request is equally needy."""

    def __init__(self, neutral: float | None = None):
        self.neutral = settings.NEUTRAL_NEEDINESS_SCORE if neutral is None else neutral

    async def score(self, batch: list[MessageToScore]) -> dict[uuid.UUID, float]:
        return {item.id: self.neutral for item in batch}


class HttpNeedinessScorer:
    """Scores a batch of request messages with one call to the classifier."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        neutral: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport
        self.neutral = settings.NEUTRAL_NEEDINESS_SCORE if neutral is None else neutral

    async def score(self, batch: list[MessageToScore]) -> dict[uuid.UUID, float]:
        if not batch:
            return {}

        scores = {item.id: self.neutral for item in batch}
        payload = {"messages": [item.model_dump(mode="json") for item in batch]}

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(self.url, json=payload, timeout=self.timeout)
                response.raise_for_status()
            scored = _scored_batch.validate_python(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.warning("Neediness scoring failed for %d requests: %s", len(batch), exc)
            return scores

        for item in scored:
            if item.id in scores:
                scores[item.id] = item.score

        missing = len(batch) - len({item.id for item in scored} & scores.keys())
        if missing:
            logger.warning("Neediness scorer returned no score for %d requests", missing)
        return scores


def default_scorer() -> NeedinessScorer:
    if settings.NEEDINESS_SCORER_URL:
        return HttpNeedinessScorer(
            settings.NEEDINESS_SCORER_URL,
            timeout=settings.NEEDINESS_TIMEOUT_SECONDS,
        )
    return NeutralScorer()


async def score_safely(scorer: NeedinessScorer, batch: list[MessageToScore]) -> dict[uuid.UUID, float]:
    """
    Score a batch, guaranteeing a score for every item and never raising.

    Custom scorers may fail in ways HttpNeedinessScorer already handles;
    this wrapper is what the request ledger actually calls.
    """
    neutral = settings.NEUTRAL_NEEDINESS_SCORE
    try:
        scores = await scorer.score(batch)
    except Exception as exc:
        logger.warning("Neediness scorer raised, using neutral scores: %s", exc, exc_info=True)
        scores = {}
    return {item.id: scores.get(item.id, neutral) for item in batch}
