"""Sentiment ranking helpers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

LOGGER = logging.getLogger(__name__)

NOT_RANKED_VALUE = 999
FALLBACK_RANKING_VALUE = 3


@dataclass(frozen=True)
class Ranking:
    """A named sentiment bucket; lower values are better."""

    value: int
    name: str

    def to_dict(self) -> dict:
        return {"ranking_value": self.value, "ranking_name": self.name}


DEFAULT_RANKINGS: tuple[Ranking, ...] = (
    Ranking(1, "Excellent"),
    Ranking(2, "Good"),
    Ranking(3, "Okay"),
    Ranking(4, "Bad"),
    Ranking(5, "Terrible"),
)


def parse_rankings(raw: str) -> List[Ranking]:
    """Parse ``"Excellent:1,Good:2"`` into rankings."""

    rankings: List[Ranking] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        name, sep, value = chunk.rpartition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid ranking entry: {chunk!r}")
        try:
            rankings.append(Ranking(int(value), name.strip()))
        except ValueError as exc:
            raise ValueError(f"Invalid ranking value in entry: {chunk!r}") from exc
    return rankings


def rankable(rankings: Iterable[Ranking]) -> List[Ranking]:
    """Return the rankings a review may be classified into."""

    return [ranking for ranking in rankings if ranking.value != NOT_RANKED_VALUE]


def match_ranking(response: str, rankings: Iterable[Ranking]) -> Optional[Ranking]:
    """Resolve a free-form model reply to one of ``rankings``.

    Tries an exact case-insensitive name, then a name contained in the reply
    (``"Excellent!"``), then the middle ranking, then the first rankable one.
    """

    candidates = rankable(rankings)
    reply = response.strip()
    lowered = reply.lower()

    for ranking in candidates:
        if ranking.name.lower() == lowered:
            return ranking

    for ranking in candidates:
        if ranking.name.lower() in lowered:
            return ranking

    for ranking in candidates:
        if ranking.value == FALLBACK_RANKING_VALUE:
            LOGGER.warning(
                "unknown ranking from classifier, using fallback",
                extra={"detail": reply[:200]},
            )
            return ranking

    if candidates:
        return candidates[0]
    return None
