"""Utility helpers."""
from .rankings import (  # noqa: F401
    DEFAULT_RANKINGS,
    Ranking,
    match_ranking,
    parse_rankings,
    rankable,
)
