"""Client for the chat-completions API used to classify admin reviews."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Sequence

import requests
from requests import Response

from review_ranker.config import Settings
from review_ranker.utils import Ranking, match_ranking, rankable

LOGGER = logging.getLogger(__name__)

RANKINGS_PLACEHOLDER = "{rankings}"


class SentimentError(RuntimeError):
    """Raised when a review cannot be classified."""


class SentimentClient:
    """Small HTTP client that maps review text onto a sentiment ranking."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {settings.openai_api_key}",
                "Content-Type": "application/json",
            }
        )

    def build_prompt(self, rankings: Iterable[Ranking]) -> str:
        """Fill the configured prompt template with the allowed ranking names."""

        names = ",".join(ranking.name for ranking in rankable(rankings))
        return self._settings.base_prompt_template.replace(RANKINGS_PLACEHOLDER, names, 1)

    def classify(self, review: str, rankings: Sequence[Ranking]) -> Ranking:
        """Return the ranking the model assigns to ``review``."""

        if not self._settings.openai_api_key:
            raise SentimentError("OPENAI_API_KEY not configured")
        if not self._settings.base_prompt_template:
            raise SentimentError("BASE_PROMPT_TEMPLATE not configured")

        payload = {
            "model": self._settings.openai_model,
            "messages": [{"role": "user", "content": self.build_prompt(rankings) + review}],
        }
        try:
            response = self._session.post(
                self._settings.chat_completions_url,
                json=payload,
                timeout=self._settings.request_timeout_seconds,
            )
        except requests.Timeout as exc:
            raise SentimentError("Classification request timed out") from exc
        except requests.RequestException as exc:
            raise SentimentError(f"Classification request failed: {exc}") from exc

        self._raise_for_status(response)
        try:
            body = response.json()
        except ValueError as exc:
            raise SentimentError("Unexpected classification response shape") from exc
        reply = self._extract_reply(body)

        ranking = match_ranking(reply, rankings)
        if ranking is None:
            raise SentimentError("no valid ranking found")
        LOGGER.debug("review classified", extra={"detail": ranking.name})
        return ranking

    @staticmethod
    def _extract_reply(body: Dict[str, Any]) -> str:
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SentimentError("Unexpected classification response shape") from exc
        if not isinstance(content, str):
            raise SentimentError("Unexpected classification response shape")
        return content

    def _raise_for_status(self, response: Response) -> None:
        """Raise descriptive errors for classification API responses."""

        if response.ok:
            return
        status = response.status_code
        detail = response.text
        if status == 401:
            message = "Unauthorized: verify OPENAI_API_KEY."
        elif status == 429:
            message = "Classification service is throttling requests."
        else:
            message = f"Classification service error ({status})."
        LOGGER.error("classification request failed", extra={"status": status, "detail": detail})
        raise SentimentError(f"{message} Response: {detail[:200]}")
