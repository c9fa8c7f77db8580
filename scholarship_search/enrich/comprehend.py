from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config

from scholarship_search.config import SearchSettings


def comprehend_client_config(timeout_seconds: float) -> Config:
    """Single-attempt calls; a failed facet falls back to its default instead of retrying."""

    return Config(
        retries={"total_max_attempts": 1, "mode": "standard"},
        connect_timeout=timeout_seconds,
        read_timeout=timeout_seconds,
    )


class ComprehendTextAnalyzer:
    """:class:`TextAnalyzer` over an Amazon Comprehend client."""

    def __init__(self, client: Any, *, language_code: str = "en") -> None:
        self._client = client
        self.language_code = language_code

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> ComprehendTextAnalyzer:
        client = boto3.client(
            "comprehend",
            region_name=settings.aws_region,
            config=comprehend_client_config(settings.analysis_timeout_seconds),
        )
        return cls(client, language_code=settings.analysis_language_code)

    def detect_entities(self, text: str) -> list[dict[str, Any]]:
        response = self._client.detect_entities(Text=text, LanguageCode=self.language_code)
        return list(response.get("Entities") or [])

    def detect_key_phrases(self, text: str) -> list[dict[str, Any]]:
        response = self._client.detect_key_phrases(Text=text, LanguageCode=self.language_code)
        return list(response.get("KeyPhrases") or [])

    def detect_sentiment(self, text: str) -> dict[str, Any]:
        response = self._client.detect_sentiment(Text=text, LanguageCode=self.language_code)
        return {"sentiment": response.get("Sentiment"), "sentimentScore": response.get("SentimentScore")}
