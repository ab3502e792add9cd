"""Gemini text-generation client."""

import logging
from typing import Any, Dict, Optional

import requests

from .base import BaseAPIClient, RateLimitConfig, MalformedResponseError
from smart_issue_assigner.utils.resilience import RetryConfig


class GeminiAPIClient(BaseAPIClient):
    """Client for the ``generateContent`` endpoint, used as a plain completion API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        rate_limit_requests: int = 60,
        rate_limit_window: int = 60,
        retry_config: Optional[RetryConfig] = None,
        timeout: int = 60,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.model = model

        super().__init__(
            base_url=base_url,
            rate_limit_config=RateLimitConfig(
                requests_per_window=rate_limit_requests,
                window_seconds=rate_limit_window
            ),
            retry_config=retry_config,
            timeout=timeout,
            session=session
        )
        self.logger = logging.getLogger(__name__)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def authenticate(self) -> Dict[str, str]:
        """The key travels as a query parameter; only content headers are needed."""
        return {"Content-Type": "application/json"}

    def generate_text(self, prompt: str) -> str:
        """Send a single prompt and return the first candidate's text.

        Raises:
            GatewayError: on transport or HTTP failures
            MalformedResponseError: when the reply has no text part
        """
        data = self.post(
            f"/models/{self.model}:generateContent",
            json_data={"contents": [{"parts": [{"text": prompt}]}]},
            params={"key": self.api_key}
        )
        text = self._first_candidate_text(data)
        if not text:
            raise MalformedResponseError("Gemini reply contained no text candidate", payload=data)
        return text

    @staticmethod
    def _first_candidate_text(data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
