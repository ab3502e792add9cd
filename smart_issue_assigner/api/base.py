"""Base API client with common functionality."""

import time
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from dataclasses import dataclass
import requests

from smart_issue_assigner.utils.resilience import (
    RetryConfig,
    RetryableError,
    NonRetryableError,
    call_with_retry,
)


class GatewayError(Exception):
    """Base class for failures talking to an external service."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class RateLimitedError(GatewayError, RetryableError):
    """The service asked us to slow down (primary or secondary rate limit)."""


class TransientError(GatewayError, RetryableError):
    """Transport failure or 5xx; worth another attempt."""


class NotFoundError(GatewayError, NonRetryableError):
    """The requested resource does not exist."""


class RejectedError(GatewayError, NonRetryableError):
    """The service refused the request (4xx other than 404/429)."""


class MalformedResponseError(GatewayError, NonRetryableError):
    """The response body could not be interpreted."""


@dataclass
class RateLimitConfig:
    """Rate limiting configuration."""
    requests_per_window: int
    window_seconds: int


class RateLimiter:
    """Token bucket rate limiter, shared by the worker threads of one client."""

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self.tokens = config.requests_per_window
        self.last_refill = time.time()
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def acquire(self, tokens: int = 1) -> bool:
        """Acquire tokens from the bucket."""
        with self._lock:
            now = time.time()

            # Refill tokens based on elapsed time
            elapsed = now - self.last_refill
            tokens_to_add = int(elapsed * (self.config.requests_per_window / self.config.window_seconds))

            if tokens_to_add > 0:
                self.tokens = min(self.config.requests_per_window, self.tokens + tokens_to_add)
                self.last_refill = now

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True

            return False

    def wait_time(self) -> float:
        """Calculate wait time until next token is available."""
        with self._lock:
            if self.tokens >= 1:
                return 0.0

            tokens_needed = 1 - self.tokens
            return tokens_needed * (self.config.window_seconds / self.config.requests_per_window)


SECONDARY_RATE_LIMIT_MARKER = 'rate limit'


def is_rate_limited(response: requests.Response, payload: Any) -> bool:
    """True for 429s and for 403s GitHub uses to signal a primary or secondary rate limit."""
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    if response.headers.get('X-RateLimit-Remaining') == '0' or response.headers.get('Retry-After'):
        return True
    message = payload.get('message') if isinstance(payload, dict) else payload
    return isinstance(message, str) and SECONDARY_RATE_LIMIT_MARKER in message.lower()


# Connection drops, including ones that cut a response body short
TRANSPORT_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


def classify_response(response: requests.Response) -> Optional[GatewayError]:
    """Map a non-2xx response to the matching gateway error, or None on success."""
    status = response.status_code
    if 200 <= status < 300:
        return None

    try:
        payload = response.json()
    except ValueError:
        payload = response.text

    message = f"{response.request.method if response.request else 'HTTP'} {response.url} -> {status}"
    if isinstance(payload, dict) and payload.get('message'):
        message = f"{message}: {payload['message']}"

    if is_rate_limited(response, payload):
        return RateLimitedError(message, status, payload)
    if status >= 500:
        return TransientError(message, status, payload)
    if status == 404:
        return NotFoundError(message, status, payload)
    return RejectedError(message, status, payload)


class BaseAPIClient(ABC):
    """Base class for API clients with common functionality.

    Every call passes through the client-side token bucket, then through
    ``call_with_retry``: rate-limit and transient failures are retried with
    exponential backoff, everything else surfaces immediately as a typed
    ``GatewayError``.
    """

    def __init__(
        self,
        base_url: str,
        rate_limit_config: RateLimitConfig,
        retry_config: Optional[RetryConfig] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

        self.rate_limiter = RateLimiter(rate_limit_config)
        self.retry_config = retry_config or build_retry_config()

        self.session = session or requests.Session()

    @abstractmethod
    def authenticate(self) -> Dict[str, str]:
        """Return authentication headers."""
        pass

    def _wait_for_rate_limit(self) -> None:
        while not self.rate_limiter.acquire():
            wait_time = self.rate_limiter.wait_time()
            self.logger.info(f"Rate limit reached, waiting {wait_time:.2f} seconds")
            time.sleep(wait_time)

    def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        """Perform one HTTP exchange and raise the typed error for failures."""
        self._wait_for_rate_limit()

        path = endpoint.lstrip('/')
        url = f"{self.base_url}/{path}" if path else self.base_url
        request_headers = self.authenticate()
        if headers:
            request_headers.update(headers)

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
                headers=request_headers,
                timeout=self.timeout
            )
        except TRANSPORT_ERRORS as e:
            raise TransientError(f"{method} {url} failed: {e}") from e
        except requests.RequestException as e:
            raise RejectedError(f"{method} {url} failed: {e}") from e

        self.logger.debug(f"{method} {url} -> {response.status_code}")

        error = classify_response(response)
        if error is not None:
            raise error

        return response

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        """Make an HTTP request with rate limiting and retries; return the JSON body.

        Raises:
            RateLimitedError, TransientError: once retries are exhausted
            NotFoundError, RejectedError: immediately
            MalformedResponseError: when a 2xx body is not valid JSON
        """
        response = call_with_retry(
            self._send,
            self.retry_config,
            method,
            endpoint,
            params=params,
            json_data=json_data,
            headers=headers,
            description=f"{method} {endpoint}"
        )

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"{method} {endpoint} returned a non-JSON body", response.status_code, response.text
            ) from e

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make GET request."""
        return self._make_request("GET", endpoint, params=params)

    def post(
        self,
        endpoint: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Make POST request."""
        return self._make_request("POST", endpoint, params=params, json_data=json_data)


def build_retry_config(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = False
) -> RetryConfig:
    """Retry policy for gateway calls: only retryable gateway errors are retried."""
    return RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        jitter=jitter,
        exceptions=(RetryableError,)
    )
