"""API integration layer for external services.

The HTTP server lives in ``api.server`` and is imported from there.
"""

from .base import (
    BaseAPIClient,
    RateLimitConfig,
    RateLimiter,
    GatewayError,
    RateLimitedError,
    TransientError,
    NotFoundError,
    RejectedError,
    MalformedResponseError,
    build_retry_config,
)
from .github_client import GitHubAPIClient
from .gemini_client import GeminiAPIClient
from .analysis_client import RemoteHistoryAnalysisClient, GitHubHistoryAnalyzer

__all__ = [
    'BaseAPIClient',
    'RateLimitConfig',
    'RateLimiter',
    'GatewayError',
    'RateLimitedError',
    'TransientError',
    'NotFoundError',
    'RejectedError',
    'MalformedResponseError',
    'build_retry_config',
    'GitHubAPIClient',
    'GeminiAPIClient',
    'RemoteHistoryAnalysisClient',
    'GitHubHistoryAnalyzer',
]
