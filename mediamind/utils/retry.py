"""
Retry and backoff configuration for outbound capability calls.
"""

import logging
import os

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)


_log = logging.getLogger(__name__)


class RetryConfig:
    """Retry configuration loaded from environment."""

    LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "2"))
    LLM_BACKOFF_MIN_SEC = float(os.getenv("LLM_BACKOFF_MIN_SEC", "1"))
    LLM_BACKOFF_MAX_SEC = float(os.getenv("LLM_BACKOFF_MAX_SEC", "4"))

    API_MAX_RETRIES = int(os.getenv("API_MAX_RETRIES", "2"))
    API_RETRY_BASE_DELAY = float(os.getenv("API_RETRY_BASE_DELAY", "0.5"))
    API_RETRY_MAX_DELAY = float(os.getenv("API_RETRY_MAX_DELAY", "5"))


def get_llm_retry_decorator(exceptions: tuple = (Exception,)):
    """
    Standardized retry decorator for LLM operations.
    """
    return retry(
        stop=stop_after_attempt(max(1, RetryConfig.LLM_MAX_RETRIES)),
        wait=wait_exponential(
            multiplier=1,
            min=RetryConfig.LLM_BACKOFF_MIN_SEC,
            max=RetryConfig.LLM_BACKOFF_MAX_SEC,
        ),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(_log, logging.INFO),
        reraise=True,
    )


def get_api_retry_decorator(exceptions: tuple = (Exception,), max_attempts: int = 0):
    """
    Standardized retry decorator for HTTP capability calls.
    """
    return retry(
        stop=stop_after_attempt(max_attempts or max(1, RetryConfig.API_MAX_RETRIES)),
        wait=wait_exponential(
            multiplier=2,
            min=RetryConfig.API_RETRY_BASE_DELAY,
            max=RetryConfig.API_RETRY_MAX_DELAY,
        ),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(_log, logging.INFO),
        reraise=True,
    )
