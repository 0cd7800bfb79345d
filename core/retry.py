# core/retry.py
import logging
import time

import requests
from django.conf import settings
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from core.exceptions import RemoteServiceError

logger = logging.getLogger(__name__)


def is_transient_error(exc):
    """Default retry predicate: transport failures, 5xx, 429 and errors the
    remote side flagged as transient. Anything else (4xx validation errors,
    programming errors) surfaces on the first attempt."""
    if isinstance(exc, RemoteServiceError):
        return exc.retriable
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


class RetryExecutor:
    """Bounded retry with exponential backoff around a single remote call.

    The n-th retry waits ``base_delay * 2 ** n`` seconds (n counted from 0),
    so the defaults (3 attempts, 1s) sleep 1s then 2s before giving up and
    re-raising the last error.
    """

    def __init__(self, max_attempts=None, base_delay=None, is_retriable=None, sleep=None):
        self.max_attempts = max_attempts or getattr(settings, 'RETRY_MAX_ATTEMPTS', 3)
        if base_delay is None:
            base_delay = getattr(settings, 'RETRY_BASE_DELAY', 1.0)
        self.base_delay = base_delay
        self.is_retriable = is_retriable or is_transient_error
        self.sleep = sleep or time.sleep

    def _retrying(self):
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            retry=retry_if_exception(self.is_retriable),
            sleep=self.sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def call(self, operation, *args, **kwargs):
        return self._retrying()(operation, *args, **kwargs)

    def __call__(self, func):
        def wrapper(*args, **kwargs):
            return self.call(func, *args, **kwargs)
        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper
