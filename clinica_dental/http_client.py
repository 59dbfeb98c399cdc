"""HTTP session with retries and connection pooling.

Pattern: requests.Session with a tenacity retry wrapper on idempotent
reads. Writes go out exactly once so a create is never duplicated by a
retry after a timeout.
"""
import logging

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)

# tenacity's before_sleep_log expects a stdlib logger
_std_logger = logging.getLogger(__name__)


def _is_transient(exc: BaseException) -> bool:
    """Connection drops, timeouts and 429/5xx answers are worth retrying."""
    if isinstance(exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    if isinstance(exc, requests.exceptions.HTTPError):
        response = exc.response
        # no response attached: treat like a server-side failure
        return response is None or response.status_code in RETRYABLE_STATUS
    return False


def create_http_session(
    max_retries: int = 3,
    backoff_factor: float = 1.0,
    timeout: float = 10,
) -> requests.Session:
    """
    Create HTTP session with retry and connection pooling.

    Args:
        max_retries: Retry attempts for GET requests (default: 3)
        backoff_factor: Exponential backoff multiplier; delays are
                        1s, 2s, 4s with the default of 1.0
        timeout: Per-request timeout in seconds (default: 10)

    Returns:
        Session whose get/post/put/patch/delete apply ``timeout`` and raise
        ``requests.HTTPError`` on non-2xx answers
    """
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=10, pool_maxsize=10)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    def checked(method):
        def send(*args, **kwargs):
            kwargs.setdefault("timeout", timeout)
            response = method(*args, **kwargs)
            response.raise_for_status()
            return response
        return send

    session.get = retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=backoff_factor, min=backoff_factor, max=8),
        retry=retry_if_exception(_is_transient),
        before_sleep=before_sleep_log(_std_logger, logging.WARNING),
        reraise=True,
    )(checked(session.get))

    session.post = checked(session.post)
    session.put = checked(session.put)
    session.patch = checked(session.patch)
    session.delete = checked(session.delete)

    return session
