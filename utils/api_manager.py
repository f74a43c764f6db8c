"""HTTP request handling for the remote geospatial API: retries, backoff and circuit breaking"""
import time
import logging
from typing import Any, Callable, Dict, Optional

import requests

from utils.circuit_breaker import CircuitBreaker, CircuitOpenError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class GeoApiError(Exception):
    """A request to the geospatial API failed or returned a non-2xx status."""

    def __init__(self, message: str, endpoint: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class GeoApiUnavailable(GeoApiError):
    """The circuit breaker is open; the API is not being called."""


class GeoApiClientError(GeoApiError):
    """The API answered with a non-retryable 4xx. The service itself is up."""


class APIManager:
    """Performs JSON requests against one base URL.

    Timeouts, connection errors, 429 and 5xx responses are retried with
    exponential backoff (429 honours Retry-After). Any other non-2xx status
    fails immediately with GeoApiClientError, and any other transport error
    (broken body, redirect loop, bad URL) fails immediately with GeoApiError.
    A whole retry sequence counts as a single call for the circuit breaker.
    """

    def __init__(self,
                 base_url: str,
                 timeout: float = 30,
                 max_retries: int = 3,
                 backoff_factor: float = 1.0,
                 session: Optional[requests.Session] = None,
                 breaker: Optional[CircuitBreaker] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_factor = backoff_factor
        self.session = session or requests.Session()
        self.session.headers.setdefault('Accept', 'application/json')
        self.breaker = breaker
        self._sleep = sleep

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._call('GET', endpoint, params=params)

    def post(self, endpoint: str, body: Dict[str, Any]) -> Any:
        return self._call('POST', endpoint, json=body)

    def _call(self, method: str, endpoint: str, **kwargs) -> Any:
        if self.breaker is None:
            return self._request_with_retries(method, endpoint, **kwargs)
        try:
            return self.breaker.call(self._request_with_retries, method, endpoint, **kwargs)
        except CircuitOpenError as e:
            raise GeoApiUnavailable(str(e), endpoint) from e

    def _request_with_retries(self, method: str, endpoint: str, **kwargs) -> Any:
        url = f"{self.base_url}{endpoint}"
        verb = 'fetch' if method == 'GET' else 'post'
        last_error = None

        for attempt in range(self.max_retries):
            wait_time = self.backoff_factor * (2 ** attempt)
            try:
                logger.debug(f"{method} {endpoint}: attempt {attempt + 1}/{self.max_retries}")
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.exceptions.Timeout:
                last_error = GeoApiError(f"Failed to {verb} {endpoint}: timeout after {self.timeout}s", endpoint)
                logger.warning(f"Timeout on {endpoint}, retrying in {wait_time}s")
            except requests.exceptions.ConnectionError as e:
                last_error = GeoApiError(f"Failed to {verb} {endpoint}: {e}", endpoint)
                logger.warning(f"Connection error on {endpoint}, retrying in {wait_time}s")
            except requests.exceptions.RequestException as e:
                logger.error(f"Request to {endpoint} failed: {e}")
                raise GeoApiError(f"Failed to {verb} {endpoint}: {e}", endpoint) from e
            else:
                if response.ok:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise GeoApiError(f"Failed to {verb} {endpoint}: invalid JSON body", endpoint,
                                          response.status_code) from e

                message = f"Failed to {verb} {endpoint}: {response.reason}"
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    logger.error(f"Client error {response.status_code} from {endpoint}: {response.text[:200]}")
                    raise GeoApiClientError(message, endpoint, response.status_code)
                last_error = GeoApiError(message, endpoint, response.status_code)
                if response.status_code == 429:
                    retry_after = response.headers.get('Retry-After')
                    if retry_after and retry_after.isdigit():
                        wait_time = max(float(retry_after), wait_time)
                logger.warning(f"HTTP {response.status_code} from {endpoint}, retrying in {wait_time}s")

            if attempt + 1 < self.max_retries:
                self._sleep(wait_time)

        logger.error(f"All retries exhausted for {endpoint}. Last error: {last_error}")
        raise last_error
