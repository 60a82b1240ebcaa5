# radar/sources/http.py

import time
from typing import Any, Callable, Optional

import requests

from radar.core.backoff import BackoffPolicy, call_with_retry
from radar.core.errors import Malformed, NotFound, RateLimited, Unavailable
from radar.globals import CONTACT_EMAIL, HTTP_TIMEOUT


USER_AGENT = "retraction-radar/0.1" + (f" (mailto:{CONTACT_EMAIL})" if CONTACT_EMAIL else "")


def _retry_after_seconds(resp: requests.Response) -> Optional[float]:
    header = resp.headers.get("Retry-After")
    if not header:
        return None
    try:
        return float(header)
    except ValueError:
        return None


class HttpClient:
    """
    GET wrapper shared by all providers.

    Every failure is mapped onto the provider error taxonomy:
      - 429            -> RateLimited (retried)
      - 5xx, network   -> Unavailable (retried)
      - 404            -> NotFound
      - other 4xx      -> Unavailable, not retried
      - bad JSON       -> Malformed
    """

    def __init__(
        self,
        source: str,
        policy: Optional[BackoffPolicy] = None,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.source = source
        self.policy = policy or BackoffPolicy()
        self.timeout = timeout
        self.sleep = sleep
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": USER_AGENT})
        self.session = session

    def _request(self, url: str, params: Optional[dict]) -> requests.Response:
        """Single attempt, no retry."""
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise Unavailable(self.source, f"timeout after {self.timeout:.0f}s ({e})") from e
        except requests.ConnectionError as e:
            raise Unavailable(self.source, f"connection error ({e})") from e
        except requests.RequestException as e:
            raise Unavailable(self.source, f"request failed ({e})", transient=False) from e

        code = resp.status_code
        if code == 429:
            raise RateLimited(
                self.source,
                "HTTP 429 Too Many Requests",
                retry_after=_retry_after_seconds(resp),
            )
        if 500 <= code < 600:
            raise Unavailable(self.source, f"HTTP {code} server error", status_code=code)
        if code == 404:
            raise NotFound(self.source, f"HTTP 404 not found ({url})", status_code=code)
        if code >= 400:
            raise Unavailable(self.source, f"HTTP {code}", status_code=code, transient=False)
        return resp

    def get(self, url: str, params: Optional[dict] = None) -> requests.Response:
        return call_with_retry(
            lambda: self._request(url, params),
            self.policy,
            sleep=self.sleep,
            label=self.source,
        )

    def get_json(self, url: str, params: Optional[dict] = None) -> Any:
        resp = self.get(url, params=params)
        try:
            return resp.json()
        except ValueError as e:
            raise Malformed(self.source, f"invalid JSON from {url}: {e}") from e

    def get_text(self, url: str, params: Optional[dict] = None) -> str:
        return self.get(url, params=params).text
