from __future__ import annotations

import time
from dataclasses import dataclass
from types import TracebackType
from typing import Callable, Optional
from urllib.parse import urlsplit

import httpx

from careerhub.config.settings import BROWSER_USER_AGENT, JobImportSettings
from careerhub.job_import.errors import FetchError


def _host_of(url: str) -> str:
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    return host


class PerHostRateLimiter:
    def __init__(
        self,
        *,
        min_interval_s: float,
        now: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._min_interval_s = max(0.0, float(min_interval_s))
        self._now = now
        self._sleep = sleep
        self._next_allowed: dict[str, float] = {}

    def wait(self, host: str) -> None:
        if self._min_interval_s <= 0:
            return
        ts = self._next_allowed.get(host, 0.0)
        now = self._now()
        if now < ts:
            self._sleep(ts - now)
        self._next_allowed[host] = self._now() + self._min_interval_s


@dataclass(frozen=True)
class FetchResult:
    url: str
    status_code: int
    text: str
    content_type: Optional[str]


class JobPageFetcher:
    """Plain GET per page: follows a bounded number of redirects, no cookies or script execution."""

    def __init__(
        self,
        *,
        user_agent: str = BROWSER_USER_AGENT,
        timeout_connect_s: float = 10.0,
        timeout_read_s: float = 20.0,
        rate_limit_per_host_s: float = 1.0,
        max_redirects: int = 5,
        transport: Optional[httpx.BaseTransport] = None,
        now: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._timeout = httpx.Timeout(
            connect=timeout_connect_s,
            read=timeout_read_s,
            write=timeout_read_s,
            pool=timeout_connect_s,
        )
        self._max_redirects = max(0, int(max_redirects))
        self._rate_limiter = PerHostRateLimiter(
            min_interval_s=float(rate_limit_per_host_s),
            now=now,
            sleep=sleep,
        )
        self._client = httpx.Client(
            timeout=self._timeout,
            follow_redirects=False,  # rate limit applies per redirect hop
            transport=transport,
            headers={
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
        )

    @classmethod
    def from_settings(
        cls, settings: JobImportSettings, *, transport: Optional[httpx.BaseTransport] = None
    ) -> "JobPageFetcher":
        return cls(
            user_agent=settings.user_agent,
            timeout_connect_s=settings.timeout_connect_s,
            timeout_read_s=settings.timeout_read_s,
            rate_limit_per_host_s=settings.rate_limit_per_host_s,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "JobPageFetcher":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def _get(self, url: str, current: str) -> httpx.Response:
        host = _host_of(current)
        if not host:
            raise FetchError(url, None, f"Invalid URL (no host): {current}")

        self._rate_limiter.wait(host)
        try:
            return self._client.get(current)
        except httpx.TimeoutException as e:
            raise FetchError(url, None, f"Failed to fetch: timed out ({type(e).__name__})") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, None, f"Failed to fetch: {e}") from e

    def _follow_redirects(self, url: str) -> httpx.Response:
        current = url
        for _ in range(self._max_redirects + 1):
            resp = self._get(url, current)
            if resp.status_code not in {301, 302, 303, 307, 308}:
                return resp

            location = resp.headers.get("Location")
            if not location:
                return resp

            # Relative Location headers resolve against the current URL.
            current = str(resp.url.join(location))

        raise FetchError(url, None, f"Failed to fetch: too many redirects for {url}")

    def fetch(self, url: str) -> FetchResult:
        resp = self._follow_redirects(url)

        if not resp.is_success:
            reason = resp.reason_phrase or "HTTP error"
            raise FetchError(url, int(resp.status_code), f"Failed to fetch: {resp.status_code} {reason}")

        return FetchResult(
            url=str(resp.url),
            status_code=int(resp.status_code),
            text=resp.text,
            content_type=resp.headers.get("Content-Type"),
        )
