from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx

from careerhub.job_import.extractors.ai import AIExtractionResult, AIExtractor
from careerhub.job_import.http import JobPageFetcher

FIXTURES_DIR = Path(__file__).resolve().parents[1] / "fixtures" / "job_import"


def load_fixture(path: str) -> str:
    return (FIXTURES_DIR / path).read_text(encoding="utf-8")


def make_fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> JobPageFetcher:
    return JobPageFetcher(
        user_agent="TestAgent/1.0",
        rate_limit_per_host_s=0.0,
        transport=httpx.MockTransport(handler),
        sleep=lambda _s: None,
    )


class PageServer:
    """Serves fixture pages by URL through httpx.MockTransport and records requests."""

    def __init__(self, pages: Optional[Dict[str, str]] = None) -> None:
        self.pages: Dict[str, str] = dict(pages or {})
        self.redirects: Dict[str, str] = {}
        self.requests: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.redirects:
            return httpx.Response(301, headers={"Location": self.redirects[url]})
        body = self.pages.get(url)
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=body, headers={"Content-Type": "text/html; charset=utf-8"})


class StubAIExtractor(AIExtractor):
    def __init__(self, result: AIExtractionResult) -> None:
        self.result = result
        self.calls = 0

    def extract(self, html: str) -> AIExtractionResult:
        self.calls += 1
        return self.result


class RaisingAIExtractor(AIExtractor):
    def extract(self, html: str) -> AIExtractionResult:
        raise RuntimeError("model exploded")
