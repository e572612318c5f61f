from __future__ import annotations

import html as html_lib
import re
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup

from careerhub.job_import.models import DEFAULT_EXPERIENCE_LEVEL, EmploymentType

_BULLET_PREFIX_RE = re.compile(r"^\s*(?:[-*•●▪]|\d+[.)])\s*")

SENIORITY_PATTERNS: List[Tuple[str, str]] = [
    (r"\b(intern|internship|trainee)\b", "Internship"),
    (r"\b(entry[\s-]*level|junior|jr\.?|graduate)\b", "Entry Level"),
    (r"\b(mid[\s-]*level|intermediate)\b", "Mid Level"),
    (r"\b(senior|sr\.?)\b", "Senior Level"),
    (r"\b(staff|principal|lead|architect)\b", "Lead"),
    (r"\b(manager|head of|director|vp|vice president|chief|cto)\b", "Management"),
]


def canonicalize_url(url: str) -> str:
    parts = urlsplit(url.strip())
    # Drop fragments for dedupe stability.
    parts = parts._replace(fragment="")
    return urlunsplit(parts)


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").strip())


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def html_to_text(html: str) -> str:
    if not html:
        return ""
    soup = parse_html(html)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(" ", strip=True)
    return normalize_whitespace(html_lib.unescape(text))


def uniq_preserve_order(items: Iterable[str]) -> List[str]:
    """Deduplicate case-insensitively while preserving first-seen order."""
    seen = set()
    out: List[str] = []
    for it in items:
        if not it:
            continue
        key = it.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(it.strip())
    return out


def split_list_items(value: object) -> List[str]:
    """Turn a list, an HTML fragment with <li> items, or bullet text into clean strings."""
    if value is None:
        return []
    if isinstance(value, list):
        out: List[str] = []
        for item in value:
            out.extend(split_list_items(item))
        return uniq_preserve_order(out)
    if not isinstance(value, str) or not value.strip():
        return []

    if "<" in value:
        soup = parse_html(value)
        items = [normalize_whitespace(li.get_text(" ", strip=True)) for li in soup.find_all("li")]
        if items:
            return uniq_preserve_order(items)
        lines = soup.get_text("\n", strip=True).splitlines()
    else:
        lines = value.splitlines()

    cleaned = [normalize_whitespace(_BULLET_PREFIX_RE.sub("", line)) for line in lines]
    return uniq_preserve_order(c for c in cleaned if c)


def infer_employment_type(text: Optional[str], declared: object = None) -> EmploymentType:
    tokens: List[str] = []
    if isinstance(declared, str):
        tokens.append(declared)
    elif isinstance(declared, list):
        tokens.extend([x for x in declared if isinstance(x, str)])

    if text:
        tokens.append(text)

    blob = " ".join(tokens).lower()

    if re.search(r"\bintern(ship)?s?\b", blob):
        return "internship"
    if any(k in blob for k in ("freelance", "self-employed")):
        return "freelance"
    if any(k in blob for k in ("contract", "contractor", "temporary", "interim", "fixed-term")):
        return "contract"
    if any(
        k in blob
        for k in (
            "permanent",
            "full-time",
            "full time",
            "full_time",
            "part-time",
            "part time",
            "part_time",
        )
    ):
        return "perm"
    return "unknown"


def infer_experience_level(title: Optional[str]) -> str:
    """Infer experience level from the job title using conservative regex patterns."""
    t = (title or "").lower()
    for pat, label in SENIORITY_PATTERNS:
        if re.search(pat, t):
            return label
    return DEFAULT_EXPERIENCE_LEVEL
