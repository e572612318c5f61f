from __future__ import annotations

import re
from typing import List, Optional, Pattern, Tuple

from bs4 import BeautifulSoup

from careerhub.job_import.models import (
    DEFAULT_COMPANY,
    DEFAULT_EXPERIENCE_LEVEL,
    DEFAULT_SKILL_LEVEL,
    DEFAULT_TITLE,
    MISSING_DESCRIPTION,
    ExtractedJobFields,
)
from careerhub.job_import.normalize import (
    html_to_text,
    infer_employment_type,
    infer_experience_level,
    normalize_whitespace,
    parse_html,
)

TECH_VOCABULARY: List[str] = [
    "JavaScript",
    "TypeScript",
    "React",
    "Next.js",
    "Node.js",
    "Python",
    "Java",
    "C++",
    "C#",
    "Go",
    "Rust",
    "PHP",
    "Ruby",
    "Swift",
    "Kotlin",
    "AWS",
    "Azure",
    "GCP",
    "Docker",
    "Kubernetes",
    "Terraform",
    "SQL",
    "NoSQL",
    "MongoDB",
    "PostgreSQL",
    "MySQL",
    "Redis",
    "GraphQL",
    "REST API",
    "HTML",
    "CSS",
    "Tailwind",
    "Sass",
    "Redux",
    "Vue",
    "Angular",
    "Svelte",
    "Git",
    "CI/CD",
    "Linux",
    "Agile",
    "Scrum",
    "Jira",
]


def _term_pattern(term: str) -> Pattern[str]:
    # Lookarounds instead of \b so terms ending in symbols (C++, C#) still match whole words.
    return re.compile(rf"(?<![\w]){re.escape(term)}(?![\w])", re.IGNORECASE)


_TECH_PATTERNS: List[Tuple[str, Pattern[str]]] = [(term, _term_pattern(term)) for term in TECH_VOCABULARY]


def scan_tech_stack(text: Optional[str]) -> List[str]:
    """Return vocabulary terms found in *text*, in vocabulary order, without duplicates."""
    if not text:
        return []
    return [term for term, pattern in _TECH_PATTERNS if pattern.search(text)]


def split_page_title(raw_title: str) -> Tuple[str, Optional[str]]:
    """Split ``"Role | Company"`` (or ``"Role - Company"`` with a single dash) into parts."""
    raw_title = normalize_whitespace(raw_title)
    if "|" in raw_title:
        separator = "|"
    elif raw_title.count("-") == 1:
        separator = "-"
    else:
        return raw_title, None

    parts = [p.strip() for p in raw_title.split(separator)]
    title = parts[0] or raw_title
    company = parts[1] if len(parts) > 1 and parts[1] else None
    return title, company


def _page_title(soup: BeautifulSoup) -> Optional[str]:
    tag = soup.find("title")
    if tag is None:
        return None
    text = normalize_whitespace(tag.get_text(" ", strip=True))
    return text or None


def _meta_description(soup: BeautifulSoup) -> Optional[str]:
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        tag = soup.find("meta", attrs=attrs)
        if tag is None:
            continue
        content = tag.get("content")
        if isinstance(content, str) and content.strip():
            return normalize_whitespace(content)
    return None


def apply_heuristics(html: str, fields: ExtractedJobFields) -> ExtractedJobFields:
    """Fill fields still at their defaults from page title, meta tags, and a keyword scan."""
    soup = parse_html(html)

    if fields.title == DEFAULT_TITLE:
        raw_title = _page_title(soup)
        if raw_title:
            title, company = split_page_title(raw_title)
            fields.title = title
            if company and fields.company == DEFAULT_COMPANY:
                fields.company = company

    if not fields.description:
        fields.description = _meta_description(soup) or MISSING_DESCRIPTION

    if not fields.tech_stack:
        # JSON-LD bodies are dropped from the page text; scan the structured description too.
        found = scan_tech_stack(" ".join([html_to_text(html), fields.description]))
        fields.tech_stack = found
        fields.required_skills = {name: DEFAULT_SKILL_LEVEL for name in found}

    if fields.experience_level == DEFAULT_EXPERIENCE_LEVEL:
        fields.experience_level = infer_experience_level(fields.title)

    if fields.employment_type == "unknown" and fields.description != MISSING_DESCRIPTION:
        fields.employment_type = infer_employment_type(fields.description)

    return fields
