"""schema.org ``JobPosting`` extraction from embedded JSON-LD blocks.

Malformed or missing blocks are skipped; the result may carry nothing but
defaults, and callers fill the gaps with heuristic extraction.
"""

from __future__ import annotations

import html as html_lib
import json
from typing import Any, Dict, Iterable, List, Optional

from careerhub.job_import.models import DEFAULT_SKILL_LEVEL, ExtractedJobFields
from careerhub.job_import.normalize import (
    html_to_text,
    infer_employment_type,
    normalize_whitespace,
    parse_html,
    split_list_items,
    uniq_preserve_order,
)


def _iter_jsonld_dicts(obj: Any) -> Iterable[Dict[str, Any]]:
    if isinstance(obj, dict):
        yield obj
        graph = obj.get("@graph")
        if isinstance(graph, list):
            for item in graph:
                yield from _iter_jsonld_dicts(item)
        for k, v in obj.items():
            if k != "@graph":
                yield from _iter_jsonld_dicts(v)
    elif isinstance(obj, list):
        for item in obj:
            yield from _iter_jsonld_dicts(item)


def _is_jobposting(d: Dict[str, Any]) -> bool:
    t = d.get("@type")
    if isinstance(t, str):
        types = [t]
    elif isinstance(t, list):
        types = [x for x in t if isinstance(x, str)]
    else:
        types = []
    return any(x.lower() == "jobposting" for x in types)


def _load_jsonld(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    # Some sites HTML-escape the script body.
    try:
        return json.loads(html_lib.unescape(raw))
    except json.JSONDecodeError:
        return None


def find_jobposting_jsonld(html: str) -> Optional[Dict[str, Any]]:
    if not html:
        return None

    soup = parse_html(html)
    scripts = soup.find_all("script", attrs={"type": lambda v: bool(v) and "ld+json" in v.lower()})
    for script in scripts:
        candidate = (script.string or script.get_text() or "").strip()
        if not candidate:
            continue
        parsed = _load_jsonld(candidate)
        if parsed is None:
            continue
        for d in _iter_jsonld_dicts(parsed):
            if _is_jobposting(d):
                return d
    return None


def _jsonld_get_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        name = value.get("name")
        if isinstance(name, str):
            return name
    return None


def _clean(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    cleaned = normalize_whitespace(html_lib.unescape(value))
    return cleaned or None


def _extract_location(jobposting: Dict[str, Any]) -> Optional[str]:
    loc = jobposting.get("jobLocation")
    locs: List[Any]
    if isinstance(loc, list):
        locs = loc
    elif loc is None:
        locs = []
    else:
        locs = [loc]

    places: List[str] = []
    for item in locs:
        if isinstance(item, str):
            places.append(item)
            continue
        if not isinstance(item, dict):
            continue
        addr = item.get("address")
        if isinstance(addr, str):
            places.append(addr)
            continue
        if not isinstance(addr, dict):
            continue
        # Prefer locality/region/country; street tends to be overly specific.
        parts = []
        for key in ("addressLocality", "addressRegion", "addressCountry"):
            v = _jsonld_get_str(addr.get(key))
            if v and v.strip():
                parts.append(v.strip())
        if parts:
            places.append(", ".join(parts))

    cleaned = normalize_whitespace("; ".join(uniq_preserve_order(places)))
    if cleaned:
        return cleaned

    location_type = jobposting.get("jobLocationType")
    if isinstance(location_type, str) and location_type.upper() == "TELECOMMUTE":
        return "Remote"
    return None


def _format_amount(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _extract_salary(base_salary: Any) -> Optional[str]:
    if not isinstance(base_salary, dict):
        return _format_amount(base_salary)

    currency = base_salary.get("currency")
    value = base_salary.get("value")
    amount: Optional[str]
    if isinstance(value, dict):
        currency = currency or value.get("currency")
        low = _format_amount(value.get("minValue"))
        high = _format_amount(value.get("maxValue"))
        if low and high:
            amount = f"{low}-{high}"
        else:
            amount = low or high or _format_amount(value.get("value"))
    else:
        amount = _format_amount(value)

    if not amount:
        return None
    parts = [amount]
    if isinstance(currency, str) and currency.strip():
        parts.append(currency.strip())
    return " ".join(parts)


def _extract_skills(value: Any) -> List[str]:
    if isinstance(value, str):
        raw = value.split(",")
    elif isinstance(value, list):
        raw = [_jsonld_get_str(v) or "" for v in value]
    else:
        return []
    return uniq_preserve_order(normalize_whitespace(s) for s in raw)


def fields_from_jobposting(jobposting: Dict[str, Any]) -> ExtractedJobFields:
    fields = ExtractedJobFields()

    title = _clean(_jsonld_get_str(jobposting.get("title")) or _jsonld_get_str(jobposting.get("name")))
    if title:
        fields.title = title

    company = _clean(_jsonld_get_str(jobposting.get("hiringOrganization")))
    if company:
        fields.company = company

    desc = jobposting.get("description")
    if isinstance(desc, str) and desc.strip():
        fields.description = html_to_text(desc)

    location = _extract_location(jobposting)
    if location:
        fields.location = location

    salary = _extract_salary(jobposting.get("baseSalary"))
    if salary:
        fields.salary = salary

    skills = _extract_skills(jobposting.get("skills"))
    if skills:
        fields.tech_stack = skills
        fields.required_skills = {name: DEFAULT_SKILL_LEVEL for name in skills}

    fields.employment_type = infer_employment_type(None, declared=jobposting.get("employmentType"))

    requirements: List[str] = []
    for key in ("qualifications", "experienceRequirements", "educationRequirements"):
        requirements.extend(split_list_items(jobposting.get(key)))
    fields.requirements = uniq_preserve_order(requirements)
    fields.responsibilities = split_list_items(jobposting.get("responsibilities"))
    fields.benefits = split_list_items(jobposting.get("jobBenefits"))
    return fields


def extract_structured(html: str) -> ExtractedJobFields:
    """Map the first embedded JobPosting onto ExtractedJobFields; defaults when absent."""
    jobposting = find_jobposting_jsonld(html)
    if jobposting is None:
        return ExtractedJobFields()
    return fields_from_jobposting(jobposting)
