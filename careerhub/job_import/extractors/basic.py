from __future__ import annotations

from careerhub.job_import.extractors.heuristic import apply_heuristics
from careerhub.job_import.extractors.structured import extract_structured
from careerhub.job_import.models import ExtractedJobFields


def basic_extract(html: str) -> ExtractedJobFields:
    """
    Extract job fields without the AI service.

    - Prefers JobPosting JSON-LD when present.
    - Falls back to page title, meta description and keyword heuristics for
      whatever the structured data left unset.

    Never raises: the worst case is a record of placeholder defaults.
    """
    return apply_heuristics(html or "", extract_structured(html or ""))
