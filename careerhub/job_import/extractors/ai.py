"""AI-assisted job field extraction.

The AI service is an opaque collaborator: page text goes in, a JSON object with
the ``ExtractedJobFields`` keys comes out. Every failure mode (client errors,
unparseable output, an explicit ``error`` key) is reported as an
``AIExtractionResult`` failure so callers can fall back to basic extraction.
"""

from __future__ import annotations

import abc
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from careerhub.config.settings import OpenAISettings
from careerhub.job_import.errors import ExtractionError
from careerhub.job_import.logging_utils import LOGGER_NAME, log_event
from careerhub.job_import.models import (
    DEFAULT_COMPANY,
    DEFAULT_EXPERIENCE_LEVEL,
    DEFAULT_LOCATION,
    DEFAULT_SALARY,
    DEFAULT_SKILL_LEVEL,
    DEFAULT_TITLE,
    ExtractedJobFields,
)
from careerhub.job_import.normalize import (
    html_to_text,
    infer_employment_type,
    normalize_whitespace,
    split_list_items,
    uniq_preserve_order,
)

LOGGER = logging.getLogger(LOGGER_NAME)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

SYSTEM_PROMPT = (
    "You extract structured data from job posting pages. "
    "Reply with a single JSON object and nothing else, using exactly these keys: "
    "title (string), company (string), description (plain-text string), location (string), "
    "salary (string), employmentType (string), experienceLevel (string), "
    "techStack (array of strings), requiredSkills (array of objects with name and level 0-100), "
    "requirements (array of strings), responsibilities (array of strings), benefits (array of strings). "
    'If the page is not a job posting, reply with {"error": "<short reason>"}.'
)


@dataclass(frozen=True)
class AIExtractionResult:
    fields: Optional[ExtractedJobFields] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.fields is not None

    @classmethod
    def success(cls, fields: ExtractedJobFields) -> "AIExtractionResult":
        return cls(fields=fields)

    @classmethod
    def failure(cls, reason: str) -> "AIExtractionResult":
        return cls(reason=reason or "AI extraction failed")


class AIExtractor(abc.ABC):
    @abc.abstractmethod
    def extract(self, html: str) -> AIExtractionResult:
        raise NotImplementedError


def _clamp_level(value: Any) -> int:
    try:
        level = int(round(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_SKILL_LEVEL
    return max(0, min(100, level))


class AIJobPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = None
    company: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    employment_type: Optional[str] = Field(default=None, alias="employmentType")
    experience_level: Optional[str] = Field(default=None, alias="experienceLevel")
    tech_stack: List[str] = Field(default_factory=list, alias="techStack")
    required_skills: Dict[str, int] = Field(default_factory=dict, alias="requiredSkills")
    requirements: List[str] = Field(default_factory=list)
    responsibilities: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)

    @field_validator(
        "title", "company", "description", "location", "salary", "employment_type", "experience_level", mode="before"
    )
    @classmethod
    def _scalar_to_text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return value.strip() or None
        return None

    @field_validator("tech_stack", "requirements", "responsibilities", "benefits", mode="before")
    @classmethod
    def _to_string_list(cls, value: Any) -> List[str]:
        if isinstance(value, list):
            return uniq_preserve_order(normalize_whitespace(v) for v in value if isinstance(v, str))
        return split_list_items(value)

    @field_validator("required_skills", mode="before")
    @classmethod
    def _to_skill_map(cls, value: Any) -> Dict[str, int]:
        skills: Dict[str, int] = {}
        if isinstance(value, dict):
            pairs = list(value.items())
        elif isinstance(value, list):
            pairs = []
            for item in value:
                if isinstance(item, str):
                    pairs.append((item, DEFAULT_SKILL_LEVEL))
                elif isinstance(item, dict):
                    pairs.append((item.get("name"), item.get("level", DEFAULT_SKILL_LEVEL)))
        else:
            pairs = []

        for name, level in pairs:
            if not isinstance(name, str) or not name.strip():
                continue
            skills.setdefault(normalize_whitespace(name), _clamp_level(level))
        return skills

    def to_fields(self) -> ExtractedJobFields:
        tech_stack = list(self.tech_stack) or list(self.required_skills)
        required_skills = dict(self.required_skills) or {name: DEFAULT_SKILL_LEVEL for name in tech_stack}
        description = html_to_text(self.description) if self.description else ""
        return ExtractedJobFields(
            title=normalize_whitespace(self.title or "") or DEFAULT_TITLE,
            company=normalize_whitespace(self.company or "") or DEFAULT_COMPANY,
            description=description,
            location=self.location or DEFAULT_LOCATION,
            salary=self.salary or DEFAULT_SALARY,
            employment_type=infer_employment_type(None, declared=self.employment_type),
            experience_level=self.experience_level or DEFAULT_EXPERIENCE_LEVEL,
            tech_stack=tech_stack,
            required_skills=required_skills,
            requirements=list(self.requirements),
            responsibilities=list(self.responsibilities),
            benefits=list(self.benefits),
        )


def _load_json_object(text: str) -> Any:
    text = (text or "").strip()
    if not text:
        raise ExtractionError("AI response was empty")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    # Models sometimes wrap the object in prose or code fences.
    match = _JSON_OBJECT_RE.search(text)
    if match is None:
        raise ExtractionError("AI response did not contain a JSON object")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"AI response is not valid JSON: {e}") from e


def parse_ai_payload(text: str) -> ExtractedJobFields:
    data = _load_json_object(text)
    if not isinstance(data, dict):
        raise ExtractionError("AI response was not a JSON object")
    if data.get("error"):
        raise ExtractionError(f"AI reported an error: {data['error']}")

    try:
        payload = AIJobPayload.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(f"AI response failed validation: {e.error_count()} error(s)") from e

    if not payload.title and not payload.description:
        raise ExtractionError("AI response carried no job fields")
    return payload.to_fields()


class OpenAIJobExtractor(AIExtractor):
    def __init__(
        self,
        *,
        client: OpenAI,
        model: str = "gpt-4o-mini",
        max_input_chars: int = 20_000,
    ) -> None:
        self._client = client
        self._model = model
        self._max_input_chars = max(1, int(max_input_chars))

    @classmethod
    def from_settings(cls, settings: OpenAISettings) -> "OpenAIJobExtractor":
        client = OpenAI(api_key=settings.api_key, timeout=settings.timeout_s, max_retries=1)
        return cls(client=client, model=settings.model, max_input_chars=settings.max_input_chars)

    def extract(self, html: str) -> AIExtractionResult:
        text = html_to_text(html)[: self._max_input_chars]
        if not text:
            return AIExtractionResult.failure("Page has no readable text")

        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": f"Job posting page text:\n\n{text}"},
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except OpenAIError as e:
            log_event(LOGGER, logging.WARNING, "ai_request_failed", model=self._model, error_type=type(e).__name__)
            return AIExtractionResult.failure(f"AI service error: {e}")

        content = response.choices[0].message.content if response.choices else None
        try:
            fields = parse_ai_payload(content or "")
        except ExtractionError as e:
            return AIExtractionResult.failure(str(e))
        return AIExtractionResult.success(fields)
