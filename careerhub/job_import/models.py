from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

QueueStatus = Literal["Pending", "Processing", "Completed", "Failed"]
ListingStatus = Literal["Draft", "Open", "Closed", "Pending"]
EmploymentType = Literal["perm", "contract", "freelance", "internship", "unknown"]

QUEUE_STATUSES: tuple[QueueStatus, ...] = ("Pending", "Processing", "Completed", "Failed")
RETRYABLE_STATUSES = frozenset({"Failed", "Completed"})

DEFAULT_TITLE = "Untitled Job"
DEFAULT_COMPANY = "Unknown Company"
DEFAULT_LOCATION = "Remote"
DEFAULT_SALARY = "Not specified"
DEFAULT_EXPERIENCE_LEVEL = "Not specified"
MISSING_DESCRIPTION = "No description extracted."
DEFAULT_SKILL_LEVEL = 50


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class RequiredSkill:
    name: str
    level: int = DEFAULT_SKILL_LEVEL


@dataclass(frozen=True)
class Applicant:
    user_id: str
    status: str = "Applied"
    applied_at: Optional[datetime] = None
    resume_url: Optional[str] = None


@dataclass
class ExtractedJobFields:
    """Normalized field set produced by every extraction strategy."""

    title: str = DEFAULT_TITLE
    company: str = DEFAULT_COMPANY
    description: str = ""
    location: str = DEFAULT_LOCATION
    salary: str = DEFAULT_SALARY
    employment_type: EmploymentType = "unknown"
    experience_level: str = DEFAULT_EXPERIENCE_LEVEL
    tech_stack: List[str] = field(default_factory=list)
    # Ordered mapping: skill name -> proficiency level (0-100).
    required_skills: Dict[str, int] = field(default_factory=dict)
    requirements: List[str] = field(default_factory=list)
    responsibilities: List[str] = field(default_factory=list)
    benefits: List[str] = field(default_factory=list)

    def skill_records(self) -> List[RequiredSkill]:
        return [RequiredSkill(name=name, level=level) for name, level in self.required_skills.items()]


@dataclass
class ImportQueueItem:
    """One URL's import lifecycle record."""

    url: str
    submitted_by: str
    prefer_ai: bool = True
    force_update: bool = False
    status: QueueStatus = "Pending"
    error: Optional[str] = None
    note: Optional[str] = None
    duplicate: bool = False
    resulting_listing_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def can_retry(self) -> bool:
        return self.status in RETRYABLE_STATUSES

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        data["can_retry"] = self.can_retry
        return data


@dataclass
class JobListing:
    title: str
    company: str
    description: str
    location: str = DEFAULT_LOCATION
    salary: str = DEFAULT_SALARY
    employment_type: EmploymentType = "unknown"
    experience_level: str = DEFAULT_EXPERIENCE_LEVEL
    tech_stack: List[str] = field(default_factory=list)
    requirements: List[str] = field(default_factory=list)
    responsibilities: List[str] = field(default_factory=list)
    benefits: List[str] = field(default_factory=list)
    required_skills: List[RequiredSkill] = field(default_factory=list)
    status: ListingStatus = "Draft"
    external_url: Optional[str] = None
    posted_by: Optional[str] = None
    applicants: List[Applicant] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_extracted(
        cls,
        fields: ExtractedJobFields,
        *,
        external_url: Optional[str],
        posted_by: Optional[str],
    ) -> "JobListing":
        listing = cls(
            title=fields.title or DEFAULT_TITLE,
            company=fields.company or DEFAULT_COMPANY,
            description=fields.description or MISSING_DESCRIPTION,
            external_url=external_url,
            posted_by=posted_by,
            status="Draft",
        )
        listing.apply_extracted(fields)
        return listing

    def apply_extracted(self, fields: ExtractedJobFields) -> None:
        """Overwrite content fields in place; identity fields are left untouched."""
        self.title = fields.title or DEFAULT_TITLE
        self.company = fields.company or DEFAULT_COMPANY
        self.description = fields.description or MISSING_DESCRIPTION
        self.location = fields.location or DEFAULT_LOCATION
        self.salary = fields.salary or DEFAULT_SALARY
        self.employment_type = fields.employment_type or "unknown"
        self.experience_level = fields.experience_level or DEFAULT_EXPERIENCE_LEVEL
        self.tech_stack = list(fields.tech_stack or [])
        self.requirements = list(fields.requirements or [])
        self.responsibilities = list(fields.responsibilities or [])
        self.benefits = list(fields.benefits or [])
        self.required_skills = fields.skill_records()
        self.status = "Draft"
        self.updated_at = utcnow()

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        data["applicants"] = [
            {**asdict(a), "applied_at": a.applied_at.isoformat() if a.applied_at else None}
            for a in self.applicants
        ]
        return data


@dataclass(frozen=True)
class EnqueueResult:
    added: int
    skipped: int


@dataclass
class BatchResult:
    run_id: str
    succeeded: int = 0
    failed: int = 0
    duplicates: int = 0
    duration_s: float = 0.0

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed + self.duplicates


@dataclass(frozen=True)
class QueueStatusReport:
    counts: Dict[str, int]
    recent: List[ImportQueueItem]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "counts": dict(self.counts),
            "recent": [item.as_dict() for item in self.recent],
        }


@dataclass(frozen=True)
class RetryAcknowledgement:
    reset: int
    message: str = "Failed items reset to Pending"
