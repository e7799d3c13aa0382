from pydantic import BaseModel, field_validator
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class JobType(str, Enum):
    FULL_TIME = "Full-Time"
    PART_TIME = "Part-Time"
    REMOTE = "Remote"
    HYBRID = "Hybrid"


class JobStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class EmbeddedCompany(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class EmbeddedCategory(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class JobRecord(BaseModel):
    """
    A job document as read from the store.

    Legacy documents may carry company/category as bare id strings and may
    lack is_shared entirely, so every field is lenient here. Strictness
    lives in JobCreate/JobUpdate.
    """

    id: str
    title: str = ""
    company: Optional[Union[EmbeddedCompany, str]] = None
    category: Optional[Union[EmbeddedCategory, str]] = None
    job_type: str = JobType.FULL_TIME.value
    salary: str = ""
    location: str = ""
    description: str = ""
    requirements: str = ""
    apply_url: str = ""
    status: str = JobStatus.ACTIVE.value
    is_featured: bool = False
    is_shared: Optional[bool] = None
    posted_date: Optional[datetime] = None
    applied_count: Optional[int] = 0


class JobBase(BaseModel):
    title: str
    company: str
    category: str
    job_type: JobType = JobType.FULL_TIME
    salary: str = ""
    location: str = ""
    description: str
    requirements: str = ""
    apply_url: str
    status: JobStatus = JobStatus.ACTIVE
    is_featured: bool = False
    is_shared: bool = False

    @field_validator("title", "description", "apply_url", "company", "category")
    @classmethod
    def required_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field is required")
        return v


class JobCreate(JobBase):
    """Create payload; company and category are ids of existing records."""
    pass


class JobUpdate(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    category: Optional[str] = None
    job_type: Optional[JobType] = None
    salary: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    apply_url: Optional[str] = None
    status: Optional[JobStatus] = None
    is_featured: Optional[bool] = None
    is_shared: Optional[bool] = None

    @field_validator("title", "description", "apply_url", "company", "category")
    @classmethod
    def required_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v


class SharedUpdate(BaseModel):
    is_shared: bool


class JobResponse(JobRecord):
    company_name: str
    category_name: str


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class ShareMessageResponse(BaseModel):
    job_id: str
    message: str


class DeleteOldJobsResponse(BaseModel):
    deleted: int
    cutoff: datetime
