from app.schemas.job import (
    JobType,
    JobStatus,
    EmbeddedCompany,
    EmbeddedCategory,
    JobRecord,
    JobCreate,
    JobUpdate,
    SharedUpdate,
    JobResponse,
    JobListResponse,
    ShareMessageResponse,
    DeleteOldJobsResponse,
)
from app.schemas.company import CompanyCreate, CompanyUpdate, CompanyResponse, CompanyListResponse
from app.schemas.category import CategoryWrite, CategoryResponse, CategoryListResponse
from app.schemas.auth import LoginRequest, LoginResponse, CurrentUser
from app.schemas.stats import DashboardStats
from app.schemas.upload import LogoFormOpen, LogoFormState, LogoSubmitResponse

__all__ = [
    "JobType",
    "JobStatus",
    "EmbeddedCompany",
    "EmbeddedCategory",
    "JobRecord",
    "JobCreate",
    "JobUpdate",
    "SharedUpdate",
    "JobResponse",
    "JobListResponse",
    "ShareMessageResponse",
    "DeleteOldJobsResponse",
    "CompanyCreate",
    "CompanyUpdate",
    "CompanyResponse",
    "CompanyListResponse",
    "CategoryWrite",
    "CategoryResponse",
    "CategoryListResponse",
    "LoginRequest",
    "LoginResponse",
    "CurrentUser",
    "DashboardStats",
    "LogoFormOpen",
    "LogoFormState",
    "LogoSubmitResponse",
]
