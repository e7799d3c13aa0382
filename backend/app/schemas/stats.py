from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_jobs: int = 0
    active_jobs: int = 0
    companies_count: int = 0
    categories_count: int = 0
    total_applied: int = 0
