from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/jobboard.db"

    # Admin login
    admin_email: str = "admin@example.com"
    admin_password: str = "changeme"
    secret_key: str = "dev-secret-key-change-in-production"

    # Blob storage (company logos)
    storage_dir: str = "./data/storage"
    storage_public_url: str = "http://localhost:8000/static"
    logo_bucket: str = "company-logos"
    logo_cache_control: str = "3600"

    # Listing view
    page_size: int = 12

    # Logo normalization
    max_image_dimension: int = 500
    webp_quality: int = 90  # 0.9 quality factor
    # Open logo forms untouched this long are closed and their previews revoked
    logo_form_idle_seconds: int = 1800

    # Maintenance
    old_job_days: int = 30

    # Share message link target
    share_base_url: str = "https://seekjobslk.com/job"

    cors_origins: list[str] = ["http://localhost:5173"]

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
