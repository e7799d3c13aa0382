from pydantic import BaseModel, field_validator
from typing import Optional


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CompanyBase(BaseModel):
    name: str
    location: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Company name is required")
        return v

    @field_validator("location", "website", "logo_url")
    @classmethod
    def optional_blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class CompanyCreate(CompanyBase):
    pass


class CompanyUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Company name is required")
        return v

    @field_validator("location", "website", "logo_url")
    @classmethod
    def optional_blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class CompanyResponse(BaseModel):
    id: str
    name: str = ""
    location: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class CompanyListResponse(BaseModel):
    companies: list[CompanyResponse]
    total: int
