from pydantic import BaseModel
from typing import Optional


class LogoFormOpen(BaseModel):
    logo_url: Optional[str] = None


class LogoFormState(BaseModel):
    form_id: str
    preview_url: Optional[str] = None
    filename: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    logo_url: Optional[str] = None


class LogoSubmitResponse(BaseModel):
    form_id: str
    logo_url: Optional[str] = None
