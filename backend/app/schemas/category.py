from pydantic import BaseModel, field_validator


class CategoryWrite(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryResponse(BaseModel):
    id: str
    name: str = ""


class CategoryListResponse(BaseModel):
    categories: list[CategoryResponse]
    total: int
