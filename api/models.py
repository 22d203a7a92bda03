"""Pydantic response models for FastAPI's auto-generated OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CategoryOption(BaseModel):
    id: str
    label: str


class FilterOptions(BaseModel):
    categories: list[CategoryOption]
    cities: list[str] = []
    company_types: list[str] = []
    statuses: list[str] = []


class HealthResponse(BaseModel):
    status: str
    files: dict[str, bool]
    data_as_of: str | None


class CategorySummary(BaseModel):
    id: str
    slug: str
    label: str
    keywords: list[str]
    fallback: bool = False
    item_count: int = 0


class ClassificationItem(BaseModel):
    code: str
    level: int
    name: str
    category: str


class CategoryDetail(CategorySummary):
    items: list[ClassificationItem] = Field(default_factory=list)


class KeywordResult(BaseModel):
    categories: list[str]
    keywords: list[str]
    predicate: str


class CompanyRecord(BaseModel):
    id: int
    business_id: str | None = None
    name: str
    industry: str | None = None
    city: str | None = None
    company_type: str | None = None
    address: str | None = None
    postal_code: str | None = None
    country: str | None = None
    website: str | None = None
    email: str | None = None
    phone: str | None = None
    status: str | None = None
    registration_date: str | None = None
    revenue: float | None = None


class CompanyPage(BaseModel):
    data: list[CompanyRecord]
    count: int
    page: int
    limit: int
