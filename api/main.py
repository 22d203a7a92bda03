"""FastAPI app for the Company Finder API."""

from __future__ import annotations

from datetime import date

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api import queries
from api.models import (
    CategoryDetail,
    CategorySummary,
    ClassificationItem,
    CompanyPage,
    CompanyRecord,
    FilterOptions,
    HealthResponse,
    KeywordResult,
)
from pipeline.filters import CompanyFilters

app = FastAPI(
    title="Company Finder",
    description="Company directory search with TOL industry category filters",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(queries.CompanyQueryError)
async def company_query_error(request: Request, exc: queries.CompanyQueryError):
    return JSONResponse(status_code=502, content={"detail": f"company store error: {exc}"})


def _filters(
    search: str | None = Query(None, description="Name or business id substring"),
    company_name: str | None = Query(None),
    business_id: str | None = Query(None),
    industry: str | None = Query(None),
    city: str | None = Query(None),
    location: str | None = Query(None, description="Same as city"),
    company_type: str | None = Query(None, description="Exact company type"),
    address: str | None = Query(None),
    postal_code: str | None = Query(None),
    website: str | None = Query(None),
    status: str | None = Query(None, description="Exact status"),
    min_revenue: float | None = Query(None),
    max_revenue: float | None = Query(None),
    min_date: date | None = Query(None, description="Registered on or after (YYYY-MM-DD)"),
    max_date: date | None = Query(None, description="Registered on or before (YYYY-MM-DD)"),
) -> CompanyFilters:
    values = {
        "search": search,
        "company_name": company_name,
        "business_id": business_id,
        "industry": industry,
        "company_type": company_type,
        "address": address,
        "postal_code": postal_code,
        "website": website,
        "status": status,
        "min_revenue": min_revenue,
        "max_revenue": max_revenue,
        "min_date": min_date,
        "max_date": max_date,
    }
    if city or location:
        values["city"] = city or location
    return CompanyFilters.model_validate(values)


@app.get("/")
def root():
    return {
        "name": "Company Finder API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse)
def health():
    """Check data file availability and freshness."""
    return queries.get_health()


@app.get("/filters", response_model=FilterOptions)
def filters():
    """Get available filter values: categories, cities, company types, statuses."""
    return queries.get_filters()


@app.get("/categories", response_model=list[CategorySummary])
def categories(
    search: str | None = Query(None, description="Label or keyword substring"),
):
    """Business categories with keyword lists and classification counts."""
    return queries.get_categories(search)


@app.get("/categories/{category_id}", response_model=CategoryDetail)
def category(category_id: str):
    """One category and the TOL classifications that fall into it."""
    result = queries.get_category(category_id)
    if result is None:
        raise HTTPException(404, f"Category '{category_id}' not found")
    return result


@app.get("/classifications", response_model=list[ClassificationItem])
def classifications(
    search: str | None = Query(None, description="Name or code substring"),
    category: str | None = Query(None, description="Category id (e.g. A)"),
    limit: int = Query(1000, ge=1, le=5000),
):
    """Browse TOL classifications, optionally by category and search term."""
    return queries.get_classifications(search, category, limit)


@app.get("/keywords", response_model=KeywordResult)
def keywords(categories: list[str] = Query([], description="Selected category ids")):
    """Keywords and industry predicate produced by a category selection."""
    return queries.get_keywords(categories)


@app.get("/companies", response_model=CompanyPage)
def companies(
    categories: list[str] = Query([], description="Selected category ids"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=queries.MAX_PAGE_SIZE),
    sort_by: str = Query("name"),
    sort_desc: bool = Query(False),
    filters: CompanyFilters = Depends(_filters),
):
    """Search companies: independent filters ANDed with the category selection."""
    try:
        return queries.get_companies(filters, categories, page, limit, sort_by, sort_desc)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/companies/export")
def companies_export(
    categories: list[str] = Query([], description="Selected category ids"),
    format: str = Query("csv", pattern="^(csv|xlsx|parquet)$"),
    filters: CompanyFilters = Depends(_filters),
):
    """Matching companies as a CSV, Excel or parquet download."""
    if format == "parquet":
        body = queries.export_parquet(filters, categories)
        media_type = "application/vnd.apache.parquet"
    elif format == "xlsx":
        body = queries.export_xlsx(filters, categories)
        media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    else:
        body = queries.export_csv(filters, categories)
        media_type = "text/csv"
    filename = f"companies_export_{date.today().isoformat()}.{format}"
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/companies/{company_id}", response_model=CompanyRecord)
def company(company_id: int):
    """Single company by id."""
    result = queries.get_company(company_id)
    if result is None:
        raise HTTPException(404, f"Company {company_id} not found")
    return result
