"""Shared query layer: ALL SQL lives here.

Both FastAPI and MCP call these functions. Each function creates a fresh
DuckDB connection, queries parquet files, and returns list[dict] or dict.
Missing data files give empty results; a failing query raises
CompanyQueryError.
"""

from __future__ import annotations

import io
import math
import os
from datetime import date
from pathlib import Path

import duckdb
import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from pipeline.classifier import BucketCache, ClassificationRecord, Classifier
from pipeline.filters import CompanyFilters, FilterTranslator, build_where
from pipeline.taxonomy import DEFAULT_TAXONOMY

_ROOT = Path(os.environ.get(
    "COMPANY_FINDER_DATA_DIR", Path(__file__).resolve().parent.parent / "data"
))
_AGG = _ROOT / "aggregated"
_PROCESSED = _ROOT / "processed"

# text column the category keywords are matched against
CATEGORY_FIELD = "industry"

MAX_PAGE_SIZE = 100
MAX_EXPORT_ITEMS = 10000

COMPANY_COLUMNS = [
    "id", "business_id", "name", "industry", "city", "company_type", "address",
    "postal_code", "country", "website", "email", "phone", "status",
    "registration_date", "revenue",
]
EXPORT_COLUMNS = [
    "name", "business_id", "industry", "city", "company_type",
    "registration_date", "address",
]
_SORTABLE = frozenset({"name", "business_id", "industry", "city", "registration_date", "revenue"})

_classifier = Classifier(DEFAULT_TAXONOMY)
_translator = FilterTranslator(DEFAULT_TAXONOMY)
_buckets = BucketCache(_classifier)


class CompanyQueryError(RuntimeError):
    """The company store could not answer a query."""


def _run(sql: str, params: list | None = None) -> list[dict]:
    """Execute SQL and return list of dicts."""
    con = duckdb.connect()
    try:
        df = con.execute(sql, params or []).fetchdf()
    except duckdb.Error as e:
        raise CompanyQueryError(str(e)) from e
    finally:
        con.close()
    return [{k: _clean(v) for k, v in row.items()} for row in df.to_dict(orient="records")]


def _run_one(sql: str, params: list | None = None) -> dict:
    """Execute SQL and return single dict (first row)."""
    rows = _run(sql, params)
    return rows[0] if rows else {}


def _companies_path() -> Path:
    return _PROCESSED / "companies.parquet"


def _select_columns(columns: list[str]) -> str:
    return ", ".join(
        "CAST(registration_date AS VARCHAR) AS registration_date"
        if c == "registration_date" else c
        for c in columns
    )


# ── Classification taxonomy ──


def load_classifications() -> list[ClassificationRecord]:
    """Classification records from the processed parquet, [] if not built yet."""
    path = _PROCESSED / "classifications.parquet"
    if not path.exists():
        return []
    rows = _run(f"SELECT code, level, name FROM '{path}'")
    return [ClassificationRecord(**row) for row in rows]


def get_categories(search: str | None = None) -> list[dict]:
    """Categories with keywords and classification counts (zeros included).

    search narrows to categories whose label or a keyword contains the term.
    """
    buckets = _buckets.get(load_classifications())
    return [
        {
            "id": cat.id,
            "slug": cat.slug,
            "label": cat.label,
            "keywords": list(cat.keywords),
            "fallback": cat.fallback,
            "item_count": buckets[cat.id].count,
        }
        for cat in DEFAULT_TAXONOMY.search(search)
    ]


def get_category(category_id: str) -> dict | None:
    """One category with the classifications bucketed into it, None if unknown."""
    cat = DEFAULT_TAXONOMY.by_id(category_id)
    if cat is None:
        return None
    bucket = _buckets.get(load_classifications())[cat.id]
    return {
        "id": cat.id,
        "slug": cat.slug,
        "label": cat.label,
        "keywords": list(cat.keywords),
        "fallback": cat.fallback,
        "item_count": bucket.count,
        "items": [_classification_row(r, cat.id) for r in bucket.items],
    }


def get_classifications(
    search: str | None = None,
    category: str | None = None,
    limit: int = 1000,
) -> list[dict]:
    """Browse classifications, optionally narrowed to a category and a search term."""
    records = _classifier.search(load_classifications(), search, category)
    return [_classification_row(r) for r in records[:limit]]


def _classification_row(record: ClassificationRecord, category: str | None = None) -> dict:
    return {
        "code": record.code,
        "level": record.level,
        "name": record.name,
        "category": category or _classifier.classify(record),
    }


def get_keywords(categories: list[str] | None = None) -> dict:
    """Keywords and rendered predicate for a category selection."""
    keywords = _translator.to_keywords(categories or [])
    predicate = _translator.to_predicate(keywords, CATEGORY_FIELD)
    return {
        "categories": [c for c in (categories or []) if DEFAULT_TAXONOMY.by_id(c)],
        "keywords": keywords,
        "predicate": predicate.render(),
    }


# ── Companies ──


def _where(filters: CompanyFilters | None, categories: list[str] | None) -> tuple[str, list]:
    predicate = _translator.translate(categories or [], CATEGORY_FIELD)
    return build_where(filters, predicate)


def get_companies(
    filters: CompanyFilters | None = None,
    categories: list[str] | None = None,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "name",
    sort_desc: bool = False,
) -> dict:
    """One page of companies matching the filters and category selection."""
    if sort_by not in _SORTABLE:
        raise ValueError(f"invalid sort_by: {sort_by}. allowed: {sorted(_SORTABLE)}")
    direction = "DESC" if sort_desc else "ASC"

    page = max(page, 1)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    empty = {"data": [], "count": 0, "page": page, "limit": limit}

    path = _companies_path()
    if not path.exists():
        return empty

    where, params = _where(filters, categories)
    count = _run_one(f"SELECT COUNT(*) AS n FROM '{path}' {where}", params).get("n", 0)

    rows = _run(
        f"""
        SELECT {_select_columns(COMPANY_COLUMNS)}
        FROM '{path}'
        {where}
        ORDER BY {sort_by} {direction} NULLS LAST, id
        LIMIT {limit} OFFSET {(page - 1) * limit}
        """,
        params,
    )
    return {"data": rows, "count": count or 0, "page": page, "limit": limit}


def get_company(company_id: int) -> dict | None:
    """Single company by id, None if absent."""
    path = _companies_path()
    if not path.exists():
        return None
    row = _run_one(
        f"SELECT {_select_columns(COMPANY_COLUMNS)} FROM '{path}' WHERE id = $1",
        [company_id],
    )
    return row or None


def export_companies(
    filters: CompanyFilters | None = None,
    categories: list[str] | None = None,
    limit: int = MAX_EXPORT_ITEMS,
) -> list[dict]:
    """All matching companies (up to limit) in export column order."""
    path = _companies_path()
    if not path.exists():
        return []
    where, params = _where(filters, categories)
    return _run(
        f"""
        SELECT {_select_columns(EXPORT_COLUMNS)}
        FROM '{path}'
        {where}
        ORDER BY name, id
        LIMIT {min(limit, MAX_EXPORT_ITEMS)}
        """,
        params,
    )


def export_csv(
    filters: CompanyFilters | None = None,
    categories: list[str] | None = None,
) -> str:
    """Matching companies as CSV text with a header row."""
    rows = export_companies(filters, categories)
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_csv(index=False)


def export_parquet(
    filters: CompanyFilters | None = None,
    categories: list[str] | None = None,
) -> bytes:
    """Matching companies as a parquet file."""
    rows = export_companies(filters, categories)
    table = pa.table({col: [r.get(col) for r in rows] for col in EXPORT_COLUMNS})
    buf = io.BytesIO()
    pq.write_table(table, buf)
    return buf.getvalue()


def export_xlsx(
    filters: CompanyFilters | None = None,
    categories: list[str] | None = None,
) -> bytes:
    """Matching companies as an Excel workbook with one "Companies" sheet."""
    rows = export_companies(filters, categories)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_excel(
            writer, sheet_name="Companies", index=False
        )
    return buf.getvalue()


# ── Meta ──


def get_filters() -> dict:
    """Available filter values: categories, cities, company types, statuses."""
    categories = [{"id": c.id, "label": c.label} for c in DEFAULT_TAXONOMY.all()]
    options = {"categories": categories, "cities": [], "company_types": [], "statuses": []}

    path = _companies_path()
    if not path.exists():
        return options

    for key, column in (("cities", "city"), ("company_types", "company_type"), ("statuses", "status")):
        rows = _run(
            f"SELECT DISTINCT {column} AS v FROM '{path}' WHERE {column} IS NOT NULL ORDER BY v"
        )
        options[key] = [r["v"] for r in rows]
    return options


def get_health() -> dict:
    """Check data file availability and freshness."""
    files = {
        "companies": _PROCESSED / "companies.parquet",
        "classifications": _PROCESSED / "classifications.parquet",
        "category_counts": _AGG / "category_counts.parquet",
    }

    status = {}
    latest_mtime = None
    for name, path in files.items():
        exists = path.exists()
        status[name] = exists
        if exists:
            mtime = path.stat().st_mtime
            if latest_mtime is None or mtime > latest_mtime:
                latest_mtime = mtime

    data_as_of = None
    if latest_mtime:
        data_as_of = date.fromtimestamp(latest_mtime).isoformat()

    return {
        "status": "ok" if any(status.values()) else "no_data",
        "files": status,
        "data_as_of": data_as_of,
    }


def _clean(val):
    """Convert numpy/pandas types to native Python, handle NaN."""
    if val is None:
        return None
    if hasattr(val, "item"):
        val = val.item()
    if isinstance(val, str):
        return val
    try:
        if math.isnan(float(val)):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(val, float) and val == int(val):
        return int(val)
    return val
