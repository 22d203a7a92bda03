"""DuckDB transforms: raw CSVs → processed parquets → aggregated parquets."""

from __future__ import annotations

import os
from pathlib import Path

import duckdb

from pipeline.classifier import ClassificationRecord, Classifier
from pipeline.ingest_classifications import RAW_FILE, parse_classifications
from pipeline.taxonomy import DEFAULT_TAXONOMY, Taxonomy

DATA_DIR = Path(os.environ.get(
    "COMPANY_FINDER_DATA_DIR", Path(__file__).resolve().parent.parent / "data"
))
RAW_DIR = DATA_DIR / "raw"
PROCESSED_DIR = DATA_DIR / "processed"
AGG_DIR = DATA_DIR / "aggregated"

# output column → accepted source header names (case-insensitive)
COMPANY_COLUMNS: dict[str, tuple[str, ...]] = {
    "business_id": ("business_id", "y_tunnus", "businessid"),
    "name": ("name", "company_name", "toiminimi"),
    "industry": ("industry", "industry_name", "toimiala"),
    "city": ("city", "location", "kotipaikka"),
    "company_type": ("company_type", "yritysmuoto"),
    "address": ("address", "address_line1"),
    "postal_code": ("postal_code", "postcode", "zip"),
    "country": ("country",),
    "website": ("website", "url"),
    "email": ("email",),
    "phone": ("phone",),
    "status": ("status",),
    "registration_date": ("registration_date", "registered", "start_date"),
    "revenue": ("revenue", "liikevaihto"),
}


def _register_classifier_udf(con: duckdb.DuckDBPyConnection, classifier: Classifier) -> None:
    """Register Classifier.classify_name as a scalar UDF in DuckDB."""
    con.create_function("classify_name", classifier.classify_name, ["VARCHAR"], "VARCHAR")


def transform(taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> None:
    """Run all transforms: raw → processed → aggregated."""
    PROCESSED_DIR.mkdir(parents=True, exist_ok=True)
    AGG_DIR.mkdir(parents=True, exist_ok=True)

    con = duckdb.connect()
    classifier = Classifier(taxonomy)
    _register_classifier_udf(con, classifier)

    _build_companies(con)
    _build_classifications(con, classifier)
    _build_category_counts(con, taxonomy)

    con.close()
    print("  [done] all transforms complete")


def _build_companies(con: duckdb.DuckDBPyConnection) -> None:
    """Union company CSVs → processed/companies.parquet."""
    raw_files = sorted(RAW_DIR.glob("companies*.csv"))
    if not raw_files:
        print("  [warn] no companies CSV files found, skipping companies")
        return

    union_parts = " UNION ALL BY NAME ".join(
        f"SELECT * FROM read_csv_auto('{f}', all_varchar=true)" for f in raw_files
    )
    con.execute(f"""
        CREATE OR REPLACE TABLE companies_raw AS
        SELECT * FROM ({union_parts})
    """)

    cols_raw = [row[0] for row in con.execute("DESCRIBE companies_raw").fetchall()]
    print(f"  [info] company columns: {cols_raw}")
    cols_lower = {c.lower(): c for c in cols_raw}

    def _find(*candidates: str) -> str | None:
        for c in candidates:
            if c.lower() in cols_lower:
                return cols_lower[c.lower()]
        return None

    found = {out: _find(*names) for out, names in COMPANY_COLUMNS.items()}
    if found["name"] is None:
        print("  [error] cannot find name column in company data")
        return

    select = []
    for out, src in found.items():
        if src is None:
            sql_type = {"revenue": "DOUBLE", "registration_date": "DATE"}.get(out, "VARCHAR")
            select.append(f"NULL::{sql_type} AS {out}")
        elif out == "revenue":
            select.append(
                f"""TRY_CAST(REPLACE(REPLACE("{src}", ' ', ''), ',', '.') AS DOUBLE) AS revenue"""
            )
        elif out == "registration_date":
            select.append(f'TRY_CAST("{src}" AS DATE) AS registration_date')
        else:
            select.append(f'NULLIF(TRIM("{src}"), \'\') AS {out}')

    con.execute(f"""
        CREATE OR REPLACE TABLE companies AS
        SELECT DISTINCT {', '.join(select)}
        FROM companies_raw
        WHERE NULLIF(TRIM("{found['name']}"), '') IS NOT NULL
    """)

    # stable ids after dedup
    con.execute("""
        CREATE OR REPLACE TABLE companies AS
        SELECT ROW_NUMBER() OVER (ORDER BY name, business_id) AS id, *
        FROM companies
    """)

    out = PROCESSED_DIR / "companies.parquet"
    con.execute(f"COPY companies TO '{out}' (FORMAT PARQUET, COMPRESSION ZSTD)")
    count = con.execute("SELECT COUNT(*) FROM companies").fetchone()[0]
    print(f"  [done] companies.parquet -> {count:,} rows")


def load_classifications(path: Path | None = None) -> list[ClassificationRecord]:
    """Parse the raw classification file, [] if it has not been fetched."""
    path = path or RAW_DIR / RAW_FILE
    if not path.exists():
        return []
    return parse_classifications(path.read_text(encoding="utf-8-sig"))


def _build_classifications(con: duckdb.DuckDBPyConnection, classifier: Classifier) -> None:
    """Raw TOL flat file → processed/classifications.parquet with category column."""
    records = load_classifications()
    if not records:
        print(f"  [warn] {RAW_FILE} missing or empty, skipping classifications")
        return

    con.execute("""
        CREATE OR REPLACE TABLE classifications(
            position INTEGER, code VARCHAR, level INTEGER, name VARCHAR
        )
    """)
    con.executemany(
        "INSERT INTO classifications VALUES (?, ?, ?, ?)",
        [(i, r.code, r.level, r.name) for i, r in enumerate(records)],
    )

    out = PROCESSED_DIR / "classifications.parquet"
    con.execute(f"""
        COPY (
            SELECT code, level, name, classify_name(name) AS category
            FROM classifications
            ORDER BY position
        ) TO '{out}' (FORMAT PARQUET, COMPRESSION ZSTD)
    """)
    print(f"  [done] classifications.parquet -> {len(records):,} rows")


def _build_category_counts(con: duckdb.DuckDBPyConnection, taxonomy: Taxonomy) -> None:
    """One row per category (zero counts kept) → aggregated/category_counts.parquet."""
    rows = [(i, cat.id, cat.slug, cat.label) for i, cat in enumerate(taxonomy.all())]
    con.execute("""
        CREATE OR REPLACE TABLE categories(
            position INTEGER, category VARCHAR, slug VARCHAR, label VARCHAR
        )
    """)
    con.executemany("INSERT INTO categories VALUES (?, ?, ?, ?)", rows)

    cls_file = PROCESSED_DIR / "classifications.parquet"
    if cls_file.exists():
        counts = f"SELECT category, COUNT(*) AS n FROM '{cls_file}' GROUP BY category"
    else:
        counts = "SELECT NULL::VARCHAR AS category, 0 AS n WHERE FALSE"

    con.execute(f"""
        COPY (
            SELECT c.category, c.slug, c.label, COALESCE(n.n, 0) AS item_count
            FROM categories c
            LEFT JOIN ({counts}) n ON c.category = n.category
            ORDER BY c.position
        ) TO '{AGG_DIR}/category_counts.parquet' (FORMAT PARQUET, COMPRESSION ZSTD)
    """)
    print("  [done] category_counts.parquet")
