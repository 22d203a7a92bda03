"""Query layer tests against a small dataset built by the real transform."""

import io
from datetime import date

import pandas as pd
import pytest

from api import queries
from pipeline.filters import CompanyFilters


def _names(result: dict) -> list[str]:
    return [row["name"] for row in result["data"]]


def test_transform_outputs(data_dir):
    assert (data_dir / "processed" / "companies.parquet").exists()
    assert (data_dir / "processed" / "classifications.parquet").exists()
    assert (data_dir / "aggregated" / "category_counts.parquet").exists()
    assert queries.get_health()["status"] == "ok"


def test_get_companies_unfiltered(data_dir):
    result = queries.get_companies()
    assert result["count"] == 4
    assert _names(result) == [
        "Acme Farming Oy", "Bolt Construction Ab", "Code Works Oy", "Forest Logging Ky",
    ]


def test_category_filter_ors_keywords(data_dir):
    result = queries.get_companies(categories=["A"])
    assert _names(result) == ["Acme Farming Oy", "Forest Logging Ky"]
    assert result["count"] == 2


def test_category_and_field_filters_and_together(data_dir):
    result = queries.get_companies(CompanyFilters(city="helsinki"), ["A"])
    assert _names(result) == ["Acme Farming Oy"]


def test_unknown_category_is_no_filter(data_dir):
    assert queries.get_companies(categories=["ZZ"])["count"] == 4


def test_location_means_city(data_dir):
    filters = CompanyFilters.model_validate({"location": "Tampere"})
    assert _names(queries.get_companies(filters)) == ["Forest Logging Ky"]


def test_revenue_and_date_ranges(data_dir):
    rich = queries.get_companies(CompanyFilters(min_revenue=500000))
    assert _names(rich) == ["Acme Farming Oy", "Bolt Construction Ab"]

    recent = queries.get_companies(CompanyFilters(min_date=date(2019, 6, 15)))
    assert _names(recent) == ["Bolt Construction Ab", "Code Works Oy"]

    window = queries.get_companies(
        CompanyFilters(min_revenue=250000, max_revenue=250000)
    )
    assert _names(window) == ["Code Works Oy"]


def test_exact_match_fields(data_dir):
    assert queries.get_companies(CompanyFilters(company_type="Oy"))["count"] == 2
    assert queries.get_companies(CompanyFilters(company_type="oy"))["count"] == 0
    assert queries.get_companies(CompanyFilters(status="inactive"))["count"] == 1


def test_search_name_or_business_id(data_dir):
    assert _names(queries.get_companies(CompanyFilters(search="bolt"))) == ["Bolt Construction Ab"]
    assert _names(queries.get_companies(CompanyFilters(search="3456789"))) == ["Code Works Oy"]


def test_pagination_and_sort(data_dir):
    page2 = queries.get_companies(page=2, limit=3)
    assert page2["count"] == 4
    assert _names(page2) == ["Forest Logging Ky"]

    by_revenue = queries.get_companies(sort_by="revenue", sort_desc=True)
    assert _names(by_revenue)[0] == "Acme Farming Oy"
    assert _names(by_revenue)[-1] == "Forest Logging Ky"  # NULL revenue last

    with pytest.raises(ValueError):
        queries.get_companies(sort_by="revenue; DROP TABLE x")


def test_get_company(data_dir):
    company = queries.get_company(1)
    assert company["name"] == "Acme Farming Oy"
    assert company["registration_date"] == "2015-03-01"
    assert company["revenue"] == 1200000
    assert queries.get_company(999) is None


def test_export(data_dir):
    rows = queries.export_companies(categories=["F"])
    assert [r["name"] for r in rows] == ["Bolt Construction Ab"]
    assert list(rows[0]) == queries.EXPORT_COLUMNS

    csv_text = queries.export_csv(CompanyFilters(city="Helsinki"))
    lines = csv_text.strip().splitlines()
    assert lines[0] == ",".join(queries.EXPORT_COLUMNS)
    assert len(lines) == 3

    assert queries.export_parquet()[:4] == b"PAR1"


def test_categories_partition_classifications(data_dir):
    cats = queries.get_categories()
    assert [c["id"] for c in cats] == [c.id for c in queries.DEFAULT_TAXONOMY.all()]
    counts = {c["id"]: c["item_count"] for c in cats}
    assert sum(counts.values()) == 7
    assert counts["A"] == 3
    assert counts["F"] == 2
    assert counts["C"] == 1  # "Repair of computers..." hits manufacturing's "repair"
    assert counts["T"] == 1
    assert counts["V"] == 0


def test_get_category_items(data_dir):
    cat = queries.get_category("F")
    assert [i["code"] for i in cat["items"]] == ["F", "41"]
    assert queries.get_category("construction")["id"] == "F"
    assert queries.get_category("ZZ") is None


def test_get_classifications_search(data_dir):
    rows = queries.get_classifications(search="crops")
    assert [r["code"] for r in rows] == ["01.1"]
    assert rows[0]["category"] == "A"
    assert len(queries.get_classifications(category="A")) == 3


def test_get_keywords():
    result = queries.get_keywords(["A", "nope"])
    assert result["categories"] == ["A"]
    assert result["keywords"][:2] == ["agriculture", "forestry"]
    assert result["predicate"].startswith("industry ILIKE '%agriculture%' OR ")
    assert queries.get_keywords([])["predicate"] == "TRUE"


def test_get_filters(data_dir):
    options = queries.get_filters()
    assert options["cities"] == ["Espoo", "Helsinki", "Tampere"]
    assert options["company_types"] == ["Ab", "Ky", "Oy"]
    assert len(options["categories"]) == 22


def test_no_data_degrades_to_empty(empty_data_dir):
    assert queries.get_companies() == {"data": [], "count": 0, "page": 1, "limit": 10}
    assert queries.get_company(1) is None
    assert queries.export_companies() == []
    assert queries.get_health()["status"] == "no_data"
    cats = queries.get_categories()
    assert len(cats) == 22
    assert all(c["item_count"] == 0 for c in cats)


def test_store_failure_raises_typed_error(empty_data_dir):
    processed = empty_data_dir / "processed"
    processed.mkdir()
    (processed / "companies.parquet").write_bytes(b"definitely not parquet")
    with pytest.raises(queries.CompanyQueryError):
        queries.get_companies()


def test_blank_company_names_are_dropped(data_dir):
    result = queries.get_companies(limit=100)
    assert result["count"] == 4
    assert all(row["name"] for row in result["data"])


def test_text_nan_is_kept():
    assert queries._clean("NaN") == "NaN"
    rows = queries._run("SELECT 'nan' AS city, CAST('NaN' AS DOUBLE) AS revenue")
    assert rows == [{"city": "nan", "revenue": None}]


def test_category_search_by_label_or_keyword(data_dir):
    farm = [c["id"] for c in queries.get_categories("FARM")]
    assert "A" in farm
    assert "F" not in farm
    assert [c["id"] for c in queries.get_categories("construction")][0] == "F"
    assert queries.get_categories("zzzq") == []
    assert len(queries.get_categories("  ")) == 22
    assert next(c for c in queries.get_categories("farm") if c["id"] == "A")["item_count"] == 3


def test_bad_sort_rejected_without_data(empty_data_dir):
    with pytest.raises(ValueError):
        queries.get_companies(sort_by="nope")


def test_wildcards_in_filters_are_literal(data_dir):
    assert queries.get_companies(CompanyFilters(company_name="%"))["count"] == 0
    assert queries.get_companies(CompanyFilters(search="_"))["count"] == 0
    assert queries.get_companies(CompanyFilters(business_id="567-"))["count"] == 1


def test_export_xlsx(data_dir):
    content = queries.export_xlsx(categories=["A"])
    assert content[:2] == b"PK"
    df = pd.read_excel(io.BytesIO(content), sheet_name="Companies")
    assert list(df.columns) == queries.EXPORT_COLUMNS
    assert list(df["name"]) == ["Acme Farming Oy", "Forest Logging Ky"]
