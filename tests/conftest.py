"""Shared fixtures: a tiny raw dataset run through the real transform."""

from __future__ import annotations

import pytest

from api import queries
from pipeline import transform as transform_mod
from pipeline.classifier import BucketCache

CLASSIFICATIONS_CSV = """\
"code";"level";"classificationItemName";"note"
"A";1;"Agriculture, forestry and fishing";""
"'01'";2;"Crop and animal production, hunting and related service activities";""
"'01.1'";3;"Growing of non-perennial crops";""
"F";1;"Construction";""
"'41'";2;"Construction of buildings";""
"'95'";2;"Repair of computers and personal and household goods";""
"X";1;"Xyzzy qwv";""
"""

COMPANIES_CSV = """\
business_id,name,industry,city,company_type,status,registration_date,revenue
1234567-8,Acme Farming Oy,Mixed farming,Helsinki,Oy,active,2015-03-01,1200000
2345678-9,Bolt Construction Ab,Construction of buildings,Espoo,Ab,active,2019-06-15,800000
3456789-0,Code Works Oy,Computer programming activities,Helsinki,Oy,inactive,2021-01-10,250000
4567890-1,Forest Logging Ky,Logging,Tampere,Ky,active,2010-09-30,
5678901-2,"   ",Mixed farming,Helsinki,Oy,active,2020-02-02,100
"""


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Raw CSVs → transform → processed/aggregated parquets under tmp_path."""
    raw = tmp_path / "raw"
    processed = tmp_path / "processed"
    agg = tmp_path / "aggregated"
    raw.mkdir()
    (raw / "classifications.csv").write_text(CLASSIFICATIONS_CSV, encoding="utf-8")
    (raw / "companies.csv").write_text(COMPANIES_CSV, encoding="utf-8")

    monkeypatch.setattr(transform_mod, "RAW_DIR", raw)
    monkeypatch.setattr(transform_mod, "PROCESSED_DIR", processed)
    monkeypatch.setattr(transform_mod, "AGG_DIR", agg)
    monkeypatch.setattr(queries, "_PROCESSED", processed)
    monkeypatch.setattr(queries, "_AGG", agg)
    monkeypatch.setattr(queries, "_buckets", BucketCache(queries._classifier))

    transform_mod.transform()
    return tmp_path


@pytest.fixture
def empty_data_dir(tmp_path, monkeypatch):
    """Query layer pointed at a directory with no data files."""
    monkeypatch.setattr(queries, "_PROCESSED", tmp_path / "processed")
    monkeypatch.setattr(queries, "_AGG", tmp_path / "aggregated")
    monkeypatch.setattr(queries, "_buckets", BucketCache(queries._classifier))
    return tmp_path
