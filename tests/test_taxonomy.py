"""Tests for the category taxonomy table."""

import pytest
from pydantic import ValidationError

from pipeline.taxonomy import (
    DEFAULT_TAXONOMY,
    FALLBACK_ID,
    CategoryDefinition,
    Taxonomy,
    build_taxonomy,
)


def test_default_taxonomy_shape():
    assert len(DEFAULT_TAXONOMY) == 22
    assert DEFAULT_TAXONOMY.ids[0] == "A"
    assert DEFAULT_TAXONOMY.ids[-1] == "V"
    assert DEFAULT_TAXONOMY.fallback.id == FALLBACK_ID == "T"
    assert sum(cat.fallback for cat in DEFAULT_TAXONOMY.all()) == 1


def test_all_keywords_lowercase_and_non_empty():
    for cat in DEFAULT_TAXONOMY.all():
        assert cat.keywords, f"{cat.id} has no keywords"
        for kw in cat.keywords:
            assert kw and kw == kw.lower(), f"{cat.id}: bad keyword {kw!r}"


def test_by_id_and_slug_alias():
    assert DEFAULT_TAXONOMY.by_id("A").label == "Agriculture & Farming"
    assert DEFAULT_TAXONOMY.by_id("agriculture") is DEFAULT_TAXONOMY.by_id("A")
    assert DEFAULT_TAXONOMY.by_id("realestate").id == "M"


def test_by_id_unknown_is_none():
    assert DEFAULT_TAXONOMY.by_id("ZZ") is None
    assert DEFAULT_TAXONOMY.by_id("") is None
    assert DEFAULT_TAXONOMY.by_id(None) is None


def test_keywords_are_normalized():
    cat = CategoryDefinition(id="X", slug="x", label="X", keywords=["  Farming ", "CROP"])
    assert cat.keywords == ("farming", "crop")


def test_empty_keyword_list_rejected():
    with pytest.raises(ValidationError):
        CategoryDefinition(id="X", slug="x", label="X", keywords=[])
    with pytest.raises(ValidationError):
        CategoryDefinition(id="X", slug="x", label="X", keywords=["ok", "  "])


def test_definitions_are_immutable():
    cat = DEFAULT_TAXONOMY.by_id("A")
    with pytest.raises(ValidationError):
        cat.label = "changed"


def test_taxonomy_requires_exactly_one_fallback():
    with pytest.raises(ValueError, match="fallback"):
        build_taxonomy([("A", "a", "A", ["x"]), ("B", "b", "B", ["y"])], fallback_id="Z")


def test_taxonomy_rejects_duplicates_and_empty():
    with pytest.raises(ValueError, match="duplicate category id"):
        build_taxonomy([("A", "a", "A", ["x"]), ("A", "b", "B", ["y"])], fallback_id="A")
    with pytest.raises(ValueError, match="duplicate category slug"):
        build_taxonomy([("A", "a", "A", ["x"]), ("B", "a", "B", ["y"])], fallback_id="A")
    with pytest.raises(ValueError):
        Taxonomy([])


def test_search_matches_label_or_keyword():
    taxonomy = build_taxonomy(
        [
            ("A", "agriculture", "Agriculture", ["farming"]),
            ("B", "mining", "Mining", ["quarrying"]),
            ("T", "other", "Other Services", ["repair"]),
        ],
        fallback_id="T",
    )
    assert [c.id for c in taxonomy.search("FARM")] == ["A"]
    assert [c.id for c in taxonomy.search("services")] == ["T"]
    assert [c.id for c in taxonomy.search("r")] == ["A", "B", "T"]
    assert taxonomy.search("nothing") == ()
    assert taxonomy.search(None) == taxonomy.all()
