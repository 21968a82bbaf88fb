"""
Unit tests for the static measure catalog and reference data.

Run with: pytest klimakur_model/test_catalog.py -v
"""

import math

import pytest

from .catalog import (
    CATALOG,
    CATEGORIES,
    COST_BUCKETS,
    CONFLICT_GROUPS,
    TARGET_SCENARIOS,
    MeasureRecord,
    bucket_for,
    build_catalog,
    catalog_titles,
    document_url,
    extract_measure_id,
    find_measures,
    slugify,
    validate_catalog,
)


class TestMeasureIds:
    """Tests for measure id extraction."""

    def test_simple_code(self):
        """Leading code is the id."""
        assert extract_measure_id("T05 100% av nye personbiler er elektriske innen 2025") == "T05"

    def test_multi_letter_code(self):
        assert extract_measure_id("AT02 70% av nye ikke-veigående maskiner") == "AT02"

    def test_title_without_code(self):
        """Titles without a code use the full title."""
        assert extract_measure_id("Diverse nulltiltak") == "Diverse nulltiltak"

    def test_record_fills_id(self):
        m = MeasureRecord("J02 Redusert matsvinn", "Jordbruk", 1530, 500.0)
        assert m.id == "J02"
        assert m.potential_mt == pytest.approx(1.53)
        assert m.has_known_cost

    def test_unknown_cost_is_not_zero(self):
        m = MeasureRecord("X1 Test", "Jordbruk", 10)
        assert m.cost is None
        assert not m.has_known_cost


class TestCatalog:
    """Tests for the compiled-in catalog."""

    def test_size(self):
        assert len(CATALOG) == 63

    def test_categories_known(self):
        assert {m.category for m in CATALOG} <= set(CATEGORIES)

    def test_potentials_non_negative(self):
        assert all(m.potential >= 0 for m in CATALOG)

    def test_range_labels_map_to_costs(self):
        by_id = {m.id: m for m in CATALOG}
        assert by_id["T03"].cost == 500.0
        assert by_id["T01"].cost == 1500.0
        assert by_id["T02"].cost == 2000.0
        assert by_id["S01"].cost is None

    def test_duplicate_title_kept_as_distinct_rows(self):
        """S09 appears under two categories."""
        rows = find_measures(CATALOG, "S09 Tiltak innen havbruk (ammoniakk/plug-in)")
        assert len(rows) == 2
        assert {r.category for r in rows} == {"Sjøfart/fiske/havbruk", "Annen transport"}

    def test_catalog_titles_distinct(self):
        titles = catalog_titles(CATALOG)
        assert len(titles) == len(set(titles))
        assert len(titles) == 62

    def test_find_by_id_returns_every_title(self):
        """O01 is shared by two different titles."""
        rows = find_measures(CATALOG, "O01")
        assert len(rows) == 2
        assert len({r.title for r in rows}) == 2

    def test_find_unknown(self):
        assert find_measures(CATALOG, "ZZ99") == []

    def test_build_catalog_unknown_label(self):
        """Unrecognised labels give an unknown cost."""
        (m,) = build_catalog([("Q1 Test", "CCS", 5, "ukjent")])
        assert m.cost is None
        assert m.cost_range_label == "ukjent"


class TestValidateCatalog:
    """Tests for catalog validation."""

    def test_flags_known_duplicates(self):
        issues = validate_catalog(CATALOG)
        assert any("S09" in i and "Duplicate title" in i for i in issues)
        assert any("'O01'" in i for i in issues)

    def test_clean_catalog(self):
        catalog = build_catalog([
            ("A1 One", "CCS", 10, "<500"),
            ("A2 Two", "CCS", 20, ">1500"),
        ])
        assert validate_catalog(catalog) == []

    def test_flags_bad_values(self):
        catalog = (
            MeasureRecord("B1 Negative", "CCS", -1, 100.0),
            MeasureRecord("B2 Cheap", "Nowhere", 1, -5.0),
        )
        issues = validate_catalog(catalog)
        assert any("negative potential" in i for i in issues)
        assert any("negative cost" in i for i in issues)
        assert any("unknown category" in i for i in issues)


class TestTargets:
    """Tests for target scenarios."""

    def test_levels(self):
        assert TARGET_SCENARIOS["55"].level == pytest.approx(22.95)
        assert TARGET_SCENARIOS["70"].level == pytest.approx(15.3)
        assert TARGET_SCENARIOS["75"].level == pytest.approx(12.75)


class TestConflictGroups:
    """Tests for declared conflict groups."""

    def test_groups_have_at_least_two_ids(self):
        assert all(len(g.ids) >= 2 for g in CONFLICT_GROUPS)

    def test_group_ids_exist_in_catalog(self):
        ids = {m.id for m in CATALOG}
        for g in CONFLICT_GROUPS:
            assert g.ids <= ids, g.name


class TestCostBuckets:
    """Tests for cost bucket assignment."""

    @pytest.mark.parametrize("cost,expected", [
        (0.0, "<500"),
        (500.0, "<500"),
        (500.5, "500-1500"),
        (1500.0, "500-1500"),
        (1501.0, ">1500"),
        (1e9, ">1500"),
    ])
    def test_upper_inclusive(self, cost, expected):
        assert bucket_for(cost, False) == expected

    def test_assumed_goes_to_assumed_bucket(self):
        assert bucket_for(100.0, True) == "Antatt"

    def test_every_cost_covered(self):
        """Numeric buckets leave no gaps."""
        numeric = [b for b in COST_BUCKETS if not b.assumed]
        assert numeric[0].lower == -math.inf
        assert numeric[-1].upper == math.inf
        for a, b in zip(numeric, numeric[1:]):
            assert a.upper == b.lower

    def test_uncovered_raises(self):
        with pytest.raises(ValueError):
            bucket_for(100.0, True, buckets=COST_BUCKETS[1:])


class TestDocumentUrl:
    """Tests for reference-document addresses."""

    def test_slugify_norwegian(self):
        assert slugify("Sjøfart/fiske/havbruk") == "sjofart-fiske-havbruk"
        assert slugify("Økt bruk av biodrivstoff") == "okt-bruk-av-biodrivstoff"
        assert slugify("Ærlig på én åker") == "aerlig-pa-en-aker"

    def test_url_with_code(self):
        m = find_measures(CATALOG, "J02")[0]
        assert document_url(m, "https://example.org/docs/") == \
            "https://example.org/docs/jordbruk/j02-redusert-matsvinn"

    def test_url_without_code(self):
        m = find_measures(CATALOG, "Diverse nulltiltak")[0]
        assert document_url(m, "https://example.org") == \
            "https://example.org/andre-tiltak/diverse-nulltiltak"
