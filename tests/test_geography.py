"""Tests for lead and territory geography normalisation."""

from types import SimpleNamespace

from app.core.geography import (
    Geography,
    TerritoryKey,
    normalize_industry,
    normalize_name,
    normalize_state,
    normalize_territory_filter,
    normalize_territory_value,
    normalize_zipcode,
)
from app.schemas.common import TerritoryType


class TestNormalizers:
    def test_zip_plus_four_trimmed_to_five_digits(self):
        assert normalize_zipcode("75201-1234") == "75201"
        assert normalize_zipcode(" 75201 ") == "75201"
        assert normalize_zipcode("752011234") == "75201"

    def test_non_us_zip_kept_as_trimmed_text(self):
        assert normalize_zipcode(" SW1A 1AA ") == "SW1A 1AA"

    def test_blank_values_become_none(self):
        assert normalize_zipcode("   ") is None
        assert normalize_name("  ") is None
        assert normalize_state("") is None
        assert normalize_zipcode(None) is None

    def test_names_casefolded_and_whitespace_collapsed(self):
        assert normalize_name("  Dallas   County ") == "dallas county"

    def test_state_upper_cased(self):
        assert normalize_state(" tx ") == "TX"

    def test_industry_matches_case_insensitively(self):
        assert normalize_industry(" Roofing ") == normalize_industry("roofing")

    def test_territory_value_uses_type_specific_rule(self):
        assert normalize_territory_value("zipcode", "75201-0001") == "75201"
        assert normalize_territory_value("state", "tx") == "TX"
        assert normalize_territory_value("city", "DALLAS") == "dallas"

    def test_filter_infers_type_from_value(self):
        assert normalize_territory_filter("75201-1234") == "75201"
        assert normalize_territory_filter(" tx ") == "TX"
        assert normalize_territory_filter("Dallas  County") == "dallas county"
        assert normalize_territory_filter("   ") is None

    def test_filter_honours_explicit_type(self):
        assert normalize_territory_filter("Ut", "city") == "ut"
        assert normalize_territory_filter("ut", "state") == "UT"


class TestGeography:
    def test_from_lead_normalises_every_field(self):
        lead = SimpleNamespace(
            zipcode="75201-4444", city=" Dallas ", county="Dallas County", state="tx"
        )
        geography = Geography.from_lead(lead)
        assert geography == Geography("75201", "dallas", "dallas county", "TX")

    def test_lookups_most_specific_first(self):
        geography = Geography(zipcode="75201", city="dallas", state="TX")
        assert geography.lookups() == [
            (TerritoryType.zipcode, "75201"),
            (TerritoryType.city, "dallas"),
            (TerritoryType.state, "TX"),
        ]

    def test_empty_geography(self):
        assert Geography().is_empty
        assert Geography.from_lead(SimpleNamespace(zipcode=" ")).is_empty
        assert not Geography(state="TX").is_empty


class TestTerritoryKey:
    def test_str_without_industry(self):
        assert str(TerritoryKey("zipcode", "75201")) == "zipcode:75201"

    def test_str_with_industry(self):
        assert str(TerritoryKey("city", "dallas", "roofing")) == "city:dallas:roofing"
