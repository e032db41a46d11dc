"""Unit tests for resolver result formatting."""

from offline_geocoder.countries import country_name
from offline_geocoder.formatter import admin_area_name, build_display_name, format_location
from offline_geocoder.resolver import CodeOnly, NamedArea, PlaceCandidate


class TestFormatLocation:
    """Test raw candidate -> LocationRecord."""

    def test_gorakhpur(self, gorakhpur_candidate):
        """Test the documented Gorakhpur example."""
        location = format_location([[gorakhpur_candidate]])

        assert location.name == "Gorakhpur"
        assert location.admin_level1_name == "Uttar Pradesh"
        assert location.admin_level2_name == "Gorakhpur"
        assert location.country_code == "IN"
        assert location.country_name == "India"
        assert location.population == 674246
        assert location.feature_code == "PPLA2"
        assert location.display_name == "Gorakhpur, Uttar Pradesh, India"

    def test_empty_results(self):
        """Test no candidate yields None."""
        assert format_location([]) is None
        assert format_location([[]]) is None
        assert format_location(None) is None

    def test_only_first_candidate_used(self, gorakhpur_candidate, delhi_candidate):
        """Test later candidates and ranks are ignored."""
        location = format_location([[gorakhpur_candidate, delhi_candidate], [delhi_candidate]])
        assert location.name == "Gorakhpur"

    def test_code_only_admin_used_verbatim(self, delhi_candidate):
        """Test a bare admin code passes through as the admin name."""
        location = format_location([[delhi_candidate]])

        assert location.admin_level1_name == "07"
        assert location.admin_level2_name == ""
        assert location.display_name == "New Delhi, 07, India"

    def test_unknown_country_passes_through(self):
        """Test an unmapped country code is used as the country name."""
        candidate = PlaceCandidate(
            name="Reykjavik",
            latitude=64.13548,
            longitude=-21.89541,
            country_code="IS",
            admin1=NamedArea(code="39", name="Capital Region"),
        )
        location = format_location([[candidate]])

        assert location.country_name == "IS"
        assert location.display_name == "Reykjavik, Capital Region, IS"

    def test_defaults_for_missing_fields(self):
        """Test missing values fall back to empty strings and zero population."""
        candidate = PlaceCandidate(name="Nowhere", latitude=0.0, longitude=0.0)
        location = format_location([[candidate]])

        assert location.admin_level1_name == ""
        assert location.admin_level2_name == ""
        assert location.country_code == ""
        assert location.country_name == ""
        assert location.population == 0
        assert location.feature_code == ""
        assert location.display_name == "Nowhere"


class TestDisplayName:
    """Test display name assembly rules."""

    def test_all_parts(self):
        assert (
            build_display_name("Kothrud", "Pune", "Maharashtra", "India")
            == "Kothrud, Pune, Maharashtra, India"
        )

    def test_admin2_equal_to_name_dropped(self):
        assert build_display_name("Pune", "Pune", "Maharashtra", "India") == "Pune, Maharashtra, India"

    def test_empty_parts_dropped(self):
        assert build_display_name("Springfield", "", "", "United States") == "Springfield, United States"
        assert build_display_name("", "", "Bavaria", "") == "Bavaria"


class TestAdminAreas:
    """Test tagged admin area resolution."""

    def test_named_area(self):
        assert admin_area_name(NamedArea(code="36", name="Uttar Pradesh")) == "Uttar Pradesh"

    def test_code_only(self):
        assert admin_area_name(CodeOnly(code="36")) == "36"

    def test_missing(self):
        assert admin_area_name(None) == ""


class TestCountryNames:
    def test_known_code(self):
        assert country_name("GB") == "United Kingdom"

    def test_unknown_code(self):
        assert country_name("XX") == "XX"
