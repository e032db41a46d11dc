"""Normalization of raw resolver results into location records."""

from typing import Optional

from .countries import country_name
from .models import LocationRecord
from .resolver import AdminArea, NamedArea, RankedCandidates


def admin_area_name(area: Optional[AdminArea]) -> str:
    if area is None:
        return ""
    if isinstance(area, NamedArea):
        return area.name
    return area.code


def build_display_name(
    name: str, admin_level2_name: str, admin_level1_name: str, country: str
) -> str:
    parts = [name]
    if admin_level2_name and admin_level2_name != name:
        parts.append(admin_level2_name)
    if admin_level1_name:
        parts.append(admin_level1_name)
    if country:
        parts.append(country)
    return ", ".join(part for part in parts if part)


def format_location(raw_result: Optional[RankedCandidates]) -> Optional[LocationRecord]:
    """Turn the first candidate of the first rank into a ``LocationRecord``.

    Returns ``None`` when the resolver produced no candidate.
    """
    if not raw_result or not raw_result[0]:
        return None

    candidate = raw_result[0][0]
    name = candidate.name or ""
    admin_level1_name = admin_area_name(candidate.admin1)
    admin_level2_name = admin_area_name(candidate.admin2)
    country_code = candidate.country_code or ""
    country = country_name(country_code)

    return LocationRecord(
        name=name,
        admin_level1_name=admin_level1_name,
        admin_level2_name=admin_level2_name,
        country_code=country_code,
        country_name=country,
        display_name=build_display_name(
            name, admin_level2_name, admin_level1_name, country
        ),
        population=candidate.population or 0,
        feature_code=candidate.feature_code or "",
    )
