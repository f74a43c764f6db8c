"""Turns census profiles and query results into rows for the side panels"""
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from config import Config
from models import CensusProfile

NA = "N/A"

INSTRUCTIONS = [
    "Click on the map to explore nearby cities",
    "Click on the regions to see detailed demographic data",
    "Use the dropdown to switch between state, county, and city boundaries",
    "Draw polygon using the polygon tool for custom area queries",
]


@dataclass(frozen=True)
class StatRow:
    label: str
    value: str


@dataclass(frozen=True)
class Section:
    title: str
    rows: List[StatRow]


def _as_number(value: Any) -> Optional[Union[int, float]]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.replace(',', '').strip()
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() and '.' not in text else number
    return None


def _group(number: Union[int, float]) -> str:
    if isinstance(number, float) and not number.is_integer():
        return f"{number:,.2f}".rstrip('0').rstrip('.')
    return f"{int(number):,}"


def format_number(value: Any) -> str:
    """Thousands-separated number, or N/A when missing."""
    if value is None:
        return NA
    number = _as_number(value)
    return _group(number) if number is not None else str(value)


def format_currency(value: Any) -> str:
    """Dollar amount; numeric strings are grouped, other strings pass through."""
    if value is None:
        return NA
    number = _as_number(value)
    return f"${_group(number)}" if number is not None else f"${value}"


def format_percent(value: Any) -> str:
    # Empty strings and zero render as N/A, matching the census panel
    return f"{value or NA}%"


def build_sections(profile: CensusProfile) -> List[Section]:
    """Population, Demographics and Economics sections of a profile card."""
    pop = profile.population
    demo = profile.demographics
    socio = profile.socio_economic

    population = [
        StatRow("Total", format_number(pop.pop_census_apr2020) if pop.pop_census_apr2020 else NA),
    ]
    demographics = [
        StatRow("Under 18", format_percent(demo.persons_under_18_percent)),
        StatRow("65+", format_percent(demo.persons_65_over_percent)),
        StatRow("Hispanic/Latino", format_percent(demo.hispanic_or_latino_percent)),
        StatRow("White", format_percent(demo.white_alone_percent)),
        StatRow("Black", format_percent(demo.black_alone_percent)),
    ]
    economics = [
        StatRow(label, format_currency(value))
        for label, value in (
            ("Household Income", socio.median_household_income),
            ("Per Capita Income", socio.per_capita_income),
            ("Median Rent", socio.median_gross_rent),
            ("Home Value", socio.median_owner_value),
        )
        if value
    ]
    return [
        Section("Population", population),
        Section("Demographics", demographics),
        Section("Economics", economics),
    ]


def quickfacts_url(profile: CensusProfile) -> str:
    return f"{Config.QUICKFACTS_URL}{profile.quick_fact_slug or ''}"


def sidebar_context(profile: Optional[CensusProfile]) -> dict:
    """Template context for templates/sidebar.html."""
    if profile is None:
        return {'profile': None, 'instructions': INSTRUCTIONS}
    return {
        'profile': profile,
        'title': profile.name or "Area Profile",
        'sections': build_sections(profile),
        'quickfacts_url': quickfacts_url(profile),
        'instructions': INSTRUCTIONS,
    }


def format_distance(distance_km: Optional[float]) -> str:
    return f"{distance_km:.1f} km" if distance_km is not None else ""
