"""Data models for the Boundary Data Explorer

These mirror the records exchanged with the remote geospatial/census API.
All of them are immutable snapshots fetched per query; statistics are
optional and rendered as N/A when absent.
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

BoundaryType = Literal["state", "county", "city"]
BOUNDARY_TYPES = ("state", "county", "city")

# The API serves some statistics as numbers and some as preformatted strings
Stat = Optional[Union[int, float, str]]


class ApiRecord(BaseModel):
    """Base for API payloads: unknown fields are kept, not rejected."""
    model_config = ConfigDict(extra='allow', frozen=True)


class FeatureProperties(ApiRecord):
    uuid: str
    slug: Optional[str] = None
    name: Optional[str] = None
    boundaryType: Optional[BoundaryType] = None
    # Assigned locally when a feature is first registered
    color: Optional[str] = None
    hoverColor: Optional[str] = None
    label_lat: Optional[float] = None
    label_lng: Optional[float] = None


class Feature(ApiRecord):
    type: Literal["Feature"] = "Feature"
    geometry: Dict[str, Any]
    properties: FeatureProperties

    @property
    def uuid(self) -> str:
        return self.properties.uuid


class FeatureCollection(ApiRecord):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[Feature] = Field(default_factory=list)


class NearbyCity(ApiRecord):
    uuid: str
    name: str
    lat: float
    lng: float
    distance_km: Optional[float] = None


class Region(ApiRecord):
    city: Optional[str] = None
    county: Optional[str] = None
    msa: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.city or self.county or self.msa)


class Population(ApiRecord):
    uuid: Optional[str] = None
    pop_estimate_july_2024: Stat = None
    pop_estimate_july_2023: Stat = None
    pop_estimate_base_apr2020_v2024: Stat = None
    pop_estimate_base_apr2020_v2023: Stat = None
    pop_percent_change_apr2020_to_july2024: Stat = None
    pop_percent_change_apr2020_to_july2023: Stat = None
    pop_census_apr2020: Stat = None
    pop_census_apr2010: Stat = None


class Demographics(ApiRecord):
    uuid: Optional[str] = None
    persons_under_5_percent: Stat = None
    persons_under_18_percent: Stat = None
    persons_65_over_percent: Stat = None
    female_persons_percent: Stat = None
    white_alone_percent: Stat = None
    black_alone_percent: Stat = None
    american_indian_alaska_native_percent: Stat = None
    asian_alone_percent: Stat = None
    native_hawaiian_pacific_islander_percent: Stat = None
    two_or_more_races_percent: Stat = None
    hispanic_or_latino_percent: Stat = None
    white_alone_not_hispanic_percent: Stat = None
    veterans_2019_2023: Stat = None
    foreign_born_percent_2019_2023: Stat = None


class Business(ApiRecord):
    uuid: Optional[str] = None
    total_employer_establishments: Stat = None
    total_employment: Stat = None
    total_annual_payroll: Stat = None
    total_employment_percent_change: Stat = None
    total_nonemployer_establishments: Stat = None
    all_employer_firms: Stat = None
    men_owned_employer_firms: Stat = None
    women_owned_employer_firms: Stat = None
    minority_owned_employer_firms: Stat = None
    nonminority_owned_employer_firms: Stat = None
    veteran_owned_employer_firms: Stat = None
    nonveteran_owned_employer_firms: Stat = None


class Geography(ApiRecord):
    uuid: Optional[str] = None
    population_per_sq_mile_2020: Stat = None
    population_per_sq_mile_2010: Stat = None
    land_area_sq_miles_2020: Stat = None
    land_area_sq_miles_2010: Stat = None
    fips_code: Optional[str] = None


class SocioEconomic(ApiRecord):
    uuid: Optional[str] = None
    housing_units_v2023: Stat = None
    owner_occupied_rate: Stat = None
    median_owner_value: Stat = None
    median_owner_cost_with_mortgage: Stat = None
    median_owner_cost_without_mortgage: Stat = None
    median_gross_rent: Stat = None
    building_permits: Stat = None
    households: Stat = None
    persons_per_household: Stat = None
    same_house_living_percent: Stat = None
    language_non_english_percent: Stat = None
    households_with_computer_percent: Stat = None
    households_with_broadband_percent: Stat = None
    high_school_grad_percent: Stat = None
    bachelors_degree_percent: Stat = None
    disability_percent: Stat = None
    no_health_insurance_percent: Stat = None
    civilian_labor_force_total_percent: Stat = None
    civilian_labor_force_female_percent: Stat = None
    total_accommodation_food_sales: Stat = None
    total_health_care_revenue: Stat = None
    total_transportation_revenue: Stat = None
    total_retail_sales: Stat = None
    total_retail_sales_per_capita: Stat = None
    mean_travel_time: Stat = None
    median_household_income: Stat = None
    per_capita_income: Stat = None
    persons_in_poverty_percent: Stat = None


class CensusProfile(ApiRecord):
    uuid: Optional[str] = None
    name: Optional[str] = None
    quick_fact_slug: Optional[str] = None
    year: Optional[int] = None
    population: Population = Field(default_factory=Population)
    demographics: Demographics = Field(default_factory=Demographics)
    business: Business = Field(default_factory=Business)
    geography: Geography = Field(default_factory=Geography)
    socio_economic: SocioEconomic = Field(default_factory=SocioEconomic)


def empty_collection() -> Dict[str, Any]:
    """GeoJSON FeatureCollection with no features."""
    return {"type": "FeatureCollection", "features": []}


def point_feature(lng: float, lat: float, properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": dict(properties or {}),
    }
