import os

import pytest

os.environ.setdefault('USE_SIMPLE_CACHE', 'true')

from config import Config
from data_collection.geo_api_client import GeoApiError, GeoApiUnavailable
from models import CensusProfile, FeatureCollection, NearbyCity, Region


def square(uuid, name, x, y, size=1.0):
    """Polygon feature with its south-west corner at (x, y)."""
    ring = [[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]
    return {
        'type': 'Feature',
        'geometry': {'type': 'Polygon', 'coordinates': [ring]},
        'properties': {'uuid': uuid, 'name': name, 'slug': name.lower()},
    }


class FakeGeoClient:
    """In-memory stand-in for GeoApiClient that records every call."""

    def __init__(self):
        self.calls = []
        self.fail = set()
        self.unavailable = False
        self.features = {
            'state': [square('ca', 'California', -124, 32, 8), square('nv', 'Nevada', -120, 35, 5)],
            'county': [square('la', 'Los Angeles', -119, 33), square('sd', 'San Diego', -117.5, 32.5)],
            'city': [square('sf', 'San Francisco', -122.6, 37.6, 0.2)],
        }
        self.cities = [
            {'uuid': 'c1', 'name': 'Fresno', 'lat': 36.74, 'lng': -119.78, 'distance_km': 3.24},
            {'uuid': 'c2', 'name': 'Clovis', 'lat': 36.82, 'lng': -119.7, 'distance_km': 12.5},
        ]
        self.region = {'city': 'Fresno', 'county': 'Fresno County', 'msa': 'Fresno, CA'}
        self.profile = {
            'uuid': 'ca',
            'name': 'California',
            'quick_fact_slug': 'CA',
            'year': 2023,
            'population': {'pop_census_apr2020': 39538223},
            'demographics': {'persons_under_18_percent': 22.5, 'hispanic_or_latino_percent': 40.4},
            'socio_economic': {'median_household_income': 91905, 'per_capita_income': 45591},
        }

    def _check(self, name, endpoint):
        if self.unavailable:
            raise GeoApiUnavailable("Circuit breaker geo_api is OPEN (retry in 60s)", endpoint)
        if name in self.fail:
            raise GeoApiError(f"Failed to fetch {endpoint}: Internal Server Error", endpoint, 500)

    def fetch_boundaries(self, boundary_type, bbox, zoom):
        self.calls.append(('boundaries', boundary_type, tuple(bbox) if not isinstance(bbox, str) else bbox, zoom))
        self._check('boundaries', '/boundaries/')
        return FeatureCollection.model_validate(
            {'type': 'FeatureCollection', 'features': self.features.get(boundary_type, [])})

    def fetch_nearby_cities(self, lat, lng, radius=None):
        self.calls.append(('nearby', lat, lng))
        self._check('nearby', '/query/nearby/')
        return [NearbyCity.model_validate(c) for c in self.cities]

    def fetch_encompassing_regions(self, lat, lng):
        self.calls.append(('regions', lat, lng))
        self._check('regions', '/query/encompassing/')
        return Region.model_validate(self.region)

    def fetch_by_polygon(self, geometry):
        self.calls.append(('polygon', geometry['type']))
        self._check('polygon', '/query/by-polygon/')
        return [NearbyCity.model_validate(c) for c in self.cities[:1]]

    def fetch_census_data(self, boundary_type, object_uuid):
        self.calls.append(('census', boundary_type, object_uuid))
        self._check('census', f'/census/profile/{boundary_type}/{object_uuid}/')
        return CensusProfile.model_validate(self.profile)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


class ExplorerTestConfig(Config):
    TESTING = True
    USE_SIMPLE_CACHE = True
    SECRET_KEY = 'test-secret'
    MAPBOX_TOKEN = None


@pytest.fixture
def fake_client():
    return FakeGeoClient()


@pytest.fixture
def app(fake_client):
    from app import create_app
    app = create_app(ExplorerTestConfig, geo_client=fake_client)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
