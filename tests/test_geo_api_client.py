import pytest

from config import Config
from data_collection.geo_api_client import GeoApiClient, GeoApiError, format_bbox


class RecordingManager:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, endpoint, params=None):
        self.calls.append(('GET', endpoint, params))
        return self.response

    def post(self, endpoint, body):
        self.calls.append(('POST', endpoint, body))
        return self.response


def make_client(response):
    manager = RecordingManager(response)
    return GeoApiClient(Config(), manager=manager), manager


def test_format_bbox():
    assert format_bbox([-120, 30, -110, 40]) == '-120,30,-110,40'
    assert format_bbox((-120.5, 30.25, -110.0, 40.0)) == '-120.5,30.25,-110.0,40.0'
    assert format_bbox('-1,-2,3,4') == '-1,-2,3,4'


def test_fetch_boundaries_params_and_parsing():
    payload = {
        'type': 'FeatureCollection',
        'features': [{
            'type': 'Feature',
            'geometry': {'type': 'Point', 'coordinates': [0, 0]},
            'properties': {'uuid': 'u1', 'name': 'Somewhere', 'population': 12},
        }],
    }
    client, manager = make_client(payload)

    collection = client.fetch_boundaries('county', [-120, 30, -110, 40], 6)

    assert manager.calls == [('GET', '/boundaries/', {'type': 'county', 'bbox': '-120,30,-110,40', 'zoom': 6})]
    assert collection.features[0].uuid == 'u1'
    # Unknown properties are kept
    assert collection.features[0].properties.model_dump()['population'] == 12


def test_fetch_nearby_uses_default_radius():
    client, manager = make_client([{'uuid': 'c1', 'name': 'Fresno', 'lat': 36.7, 'lng': -119.8, 'distance_km': 1.5}])

    cities = client.fetch_nearby_cities(36.7, -119.8)

    assert manager.calls[0][1] == '/query/nearby/'
    assert manager.calls[0][2] == {'lat': 36.7, 'lng': -119.8, 'radius': client.config.DEFAULT_NEARBY_RADIUS}
    assert cities[0].name == 'Fresno' and cities[0].distance_km == 1.5


def test_fetch_nearby_explicit_radius():
    client, manager = make_client([])
    assert client.fetch_nearby_cities(1, 2, radius=500) == []
    assert manager.calls[0][2]['radius'] == 500


def test_fetch_encompassing_regions():
    client, manager = make_client({'city': None, 'county': 'Kings County', 'msa': None})
    region = client.fetch_encompassing_regions(36.1, -119.8)
    assert manager.calls[0] == ('GET', '/query/encompassing/', {'lat': 36.1, 'lng': -119.8})
    assert region.county == 'Kings County'
    assert not region.is_empty()


def test_fetch_by_polygon_posts_geometry():
    geometry = {'type': 'Polygon', 'coordinates': [[[0, 0], [1, 0], [1, 1], [0, 0]]]}
    client, manager = make_client([{'uuid': 'c1', 'name': 'Inside', 'lat': 0.5, 'lng': 0.6}])

    cities = client.fetch_by_polygon(geometry)

    assert manager.calls == [('POST', '/query/by-polygon/', {'geometry': geometry})]
    assert cities[0].distance_km is None


def test_fetch_census_data_path():
    client, manager = make_client({'uuid': 'ca', 'name': 'California', 'quick_fact_slug': 'CA',
                                   'population': {'pop_census_apr2020': '39,538,223'}})
    profile = client.fetch_census_data('state', 'ca')

    assert manager.calls[0][1] == '/census/profile/state/ca/'
    assert profile.population.pop_census_apr2020 == '39,538,223'
    assert profile.socio_economic.median_household_income is None


@pytest.mark.parametrize('method, args, response', [
    ('fetch_nearby_cities', (1, 2), {'not': 'a list'}),
    ('fetch_by_polygon', ({'type': 'Polygon'},), [{'name': 'no uuid'}]),
    ('fetch_boundaries', ('state', '0,0,1,1', 3), {'features': [{'geometry': {}, 'properties': {}}]}),
])
def test_malformed_responses_raise_api_error(method, args, response):
    client, _ = make_client(response)
    with pytest.raises(GeoApiError):
        getattr(client, method)(*args)
