"""Typed client for the remote geospatial / census API.

Endpoints (relative to ``Config.GEO_API_URL``):

- ``GET  /boundaries/?type=&bbox=&zoom=``       boundary FeatureCollection
- ``GET  /query/nearby/?lat=&lng=&radius=``     cities near a point
- ``GET  /query/encompassing/?lat=&lng=``       city / county / MSA containing a point
- ``POST /query/by-polygon/``                   cities inside ``{"geometry": ...}``
- ``GET  /census/profile/<type>/<uuid>/``       census profile of a boundary

All spatial work happens server side; this module only shapes requests and
validates responses into the models in ``models.py``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from config import Config
from models import CensusProfile, FeatureCollection, NearbyCity, Region
from utils.api_manager import APIManager, GeoApiClientError, GeoApiError, GeoApiUnavailable
from utils.circuit_breaker import CircuitBreaker, circuit_breaker_registry
from utils.metrics import metrics_collector

logger = logging.getLogger(__name__)

__all__ = ['GeoApiClient', 'GeoApiClientError', 'GeoApiError', 'GeoApiUnavailable', 'format_bbox']

Bbox = Union[str, Sequence[float]]


def format_bbox(bbox: Bbox) -> str:
    """Normalize a bounding box to the ``west,south,east,north`` string the API expects."""
    if isinstance(bbox, str):
        return bbox
    west, south, east, north = bbox
    return ','.join(str(v) for v in (west, south, east, north))


class GeoApiClient:
    def __init__(self, config: Optional[Config] = None, manager: Optional[APIManager] = None):
        self.config = config if config else Config()
        if manager is None:
            breaker = circuit_breaker_registry.get('geo_api') or circuit_breaker_registry.register(
                CircuitBreaker(
                    'geo_api',
                    failure_threshold=self.config.CIRCUIT_FAILURE_THRESHOLD,
                    recovery_timeout=self.config.CIRCUIT_RECOVERY_TIMEOUT,
                    tracked_exceptions=(GeoApiError,),
                    excluded_exceptions=(GeoApiClientError,),
                )
            )
            manager = APIManager(
                self.config.GEO_API_URL,
                timeout=self.config.REQUEST_TIMEOUT,
                max_retries=self.config.RETRY_ATTEMPTS,
                backoff_factor=self.config.RETRY_BACKOFF,
                breaker=breaker,
            )
        self.manager = manager

    @metrics_collector.track_api_call('boundaries')
    def fetch_boundaries(self, boundary_type: str, bbox: Bbox, zoom: float) -> FeatureCollection:
        data = self.manager.get('/boundaries/', params={
            'type': boundary_type,
            'bbox': format_bbox(bbox),
            'zoom': zoom,
        })
        return self._parse(FeatureCollection, data, '/boundaries/')

    @metrics_collector.track_api_call('nearby')
    def fetch_nearby_cities(self, lat: float, lng: float, radius: Optional[int] = None) -> List[NearbyCity]:
        if radius is None:
            radius = self.config.DEFAULT_NEARBY_RADIUS
        data = self.manager.get('/query/nearby/', params={'lat': lat, 'lng': lng, 'radius': radius})
        return self._parse_cities(data, '/query/nearby/')

    @metrics_collector.track_api_call('encompassing')
    def fetch_encompassing_regions(self, lat: float, lng: float) -> Region:
        data = self.manager.get('/query/encompassing/', params={'lat': lat, 'lng': lng})
        return self._parse(Region, data, '/query/encompassing/')

    @metrics_collector.track_api_call('by_polygon')
    def fetch_by_polygon(self, geometry: Dict[str, Any]) -> List[NearbyCity]:
        data = self.manager.post('/query/by-polygon/', {'geometry': geometry})
        return self._parse_cities(data, '/query/by-polygon/')

    @metrics_collector.track_api_call('census_profile')
    def fetch_census_data(self, boundary_type: str, object_uuid: str) -> CensusProfile:
        endpoint = f'/census/profile/{boundary_type}/{object_uuid}/'
        data = self.manager.get(endpoint)
        return self._parse(CensusProfile, data, endpoint)

    def _parse_cities(self, data: Any, endpoint: str) -> List[NearbyCity]:
        if not isinstance(data, list):
            raise GeoApiError(f"Unexpected response from {endpoint}: expected a list", endpoint)
        return [self._parse(NearbyCity, item, endpoint) for item in data]

    @staticmethod
    def _parse(model, data: Any, endpoint: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed {model.__name__} from {endpoint}: {e.error_count()} errors")
            raise GeoApiError(f"Unexpected response from {endpoint}", endpoint) from e
