"""Configuration settings for the Boundary Data Explorer"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_float_pair(name, default):
    raw = os.getenv(name)
    if not raw:
        return default
    lat, lng = (float(part) for part in raw.split(','))
    return (lat, lng)


class Config:
    # Remote geospatial / census API
    GEO_API_URL = os.getenv('GEO_API_URL', 'http://localhost:8000/api').rstrip('/')

    # Optional Mapbox token; CartoDB Positron tiles are used when unset
    MAPBOX_TOKEN = os.getenv('MAPBOX_TOKEN')
    MAPBOX_STYLE = os.getenv('MAPBOX_STYLE', 'mapbox/light-v10')

    # Request handling
    REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', '30'))
    RETRY_ATTEMPTS = int(os.getenv('RETRY_ATTEMPTS', '3'))
    RETRY_BACKOFF = float(os.getenv('RETRY_BACKOFF', '1.0'))

    # Circuit breaker around the remote API
    CIRCUIT_FAILURE_THRESHOLD = int(os.getenv('CIRCUIT_FAILURE_THRESHOLD', '5'))
    CIRCUIT_RECOVERY_TIMEOUT = int(os.getenv('CIRCUIT_RECOVERY_TIMEOUT', '60'))

    # Queries
    DEFAULT_NEARBY_RADIUS = int(os.getenv('DEFAULT_NEARBY_RADIUS', '25000'))  # meters
    QUERY_WORKERS = int(os.getenv('QUERY_WORKERS', '4'))

    # Initial map view (California)
    MAP_CENTER = _env_float_pair('MAP_CENTER', (36.7783, -119.4179))
    MAP_ZOOM = int(os.getenv('MAP_ZOOM', '5'))

    # Caching
    USE_SIMPLE_CACHE = os.getenv('USE_SIMPLE_CACHE', 'false').lower() == 'true'
    REDIS_URL = os.getenv('REDIS_URL')
    CACHE_DEFAULT_TIMEOUT = int(os.getenv('CACHE_DEFAULT_TIMEOUT', '3600'))
    API_CACHE_TIMEOUT = int(os.getenv('API_CACHE_TIMEOUT', '600'))
    VIEW_STATE_TIMEOUT = int(os.getenv('VIEW_STATE_TIMEOUT', '86400'))

    # Web
    SECRET_KEY = os.getenv('SECRET_KEY')
    RELAXED_CSP = os.getenv('RELAXED_CSP', 'false').lower() == 'true'
    PORT = int(os.getenv('PORT', '5001'))

    # Census QuickFacts deep link
    QUICKFACTS_URL = "https://www.census.gov/quickfacts/fact/table/"
