"""Map view controller for the Boundary Data Explorer

`BoundaryExplorer` applies user interactions (viewport changes, clicks,
polygon drawing) to a per-session `ExplorerState`, calling the remote API
through `GeoApiClient` and reflecting the results into GeoJSON sources and
panel data for the page.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional

from config import Config
from data_collection.geo_api_client import GeoApiClient, GeoApiError
from models import BOUNDARY_TYPES, CensusProfile, NearbyCity, Region, empty_collection, point_feature
from utils.boundary_registry import BoundaryRegistry
from utils.cache import cache
from utils.metrics import boundary_features_gauge, metrics_collector

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Loading flag names, one per kind of request
LOADING_KEYS = ('boundaries', 'cities', 'regions', 'polygon', 'census')


@dataclass
class ExplorerState:
    """Everything the page shows for one browser session."""
    boundary_type: str = 'state'
    registry: BoundaryRegistry = field(default_factory=BoundaryRegistry)
    boundaries: List[Dict[str, Any]] = field(default_factory=list)
    selected: List[Dict[str, Any]] = field(default_factory=list)
    nearby_cities: List[NearbyCity] = field(default_factory=list)
    polygon_results: List[NearbyCity] = field(default_factory=list)
    encompassing_regions: Optional[Region] = None
    census_profile: Optional[CensusProfile] = None
    drawing_mode: bool = False
    has_polygon: bool = False
    loading: Dict[str, bool] = field(default_factory=lambda: {k: False for k in LOADING_KEYS})


class BoundaryExplorer:
    """Orchestrates API calls for one session's state."""

    def __init__(self, client: GeoApiClient, state: Optional[ExplorerState] = None,
                 max_workers: int = 4):
        self.client = client
        self.state = state if state is not None else ExplorerState()
        self.max_workers = max_workers

    @contextmanager
    def _loading(self, key: str, action: str):
        """Set a loading flag around a fetch; failures are logged and swallowed."""
        self.state.loading[key] = True
        ok = True
        try:
            yield
        except GeoApiError as e:
            ok = False
            logger.error(f"Error loading {action}: {e}")
        finally:
            self.state.loading[key] = False
            metrics_collector.record_view_action(action, ok)

    # --- Boundaries ---

    def load_boundaries(self, bbox, zoom: float, clear_existing: bool = True):
        """Fetch boundaries for the viewport and merge them into the registry.

        With `clear_existing` the registry and selection are reset first and
        only the fetched features are shown; otherwise every feature loaded
        so far stays on the map.
        """
        state = self.state
        if state.drawing_mode and not clear_existing:
            logger.debug("Ignoring viewport reload while drawing")
            return

        with self._loading('boundaries', 'boundaries'):
            collection = self.client.fetch_boundaries(state.boundary_type, bbox, zoom)

            if clear_existing:
                state.registry.reset()
                self.clear_selection()

            processed = state.registry.merge(collection.features, state.boundary_type)
            state.boundaries = processed if clear_existing else state.registry.features()
            boundary_features_gauge.set(len(state.registry))
            logger.info(f"Loaded {len(collection.features)} {state.boundary_type} boundaries "
                        f"({len(state.registry)} registered)")

    def change_boundary_type(self, boundary_type: str, bbox, zoom: float):
        if boundary_type not in BOUNDARY_TYPES:
            raise ValueError(f"Unknown boundary type: {boundary_type}")
        self.state.boundary_type = boundary_type
        self.load_boundaries(bbox, zoom, clear_existing=True)

    # --- Point queries ---

    def load_nearby_cities(self, lat: float, lng: float):
        with self._loading('cities', 'nearby_cities'):
            self.state.nearby_cities = self.client.fetch_nearby_cities(lat, lng)

    def load_encompassing_regions(self, lat: float, lng: float):
        with self._loading('regions', 'regions'):
            self.state.encompassing_regions = self.client.fetch_encompassing_regions(lat, lng)

    def load_census_data(self, boundary_type: str, uuid: str):
        with self._loading('census', 'census'):
            self.state.census_profile = self.client.fetch_census_data(boundary_type, uuid)

    def _run_parallel(self, *loaders):
        """Run independent loaders concurrently; each one handles its own errors."""
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(fn, *args) for fn, *args in loaders]
            for future in as_completed(futures):
                future.result()

    def click_map(self, lat: float, lng: float):
        """Click on empty map: mark the point, then query around it."""
        if self.state.drawing_mode:
            return
        self.clear_selection()
        self.state.selected = [point_feature(lng, lat, {'type': 'click-point'})]
        self._run_parallel(
            (self.load_nearby_cities, lat, lng),
            (self.load_encompassing_regions, lat, lng),
        )

    def click_boundary(self, uuid: str, lat: float, lng: float) -> bool:
        """Click on a boundary: select it, query around the click, load its census profile."""
        if self.state.drawing_mode:
            return False
        feature = self.state.registry.get(uuid)
        if feature is None:
            logger.warning(f"Click on unknown boundary {uuid}")
            return False

        self.state.selected = [feature, point_feature(lng, lat, feature['properties'])]
        # The feature remembers its own type; the dropdown may have changed since
        boundary_type = feature['properties'].get('boundaryType', self.state.boundary_type)
        self._run_parallel(
            (self.load_nearby_cities, lat, lng),
            (self.load_encompassing_regions, lat, lng),
            (self.load_census_data, boundary_type, uuid),
        )
        return True

    # --- Polygon drawing ---

    def set_drawing_mode(self, active: bool) -> bool:
        state = self.state
        if active and not state.drawing_mode:
            self.clear_selection()
            if state.has_polygon:
                self.clear_polygon_results()
        state.drawing_mode = active
        logger.info(f"Drawing mode {'on' if active else 'off'}")
        return active

    def toggle_drawing(self) -> bool:
        return self.set_drawing_mode(not self.state.drawing_mode)

    def start_draw(self):
        """The draw control entered polygon mode: only one polygon at a time."""
        if self.state.has_polygon:
            self.clear_polygon_results()
        self.set_drawing_mode(True)

    def complete_polygon(self, geometry: Dict[str, Any]):
        state = self.state
        state.has_polygon = True
        with self._loading('polygon', 'polygon'):
            state.polygon_results = self.client.fetch_by_polygon(geometry)
            logger.info(f"Polygon query returned {len(state.polygon_results)} cities")
        state.drawing_mode = False

    def delete_polygon(self):
        self.clear_polygon_results()

    def clear_polygon_results(self):
        self.state.polygon_results = []
        self.state.has_polygon = False

    def clear_selection(self):
        self.state.nearby_cities = []
        self.state.encompassing_regions = None
        self.state.selected = []

    # --- Rendering ---

    def sources(self) -> Dict[str, Dict[str, Any]]:
        """GeoJSON data for each map source."""
        state = self.state
        nearby = [
            point_feature(c.lng, c.lat, {'uuid': c.uuid, 'name': c.name, 'distance_km': c.distance_km})
            for c in state.nearby_cities
        ]
        polygon = [
            point_feature(c.lng, c.lat, {'uuid': c.uuid, 'name': c.name})
            for c in state.polygon_results
        ]
        return {
            'boundaries': {'type': 'FeatureCollection', 'features': state.boundaries},
            'selected-feature': {'type': 'FeatureCollection', 'features': state.selected}
            if state.selected else empty_collection(),
            'nearby-cities': {'type': 'FeatureCollection', 'features': nearby},
            'polygon-results': {'type': 'FeatureCollection', 'features': polygon},
        }

    def snapshot(self) -> Dict[str, Any]:
        state = self.state
        return {
            'boundary_type': state.boundary_type,
            'drawing_mode': state.drawing_mode,
            'has_polygon': state.has_polygon,
            'loading': dict(state.loading),
            'sources': self.sources(),
        }


class ViewStateStore:
    """Keeps one ExplorerState per session in the shared cache.

    `session(sid)` holds a per-session lock for the whole load/act/save cycle
    so overlapping requests from one browser do not overwrite each other.
    """

    def __init__(self, timeout: int = Config.VIEW_STATE_TIMEOUT):
        self.timeout = timeout
        # sid -> [lock, number of requests holding or waiting on it]
        self._locks: Dict[str, list] = {}
        self._locks_guard = Lock()

    @staticmethod
    def _key(sid: str) -> str:
        return f"view_state_{sid}"

    @contextmanager
    def _locked(self, sid: str):
        with self._locks_guard:
            entry = self._locks.setdefault(sid, [Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[sid]

    def load(self, sid: str) -> ExplorerState:
        state = cache.get(self._key(sid))
        return state if isinstance(state, ExplorerState) else ExplorerState()

    def save(self, sid: str, state: ExplorerState):
        cache.set(self._key(sid), state, timeout=self.timeout)

    @contextmanager
    def session(self, sid: str):
        with self._locked(sid):
            state = self.load(sid)
            yield state
            self.save(sid, state)
