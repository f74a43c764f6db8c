"""Builds the explorer page: a folium map with drawing tools, page chrome and the event bridge"""
import folium
from folium import plugins
from typing import Dict, Optional
import logging

from config import Config as AppConfig
from utils.boundary_colors import (
    BOUNDARY_FILL_OPACITY, BOUNDARY_HOVER_LINE_COLOR, BOUNDARY_LINE_COLOR,
    DRAW_ACTIVE_COLOR, DRAW_INACTIVE_COLOR, NEARBY_CITY_COLOR, POLYGON_RESULT_COLOR,
    SELECTED_LINE_COLOR, SELECTED_MARKER_COLOR,
)
from utils.interactive_map_features import ExplorerBridge, InteractiveMapFeatures

# Leaflet zoom with 256px tiles is one level above the 512px-tile zoom the API
# and MAP_ZOOM use
API_ZOOM_OFFSET = 1

logger = logging.getLogger(__name__)

# View endpoints the page talks to
VIEW_URLS = {
    'boundaries': '/api/view/boundaries',
    'boundaryType': '/api/view/boundary-type',
    'click': '/api/view/click',
    'boundaryClick': '/api/view/boundary-click',
    'draw': '/api/view/draw',
    'drawStart': '/api/view/draw/start',
    'polygon': '/api/view/polygon',
}


class MapGenerator:
    """Generate the interactive explorer map page"""

    def __init__(self, config=AppConfig):
        self.config = config
        self.center = tuple(config.MAP_CENTER)
        self.zoom = config.MAP_ZOOM + API_ZOOM_OFFSET
        self.interactive_features = InteractiveMapFeatures()

    @staticmethod
    def polygon_draw_options() -> Dict:
        """Leaflet.draw polygon handler options, shared by the toolbar and the Draw Polygon button"""
        return {
            'allowIntersection': False,
            'showArea': False,
            'shapeOptions': {
                'color': DRAW_INACTIVE_COLOR,
                'fillColor': DRAW_INACTIVE_COLOR,
                'fillOpacity': 0.1,
                'weight': 2,
            },
            'guidelineDistance': 10,
            'drawError': {'color': DRAW_ACTIVE_COLOR, 'message': 'Edges cannot cross'},
        }

    @staticmethod
    def paint() -> Dict:
        return {
            'fillOpacity': BOUNDARY_FILL_OPACITY,
            'lineColor': BOUNDARY_LINE_COLOR,
            'hoverLineColor': BOUNDARY_HOVER_LINE_COLOR,
            'selectedLineColor': SELECTED_LINE_COLOR,
            'selectedMarkerColor': SELECTED_MARKER_COLOR,
            'nearbyColor': NEARBY_CITY_COLOR,
            'polygonColor': POLYGON_RESULT_COLOR,
        }

    def _add_base_tiles(self, m: folium.Map):
        token = self.config.MAPBOX_TOKEN
        if token:
            folium.TileLayer(
                tiles=(f"https://api.mapbox.com/styles/v1/{self.config.MAPBOX_STYLE}"
                       f"/tiles/{{z}}/{{x}}/{{y}}?access_token={token}"),
                attr='&copy; <a href="https://www.mapbox.com/about/maps/">Mapbox</a> '
                     '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a>',
                name='Mapbox Light',
                tile_size=512,
                zoom_offset=-1,
            ).add_to(m)
        else:
            folium.TileLayer('CartoDB positron', name='Light').add_to(m)

    def _add_draw_control(self, m: folium.Map):
        plugins.Draw(
            export=False,
            show_geometry_on_click=False,
            position='topleft',
            draw_options={
                'polyline': False,
                'rectangle': False,
                'circle': False,
                'marker': False,
                'circlemarker': False,
                'polygon': self.polygon_draw_options(),
            },
            edit_options={'edit': False, 'remove': True},
        ).add_to(m)

    def create_explorer_map(self, sidebar_html: str = '', panels_html: str = '',
                            snapshot: Optional[Dict] = None) -> str:
        """Full HTML page for the explorer; `snapshot` seeds the sources and control state"""
        snapshot = snapshot or {}
        logger.info("Creating explorer map")

        m = folium.Map(
            location=self.center,
            zoom_start=self.zoom,
            tiles=None,
            width='100%',
            height='100%',
            zoom_control=False,
        )
        self._add_base_tiles(m)
        self._add_draw_control(m)

        self.interactive_features.add_interactive_features(
            m, sidebar_html, panels_html, boundary_type=snapshot.get('boundary_type', 'state'))

        ExplorerBridge(
            urls=VIEW_URLS,
            paint=self.paint(),
            draw_options=self.polygon_draw_options(),
            initial=snapshot,
            api_zoom_offset=API_ZOOM_OFFSET,
        ).add_to(m)

        m.get_root().header.add_child(folium.Element('<title>Boundary Data Explorer</title>'))
        return m.get_root().render()
