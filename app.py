# -*- coding: utf-8 -*-
"""Flask web application for the Boundary Data Explorer"""
import os
import secrets
import uuid
import logging
from contextlib import contextmanager
from typing import Optional

from flask import Flask, render_template, request, jsonify, session, Response
from pydantic import ValidationError

# Local imports
from config import Config
from config_validator import (
    BoundaryClick, BoundaryQuery, BoundaryTypeChange, CensusQuery, DrawingModeChange,
    PointQuery, PolygonQuery,
)
from data_collection.geo_api_client import GeoApiClient, GeoApiError, GeoApiUnavailable
from main import BoundaryExplorer, ExplorerState, ViewStateStore
from utils.cache import cache
from utils.circuit_breaker import circuit_breaker_registry
from utils.map_generator import MapGenerator
from utils.metrics import error_counter, get_metrics
from utils.profile_presenter import format_distance, sidebar_context

# --- App Setup ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Map sources touched by each kind of view action
SELECTION_SOURCES = ('selected-feature', 'nearby-cities')
DRAWING_SOURCES = ('selected-feature', 'nearby-cities', 'polygon-results')
ALL_SOURCES = ('boundaries', 'selected-feature', 'nearby-cities', 'polygon-results')

# CDN and tile hosts the folium page loads from
SCRIPT_HOSTS = ("https://cdn.jsdelivr.net https://code.jquery.com https://cdnjs.cloudflare.com "
                "https://netdna.bootstrapcdn.com https://maxcdn.bootstrapcdn.com https://unpkg.com")
TILE_HOSTS = "https://*.basemaps.cartocdn.com https://api.mapbox.com"


def _validation_errors(e: ValidationError):
    return [
        {'field': '.'.join(str(p) for p in err['loc']), 'message': err['msg']}
        for err in e.errors()
    ]


def create_app(config_class=Config, geo_client: Optional[GeoApiClient] = None):
    """Create and configure the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.secret_key = app.config.get('SECRET_KEY') or secrets.token_hex(16)

    # Initialize extensions
    cache.init_app(app)
    app.jinja_env.filters['distance'] = format_distance

    client = geo_client if geo_client is not None else GeoApiClient(config_class())
    store = ViewStateStore(timeout=app.config.get('VIEW_STATE_TIMEOUT', Config.VIEW_STATE_TIMEOUT))
    map_generator = MapGenerator(config_class)
    workers = app.config.get('QUERY_WORKERS', 4)
    api_cache_timeout = app.config.get('API_CACHE_TIMEOUT', 600)

    def _session_id() -> str:
        if 'session_id' not in session:
            session['session_id'] = str(uuid.uuid4())
        return session['session_id']

    @contextmanager
    def _explorer():
        """Explorer bound to this browser's state; the state is saved on exit."""
        with store.session(_session_id()) as state:
            yield BoundaryExplorer(client, state, max_workers=workers)

    def _render_panels(state: ExplorerState) -> str:
        return render_template(
            'panels.html',
            regions=state.encompassing_regions,
            nearby_cities=state.nearby_cities,
            polygon_results=state.polygon_results,
        )

    def _render_sidebar(state: ExplorerState) -> str:
        return render_template('sidebar.html', **sidebar_context(state.census_profile))

    def _view_response(explorer: BoundaryExplorer, source_names=SELECTION_SOURCES,
                       sidebar: bool = False, **extra):
        snapshot = explorer.snapshot()
        body = {
            'status': 'ok',
            'boundary_type': snapshot['boundary_type'],
            'drawing_mode': snapshot['drawing_mode'],
            'has_polygon': snapshot['has_polygon'],
            'loading': snapshot['loading'],
            'sources': {name: snapshot['sources'][name] for name in source_names},
            'panels_html': _render_panels(explorer.state),
        }
        if sidebar:
            body['sidebar_html'] = _render_sidebar(explorer.state)
        body.update(extra)
        return jsonify(body)

    def _json_body() -> dict:
        return request.get_json(silent=True) or {}

    # --- Error handlers ---
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({'status': 'error', 'message': 'Invalid request', 'errors': _validation_errors(e)}), 400

    @app.errorhandler(GeoApiUnavailable)
    def handle_api_unavailable(e):
        logger.warning(f"Geo API unavailable: {e}")
        return jsonify({'status': 'error', 'message': str(e)}), 503

    @app.errorhandler(GeoApiError)
    def handle_api_error(e):
        logger.error(f"Geo API error on {e.endpoint}: {e}")
        error_counter.labels(error_type=type(e).__name__, component='app').inc()
        return jsonify({'status': 'error', 'message': str(e)}), 502

    # --- Routes ---
    @app.route('/')
    def index():
        """Render the explorer page with a fresh view state"""
        sid = _session_id()
        state = ExplorerState()
        store.save(sid, state)
        explorer = BoundaryExplorer(client, state, max_workers=workers)
        html = map_generator.create_explorer_map(
            sidebar_html=_render_sidebar(state),
            panels_html=_render_panels(state),
            snapshot=explorer.snapshot(),
        )
        return Response(html, mimetype='text/html')

    @app.route('/favicon.ico')
    def favicon():
        return ('', 204)

    # --- View actions ---
    @app.route('/api/view/boundaries', methods=['POST'])
    def view_boundaries():
        query = BoundaryQuery(**_json_body())
        with _explorer() as explorer:
            explorer.load_boundaries(query.bbox, query.zoom, clear_existing=query.clear_existing)
            return _view_response(explorer, ('boundaries',) + SELECTION_SOURCES)

    @app.route('/api/view/boundary-type', methods=['POST'])
    def view_boundary_type():
        query = BoundaryTypeChange(**_json_body())
        with _explorer() as explorer:
            explorer.change_boundary_type(query.boundary_type, query.bbox, query.zoom)
            return _view_response(explorer, ('boundaries',) + SELECTION_SOURCES)

    @app.route('/api/view/click', methods=['POST'])
    def view_click():
        point = PointQuery(**_json_body())
        with _explorer() as explorer:
            explorer.click_map(point.lat, point.lng)
            return _view_response(explorer)

    @app.route('/api/view/boundary-click', methods=['POST'])
    def view_boundary_click():
        click = BoundaryClick(**_json_body())
        with _explorer() as explorer:
            handled = explorer.click_boundary(click.uuid, click.lat, click.lng)
            return _view_response(explorer, sidebar=handled, handled=handled)

    @app.route('/api/view/draw', methods=['POST'])
    def view_draw():
        change = DrawingModeChange(**_json_body())
        with _explorer() as explorer:
            if change.active is None:
                explorer.toggle_drawing()
            else:
                explorer.set_drawing_mode(change.active)
            return _view_response(explorer, DRAWING_SOURCES)

    @app.route('/api/view/draw/start', methods=['POST'])
    def view_draw_start():
        with _explorer() as explorer:
            explorer.start_draw()
            return _view_response(explorer, DRAWING_SOURCES)

    @app.route('/api/view/polygon', methods=['POST'])
    def view_polygon():
        query = PolygonQuery(**_json_body())
        with _explorer() as explorer:
            explorer.complete_polygon(query.geometry)
            return _view_response(explorer, ('polygon-results',))

    @app.route('/api/view/polygon', methods=['DELETE'])
    def view_delete_polygon():
        with _explorer() as explorer:
            explorer.delete_polygon()
            return _view_response(explorer, ('polygon-results',))

    @app.route('/api/view/selection/clear', methods=['POST'])
    def view_clear_selection():
        with _explorer() as explorer:
            explorer.clear_selection()
            return _view_response(explorer)

    @app.route('/api/view/state', methods=['GET'])
    def view_state():
        with _explorer() as explorer:
            return _view_response(explorer, ALL_SOURCES, sidebar=True)

    # --- Pass-through API (cached) ---
    @cache.cache_result(timeout=api_cache_timeout)
    def _cached_boundaries(boundary_type, bbox, zoom):
        return client.fetch_boundaries(boundary_type, bbox, zoom).model_dump(exclude_none=True)

    @cache.cache_result(timeout=api_cache_timeout)
    def _cached_nearby(lat, lng, radius):
        return [c.model_dump(exclude_none=True) for c in client.fetch_nearby_cities(lat, lng, radius)]

    @cache.cache_result(timeout=api_cache_timeout)
    def _cached_encompassing(lat, lng):
        return client.fetch_encompassing_regions(lat, lng).model_dump()

    @cache.cache_result(timeout=api_cache_timeout)
    def _cached_census(boundary_type, object_uuid):
        return client.fetch_census_data(boundary_type, object_uuid).model_dump()

    @app.route('/api/boundaries', methods=['GET'])
    def api_boundaries():
        query = BoundaryQuery(**request.args.to_dict())
        return jsonify(_cached_boundaries(query.type, query.bbox, query.zoom))

    @app.route('/api/query/nearby', methods=['GET'])
    def api_nearby():
        point = PointQuery(**request.args.to_dict())
        return jsonify(_cached_nearby(point.lat, point.lng, point.radius))

    @app.route('/api/query/encompassing', methods=['GET'])
    def api_encompassing():
        point = PointQuery(**request.args.to_dict())
        return jsonify(_cached_encompassing(point.lat, point.lng))

    @app.route('/api/query/by-polygon', methods=['POST'])
    def api_by_polygon():
        query = PolygonQuery(**_json_body())
        cities = client.fetch_by_polygon(query.geometry)
        return jsonify([c.model_dump(exclude_none=True) for c in cities])

    @app.route('/api/census/profile/<boundary_type>/<object_uuid>', methods=['GET'])
    def api_census_profile(boundary_type: str, object_uuid: str):
        query = CensusQuery(type=boundary_type, uuid=object_uuid)
        return jsonify(_cached_census(query.type, query.uuid))

    # Metrics and health endpoints
    @app.route('/metrics')
    def metrics():
        return get_metrics()

    # Add security headers to all responses
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        # Only add HSTS in production
        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        relaxed = app.config.get('RELAXED_CSP') or os.getenv('RELAXED_CSP', 'false').lower() == 'true'

        # The folium page is built from inline scripts and styles
        if app.debug or relaxed:
            csp = (
                "default-src 'self'; "
                f"script-src 'self' 'unsafe-inline' 'unsafe-eval' {SCRIPT_HOSTS}; "
                f"style-src 'self' 'unsafe-inline' {SCRIPT_HOSTS}; "
                f"font-src 'self' {SCRIPT_HOSTS} data:; "
                "img-src 'self' data: blob: https:; "
                "connect-src 'self' ws: wss: https:;"
            )
        else:
            csp = (
                "default-src 'self'; "
                f"script-src 'self' 'unsafe-inline' {SCRIPT_HOSTS}; "
                f"style-src 'self' 'unsafe-inline' {SCRIPT_HOSTS}; "
                f"font-src 'self' {SCRIPT_HOSTS} data:; "
                f"img-src 'self' data: blob: {TILE_HOSTS} {SCRIPT_HOSTS}; "
                "connect-src 'self';"
            )

        response.headers['Content-Security-Policy'] = csp
        return response

    # Health and readiness endpoints
    @app.route('/healthz', methods=['GET'])
    def healthz():
        return jsonify({'status': 'ok'}), 200

    @app.route('/readyz', methods=['GET'])
    def readyz():
        # Cache round trip plus the state of the remote API breaker
        try:
            cache.set('ready_check', 'ok', timeout=10)
            cache.get('ready_check')
        except Exception as e:
            logger.error(f"Readiness check failed: {e}")
            return jsonify({'status': 'not_ready', 'error': str(e)}), 503
        return jsonify({'status': 'ready', 'circuit_breakers': circuit_breaker_registry.get_all_stats()}), 200

    return app


if __name__ == '__main__':
    flask_app = create_app()
    debug_mode = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    flask_app.run(debug=debug_mode, port=Config.PORT, use_reloader=False)
