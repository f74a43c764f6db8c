"""Interactive page features for the explorer map: controls, panels and the event bridge"""

import folium
from typing import Dict, Optional

from branca.element import MacroElement
from jinja2 import Template

from models import BOUNDARY_TYPES


BOUNDARY_TYPE_LABELS = {"state": "States", "county": "Counties", "city": "Cities"}

LOADING_LABELS = {
    "boundaries": "Loading boundaries...",
    "cities": "Loading nearby cities...",
    "regions": "Loading regions...",
    "polygon": "Loading polygon results...",
    "census": "Loading census data...",
}

DRAWING_BANNER = ("Drawing Mode Active - Click to place points, complete the polygon "
                  "by connecting to first point")


class ExplorerBridge(MacroElement):
    """Forwards map events to the view endpoints and applies their responses.

    Each response may carry GeoJSON for any of the four sources plus
    rendered panel and sidebar HTML; whatever is present replaces what the
    page shows.
    """

    _template = Template("""
{% macro script(this, kwargs) %}
(function() {
    var map = {{ this._parent.get_name() }};
    var opts = {{ this.options | tojson }};
    var drawingMode = false;
    var hasPolygon = false;
    var justCreated = false;
    var drawnLayer = null;
    var polygonDrawer = null;
    var popup = L.popup({closeButton: false, autoPan: false, maxWidth: 300});

    var typeSelect = document.getElementById('boundary-type-select');
    var refreshBtn = document.getElementById('refresh-btn');
    var drawBtn = document.getElementById('draw-btn');
    var clearPolygonBtn = document.getElementById('clear-polygon-btn');
    var drawingBanner = document.getElementById('drawing-banner');
    var loadingCount = {};

    L.control.zoom({position: 'topright'}).addTo(map);

    function setLoading(key, on) {
        loadingCount[key] = Math.max(0, (loadingCount[key] || 0) + (on ? 1 : -1));
        var el = document.getElementById('loading-' + key);
        if (el) { el.style.display = loadingCount[key] > 0 ? 'flex' : 'none'; }
        updateControls();
    }

    function send(method, url, body, loadingKeys) {
        var keys = loadingKeys || [];
        keys.forEach(function(k) { setLoading(k, true); });
        var init = {method: method, credentials: 'same-origin',
                    headers: {'Content-Type': 'application/json'}};
        if (body !== undefined) { init.body = JSON.stringify(body); }
        return fetch(url, init).then(function(res) {
            if (!res.ok) { throw new Error('Request to ' + url + ' failed: ' + res.statusText); }
            return res.json();
        }).then(applyView).catch(function(err) {
            console.error(err);
        }).finally(function() {
            keys.forEach(function(k) { setLoading(k, false); });
        });
    }

    function viewport() {
        var b = map.getBounds();
        // The API takes zoom on the 512px-tile scale
        return {bbox: [b.getWest(), b.getSouth(), b.getEast(), b.getNorth()],
                zoom: Math.max(0, map.getZoom() - opts.apiZoomOffset)};
    }

    // --- Layers ---

    function boundaryStyle(feature) {
        return {fillColor: feature.properties.color, fillOpacity: opts.paint.fillOpacity,
                color: opts.paint.lineColor, weight: 1, opacity: 0.5};
    }

    var boundaries = L.geoJSON(null, {
        style: boundaryStyle,
        bubblingMouseEvents: false,
        onEachFeature: function(feature, layer) {
            layer.on('mouseover', function() {
                if (drawingMode) { return; }
                layer.setStyle({fillColor: feature.properties.hoverColor, color: opts.paint.hoverLineColor,
                                weight: 3, opacity: 0.9});
            });
            layer.on('mouseout', function() {
                if (drawingMode) { return; }
                boundaries.resetStyle(layer);
            });
            layer.on('click', function(e) {
                if (drawingMode) { return; }
                send('POST', opts.urls.boundaryClick,
                     {uuid: feature.properties.uuid, lat: e.latlng.lat, lng: e.latlng.lng},
                     ['cities', 'regions', 'census']);
            });
        }
    }).addTo(map);

    var labels = L.layerGroup().addTo(map);

    var selected = L.geoJSON(null, {
        style: {color: opts.paint.selectedLineColor, weight: 3, fill: false},
        interactive: false,
        pointToLayer: function(feature, latlng) {
            return L.circleMarker(latlng, {radius: 8, color: '#FFFFFF', weight: 2,
                                           fillColor: opts.paint.selectedMarkerColor, fillOpacity: 0.9,
                                           interactive: false});
        }
    }).addTo(map);

    function cityLayer(color, withDistance) {
        return L.geoJSON(null, {
            bubblingMouseEvents: false,
            pointToLayer: function(feature, latlng) {
                return L.circleMarker(latlng, {radius: 5, color: '#FFFFFF', weight: 1.5,
                                               fillColor: color, fillOpacity: 0.8,
                                               bubblingMouseEvents: false});
            },
            onEachFeature: function(feature, layer) {
                layer.on('mouseover', function() {
                    if (drawingMode) { return; }
                    var html = '<div class="city-popup"><strong></strong>' +
                               (withDistance ? '<div class="city-distance"></div>' : '') + '</div>';
                    var el = document.createElement('div');
                    el.innerHTML = html;
                    el.querySelector('strong').textContent = feature.properties.name;
                    if (withDistance && feature.properties.distance_km != null) {
                        el.querySelector('.city-distance').textContent =
                            feature.properties.distance_km.toFixed(1) + ' km away';
                    }
                    popup.setLatLng(layer.getLatLng()).setContent(el).openOn(map);
                });
                layer.on('mouseout', function() { map.closePopup(popup); });
            }
        });
    }

    var nearbyCities = cityLayer(opts.paint.nearbyColor, true).addTo(map);
    var polygonResults = cityLayer(opts.paint.polygonColor, false).addTo(map);

    function renderLabels(collection) {
        labels.clearLayers();
        collection.features.forEach(function(f) {
            var p = f.properties;
            if (p.label_lat == null || p.label_lng == null || !p.name) { return; }
            var icon = L.divIcon({className: 'boundary-label', html: '', iconSize: null});
            var marker = L.marker([p.label_lat, p.label_lng], {icon: icon, interactive: false, keyboard: false});
            marker.on('add', function() { marker.getElement().textContent = p.name; });
            labels.addLayer(marker);
        });
    }

    function replaceData(layer, collection) {
        layer.clearLayers();
        if (collection && collection.features.length) { layer.addData(collection); }
    }

    // --- Applying server responses ---

    function applyView(data) {
        if (!data) { return data; }
        var sources = data.sources || {};
        if (sources['boundaries']) {
            replaceData(boundaries, sources['boundaries']);
            renderLabels(sources['boundaries']);
        }
        if (sources['selected-feature']) { replaceData(selected, sources['selected-feature']); }
        if (sources['nearby-cities']) { replaceData(nearbyCities, sources['nearby-cities']); }
        if (sources['polygon-results']) { replaceData(polygonResults, sources['polygon-results']); }
        if (data.panels_html !== undefined) {
            document.getElementById('explorer-panels').innerHTML = data.panels_html;
        }
        if (data.sidebar_html !== undefined) {
            document.getElementById('explorer-sidebar').innerHTML = data.sidebar_html;
        }
        if (data.drawing_mode !== undefined) { drawingMode = data.drawing_mode; }
        if (data.has_polygon !== undefined) { hasPolygon = data.has_polygon; }
        if (data.boundary_type) { typeSelect.value = data.boundary_type; }
        if (!hasPolygon && !drawingMode) { removeDrawn(); }
        updateControls();
        return data;
    }

    function updateControls() {
        refreshBtn.disabled = drawingMode || (loadingCount['boundaries'] || 0) > 0;
        drawBtn.textContent = drawingMode ? 'Cancel Draw' : 'Draw Polygon';
        drawBtn.classList.toggle('active', drawingMode);
        clearPolygonBtn.style.display = hasPolygon ? 'inline-block' : 'none';
        drawingBanner.style.display = drawingMode ? 'flex' : 'none';
    }

    // --- Interaction toggles while drawing ---

    function disableInteractions() {
        map.dragging.disable();
        map.closePopup(popup);
        boundaries.eachLayer(function(l) { boundaries.resetStyle(l); });
    }

    function enableInteractions() {
        map.dragging.enable();
    }

    function removeDrawn() {
        if (!drawnLayer) { return; }
        var layer = drawnLayer;
        drawnLayer = null;
        map.eachLayer(function(l) {
            if (l instanceof L.FeatureGroup && l.hasLayer(layer)) { l.removeLayer(layer); }
        });
        if (map.hasLayer(layer)) { map.removeLayer(layer); }
    }

    function loadBoundaries(clearExisting) {
        var body = viewport();
        body.clear_existing = clearExisting;
        return send('POST', opts.urls.boundaries, body, ['boundaries']);
    }

    // --- Map events ---

    map.on('click', function(e) {
        if (drawingMode) { return; }
        send('POST', opts.urls.click, {lat: e.latlng.lat, lng: e.latlng.lng}, ['cities', 'regions']);
    });

    map.on('moveend', function() {
        if (!drawingMode) { loadBoundaries(false); }
    });

    map.on('draw:drawstart', function() {
        drawingMode = true;
        justCreated = false;
        removeDrawn();
        disableInteractions();
        updateControls();
        send('POST', opts.urls.drawStart, {}, []);
    });

    map.on('draw:created', function(e) {
        justCreated = true;
        drawnLayer = e.layer;
        hasPolygon = true;
        send('POST', opts.urls.polygon, {geometry: e.layer.toGeoJSON().geometry}, ['polygon'])
            .then(enableInteractions);
    });

    map.on('draw:drawstop', function() {
        polygonDrawer = null;
        if (justCreated) { justCreated = false; return; }
        if (drawingMode) {
            drawingMode = false;
            enableInteractions();
            updateControls();
            send('POST', opts.urls.draw, {active: false}, []);
        }
    });

    map.on('draw:deleted', function() {
        drawnLayer = null;
        send('DELETE', opts.urls.polygon, undefined, []);
    });

    // --- Controls ---

    typeSelect.addEventListener('change', function() {
        var body = viewport();
        body.boundary_type = typeSelect.value;
        send('POST', opts.urls.boundaryType, body, ['boundaries']);
    });

    refreshBtn.addEventListener('click', function() { loadBoundaries(false); });

    drawBtn.addEventListener('click', function() {
        if (drawingMode) {
            // Drawing started from the toolbar has no handle here; use its own cancel action
            var toolbarCancel = document.querySelector('.leaflet-draw-actions a[title="Cancel drawing"]');
            if (polygonDrawer) { polygonDrawer.disable(); }
            else if (toolbarCancel) { toolbarCancel.click(); }
            else { map.fire('draw:drawstop'); }
            return;
        }
        polygonDrawer = new L.Draw.Polygon(map, opts.drawOptions);
        polygonDrawer.enable();
    });

    clearPolygonBtn.addEventListener('click', function() {
        removeDrawn();
        send('DELETE', opts.urls.polygon, undefined, []);
    });

    applyView(opts.initial);
    loadBoundaries(true);
})();
{% endmacro %}
""")

    def __init__(self, urls: Dict[str, str], paint: Dict, draw_options: Dict,
                 initial: Optional[Dict] = None, api_zoom_offset: int = 1):
        super().__init__()
        self._name = 'ExplorerBridge'
        self.options = {
            'urls': urls,
            'paint': paint,
            'drawOptions': draw_options,
            'initial': initial or {},
            'apiZoomOffset': api_zoom_offset,
        }


class InteractiveMapFeatures:
    """Page chrome around the explorer map"""

    def add_interactive_features(self, m: folium.Map, sidebar_html: str, panels_html: str,
                                 boundary_type: str = 'state'):
        """Add header, sidebar, controls, loading indicators and panel containers"""
        self._add_styles(m)
        self._add_header_and_sidebar(m, sidebar_html)
        self._add_controls(m, boundary_type)
        self._add_loading_indicators(m)
        self._add_panel_container(m, panels_html)

    def _add_styles(self, m: folium.Map):
        style = """
        <style>
        html, body { margin: 0; font-family: 'Segoe UI', Arial, sans-serif; }
        .explorer-header {
            position: fixed; top: 0; left: 0; right: 0; height: 64px; box-sizing: border-box;
            padding: 10px 24px; background: #fff; border-bottom: 1px solid #e5e7eb; z-index: 1100;
        }
        .explorer-header h1 { margin: 0; font-size: 22px; color: #1f2937; }
        .explorer-header p { margin: 2px 0 0; font-size: 13px; color: #4b5563; }
        #explorer-sidebar {
            position: fixed; top: 64px; left: 0; bottom: 0; width: 320px; box-sizing: border-box;
            padding: 16px; overflow-y: auto; border-right: 1px solid #e5e7eb;
            background: linear-gradient(#f9fafb, #fff); z-index: 1050; font-size: 14px;
        }
        .folium-map {
            position: fixed !important; top: 64px; left: 320px; right: 0; bottom: 0;
            width: auto !important; height: auto !important;
        }
        .sidebar-intro h2 { margin: 8px 0 4px; font-size: 20px; color: #1f2937; }
        .sidebar-intro p, .sidebar-empty p { color: #4b5563; font-size: 13px; }
        .sidebar-empty { text-align: center; margin: 32px 0; }
        .sidebar-pin { font-size: 32px; }
        .profile-card { border: 1px solid #e5e7eb; border-radius: 8px; overflow: hidden; background: #fff; }
        .profile-title { background: #eff6ff; color: #1e40af; padding: 10px 14px; font-size: 17px; }
        .profile-grid { display: grid; grid-template-columns: 1fr auto; gap: 6px 16px; padding: 14px; }
        .section-title {
            grid-column: span 2; color: #1d4ed8; font-weight: 600; margin-top: 10px;
            border-bottom: 1px solid #e5e7eb; padding-bottom: 3px;
        }
        .stat-label { color: #4b5563; }
        .stat-value { text-align: right; font-weight: 500; }
        .quickfacts-link {
            display: inline-block; margin-top: 14px; padding: 6px 12px; border-radius: 6px;
            background: #2563eb; color: #fff; text-decoration: none; font-size: 13px;
        }
        .instructions-card { margin-top: 16px; border: 1px solid #e5e7eb; border-radius: 8px; padding: 10px 14px; background: #fff; }
        .instructions-title { font-weight: 600; font-size: 13px; }
        .instructions-card ul { padding-left: 18px; font-size: 12px; color: #4b5563; }
        .explorer-controls {
            position: fixed; top: 76px; left: 380px; z-index: 1000; display: flex; gap: 8px;
            align-items: center; background: #fff; padding: 8px; border-radius: 6px;
            box-shadow: 0 2px 6px rgba(0,0,0,0.2);
        }
        .explorer-controls button, .explorer-controls select {
            font-size: 13px; padding: 5px 10px; border: 1px solid #d1d5db; border-radius: 6px; background: #fff;
        }
        .explorer-controls button.active { background: #111827; color: #fff; }
        .explorer-controls button:disabled { opacity: 0.5; }
        .loading-stack { position: fixed; top: 76px; right: 60px; z-index: 1000; display: flex; flex-direction: column; gap: 8px; }
        .loading-item {
            display: none; align-items: center; background: rgba(255,255,255,0.9); padding: 5px 8px;
            border-radius: 6px; box-shadow: 0 1px 3px rgba(0,0,0,0.15); font-size: 13px;
        }
        .loading-item.banner { color: #2563eb; font-weight: 500; }
        .panel-stack { position: fixed; bottom: 16px; z-index: 1000; display: flex; flex-direction: column; gap: 8px; max-width: 300px; }
        .panel-left { left: 336px; }
        .panel-right { right: 16px; }
        .info-panel { background: #fff; padding: 12px; border-radius: 6px; box-shadow: 0 2px 6px rgba(0,0,0,0.2); }
        .info-panel h3 { margin: 0 0 6px; font-size: 17px; font-weight: 500; }
        .list-panel { max-height: 256px; overflow: auto; }
        .list-panel ul { list-style: none; margin: 0; padding: 0; font-size: 13px; }
        .city-row { display: flex; justify-content: space-between; }
        .distance { color: #6b7280; margin-left: 8px; }
        .region-row p { margin: 0 0 6px 20px; font-size: 13px; }
        .region-label { font-weight: 500; }
        .dot { display: inline-block; width: 12px; height: 12px; border-radius: 50%; margin-right: 8px; }
        .dot-msa { background: #c084fc; } .dot-county { background: #fca5a5; } .dot-city { background: #9ca3af; }
        .boundary-label {
            font-size: 12px; color: #000; white-space: nowrap; pointer-events: none;
            text-shadow: -1px -1px 0 #fff, 1px -1px 0 #fff, -1px 1px 0 #fff, 1px 1px 0 #fff;
            transform: translate(-50%, -50%);
        }
        </style>
        """
        m.get_root().header.add_child(folium.Element(style))

    def _add_header_and_sidebar(self, m: folium.Map, sidebar_html: str):
        html = f"""
        <header class="explorer-header">
            <h1>Boundary Data Explorer</h1>
            <p>Explore geographic boundaries, demographics, and geospatial data</p>
        </header>
        <aside id="explorer-sidebar">{sidebar_html}</aside>
        """
        m.get_root().html.add_child(folium.Element(html))

    def _add_controls(self, m: folium.Map, boundary_type: str):
        options = ''.join(
            f'<option value="{t}"{" selected" if t == boundary_type else ""}>{BOUNDARY_TYPE_LABELS[t]}</option>'
            for t in BOUNDARY_TYPES
        )
        html = f"""
        <div class="explorer-controls">
            <select id="boundary-type-select" aria-label="Boundary Type">{options}</select>
            <button id="refresh-btn" type="button">Refresh</button>
            <button id="draw-btn" type="button">Draw Polygon</button>
            <button id="clear-polygon-btn" type="button" style="display: none;">Clear Polygon</button>
        </div>
        """
        m.get_root().html.add_child(folium.Element(html))

    def _add_loading_indicators(self, m: folium.Map):
        items = ''.join(
            f'<div class="loading-item" id="loading-{key}">{label}</div>'
            for key, label in LOADING_LABELS.items()
        )
        html = f"""
        <div class="loading-stack">
            {items}
            <div class="loading-item banner" id="drawing-banner">{DRAWING_BANNER}</div>
        </div>
        """
        m.get_root().html.add_child(folium.Element(html))

    def _add_panel_container(self, m: folium.Map, panels_html: str):
        m.get_root().html.add_child(folium.Element(f'<div id="explorer-panels">{panels_html}</div>'))
