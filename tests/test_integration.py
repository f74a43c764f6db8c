BBOX = [-125.0, 30.0, -110.0, 42.0]
SQUARE = {'type': 'Polygon', 'coordinates': [[[-120, 36], [-119, 36], [-119, 37], [-120, 37], [-120, 36]]]}


def load_states(client, clear=True):
    return client.post('/api/view/boundaries', json={'bbox': BBOX, 'zoom': 5, 'clear_existing': clear})


def test_index_renders_explorer(client):
    resp = client.get('/')
    assert resp.status_code == 200
    assert b'Boundary Data Explorer' in resp.data
    assert b'No Area Selected' in resp.data
    assert b'Hover on a location on the map to view detailed demographic data' in resp.data
    assert 'Content-Security-Policy' in resp.headers


def test_metrics_endpoint(client):
    resp = client.get('/metrics')
    assert resp.status_code == 200
    assert b'explorer_boundary_features' in resp.data


def test_health_endpoints(client):
    assert client.get('/healthz').get_json() == {'status': 'ok'}
    resp = client.get('/readyz')
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'ready'


def test_view_boundaries(client):
    resp = load_states(client)
    assert resp.status_code == 200
    body = resp.get_json()
    features = body['sources']['boundaries']['features']
    assert [f['properties']['uuid'] for f in features] == ['ca', 'nv']
    assert features[0]['properties']['color'] == '#6C8EBF'
    assert body['loading']['boundaries'] is False
    assert 'panels_html' in body


def test_view_boundaries_rejects_bad_bbox(client):
    resp = client.post('/api/view/boundaries', json={'bbox': '1,2,3', 'zoom': 5})
    assert resp.status_code == 400
    assert resp.get_json()['errors'][0]['field'] == 'bbox'


def test_view_boundary_type_switch(client, fake_client):
    load_states(client)
    resp = client.post('/api/view/boundary-type', json={'boundary_type': 'county', 'bbox': BBOX, 'zoom': 7})
    body = resp.get_json()
    assert body['boundary_type'] == 'county'
    assert [f['properties']['uuid'] for f in body['sources']['boundaries']['features']] == ['la', 'sd']


def test_map_click_fills_panels(client):
    resp = client.post('/api/view/click', json={'lat': 36.7, 'lng': -119.7})
    body = resp.get_json()
    assert len(body['sources']['nearby-cities']['features']) == 2
    assert 'Nearby Cities' in body['panels_html']
    assert '3.2 km' in body['panels_html']
    assert 'Fresno, CA' in body['panels_html']
    assert 'sidebar_html' not in body


def test_boundary_click_shows_profile(client, fake_client):
    load_states(client)
    resp = client.post('/api/view/boundary-click', json={'uuid': 'ca', 'lat': 36.0, 'lng': -120.0})
    body = resp.get_json()
    assert body['handled'] is True
    assert len(body['sources']['selected-feature']['features']) == 2
    assert 'California' in body['sidebar_html']
    assert '39,538,223' in body['sidebar_html']
    assert 'View in QuickFacts' in body['sidebar_html']
    assert fake_client.called('census') == [('census', 'state', 'ca')]


def test_boundary_click_unknown_uuid(client, fake_client):
    resp = client.post('/api/view/boundary-click', json={'uuid': 'nope', 'lat': 1, 'lng': 2})
    assert resp.status_code == 200
    assert resp.get_json()['handled'] is False
    assert fake_client.calls == []


def test_failed_query_keeps_page_working(client, fake_client):
    fake_client.fail.add('nearby')
    resp = client.post('/api/view/click', json={'lat': 36.7, 'lng': -119.7})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['sources']['nearby-cities']['features'] == []
    assert 'Fresno County' in body['panels_html']


def test_polygon_drawing_flow(client):
    body = client.post('/api/view/draw', json={}).get_json()
    assert body['drawing_mode'] is True

    # Map clicks are ignored while drawing
    body = client.post('/api/view/click', json={'lat': 36.7, 'lng': -119.7}).get_json()
    assert body['sources']['nearby-cities']['features'] == []

    body = client.post('/api/view/polygon', json={'geometry': SQUARE}).get_json()
    assert body['drawing_mode'] is False
    assert body['has_polygon'] is True
    assert body['sources']['polygon-results']['features'][0]['properties'] == {'uuid': 'c1', 'name': 'Fresno'}
    assert 'Polygon Results' in body['panels_html']

    body = client.delete('/api/view/polygon').get_json()
    assert body['has_polygon'] is False
    assert body['sources']['polygon-results']['features'] == []


def test_draw_start_replaces_polygon(client):
    client.post('/api/view/polygon', json={'geometry': SQUARE})
    body = client.post('/api/view/draw/start').get_json()
    assert body['drawing_mode'] is True
    assert body['has_polygon'] is False

    body = client.post('/api/view/draw', json={'active': False}).get_json()
    assert body['drawing_mode'] is False


def test_invalid_polygon_rejected(client):
    bowtie = {'type': 'Polygon', 'coordinates': [[[0, 0], [1, 1], [1, 0], [0, 1], [0, 0]]]}
    resp = client.post('/api/view/polygon', json={'geometry': bowtie})
    assert resp.status_code == 400


def test_view_state_and_selection_clear(client):
    load_states(client)
    client.post('/api/view/click', json={'lat': 36.7, 'lng': -119.7})
    body = client.post('/api/view/selection/clear').get_json()
    assert body['sources']['selected-feature']['features'] == []

    state = client.get('/api/view/state').get_json()
    assert set(state['sources']) == {'boundaries', 'selected-feature', 'nearby-cities', 'polygon-results'}
    assert len(state['sources']['boundaries']['features']) == 2
    assert 'Census Explorer' in state['sidebar_html']


def test_page_load_resets_view_state(client):
    load_states(client)
    client.get('/')
    state = client.get('/api/view/state').get_json()
    assert state['sources']['boundaries']['features'] == []


def test_passthrough_boundaries_are_cached(client, fake_client):
    url = '/api/boundaries?type=county&bbox=-125,30,-110,42&zoom=6'
    first = client.get(url)
    second = client.get(url)
    assert first.status_code == 200
    assert first.get_json() == second.get_json()
    assert len(fake_client.called('boundaries')) == 1


def test_passthrough_queries(client):
    assert client.get('/api/query/nearby?lat=36.7&lng=-119.7').get_json()[0]['name'] == 'Fresno'
    assert client.get('/api/query/encompassing?lat=36.7&lng=-119.7').get_json()['county'] == 'Fresno County'
    resp = client.post('/api/query/by-polygon', json={'geometry': SQUARE})
    assert resp.get_json() == [{'uuid': 'c1', 'name': 'Fresno', 'lat': 36.74, 'lng': -119.78, 'distance_km': 3.24}]
    profile = client.get('/api/census/profile/state/ca').get_json()
    assert profile['quick_fact_slug'] == 'CA'


def test_passthrough_errors(client, fake_client):
    assert client.get('/api/census/profile/country/ca').status_code == 400
    assert client.get('/api/query/nearby?lat=100&lng=0').status_code == 400

    fake_client.fail.add('regions')
    assert client.get('/api/query/encompassing?lat=1&lng=2').status_code == 502

    fake_client.unavailable = True
    resp = client.get('/api/query/nearby?lat=1&lng=2')
    assert resp.status_code == 503
    assert resp.get_json()['status'] == 'error'
