"""
Integration tests for address, pin and map endpoints
"""
import threading
import pytest


@pytest.mark.integration
class TestAddressEndpoints:
    """Tests for /api/address"""

    def test_search(self, client):
        response = client.get('/api/address/search?q=broadway')
        assert response.status_code == 200
        data = response.get_json()
        assert data['candidates'][0]['address'] == '456 Broadway, New York, NY 10013'
        assert data['notices'] == []

    def test_search_returns_only_its_own_notices(self, app, client):
        """Test that notices queued elsewhere do not leak into a search response"""
        workflow = app.extensions['yardstick']['workflow']
        other = threading.Thread(target=workflow.notify, args=('Pin Added', 'other user'))
        other.start()
        other.join()
        workflow.notify('Stale', 'left over on this thread')

        response = client.get('/api/address/search?q=Main')

        assert response.get_json()['notices'] == []

    def test_search_without_term(self, client):
        response = client.get('/api/address/search')
        assert response.get_json()['candidates'] == []

    def test_resolve_creates_pin(self, client):
        response = client.post('/api/address/resolve', json={'address': '789 Park'})
        assert response.status_code == 201
        data = response.get_json()
        assert data['pin']['address'] == '789 Park Ave, New York, NY 10021'
        assert data['notices'][0]['title'] == 'Address Found'

    def test_resolve_blank_address(self, client):
        response = client.post('/api/address/resolve', json={'address': ' '})
        assert response.status_code == 400
        assert response.get_json()['field'] == 'address'


@pytest.mark.integration
class TestPinEndpoints:
    """Tests for /api/pins"""

    def test_add_pin_by_address(self, client):
        response = client.post('/api/pins', json={'address': 'Main St'})
        assert response.status_code == 201
        pins = client.get('/api/pins').get_json()['pins']
        assert [p['address'] for p in pins] == ['123 Main St, New York, NY 10001']

    def test_add_pin_by_coordinates(self, client):
        response = client.post('/api/pins', json={'lat': 40.75, 'lng': -73.99})
        assert response.status_code == 201
        data = response.get_json()
        assert data['pin']['address'] == 'Property at 40.7500, -73.9900'
        assert data['notices'][0]['title'] == 'Pin Added'

    def test_add_pin_from_candidate(self, client):
        response = client.post('/api/pins', json={'lat': 40.7, 'lng': -74.0, 'address': 'Picked place'})
        assert response.get_json()['pin']['address'] == 'Picked place'

    def test_add_pin_invalid(self, client):
        response = client.post('/api/pins', json={'lat': 100, 'lng': 0})
        assert response.status_code == 400

    def test_get_and_delete_pin(self, client):
        pin_id = client.post('/api/pins', json={'address': 'Main St'}).get_json()['pin']['id']

        response = client.get(f'/api/pins/{pin_id}')
        assert response.status_code == 200
        assert response.get_json()['measurements'] == []

        response = client.delete(f'/api/pins/{pin_id}')
        assert response.get_json()['removed'] is True
        assert client.get(f'/api/pins/{pin_id}').status_code == 404

    def test_delete_unknown_pin_is_noop(self, client):
        response = client.delete('/api/pins/missing')
        assert response.status_code == 200
        assert response.get_json()['removed'] is False

    def test_measure_pin(self, client):
        pin_id = client.post('/api/pins', json={'address': 'Main St'}).get_json()['pin']['id']
        response = client.put(f'/api/pins/{pin_id}/measurement', json={'length': 50, 'width': 20})
        assert response.status_code == 200
        data = response.get_json()
        assert data['pin']['measurement']['area'] == 1000.0
        assert data['notices'][0]['description'] == 'Property area: 1,000.0 sq ft'

    def test_measure_pin_too_large(self, client):
        pin_id = client.post('/api/pins', json={'address': 'Main St'}).get_json()['pin']['id']
        response = client.put(f'/api/pins/{pin_id}/measurement', json={'length': 50000, 'width': 20})
        assert response.status_code == 400
        assert response.get_json()['notices'][0]['title'] == 'Measurements Too Large'

    def test_measure_pin_with_full_form(self, client):
        pin_id = client.post('/api/pins', json={'address': 'Main St'}).get_json()['pin']['id']
        response = client.put(f'/api/pins/{pin_id}/measurement',
                              json={'type': 'driveway', 'length': 40, 'width': 12})
        data = response.get_json()
        assert data['measurement']['pin_id'] == pin_id
        assert data['pin']['measurement'] == {'length': 40.0, 'width': 12.0, 'area': 480.0}
        assert len(client.get(f'/api/pins/{pin_id}').get_json()['measurements']) == 1

    def test_measure_unknown_pin(self, client):
        response = client.put('/api/pins/missing/measurement', json={'length': 5, 'width': 5})
        assert response.status_code == 404


@pytest.mark.integration
class TestMapEndpoints:
    """Tests for /api/map"""

    def test_map_falls_back_to_mock(self, client):
        data = client.get('/api/map').get_json()['map']
        assert data['provider'] == 'mock'
        assert data['state'] == 'ready'
        assert data['degraded'] is True

    def test_click_adds_pin_and_marker(self, client):
        response = client.post('/api/map/click', json={'lat': 40.71, 'lng': -74.0})
        result = response.get_json()['result']
        assert result['event'] == 'pin_add'
        markers = client.get('/api/map').get_json()['map']['markers']
        assert [m['pin_id'] for m in markers] == [result['pin']['id']]

    def test_click_requires_coordinates(self, client):
        assert client.post('/api/map/click', json={'lat': 'x'}).status_code == 400

    def test_pixel_click(self, client):
        response = client.post('/api/map/pixel-click', json={'x': 200, 'y': 200})
        assert response.get_json()['result']['pin']['address'] == 'Property at 40.7128, -74.0060'

    def test_pixel_click_outside_map(self, client):
        assert client.post('/api/map/pixel-click', json={'x': 999, 'y': 0}).status_code == 409

    def test_marker_click(self, client):
        pin_id = client.post('/api/pins', json={'address': 'Main St'}).get_json()['pin']['id']
        response = client.post(f'/api/map/markers/{pin_id}/click')
        assert response.get_json()['pin']['id'] == pin_id
        assert client.post('/api/map/markers/missing/click').status_code == 404

    def test_polygon_measurement_flow(self, client, square_path):
        """Test start, three clicks and auto-complete into a saved measurement"""
        response = client.post('/api/map/measure/start', json={'type': 'garden'})
        assert response.get_json()['map']['state'] == 'measuring'

        for point in square_path[:3]:
            response = client.post('/api/map/click', json=point)

        result = response.get_json()['result']
        assert result['event'] == 'measurement'
        measurements = client.get('/api/measurements').get_json()['measurements']
        assert len(measurements) == 1
        assert measurements[0]['type'] == 'garden'
        assert client.get('/api/pins').get_json()['pins'] == []

    def test_start_measurement_rejects_snowfall(self, client):
        assert client.post('/api/map/measure/start', json={'type': 'snowfall'}).status_code == 409

    def test_cancel_and_finish_without_measuring(self, client):
        assert client.post('/api/map/measure/cancel').status_code == 409
        assert client.post('/api/map/measure/finish').status_code == 409

    def test_toggle_and_set_map_type(self, client):
        assert client.post('/api/map/type', json={}).get_json()['map']['map_type'] == 'satellite'
        assert client.post('/api/map/type', json={'map_type': 'roadmap'}).get_json()['map']['map_type'] == 'roadmap'
        assert client.post('/api/map/type', json={'map_type': 'terrain'}).status_code == 400

    def test_click_rejects_nan_coordinates(self, client):
        response = client.post('/api/map/click', data='{"lat": NaN, "lng": -74.0}', content_type='application/json')
        assert response.status_code == 400
        assert client.get('/api/pins').get_json()['pins'] == []

    def test_fit_bounds_to_markers(self, client):
        client.post('/api/pins', json={'address': 'Main St'})
        view = client.post('/api/map/fit-bounds', json={}).get_json()['view']
        assert view['zoom'] == 18
        assert view['center'] == {'lat': 40.7589, 'lng': -73.9851}

    def test_fit_bounds_invalid_points(self, client):
        assert client.post('/api/map/fit-bounds', json={'points': [{'lat': 1}]}).status_code == 400
