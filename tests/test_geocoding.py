"""
Tests for the Google geocoding client
"""
import pytest
import requests
from unittest.mock import Mock
from services.geocoding import GoogleGeocoder, GeocodingError, GEOCODE_URL


def _session(payload=None, exc=None):
    session = Mock()
    if exc is not None:
        session.get.side_effect = exc
    else:
        response = Mock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        session.get.return_value = response
    return session


RESULT = {
    'formatted_address': '1600 Amphitheatre Pkwy, Mountain View, CA 94043, USA',
    'geometry': {'location': {'lat': 37.422, 'lng': -122.084}},
    'types': ['street_address'],
}


@pytest.mark.unit
class TestGoogleGeocoder:
    """Tests for forward geocoding"""

    def test_search_returns_candidates(self):
        session = _session({'status': 'OK', 'results': [RESULT]})
        geocoder = GoogleGeocoder('key-123', session=session)

        candidates = geocoder.search('1600 Amphitheatre')

        assert candidates == [{
            'address': '1600 Amphitheatre Pkwy, Mountain View, CA 94043, USA',
            'coordinates': {'lat': 37.422, 'lng': -122.084},
            'category': 'Street Address',
        }]
        session.get.assert_called_once_with(
            GEOCODE_URL, params={'address': '1600 Amphitheatre', 'key': 'key-123'}, timeout=10)

    def test_results_without_location_are_skipped(self):
        session = _session({'status': 'OK', 'results': [{'formatted_address': 'x'}, RESULT]})
        assert len(GoogleGeocoder('k', session=session).search('q')) == 1

    def test_zero_results_is_empty(self):
        session = _session({'status': 'ZERO_RESULTS', 'results': []})
        geocoder = GoogleGeocoder('k', session=session)
        assert geocoder.search('nowhere') == []
        assert geocoder.geocode('nowhere') is None

    def test_error_status_raises(self):
        """Test that REQUEST_DENIED and similar statuses raise"""
        session = _session({'status': 'REQUEST_DENIED', 'error_message': 'bad key'})
        with pytest.raises(GeocodingError) as exc_info:
            GoogleGeocoder('k', session=session).search('q')
        assert 'REQUEST_DENIED' in str(exc_info.value)

    def test_network_error_raises(self):
        session = _session(exc=requests.ConnectionError('down'))
        with pytest.raises(GeocodingError):
            GoogleGeocoder('k', session=session).geocode('q')

    def test_invalid_json_raises(self):
        session = _session()
        session.get.return_value.json.side_effect = ValueError('not json')
        with pytest.raises(GeocodingError):
            GoogleGeocoder('k', session=session).search('q')
