"""
Google Geocoding API client.
Used by the address resolver and the live map surface.
"""
import logging
from typing import Dict, List, Optional, Any

import requests

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(Exception):
    """Raised when the geocoder cannot be reached or rejects the request"""
    pass


class GoogleGeocoder:
    """Forward geocoding over the Google Maps Geocoding API."""

    def __init__(self, api_key: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self._api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        params = dict(params, key=self._api_key)
        try:
            response = self.session.get(GEOCODE_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.warning(f"Geocoding request failed: {e}")
            raise GeocodingError(f"Geocoding request failed: {e}") from e
        except ValueError as e:
            raise GeocodingError("Geocoder returned invalid JSON") from e

        status = str(data.get('status') or 'UNKNOWN') if isinstance(data, dict) else 'UNKNOWN'
        if status == 'ZERO_RESULTS':
            return []
        if status != 'OK':
            message = data.get('error_message', '') if isinstance(data, dict) else ''
            logger.warning(f"Geocoder returned {status}: {message}")
            raise GeocodingError(f"Google geocode error: {status}")
        return data.get('results', [])

    @staticmethod
    def _candidate(result: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        location = (result.get('geometry') or {}).get('location') or {}
        try:
            coordinates = {'lat': float(location['lat']), 'lng': float(location['lng'])}
        except (KeyError, TypeError, ValueError):
            return None
        types = result.get('types') or []
        return {
            'address': result.get('formatted_address', ''),
            'coordinates': coordinates,
            'category': types[0].replace('_', ' ').title() if types else 'Geocoded',
        }

    def search(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        """Candidate addresses for a free-text query, best match first"""
        results = self._request({'address': query})
        candidates = [c for c in (self._candidate(r) for r in results) if c]
        return candidates[:limit]

    def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        """The best candidate for ``address``, or None when nothing matches"""
        candidates = self.search(address, limit=1)
        return candidates[0] if candidates else None
