"""
Address Resolver
Turns free-text address input into candidate addresses and a coordinate.
Lookup order: the sample catalog, the geocoder (when configured), then a
synthesized coordinate near the default map centre.
"""
import random
import logging
from typing import Dict, List, Optional, Any

from services.geocoding import GeocodingError
from validators import ValidationError, sanitize_string, MAX_ADDRESS_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN = (40.7128, -74.0060)
SYNTHESIZED_JITTER = 0.02

SAMPLE_ADDRESSES = [
    {'address': '123 Main St, New York, NY 10001', 'coordinates': {'lat': 40.7589, 'lng': -73.9851}, 'category': 'Residential'},
    {'address': '456 Broadway, New York, NY 10013', 'coordinates': {'lat': 40.7505, 'lng': -74.0025}, 'category': 'Commercial'},
    {'address': '789 Park Ave, New York, NY 10021', 'coordinates': {'lat': 40.7736, 'lng': -73.9566}, 'category': 'Residential'},
    {'address': '321 Fifth Ave, New York, NY 10016', 'coordinates': {'lat': 40.7484, 'lng': -73.9857}, 'category': 'Commercial'},
    {'address': '654 Wall St, New York, NY 10005', 'coordinates': {'lat': 40.7074, 'lng': -74.0113}, 'category': 'Financial'},
    {'address': '987 Central Park West, New York, NY 10025', 'coordinates': {'lat': 40.7829, 'lng': -73.9654}, 'category': 'Luxury'},
    {'address': '147 Houston St, New York, NY 10012', 'coordinates': {'lat': 40.7256, 'lng': -73.9986}, 'category': 'Mixed Use'},
    {'address': '258 Madison Ave, New York, NY 10016', 'coordinates': {'lat': 40.7505, 'lng': -73.9799}, 'category': 'Office'},
]


class ResolvedAddress:
    """An address with its coordinate and where the coordinate came from"""

    CATALOG = 'catalog'
    GEOCODER = 'geocoder'
    SYNTHESIZED = 'synthesized'

    def __init__(self, address: str, coordinates: Dict[str, float], source: str):
        self.address = address
        self.coordinates = coordinates
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        return {
            'address': self.address,
            'coordinates': self.coordinates,
            'source': self.source,
        }


class AddressResolver:
    """
    Catalog-backed address search with optional geocoder fallback.

    Args:
        geocoder: Anything with ``search(query, limit)`` and ``geocode(address)``
            (see GoogleGeocoder); None disables external lookups
        catalog: Candidate list, defaults to SAMPLE_ADDRESSES
        limit: Maximum number of search results
        rng: Random source for synthesized coordinates
    """

    def __init__(self, geocoder=None, catalog: Optional[List[Dict]] = None,
                 limit: int = 5, rng: Optional[random.Random] = None):
        self.geocoder = geocoder
        self.catalog = list(catalog if catalog is not None else SAMPLE_ADDRESSES)
        self.limit = limit
        self.rng = rng or random.Random()

    def _clean(self, term: Any) -> str:
        return sanitize_string(term, MAX_ADDRESS_LENGTH) if isinstance(term, str) else ''

    def search(self, term: str) -> List[Dict[str, Any]]:
        """
        Catalog entries whose address or category contains the term, case-insensitively.

        Catalog order is preserved. When a geocoder is configured and the catalog
        comes up short, geocoder candidates fill the remaining slots.
        A geocoder failure only propagates when there are no catalog matches.
        """
        query = self._clean(term).lower()
        if not query:
            return []

        matches = [
            dict(entry) for entry in self.catalog
            if query in entry['address'].lower() or query in entry['category'].lower()
        ][:self.limit]

        if self.geocoder is not None and len(matches) < self.limit:
            try:
                candidates = self.geocoder.search(self._clean(term), limit=self.limit)
            except GeocodingError as e:
                if not matches:
                    raise
                logger.warning(f"Geocoder search for '{query}' failed, returning catalog matches only: {e}")
                candidates = []
            seen = {m['address'] for m in matches}
            for candidate in candidates:
                if candidate['address'] not in seen:
                    matches.append(candidate)
                    seen.add(candidate['address'])
                if len(matches) >= self.limit:
                    break

        logger.debug(f"Address search '{query}' returned {len(matches)} candidates")
        return matches

    def resolve(self, term: str) -> ResolvedAddress:
        """
        Resolve an address to a coordinate.

        Raises:
            ValidationError: for a blank term
            GeocodingError: when the configured geocoder fails
        """
        address = self._clean(term)
        if not address:
            raise ValidationError("Please enter an address to search", 'address')

        query = address.lower()
        for entry in self.catalog:
            if query in entry['address'].lower():
                return ResolvedAddress(entry['address'], dict(entry['coordinates']), ResolvedAddress.CATALOG)

        if self.geocoder is not None:
            candidate = self.geocoder.geocode(address)
            if candidate:
                return ResolvedAddress(candidate['address'], candidate['coordinates'], ResolvedAddress.GEOCODER)

        return ResolvedAddress(address, self.synthesize_coordinates(), ResolvedAddress.SYNTHESIZED)

    def synthesize_coordinates(self) -> Dict[str, float]:
        """
        Placeholder coordinate near the default origin.

        Not geocoding: the point is the origin jittered by up to 0.01 degrees on
        each axis, so unknown addresses still land somewhere on the map.
        """
        lat, lng = DEFAULT_ORIGIN
        return {
            'lat': lat + (self.rng.random() - 0.5) * SYNTHESIZED_JITTER,
            'lng': lng + (self.rng.random() - 0.5) * SYNTHESIZED_JITTER,
        }
