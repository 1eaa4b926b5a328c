"""
Pin Store
Saved property pins, each with an optional measurement summary.
"""
import logging
from typing import Dict, List, Optional, Any

from services.mirrored_table import MirroredTable
from validators import ValidationError, validate_coordinates, sanitize_string, MAX_ADDRESS_LENGTH

logger = logging.getLogger(__name__)


class PinStore(MirroredTable):
    """Pins kept locally and mirrored to the database when online"""

    table = 'pins'

    def list(self) -> List[Dict]:
        return self.rows(order_by='created_at')

    def add(self, pin: Dict[str, Any]) -> Dict:
        """
        Save a new pin.

        Args:
            pin: ``{'address', 'coordinates': {'lat', 'lng'}}`` plus optional
                ``id``, ``client_id`` and ``measurement``

        Raises:
            ValidationError: for a missing address or bad coordinates
            MirrorError: when the remote copy failed; the pin is saved locally
        """
        address = sanitize_string(pin.get('address'), MAX_ADDRESS_LENGTH)
        if not address:
            raise ValidationError("Pin address is required", 'address')
        coordinates = pin.get('coordinates') or {}
        is_valid, error = validate_coordinates(coordinates.get('lat'), coordinates.get('lng'))
        if not is_valid:
            raise ValidationError(error, 'coordinates')

        row = {
            'address': address,
            'coordinates': {'lat': coordinates['lat'], 'lng': coordinates['lng']},
            'measurement': pin.get('measurement'),
            'client_id': pin.get('client_id'),
        }
        if pin.get('id'):
            row['id'] = pin['id']
        record = self._insert(row)
        logger.info(f"Pin {record['id']} added at {address}")
        return record

    def update(self, pin_id: str, measurement: Optional[Dict[str, Any]]) -> Optional[Dict]:
        """Replace a pin's measurement; returns None for an unknown pin"""
        return self._update(pin_id, {'measurement': measurement})

    def assign_client(self, pin_id: str, client_id: Optional[str]) -> Optional[Dict]:
        """Link a pin to a client, or unlink it with None"""
        return self._update(pin_id, {'client_id': client_id})

    def remove(self, pin_id: str) -> bool:
        """Delete a pin; unknown ids are a no-op"""
        removed = self._delete(pin_id)
        if removed:
            logger.info(f"Pin {pin_id} removed")
        return removed
