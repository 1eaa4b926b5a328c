"""
Measurement Log
Saved measurement records: listing, filtering, search, stats and bulk clear.
"""
import logging
from typing import Dict, List, Optional, Any

from services.mirrored_table import MirroredTable
from services.measurement_engine import BaseMeasurement, MeasurementType

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ('type', 'location', 'address', 'material')


class MeasurementLog(MirroredTable):
    """Measurements kept locally and mirrored to the database when online"""

    table = 'measurements'

    def record(self, measurement: BaseMeasurement) -> Dict:
        record = self._insert(measurement.to_dict())
        logger.info(f"Recorded {record['type']} measurement {record['id']}")
        return record

    def list(self, measurement_type: Optional[str] = None, search: Optional[str] = None) -> List[Dict]:
        """Newest first, optionally filtered by type and a case-insensitive search term"""
        filters = {'type': measurement_type} if measurement_type and measurement_type != 'all' else None
        records = self.rows(filters=filters, order_by='created_at', descending=True)
        term = (search or '').strip().lower()
        if term:
            records = [
                r for r in records
                if any(term in str(r.get(field) or '').lower() for field in SEARCH_FIELDS)
            ]
        return records

    def for_pin(self, pin_id: str) -> List[Dict]:
        return self.rows(filters={'pin_id': pin_id}, order_by='created_at', descending=True)

    def stats(self) -> Dict[str, Any]:
        records = self.rows()
        flowerbed_area = 0.0
        for r in records:
            if r.get('type') != MeasurementType.FLOWERBED:
                continue
            if r.get('area') is not None:
                flowerbed_area += r['area']
            elif r.get('length') is not None and r.get('width') is not None:
                flowerbed_area += r['length'] * r['width']
        return {
            'total_measurements': len(records),
            'total_flowerbed_area': flowerbed_area,
            'total_snowfall': sum(r.get('snowfall') or 0 for r in records),
            'driveway_count': sum(1 for r in records if r.get('type') == MeasurementType.DRIVEWAY),
        }

    def clear(self) -> int:
        count = self._clear()
        logger.info(f"Cleared {count} measurements")
        return count
