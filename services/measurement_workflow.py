"""
Measurement Workflow
Orchestrates address search, pin placement, measurement and saving, and
collects the user-facing notices each step produces.
"""
import logging
import threading
from typing import Dict, List, Optional, Any

from services.address_resolver import ResolvedAddress
from services.geocoding import GeocodingError
from services.measurement_engine import (
    DimensionTooLarge, MAX_DIMENSION_FT, build_measurement, compute_area, format_area
)
from services.mirrored_table import MirrorError
from validators import ValidationError

logger = logging.getLogger(__name__)

PIN_SUMMARY_FIELDS = ('length', 'width', 'area', 'snowfall')


class PinNotFound(LookupError):
    """No pin with the requested id"""
    pass


class Notice:
    """A transient message for the user"""

    DEFAULT = 'default'
    WARNING = 'warning'
    DESTRUCTIVE = 'destructive'

    def __init__(self, title: str, description: str, variant: str = DEFAULT):
        self.title = title
        self.description = description
        self.variant = variant

    def to_dict(self) -> Dict[str, str]:
        return {'title': self.title, 'description': self.description, 'variant': self.variant}


class MeasurementWorkflow:
    """
    Search -> pin -> measure -> save.

    Args:
        resolver: AddressResolver
        pins: PinStore
        measurements: MeasurementLog
        map_surface: Optional MapSurface; its click and measurement events are
            routed back into this workflow and its markers follow the pin list
        max_dimension: Largest accepted length or width in feet
    """

    def __init__(self, resolver, pins, measurements, map_surface=None,
                 max_dimension: float = MAX_DIMENSION_FT):
        self.resolver = resolver
        self.pins = pins
        self.measurements = measurements
        self.map_surface = map_surface
        self.max_dimension = max_dimension
        # Notices and map event results belong to the calling thread
        self._local = threading.local()

        if map_surface is not None:
            map_surface.add_click_listener(self._on_map_click)
            map_surface.add_measurement_listener(self._on_map_measurement)
            self.refresh_markers()

    # ==================== NOTICES ====================

    @property
    def notices(self) -> List[Notice]:
        if not hasattr(self._local, 'notices'):
            self._local.notices = []
        return self._local.notices

    @property
    def _last_event_result(self) -> Dict[str, Any]:
        return getattr(self._local, 'last_event_result', {})

    @_last_event_result.setter
    def _last_event_result(self, value: Dict[str, Any]) -> None:
        self._local.last_event_result = value

    def begin_request(self) -> None:
        """Drop anything left over from an earlier request on this thread"""
        self._local.notices = []
        self._local.last_event_result = {}

    def notify(self, title: str, description: str, variant: str = Notice.DEFAULT) -> Notice:
        notice = Notice(title, description, variant)
        self.notices.append(notice)
        return notice

    def drain_notices(self) -> List[Dict[str, str]]:
        drained = [n.to_dict() for n in self.notices]
        self._local.notices = []
        return drained

    def _synced(self, operation, *args):
        """Run a store write; a failed mirror becomes a warning and the local result is kept"""
        try:
            return operation(*args)
        except MirrorError as e:
            self.notify('Sync Failed', str(e), Notice.WARNING)
            return e.result

    # ==================== MAP ====================

    def refresh_markers(self) -> None:
        if self.map_surface is not None:
            self.map_surface.set_pins(self.pins.list(), on_click=self._on_marker_click)

    def _on_marker_click(self, pin_id: str) -> Optional[Dict]:
        return self.pins.get(pin_id)

    def _on_map_click(self, point: Dict[str, float]) -> None:
        self._last_event_result = {'pin': self.map_click(point['lat'], point['lng'])}

    def _on_map_measurement(self, event: Dict[str, Any]) -> None:
        self._last_event_result = {'measurement': self.record_map_measurement(event)}

    def click_map(self, lat: float, lng: float) -> Dict[str, Any]:
        """Forward a click to the map surface and return what it produced"""
        self._last_event_result = {}
        event = self.map_surface.click(lat, lng)
        return dict(event, **self._last_event_result)

    def click_map_pixel(self, x: float, y: float) -> Dict[str, Any]:
        point = self.map_surface.pixel_to_latlng(x, y)
        return self.click_map(point['lat'], point['lng'])

    def finish_map_measurement(self) -> Dict[str, Any]:
        self._last_event_result = {}
        event = self.map_surface.finish_measurement()
        return dict({'event': 'measurement', 'measurement': event}, **self._last_event_result)

    # ==================== SEARCH & PINS ====================

    def search(self, term: str) -> List[Dict[str, Any]]:
        try:
            return self.resolver.search(term)
        except GeocodingError:
            self.notify('Search Failed', 'Unable to search address. Please try again.', Notice.DESTRUCTIVE)
            raise

    def _add_pin(self, address: str, coordinates: Dict[str, float], client_id: Optional[str] = None) -> Dict:
        pin = self._synced(self.pins.add, {
            'address': address,
            'coordinates': coordinates,
            'client_id': client_id,
        })
        self.refresh_markers()
        return pin

    def select_address(self, term: str, client_id: Optional[str] = None) -> Dict:
        """Resolve typed input and drop a pin on it"""
        try:
            resolved = self.resolver.resolve(term)
        except ValidationError as e:
            self.notify('Search Error', e.message, Notice.DESTRUCTIVE)
            raise
        except GeocodingError:
            self.notify('Search Failed', 'Unable to search address. Please try again.', Notice.DESTRUCTIVE)
            raise

        pin = self._add_pin(resolved.address, resolved.coordinates, client_id)
        if resolved.source == ResolvedAddress.SYNTHESIZED:
            self.notify('Address Added', f"Added pin for {resolved.address}")
        else:
            self.notify('Address Found', f"Added pin for {resolved.address}")
        return pin

    def select_candidate(self, candidate: Dict[str, Any], client_id: Optional[str] = None) -> Dict:
        """Drop a pin on a candidate picked from search results"""
        pin = self._add_pin(candidate.get('address'), candidate.get('coordinates') or {}, client_id)
        self.notify('Address Selected', f"Added pin for {pin['address']}")
        return pin

    def map_click(self, lat: float, lng: float) -> Dict:
        """Drop a pin where the map was clicked"""
        pin = self._add_pin(f"Property at {lat:.4f}, {lng:.4f}", {'lat': lat, 'lng': lng})
        self.notify('Pin Added', 'Pin added successfully!')
        return pin

    def remove_pin(self, pin_id: str) -> bool:
        removed = self._synced(self.pins.remove, pin_id)
        if removed:
            self.refresh_markers()
            self.notify('Pin Removed', 'Pin removed successfully!')
        return bool(removed)

    def get_pin(self, pin_id: str) -> Dict:
        pin = self.pins.get(pin_id)
        if pin is None:
            raise PinNotFound(pin_id)
        return pin

    def list_pins(self) -> List[Dict]:
        return self.pins.list()

    # ==================== MEASUREMENTS ====================

    def _invalid(self, error: ValidationError) -> None:
        if isinstance(error, DimensionTooLarge):
            if error.field in ('length', 'width'):
                description = f"Please enter realistic measurements (under {self.max_dimension:,.0f} ft)"
            else:
                description = error.message
            self.notify('Measurements Too Large', description, Notice.DESTRUCTIVE)
        else:
            self.notify('Invalid Measurements', error.message, Notice.DESTRUCTIVE)

    def measure_pin(self, pin_id: str, length: Any, width: Any) -> Dict:
        """Attach a length x width measurement to a pin"""
        self.get_pin(pin_id)
        try:
            area = compute_area(length, width, self.max_dimension)
        except ValidationError as e:
            self._invalid(e)
            raise
        summary = {'length': float(length), 'width': float(width), 'area': area}
        pin = self._synced(self.pins.update, pin_id, summary)
        self.refresh_markers()
        self.notify('Measurements Saved', f"Property area: {format_area(area)}")
        return pin

    def save_measurement(self, form: Dict[str, Any], pin_id: Optional[str] = None) -> Dict:
        """
        Validate and record a measurement, optionally attached to a pin.

        The pin's measurement summary is replaced with the new values, so saving
        the same form twice leaves the pin unchanged.
        """
        data = dict(form or {})
        pin = None
        if pin_id:
            pin = self.get_pin(pin_id)
            data['pin_id'] = pin_id
            data.setdefault('address', pin['address'])
            if not data.get('coordinates'):
                data['coordinates'] = pin['coordinates']

        try:
            measurement = build_measurement(data, self.max_dimension)
        except ValidationError as e:
            self._invalid(e)
            raise

        record = self._synced(self.measurements.record, measurement)

        if pin is not None:
            summary = {k: record[k] for k in PIN_SUMMARY_FIELDS if record.get(k) is not None}
            self._synced(self.pins.update, pin_id, summary)
            self.refresh_markers()

        self.notify('Measurements Saved', f"{record['type'].capitalize()}: {measurement.describe()}")
        return record

    def record_map_measurement(self, event: Dict[str, Any], pin_id: Optional[str] = None) -> Dict:
        """Save a polygon measurement finished on the map"""
        form = {
            'type': event.get('type'),
            'coordinates': event.get('coordinates'),
            'location': event.get('location'),
        }
        return self.save_measurement(form, pin_id)

    def list_measurements(self, measurement_type: Optional[str] = None, search: Optional[str] = None) -> List[Dict]:
        return self.measurements.list(measurement_type, search)

    def measurement_stats(self) -> Dict[str, Any]:
        return self.measurements.stats()

    def clear_measurements(self) -> int:
        count = self._synced(self.measurements.clear)
        self.notify('Measurements Cleared', f"Removed {count} measurements")
        return count
