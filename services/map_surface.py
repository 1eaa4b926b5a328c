"""
Map Surface
View model of the property map: clicks, markers, polygon measurement mode and
per-pin callbacks. Two implementations share one interface: the live Google
surface and a deterministic mock used when Google Maps is unavailable.
"""
import math
import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Dict, List, Optional, Any
from urllib.parse import urlencode

import requests

from services.geocoding import GEOCODE_URL
from services.measurement_engine import MeasurementType, InvalidDimension, polygon_area_sqft

logger = logging.getLogger(__name__)

DEFAULT_CENTER = (40.7128, -74.0060)
DEFAULT_ZOOM = 13
MAX_FIT_ZOOM = 18
MAP_TYPES = ('roadmap', 'satellite')

PROBE_ADDRESS = "New York, NY"
PROBE_OK_STATUSES = ('OK', 'ZERO_RESULTS')
STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"

TYPE_COLORS = {
    'lawn': '#22c55e',
    'driveway': '#64748b',
    'flowerbed': '#f59e0b',
    'garden': '#16a34a',
    'patio': '#8b5cf6',
    'snowfall': '#3b82f6',
}


class MapState:
    LOADING = 'loading'
    READY = 'ready'
    UNAVAILABLE = 'unavailable'
    MEASURING = 'measuring'


class MapSurfaceError(Exception):
    """Raised for an operation the surface cannot perform in its current state"""
    pass


class PinCallbackRegistry:
    """Click handlers for markers, keyed by pin id"""

    def __init__(self):
        self._callbacks: Dict[str, Callable] = {}

    def register(self, pin_id: str, callback: Callable) -> None:
        self._callbacks[pin_id] = callback

    def unregister(self, pin_id: str) -> None:
        self._callbacks.pop(pin_id, None)

    def clear(self) -> None:
        self._callbacks.clear()

    def dispatch(self, pin_id: str, *args, **kwargs) -> Any:
        """Invoke the handler for pin_id; unknown ids are ignored"""
        callback = self._callbacks.get(pin_id)
        if callback is None:
            logger.debug(f"No callback registered for pin {pin_id}")
            return None
        return callback(pin_id, *args, **kwargs)

    def __contains__(self, pin_id: str) -> bool:
        return pin_id in self._callbacks

    def __len__(self) -> int:
        return len(self._callbacks)


class MapSurface:
    """
    Shared map behaviour.

    Lifecycle: loading -> ready | unavailable, and ready -> measuring -> ready
    when a polygon measurement completes or is cancelled. Subclasses supply
    geocoding and rendering.

    Args:
        center: Initial (lat, lng)
        zoom: Initial zoom level
        map_type: 'roadmap' or 'satellite'
        auto_complete: Number of points that completes a measurement; None means
            the caller finishes it explicitly
    """

    provider = 'base'

    def __init__(self, center=DEFAULT_CENTER, zoom: int = DEFAULT_ZOOM,
                 map_type: str = 'roadmap', auto_complete: Optional[int] = 3):
        self.state = MapState.LOADING
        self.center = {'lat': float(center[0]), 'lng': float(center[1])}
        self.zoom = zoom
        self.map_type = map_type
        self.auto_complete = auto_complete
        self.degraded = False
        self.markers: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self.pin_callbacks = PinCallbackRegistry()
        self.click_listeners: List[Callable] = []
        self.measurement_listeners: List[Callable] = []
        self.measuring_type: Optional[str] = None
        self.path: List[Dict[str, float]] = []

    # ==================== LIFECYCLE ====================

    def create_map(self, center=None, zoom: Optional[int] = None, map_type: Optional[str] = None) -> Dict:
        if center is not None:
            self.center = {'lat': float(center[0]), 'lng': float(center[1])}
        if zoom is not None:
            self.zoom = zoom
        if map_type is not None:
            self.set_map_type(map_type)
        self.state = MapState.READY
        return self.snapshot()

    def mark_unavailable(self, reason: str = '') -> None:
        logger.info(f"{self.provider} map unavailable: {reason}")
        self.state = MapState.UNAVAILABLE

    def set_map_type(self, map_type: str) -> None:
        if map_type not in MAP_TYPES:
            raise MapSurfaceError(f"Invalid map type: {map_type}")
        self.map_type = map_type

    def toggle_map_type(self) -> str:
        self.map_type = 'satellite' if self.map_type == 'roadmap' else 'roadmap'
        return self.map_type

    def _require(self, *states: str) -> None:
        if self.state not in states:
            raise MapSurfaceError(f"Map is {self.state}")

    # ==================== LISTENERS ====================

    def add_click_listener(self, callback: Callable[[Dict[str, float]], Any]) -> None:
        self.click_listeners.append(callback)

    def add_measurement_listener(self, callback: Callable[[Dict[str, Any]], Any]) -> None:
        self.measurement_listeners.append(callback)

    # ==================== MARKERS ====================

    def _marker(self, pin: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'pin_id': pin['id'],
            'position': dict(pin['coordinates']),
            'title': pin.get('address', ''),
            'has_measurement': bool(pin.get('measurement')),
        }

    def add_marker(self, pin: Dict[str, Any], on_click: Optional[Callable] = None) -> Dict[str, Any]:
        marker = self._marker(pin)
        self.markers[pin['id']] = marker
        if on_click is not None:
            self.pin_callbacks.register(pin['id'], on_click)
        return marker

    def remove_marker(self, pin_id: str) -> None:
        self.markers.pop(pin_id, None)
        self.pin_callbacks.unregister(pin_id)

    def clear_markers(self) -> None:
        self.markers.clear()
        self.pin_callbacks.clear()

    def set_pins(self, pins: List[Dict[str, Any]], on_click: Optional[Callable] = None) -> List[Dict[str, Any]]:
        """Replace every marker with one per pin"""
        self.clear_markers()
        return [self.add_marker(pin, on_click) for pin in pins]

    def click_marker(self, pin_id: str) -> Any:
        if pin_id not in self.markers:
            raise MapSurfaceError(f"No marker for pin {pin_id}")
        return self.pin_callbacks.dispatch(pin_id)

    # ==================== CLICKS & MEASUREMENT ====================

    def click(self, lat: float, lng: float) -> Dict[str, Any]:
        """
        Handle a click on the map at a coordinate.

        While ready, emits a pin-add event to click listeners. While measuring,
        appends the point to the path and completes the measurement once the
        auto-complete count is reached.
        """
        self._require(MapState.READY, MapState.MEASURING)
        point = {'lat': float(lat), 'lng': float(lng)}

        if self.state == MapState.MEASURING:
            self.path.append(point)
            if self.auto_complete is not None and len(self.path) >= self.auto_complete:
                return {'event': 'measurement', 'measurement': self.finish_measurement()}
            return {'event': 'measure_point', 'points': len(self.path)}

        for listener in self.click_listeners:
            listener(dict(point))
        return {'event': 'pin_add', 'coordinates': point}

    def start_measurement(self, measurement_type: str) -> None:
        self._require(MapState.READY)
        if measurement_type not in MeasurementType.LINEAR:
            raise MapSurfaceError(f"Cannot outline a {measurement_type} measurement")
        self.measuring_type = measurement_type
        self.path = []
        self.state = MapState.MEASURING

    def cancel_measurement(self) -> None:
        self._require(MapState.MEASURING)
        self._reset_measurement()

    def finish_measurement(self) -> Dict[str, Any]:
        self._require(MapState.MEASURING)
        if len(self.path) < 3:
            raise InvalidDimension("A polygon needs at least 3 points", 'coordinates')
        event = {
            'type': self.measuring_type,
            'area': polygon_area_sqft(self.path),
            'coordinates': list(self.path),
            'location': f"{self.measuring_type} measurement",
        }
        self._reset_measurement()
        for listener in self.measurement_listeners:
            listener(dict(event))
        return event

    def _reset_measurement(self) -> None:
        self.measuring_type = None
        self.path = []
        self.state = MapState.READY

    # ==================== VIEWPORT ====================

    def fit_bounds(self, points: List[Dict[str, float]]) -> Dict[str, Any]:
        """Centre and zoom so every point is visible, never closer than MAX_FIT_ZOOM"""
        if not points:
            return self.snapshot()
        lats = [p['lat'] for p in points]
        lngs = [p['lng'] for p in points]
        bounds = {
            'south': min(lats), 'west': min(lngs),
            'north': max(lats), 'east': max(lngs),
        }
        self.center = {
            'lat': (bounds['south'] + bounds['north']) / 2,
            'lng': (bounds['west'] + bounds['east']) / 2,
        }
        span = max(bounds['north'] - bounds['south'], bounds['east'] - bounds['west'])
        if span <= 0:
            self.zoom = MAX_FIT_ZOOM
        else:
            # Each zoom level halves the visible span of the 360° world
            self.zoom = max(0, min(MAX_FIT_ZOOM, int(math.floor(math.log2(360.0 / span)))))
        return {'center': dict(self.center), 'zoom': self.zoom, 'bounds': bounds}

    def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def snapshot(self) -> Dict[str, Any]:
        return {
            'provider': self.provider,
            'state': self.state,
            'degraded': self.degraded,
            'center': dict(self.center),
            'zoom': self.zoom,
            'map_type': self.map_type,
            'markers': list(self.markers.values()),
            'measuring': {
                'type': self.measuring_type,
                'points': list(self.path),
            } if self.state == MapState.MEASURING else None,
        }


class GoogleMapSurface(MapSurface):
    """Live surface backed by Google Maps; renders as a Static Maps URL"""

    provider = 'google'

    def __init__(self, api_key: str, geocoder=None, **kwargs):
        super().__init__(**kwargs)
        self._api_key = api_key
        self.geocoder = geocoder

    def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        if self.geocoder is None:
            return None
        return self.geocoder.geocode(address)

    def static_map_url(self, width: int = 640, height: int = 400) -> str:
        params = [
            ('center', f"{self.center['lat']},{self.center['lng']}"),
            ('zoom', str(self.zoom)),
            ('size', f"{width}x{height}"),
            ('maptype', self.map_type),
        ]
        for marker in self.markers.values():
            position = marker['position']
            params.append(('markers', f"color:red|{position['lat']},{position['lng']}"))
        if self.path:
            color = TYPE_COLORS.get(self.measuring_type, '#3b82f6').replace('#', '0x')
            closed = self.path + [self.path[0]]
            points = '|'.join(f"{p['lat']},{p['lng']}" for p in closed)
            params.append(('path', f"color:{color}|fillcolor:{color}59|{points}"))
        params.append(('key', self._api_key))
        return f"{STATIC_MAP_URL}?{urlencode(params)}"

    def snapshot(self) -> Dict[str, Any]:
        data = super().snapshot()
        data['static_map_url'] = self.static_map_url() if self.state != MapState.UNAVAILABLE else None
        return data


class MockMapSurface(MapSurface):
    """
    Deterministic stand-in for the live map.

    Markers are laid out on a fixed pixel grid and pixel clicks translate to
    coordinates around the default centre, spanning 0.01° across the surface.
    """

    provider = 'mock'
    SPAN_DEGREES = 0.01

    def __init__(self, resolver=None, width: int = 400, height: int = 400, **kwargs):
        super().__init__(**kwargs)
        self.resolver = resolver
        self.width = width
        self.height = height

    def pixel_to_latlng(self, x: float, y: float) -> Dict[str, float]:
        if not (0 <= x <= self.width and 0 <= y <= self.height):
            raise MapSurfaceError(f"Pixel ({x}, {y}) is outside the {self.width}x{self.height} map")
        lat, lng = DEFAULT_CENTER
        return {
            'lat': lat + (y / self.height - 0.5) * self.SPAN_DEGREES,
            'lng': lng + (x / self.width - 0.5) * self.SPAN_DEGREES,
        }

    def click_pixel(self, x: float, y: float) -> Dict[str, Any]:
        point = self.pixel_to_latlng(x, y)
        return self.click(point['lat'], point['lng'])

    @staticmethod
    def marker_pixel(index: int) -> Dict[str, int]:
        return {'x': 20 + (index * 60) % 300, 'y': 30 + (index * 40) % 200}

    def _marker(self, pin: Dict[str, Any]) -> Dict[str, Any]:
        marker = super()._marker(pin)
        marker['pixel'] = self.marker_pixel(len(self.markers))
        return marker

    def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        if self.resolver is None:
            return None
        resolved = self.resolver.resolve(address)
        return {'address': resolved.address, 'coordinates': resolved.coordinates}

    def snapshot(self) -> Dict[str, Any]:
        data = super().snapshot()
        data['size'] = {'width': self.width, 'height': self.height}
        return data


def _probe_request(http, api_key: str, timeout: float) -> Any:
    response = http.get(GEOCODE_URL, params={'address': PROBE_ADDRESS, 'key': api_key}, timeout=timeout)
    response.raise_for_status()
    return response.json()


def probe_map_provider(api_key: Optional[str], timeout: float = 2.0,
                       session: Optional[requests.Session] = None) -> bool:
    """
    One-time check that Google Maps Platform accepts the key.

    Asks the Geocoding API, which reports a bad key in its ``status``. The
    whole check, connect and read included, is bounded by ``timeout``.
    """
    if not api_key:
        return False
    http = session or requests
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(_probe_request, http, api_key, timeout)
    try:
        data = future.result(timeout=timeout)
    except FutureTimeout:
        logger.info(f"Google Maps probe timed out after {timeout}s")
        return False
    except (requests.RequestException, ValueError) as e:
        logger.info(f"Google Maps probe failed: {e}")
        return False
    finally:
        executor.shutdown(wait=False)

    status = data.get('status') if isinstance(data, dict) else None
    if status not in PROBE_OK_STATUSES:
        logger.info(f"Google Maps probe rejected: {status}")
        return False
    return True


def mount_map_surface(config: Dict[str, Any], resolver=None, geocoder=None,
                      probe: Callable = probe_map_provider) -> MapSurface:
    """
    Build the map surface for the app.

    Probes Google Maps once; on success the live surface is returned ready. A
    missing key, failed probe or timeout leaves the live surface unavailable and
    returns a ready mock surface flagged as degraded.
    """
    options = {
        'center': config.get('MAP_DEFAULT_CENTER', DEFAULT_CENTER),
        'zoom': config.get('MAP_DEFAULT_ZOOM', DEFAULT_ZOOM),
        'map_type': config.get('MAP_DEFAULT_TYPE', 'roadmap'),
        'auto_complete': config.get('MAP_MEASURE_AUTO_COMPLETE', 3),
    }
    api_key = config.get('GOOGLE_MAPS_API_KEY')

    live = GoogleMapSurface(api_key, geocoder=geocoder, **options)
    if probe(api_key, config.get('MAP_PROBE_TIMEOUT', 2.0)):
        live.create_map()
        logger.info("Google Maps surface ready")
        return live

    live.mark_unavailable('probe failed' if api_key else 'no API key')
    mock = MockMapSurface(resolver=resolver, **options)
    mock.degraded = True
    mock.create_map()
    logger.info("Falling back to mock map surface")
    return mock
