"""
Measurement Engine
Area, volume and polygon area calculations, unit conversions, display formatting,
and the measurement record types keyed by ``type``.
"""
import math
import logging
from datetime import datetime
from typing import Dict, List, Optional, Any

import pyproj

from validators import ValidationError, coerce_number, sanitize_string, MAX_ADDRESS_LENGTH, MAX_NOTES_LENGTH

logger = logging.getLogger(__name__)

GEOD = pyproj.Geod(ellps="WGS84")

SQFT_PER_ACRE = 43560.0
CUBIC_FT_PER_YARD = 27.0
INCHES_PER_FOOT = 12.0
SQFT_PER_SQM = 10.763910416709722

# Fat-finger bound on any single dimension
MAX_DIMENSION_FT = 10000.0
# Depth and snowfall are entered in inches
MAX_DEPTH_IN = 240.0


class MeasurementType:
    LAWN = 'lawn'
    DRIVEWAY = 'driveway'
    FLOWERBED = 'flowerbed'
    GARDEN = 'garden'
    PATIO = 'patio'
    SNOWFALL = 'snowfall'

    LINEAR = (LAWN, DRIVEWAY, FLOWERBED, GARDEN, PATIO)
    ALL = LINEAR + (SNOWFALL,)


class Material:
    TOPSOIL = 'topsoil'
    MULCH = 'mulch'
    STONE = 'stone'

    ALL = (TOPSOIL, MULCH, STONE)


class InvalidDimension(ValidationError):
    """A length, width, depth or polygon that cannot be measured"""
    pass


class DimensionTooLarge(InvalidDimension):
    """A dimension above the realistic upper bound"""
    pass


# ==================== CALCULATIONS ====================

def _dimension(value: Any, field: str, max_value: float = MAX_DIMENSION_FT, unit: str = 'ft') -> float:
    try:
        number = coerce_number(value, field)
    except ValidationError as e:
        raise InvalidDimension(e.message, field) from e
    if number <= 0:
        raise InvalidDimension(f"{field} must be greater than zero", field)
    if number > max_value:
        raise DimensionTooLarge(f"{field} must be under {max_value:,.0f} {unit}", field)
    return number


def compute_area(length: Any, width: Any, max_dimension: float = MAX_DIMENSION_FT) -> float:
    """Rectangle area in square feet from length and width in feet"""
    return _dimension(length, 'length', max_dimension) * _dimension(width, 'width', max_dimension)


def compute_volume(area: float, depth_inches: float) -> float:
    """Volume in cubic feet of ``area`` square feet filled ``depth_inches`` deep"""
    for field, value in (('area', area), ('depth', depth_inches)):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidDimension(f"{field} must be a number", field)
        if value < 0:
            raise InvalidDimension(f"{field} cannot be negative", field)
    return area * depth_inches / INCHES_PER_FOOT


def polygon_area_sqft(path: List[Dict[str, float]]) -> float:
    """
    Geodesic area of a lat/lng polygon in square feet.

    Args:
        path: Vertices as ``{'lat': .., 'lng': ..}`` dicts, not closed

    Returns:
        Enclosed area on the WGS84 ellipsoid, in square feet
    """
    if not path or len(path) < 3:
        raise InvalidDimension("A polygon needs at least 3 points", 'coordinates')
    try:
        lats = [float(p['lat']) for p in path]
        lons = [float(p['lng']) for p in path]
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidDimension(f"Invalid polygon point: {e}", 'coordinates') from e
    if not all(math.isfinite(v) for v in lats + lons):
        raise InvalidDimension("Invalid polygon point: coordinates must be finite", 'coordinates')

    area_m2, _ = GEOD.polygon_area_perimeter(lons, lats)
    # Sign depends on winding order
    return square_meters_to_sqft(abs(area_m2))


# ==================== CONVERSIONS ====================

def sqft_to_acres(sqft: float) -> float:
    return sqft / SQFT_PER_ACRE


def acres_to_sqft(acres: float) -> float:
    return acres * SQFT_PER_ACRE


def cubic_ft_to_cubic_yards(cubic_ft: float) -> float:
    return cubic_ft / CUBIC_FT_PER_YARD


def inches_to_feet(inches: float) -> float:
    return inches / INCHES_PER_FOOT


def feet_to_inches(feet: float) -> float:
    return feet * INCHES_PER_FOOT


def square_meters_to_sqft(square_meters: float) -> float:
    return square_meters * SQFT_PER_SQM


# ==================== FORMATTING ====================

def format_area(sqft: float) -> str:
    """One decimal place; one acre and above is shown in acres"""
    if sqft >= SQFT_PER_ACRE:
        return f"{sqft_to_acres(sqft):.1f} acres"
    return f"{sqft:,.1f} sq ft"


def format_volume(cubic_ft: float) -> str:
    return f"{cubic_ft:,.1f} cu ft ({cubic_ft_to_cubic_yards(cubic_ft):.1f} cu yd)"


def format_length(feet: float) -> str:
    return f"{feet:,.1f} ft"


def format_snowfall(inches: float) -> str:
    return f"{inches:.1f} in"


# ==================== MEASUREMENT TYPES ====================

class BaseMeasurement:
    """Fields shared by every measurement variant"""

    def __init__(self, type: str, location: str = '', address: str = '', notes: str = '',
                 coordinates: Any = None, pin_id: Optional[str] = None,
                 id: Optional[str] = None, created_at: Optional[str] = None):
        self.type = type
        self.location = location
        self.address = address
        self.notes = notes
        self.coordinates = coordinates
        self.pin_id = pin_id
        self.id = id
        self.created_at = created_at or datetime.utcnow().isoformat()

    def _variant_fields(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'type': self.type,
            'location': self.location,
            'address': self.address,
            'notes': self.notes,
            'coordinates': self.coordinates,
            'pin_id': self.pin_id,
            'created_at': self.created_at,
        }
        data.update(self._variant_fields())
        return {k: v for k, v in data.items() if v is not None}

    def describe(self) -> str:
        raise NotImplementedError


class LinearMeasurement(BaseMeasurement):
    """A rectangular feature measured by length and width (feet), optional depth (inches)"""

    def __init__(self, type: str, length: float, width: float, depth: Optional[float] = None,
                 material: Optional[str] = None, max_dimension: float = MAX_DIMENSION_FT, **common):
        super().__init__(type, **common)
        self.length = length
        self.width = width
        self.depth = depth
        self.material = material
        # Area is always derived; a supplied value is never trusted
        self.area = compute_area(length, width, max_dimension)
        self.volume = compute_volume(self.area, depth) if depth is not None else None

    def _variant_fields(self) -> Dict[str, Any]:
        return {
            'material': self.material,
            'length': self.length,
            'width': self.width,
            'depth': self.depth,
            'area': self.area,
            'volume': self.volume,
        }

    def describe(self) -> str:
        text = f"{format_length(self.length)} × {format_length(self.width)} = {format_area(self.area)}"
        if self.volume is not None:
            text += f", {format_volume(self.volume)}"
        return text


class PolygonMeasurement(BaseMeasurement):
    """A feature outlined on the map; area comes from the polygon path"""

    def __init__(self, type: str, path: List[Dict[str, float]], depth: Optional[float] = None,
                 material: Optional[str] = None, **common):
        common['coordinates'] = path
        super().__init__(type, **common)
        self.depth = depth
        self.material = material
        self.area = polygon_area_sqft(path)
        self.volume = compute_volume(self.area, depth) if depth is not None else None

    @property
    def path(self) -> List[Dict[str, float]]:
        return self.coordinates

    def _variant_fields(self) -> Dict[str, Any]:
        return {
            'material': self.material,
            'depth': self.depth,
            'area': self.area,
            'volume': self.volume,
        }

    def describe(self) -> str:
        return f"{format_area(self.area)} ({len(self.path)} points)"


class SnowfallMeasurement(BaseMeasurement):
    """Snow depth in inches recorded at a location"""

    def __init__(self, snowfall: float, **common):
        super().__init__(MeasurementType.SNOWFALL, **common)
        self.snowfall = snowfall

    def _variant_fields(self) -> Dict[str, Any]:
        return {'snowfall': self.snowfall}

    def describe(self) -> str:
        return format_snowfall(self.snowfall)


def build_measurement(data: Dict[str, Any], max_dimension: float = MAX_DIMENSION_FT) -> BaseMeasurement:
    """
    Validate form input and build the matching measurement variant.

    Snowfall entries need ``snowfall``; other types need ``length`` and ``width``,
    or a ``coordinates`` polygon of at least 3 points. Any ``area`` or ``volume``
    in the input is ignored and recomputed.

    Raises:
        ValidationError: for a missing or unknown type or material
        InvalidDimension: for unusable numbers or polygons
    """
    if not isinstance(data, dict):
        raise ValidationError("Measurement must be an object")

    m_type = sanitize_string(data.get('type')).lower()
    if m_type not in MeasurementType.ALL:
        raise ValidationError(f"Invalid type. Must be one of: {', '.join(MeasurementType.ALL)}", 'type')

    common = {
        'location': sanitize_string(data.get('location'), MAX_ADDRESS_LENGTH),
        'address': sanitize_string(data.get('address'), MAX_ADDRESS_LENGTH),
        'notes': sanitize_string(data.get('notes'), MAX_NOTES_LENGTH),
        'pin_id': data.get('pin_id') or None,
    }

    if m_type == MeasurementType.SNOWFALL:
        if data.get('snowfall') in (None, ''):
            raise InvalidDimension("Snowfall is required", 'snowfall')
        snowfall = _dimension(data['snowfall'], 'snowfall', MAX_DEPTH_IN, 'in')
        return SnowfallMeasurement(snowfall, coordinates=data.get('coordinates'), **common)

    material = data.get('material') or None
    if material is not None and material not in Material.ALL:
        raise ValidationError(f"Invalid material. Must be one of: {', '.join(Material.ALL)}", 'material')

    depth = None
    if data.get('depth') not in (None, ''):
        depth = _dimension(data['depth'], 'depth', MAX_DEPTH_IN, 'in')

    has_dimensions = data.get('length') not in (None, '') or data.get('width') not in (None, '')
    coordinates = data.get('coordinates')
    if not has_dimensions and isinstance(coordinates, list):
        return PolygonMeasurement(m_type, coordinates, depth=depth, material=material, **common)

    for field in ('length', 'width'):
        if data.get(field) in (None, ''):
            raise InvalidDimension(f"{field.capitalize()} is required", field)
    length = _dimension(data['length'], 'length', max_dimension)
    width = _dimension(data['width'], 'width', max_dimension)
    return LinearMeasurement(m_type, length, width, depth=depth, material=material,
                             max_dimension=max_dimension, coordinates=coordinates, **common)
