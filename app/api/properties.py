"""
Property API Routes Blueprint

Address search, pins and the map surface:
- /api/address/search, /api/address/resolve
- /api/pins, /api/pins/<id>, /api/pins/<id>/measurement
- /api/map and its click / marker / measurement / viewport actions
"""

import logging
from flask import Blueprint, request, jsonify

from app.utils.helpers import get_service, get_json_body, with_notices, error_response
from crm_data_layer import StoreError
from services.geocoding import GeocodingError
from services.map_surface import MapSurfaceError
from services.measurement_workflow import PinNotFound
from validators import ValidationError, validate_search_term, validate_pin_request, format_validation_error

logger = logging.getLogger(__name__)

# Create blueprint
properties_bp = Blueprint('properties_bp', __name__)

SERVICE_ERRORS = (ValidationError, PinNotFound, MapSurfaceError, GeocodingError, StoreError)


# ============================================================================
# ADDRESS SEARCH
# ============================================================================

@properties_bp.route('/api/address/search', methods=['GET'])
def search_addresses():
    """Candidate addresses for a search term (at most 5)"""
    term = request.args.get('q', '')
    workflow = get_service('workflow')
    try:
        candidates = workflow.search(term)
        return jsonify(with_notices({'success': True, 'candidates': candidates}, workflow))
    except SERVICE_ERRORS as e:
        return error_response(e, 'searching addresses')


@properties_bp.route('/api/address/resolve', methods=['POST'])
def resolve_address():
    """Resolve an address and drop a pin on it"""
    data = get_json_body()
    is_valid, error = validate_search_term(data.get('address'))
    if not is_valid:
        return jsonify(format_validation_error('address', error)), 400

    workflow = get_service('workflow')
    try:
        pin = workflow.select_address(data['address'], client_id=data.get('client_id'))
        return jsonify(with_notices({'success': True, 'pin': pin}, workflow)), 201
    except SERVICE_ERRORS as e:
        return error_response(e, 'resolving an address')


# ============================================================================
# PINS
# ============================================================================

@properties_bp.route('/api/pins', methods=['GET', 'POST'])
def handle_pins():
    """List pins, or add one from an address or explicit coordinates"""
    workflow = get_service('workflow')
    if request.method == 'GET':
        try:
            return jsonify({'success': True, 'pins': workflow.list_pins()})
        except StoreError as e:
            return error_response(e, 'listing pins')

    data = get_json_body()
    is_valid, error = validate_pin_request(data)
    if not is_valid:
        return jsonify(format_validation_error(None, error)), 400

    try:
        if 'lat' in data:
            if data.get('address'):
                pin = workflow.select_candidate({
                    'address': data['address'],
                    'coordinates': {'lat': data['lat'], 'lng': data['lng']},
                }, client_id=data.get('client_id'))
            else:
                pin = workflow.map_click(data['lat'], data['lng'])
        else:
            pin = workflow.select_address(data['address'], client_id=data.get('client_id'))
        return jsonify(with_notices({'success': True, 'pin': pin}, workflow)), 201
    except SERVICE_ERRORS as e:
        return error_response(e, 'adding a pin')


@properties_bp.route('/api/pins/<pin_id>', methods=['GET', 'DELETE'])
def handle_pin(pin_id):
    """Get a pin with its measurements, or delete it"""
    workflow = get_service('workflow')
    try:
        if request.method == 'GET':
            pin = workflow.get_pin(pin_id)
            return jsonify({
                'success': True,
                'pin': pin,
                'measurements': workflow.measurements.for_pin(pin_id),
            })

        removed = workflow.remove_pin(pin_id)
        return jsonify(with_notices({'success': True, 'removed': removed}, workflow))
    except SERVICE_ERRORS as e:
        return error_response(e, f'handling pin {pin_id}')


@properties_bp.route('/api/pins/<pin_id>/measurement', methods=['PUT'])
def measure_pin(pin_id):
    """Attach length x width to a pin, or save a full measurement form for it"""
    data = get_json_body()
    workflow = get_service('workflow')
    try:
        if data.get('type'):
            measurement = workflow.save_measurement(data, pin_id=pin_id)
            pin = workflow.get_pin(pin_id)
            return jsonify(with_notices({'success': True, 'pin': pin, 'measurement': measurement}, workflow))

        pin = workflow.measure_pin(pin_id, data.get('length'), data.get('width'))
        return jsonify(with_notices({'success': True, 'pin': pin}, workflow))
    except SERVICE_ERRORS as e:
        return error_response(e, f'measuring pin {pin_id}')


# ============================================================================
# MAP SURFACE
# ============================================================================

@properties_bp.route('/api/map', methods=['GET'])
def get_map():
    """Current map view: provider, state, markers and any measurement in progress"""
    return jsonify({'success': True, 'map': get_service('map_surface').snapshot()})


@properties_bp.route('/api/map/type', methods=['POST'])
def set_map_type():
    """Switch between roadmap and satellite; toggles when no map_type is given"""
    data = get_json_body()
    surface = get_service('map_surface')
    try:
        if data.get('map_type'):
            surface.set_map_type(data['map_type'])
        else:
            surface.toggle_map_type()
    except MapSurfaceError as e:
        return jsonify(format_validation_error('map_type', str(e))), 400
    return jsonify({'success': True, 'map': surface.snapshot()})


@properties_bp.route('/api/map/click', methods=['POST'])
def click_map():
    """Click at a coordinate: adds a pin, or a point while measuring"""
    data = get_json_body()
    workflow = get_service('workflow')
    try:
        lat, lng = float(data['lat']), float(data['lng'])
    except (KeyError, TypeError, ValueError):
        return jsonify(format_validation_error('coordinates', 'lat and lng are required numbers')), 400
    try:
        result = workflow.click_map(lat, lng)
        return jsonify(with_notices({'success': True, 'result': result}, workflow))
    except SERVICE_ERRORS as e:
        return error_response(e, 'handling a map click')


@properties_bp.route('/api/map/pixel-click', methods=['POST'])
def pixel_click_map():
    """Click on the mock map by pixel position"""
    data = get_json_body()
    workflow = get_service('workflow')
    surface = get_service('map_surface')
    if not hasattr(surface, 'pixel_to_latlng'):
        return jsonify({'success': False, 'error': 'Pixel clicks need the mock map'}), 409
    try:
        x, y = float(data['x']), float(data['y'])
    except (KeyError, TypeError, ValueError):
        return jsonify(format_validation_error('pixel', 'x and y are required numbers')), 400
    try:
        result = workflow.click_map_pixel(x, y)
        return jsonify(with_notices({'success': True, 'result': result}, workflow))
    except SERVICE_ERRORS as e:
        return error_response(e, 'handling a pixel click')


@properties_bp.route('/api/map/markers/<pin_id>/click', methods=['POST'])
def click_marker(pin_id):
    """Click a marker; returns the pin for its info window"""
    try:
        pin = get_service('map_surface').click_marker(pin_id)
        return jsonify({'success': True, 'pin': pin})
    except MapSurfaceError as e:
        return jsonify({'success': False, 'error': str(e)}), 404


@properties_bp.route('/api/map/measure/start', methods=['POST'])
def start_map_measurement():
    data = get_json_body()
    surface = get_service('map_surface')
    try:
        surface.start_measurement(data.get('type', 'lawn'))
        return jsonify({'success': True, 'map': surface.snapshot()})
    except MapSurfaceError as e:
        return jsonify({'success': False, 'error': str(e)}), 409


@properties_bp.route('/api/map/measure/cancel', methods=['POST'])
def cancel_map_measurement():
    surface = get_service('map_surface')
    try:
        surface.cancel_measurement()
        return jsonify({'success': True, 'map': surface.snapshot()})
    except MapSurfaceError as e:
        return jsonify({'success': False, 'error': str(e)}), 409


@properties_bp.route('/api/map/measure/finish', methods=['POST'])
def finish_map_measurement():
    """Close the polygon being measured and save it"""
    workflow = get_service('workflow')
    try:
        result = workflow.finish_map_measurement()
        return jsonify(with_notices({'success': True, 'result': result}, workflow))
    except SERVICE_ERRORS as e:
        return error_response(e, 'finishing a map measurement')


@properties_bp.route('/api/map/fit-bounds', methods=['POST'])
def fit_map_bounds():
    """Fit the view to the given points, or to every pin when none are given"""
    data = get_json_body()
    surface = get_service('map_surface')
    points = data.get('points')
    if points is None:
        points = [m['position'] for m in surface.markers.values()]
    try:
        view = surface.fit_bounds(points)
    except (KeyError, TypeError) as e:
        return jsonify(format_validation_error('points', f'Invalid point: {e}')), 400
    return jsonify({'success': True, 'view': view})
