"""
Helper functions shared by the API blueprints: service lookup, request parsing
and consistent error responses.
"""

import logging

from flask import current_app, jsonify, request

from crm_data_layer import StoreError
from services.geocoding import GeocodingError
from services.map_surface import MapSurfaceError
from services.measurement_workflow import PinNotFound
from validators import ValidationError, format_validation_error

logger = logging.getLogger(__name__)


def get_service(name):
    """
    Look up a service wired by the app factory.

    Args:
        name: One of 'workflow', 'map_surface', 'crm', 'store'
    """
    return current_app.extensions['yardstick'][name]


def get_json_body():
    """Request JSON as a dict; anything else becomes an empty dict"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def get_int_arg(name, default):
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def with_notices(payload, workflow=None):
    """Attach and clear the workflow's pending notices"""
    workflow = workflow or get_service('workflow')
    payload['notices'] = workflow.drain_notices()
    return payload


def error_response(error, context):
    """
    Map a service exception to a JSON response.

    ValidationError -> 400, PinNotFound -> 404, MapSurfaceError -> 409,
    GeocodingError -> 502, StoreError -> 500. Notices raised along the way
    are included.
    """
    if isinstance(error, ValidationError):
        payload, status = format_validation_error(error.field, error.message), 400
    elif isinstance(error, PinNotFound):
        payload, status = {'success': False, 'error': f'Pin not found: {error}'}, 404
    elif isinstance(error, MapSurfaceError):
        payload, status = {'success': False, 'error': str(error)}, 409
    elif isinstance(error, GeocodingError):
        logger.warning(f"Geocoding failed while {context}: {error}")
        payload, status = {'success': False, 'error': 'Unable to search address. Please try again.'}, 502
    elif isinstance(error, StoreError):
        logger.error(f"Storage error while {context}: {error}")
        payload, status = {'success': False, 'error': 'Storage error'}, 500
    else:
        raise error
    return jsonify(with_notices(payload)), status
