"""
Utilities Package

Shared helper functions used across the API blueprints.
"""

from app.utils.helpers import (
    get_service,
    get_json_body,
    get_int_arg,
    with_notices,
    error_response,
)

__all__ = [
    'get_service',
    'get_json_body',
    'get_int_arg',
    'with_notices',
    'error_response',
]
