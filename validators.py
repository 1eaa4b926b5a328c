"""
Input Validation & Sanitization Utilities
Provides validation for API requests, CRM records, pins and coordinates
"""
import re
import math
from typing import Dict, Any, List, Optional, Tuple, Iterable
from dateutil import parser as date_parser
import logging

logger = logging.getLogger(__name__)

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(r'^\+?1?\d{9,15}$')
DECIMAL_PATTERN = re.compile(r'^\d*\.?\d*$')

MAX_ADDRESS_LENGTH = 500
MAX_NOTES_LENGTH = 5000


class ValidationError(Exception):
    """Custom exception for validation errors"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [
        field for field in required_fields
        if field not in data or data[field] is None or (isinstance(data[field], str) and not data[field].strip())
    ]

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Validate phone number format

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    # Remove common separators
    cleaned_phone = re.sub(r'[\s\-\(\)\.]', '', phone)

    if not PHONE_PATTERN.match(cleaned_phone):
        return False, "Invalid phone number format"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_number_range(value: float, min_value: Optional[float] = None, max_value: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, "Value must be a number"
    if not math.isfinite(value):
        return False, "Value must be a finite number"

    if min_value is not None and value < min_value:
        return False, f"Value too small (minimum {min_value})"

    if max_value is not None and value > max_value:
        return False, f"Value too large (maximum {max_value})"

    return True, None


def validate_choice(value: Any, choices: Iterable[str], field: str = 'value') -> Tuple[bool, Optional[str]]:
    """Validate that value is one of the allowed choices"""
    choices = list(choices)
    if value not in choices:
        return False, f"Invalid {field}. Must be one of: {', '.join(choices)}"
    return True, None


def validate_date(value: Any) -> Tuple[bool, Optional[str]]:
    """Validate a date/datetime string (ISO or any format dateutil understands)"""
    if not value or not isinstance(value, str):
        return False, "Date must be a non-empty string"
    try:
        date_parser.parse(value)
    except (ValueError, OverflowError):
        return False, f"Invalid date: {value}"
    return True, None


def validate_coordinates(lat: Any, lng: Any) -> Tuple[bool, Optional[str]]:
    """Validate a latitude/longitude pair in decimal degrees"""
    for name, value, bound in (('lat', lat, 90), ('lng', lng, 180)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False, f"{name} must be a number"
        if not math.isfinite(value):
            return False, f"{name} must be a finite number"
        if value < -bound or value > bound:
            return False, f"{name} out of range (±{bound})"
    return True, None


def coerce_number(value: Any, field: str) -> float:
    """
    Convert form input to float.

    Accepts numbers and decimal strings ("12", "12.5", ".5"); anything else
    raises ValidationError for the named field.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValidationError(f"{field} must be a finite number", field)
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned and cleaned != '.' and DECIMAL_PATTERN.match(cleaned):
            return float(cleaned)
    raise ValidationError(f"{field} must be a valid positive number", field)


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing potentially dangerous characters

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if value is None:
        return ''
    if not isinstance(value, str):
        return str(value)

    # Remove null bytes
    sanitized = value.replace('\x00', '')

    # Trim whitespace
    sanitized = sanitized.strip()

    # Limit length
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def validate_search_term(term: Any) -> Tuple[bool, Optional[str]]:
    """A search term must be a non-blank string"""
    if not isinstance(term, str) or not term.strip():
        return False, "Please enter an address to search"
    return validate_string_length(term.strip(), min_length=1, max_length=MAX_ADDRESS_LENGTH)


def validate_pin_request(data: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate a pin creation request

    Either an address to resolve, or explicit coordinates (optionally with an address).
    """
    if not isinstance(data, dict):
        return False, "Request body must be a JSON object"

    has_coordinates = 'lat' in data or 'lng' in data
    if has_coordinates:
        is_valid, error = validate_coordinates(data.get('lat'), data.get('lng'))
        if not is_valid:
            return False, error
    else:
        is_valid, error = validate_required_fields(data, ['address'])
        if not is_valid:
            return False, error

    if data.get('address') is not None:
        is_valid, error = validate_string_length(data['address'], max_length=MAX_ADDRESS_LENGTH)
        if not is_valid:
            return False, f"Invalid address: {error}"

    return True, None


def validate_client_request(data: Dict[str, Any], is_update: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate client data

    Args:
        data: Request data dictionary
        is_update: Partial updates skip the required-field check

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not is_update:
        is_valid, error = validate_required_fields(data, ['name'])
        if not is_valid:
            return False, error
        if not isinstance(data['name'], str) or len(data['name'].strip()) < 2:
            return False, "Client name must be at least 2 characters"

    if data.get('email'):
        is_valid, error = validate_email(data['email'].strip())
        if not is_valid:
            return False, f"Invalid email: {error}"

    if data.get('phone'):
        is_valid, error = validate_phone(data['phone'].strip())
        if not is_valid:
            return False, f"Invalid phone: {error}"

    if data.get('address'):
        is_valid, error = validate_string_length(data['address'], max_length=MAX_ADDRESS_LENGTH)
        if not is_valid:
            return False, f"Invalid address: {error}"

    return True, None


def format_validation_error(field: Optional[str], message: str) -> Dict[str, Any]:
    """
    Format validation error for consistent API responses

    Args:
        field: Field name that failed validation
        message: Error message

    Returns:
        Error response dictionary
    """
    return {
        'success': False,
        'error': message,
        'field': field
    }
