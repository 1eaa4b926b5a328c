"""
Tests for input validation utilities
"""
import pytest
from validators import (
    ValidationError,
    validate_required_fields,
    validate_email,
    validate_phone,
    validate_string_length,
    validate_number_range,
    validate_choice,
    validate_date,
    validate_coordinates,
    coerce_number,
    sanitize_string,
    validate_search_term,
    validate_pin_request,
    validate_client_request,
    format_validation_error,
    MAX_ADDRESS_LENGTH
)


@pytest.mark.unit
class TestRequiredFields:
    """Tests for required fields validation"""

    def test_validate_all_fields_present(self):
        """Test validation passes when all fields present"""
        data = {'name': 'John', 'email': 'john@example.com'}
        is_valid, error = validate_required_fields(data, ['name', 'email'])
        assert is_valid is True
        assert error is None

    def test_validate_missing_field(self):
        """Test validation fails when field missing"""
        data = {'name': 'John'}
        is_valid, error = validate_required_fields(data, ['name', 'email'])
        assert is_valid is False
        assert 'email' in error

    def test_validate_blank_field(self):
        """Test validation fails when field is whitespace only"""
        data = {'name': 'John', 'email': '   '}
        is_valid, error = validate_required_fields(data, ['name', 'email'])
        assert is_valid is False

    def test_validate_none_field(self):
        """Test validation fails when field is None"""
        data = {'name': 'John', 'email': None}
        is_valid, error = validate_required_fields(data, ['name', 'email'])
        assert is_valid is False


@pytest.mark.unit
class TestEmailValidation:
    """Tests for email validation"""

    def test_valid_email(self):
        is_valid, error = validate_email('office@greenacres.example.com')
        assert is_valid is True
        assert error is None

    def test_invalid_email_no_at(self):
        is_valid, error = validate_email('office.greenacres.com')
        assert is_valid is False
        assert 'format' in error

    def test_invalid_email_too_long(self):
        """Test that addresses beyond 254 characters are rejected"""
        is_valid, error = validate_email('a' * 250 + '@example.com')
        assert is_valid is False

    def test_empty_email(self):
        is_valid, error = validate_email('')
        assert is_valid is False


@pytest.mark.unit
class TestPhoneValidation:
    """Tests for phone validation"""

    @pytest.mark.parametrize('phone', ['+15551234567', '5551234567', '(555) 123-4567', '555.123.4567'])
    def test_valid_phone_formats(self, phone):
        is_valid, error = validate_phone(phone)
        assert is_valid is True

    def test_invalid_phone_too_short(self):
        is_valid, error = validate_phone('12345')
        assert is_valid is False

    def test_invalid_phone_letters(self):
        is_valid, error = validate_phone('555-CALL-NOW')
        assert is_valid is False


@pytest.mark.unit
class TestStringAndNumberValidation:
    """Tests for length and range checks"""

    def test_string_length_bounds(self):
        assert validate_string_length('hello', 1, 10)[0] is True
        assert validate_string_length('', 1, 10)[0] is False
        assert validate_string_length('x' * 11, 1, 10)[0] is False

    def test_non_string_value(self):
        is_valid, error = validate_string_length(42)
        assert is_valid is False
        assert 'string' in error

    def test_number_range_bounds(self):
        assert validate_number_range(5, 0, 10)[0] is True
        assert validate_number_range(-1, 0, 10)[0] is False
        assert validate_number_range(11, 0, 10)[0] is False

    def test_bool_is_not_a_number(self):
        """Test that True is not accepted as the number 1"""
        is_valid, error = validate_number_range(True, 0, 10)
        assert is_valid is False

    @pytest.mark.parametrize('value', [float('nan'), float('inf'), float('-inf')])
    def test_non_finite_number_rejected(self, value):
        assert validate_number_range(value, 0)[0] is False


@pytest.mark.unit
class TestChoiceAndDateValidation:
    """Tests for choice and date validation"""

    def test_valid_choice(self):
        assert validate_choice('lawn', ['lawn', 'patio'], 'type') == (True, None)

    def test_invalid_choice_lists_options(self):
        is_valid, error = validate_choice('pool', ['lawn', 'patio'], 'type')
        assert is_valid is False
        assert 'Invalid type' in error
        assert 'lawn, patio' in error

    @pytest.mark.parametrize('value', ['2026-10-19', '2026-10-19T09:30:00', 'Oct 19 2026'])
    def test_valid_dates(self, value):
        assert validate_date(value)[0] is True

    def test_invalid_date(self):
        is_valid, error = validate_date('not a date')
        assert is_valid is False
        assert 'Invalid date' in error


@pytest.mark.unit
class TestCoordinateValidation:
    """Tests for latitude/longitude validation"""

    def test_valid_coordinates(self):
        assert validate_coordinates(40.7128, -74.0060) == (True, None)

    def test_latitude_out_of_range(self):
        is_valid, error = validate_coordinates(91, 0)
        assert is_valid is False
        assert error.startswith('lat')

    def test_longitude_out_of_range(self):
        is_valid, error = validate_coordinates(0, -181)
        assert is_valid is False
        assert error.startswith('lng')

    def test_string_coordinates_rejected(self):
        is_valid, error = validate_coordinates('40.7', '-74.0')
        assert is_valid is False

    @pytest.mark.parametrize('lat,lng', [(float('nan'), 0), (0, float('nan')), (float('inf'), 0), (0, float('-inf'))])
    def test_non_finite_coordinates_rejected(self, lat, lng):
        is_valid, error = validate_coordinates(lat, lng)
        assert is_valid is False
        assert 'finite' in error


@pytest.mark.unit
class TestCoerceNumber:
    """Tests for form input coercion"""

    @pytest.mark.parametrize('value,expected', [(12, 12.0), (12.5, 12.5), ('12', 12.0), (' 7.25 ', 7.25), ('.5', 0.5)])
    def test_accepts_numbers_and_decimal_strings(self, value, expected):
        assert coerce_number(value, 'length') == expected

    @pytest.mark.parametrize('value', ['', '.', 'abc', '-5', '1e3', None, True, [1]])
    def test_rejects_non_numeric_input(self, value):
        with pytest.raises(ValidationError) as exc_info:
            coerce_number(value, 'length')
        assert exc_info.value.field == 'length'

    @pytest.mark.parametrize('value', [float('nan'), float('inf'), float('-inf')])
    def test_rejects_non_finite_numbers(self, value):
        """Test that NaN and infinity from a JSON body are not treated as numbers"""
        with pytest.raises(ValidationError) as exc_info:
            coerce_number(value, 'width')
        assert exc_info.value.field == 'width'


@pytest.mark.unit
class TestStringSanitization:
    """Tests for string sanitization"""

    def test_sanitize_removes_null_bytes(self):
        assert sanitize_string('Hello\x00World') == 'HelloWorld'

    def test_sanitize_trims_whitespace(self):
        assert sanitize_string('  Hello  ') == 'Hello'

    def test_sanitize_limits_length(self):
        assert len(sanitize_string('a' * 2000, max_length=100)) == 100

    def test_sanitize_handles_none_and_non_string(self):
        assert sanitize_string(None) == ''
        assert sanitize_string(123) == '123'


@pytest.mark.unit
class TestRequestValidation:
    """Tests for endpoint-level request validators"""

    def test_blank_search_term(self):
        is_valid, error = validate_search_term('   ')
        assert is_valid is False
        assert error == 'Please enter an address to search'

    def test_search_term_too_long(self):
        is_valid, error = validate_search_term('a' * (MAX_ADDRESS_LENGTH + 1))
        assert is_valid is False

    def test_pin_request_with_address(self):
        assert validate_pin_request({'address': '123 Main St'}) == (True, None)

    def test_pin_request_with_coordinates(self):
        assert validate_pin_request({'lat': 40.7, 'lng': -74.0}) == (True, None)

    def test_pin_request_missing_everything(self):
        is_valid, error = validate_pin_request({})
        assert is_valid is False
        assert 'address' in error

    def test_pin_request_bad_coordinates(self):
        is_valid, error = validate_pin_request({'lat': 200, 'lng': 0})
        assert is_valid is False

    def test_pin_request_not_a_dict(self):
        is_valid, error = validate_pin_request(['address'])
        assert is_valid is False

    def test_valid_client_request(self, sample_client_data):
        assert validate_client_request(sample_client_data) == (True, None)

    def test_client_request_name_too_short(self):
        is_valid, error = validate_client_request({'name': 'A'})
        assert is_valid is False
        assert '2 characters' in error

    def test_client_request_bad_email(self):
        is_valid, error = validate_client_request({'name': 'Acme', 'email': 'nope'})
        assert is_valid is False
        assert error.startswith('Invalid email')

    def test_client_update_skips_required_fields(self):
        """Test that partial updates do not require a name"""
        assert validate_client_request({'phone': '5551234567'}, is_update=True) == (True, None)


@pytest.mark.unit
def test_format_validation_error():
    """Test the error payload shape used by every endpoint"""
    assert format_validation_error('email', 'Invalid email format') == {
        'success': False,
        'error': 'Invalid email format',
        'field': 'email'
    }
