"""
Unit tests for DataValidator field validation, object validation and
statistics.

Field checks follow the validation order: unknown field, absent value,
value type, security scan, length, required-but-blank, format, card
recognition, sanitization.
"""

import hashlib

import pytest
from structlog.testing import capture_logs

from icguard import (
    FieldError,
    SecurityViolationKind,
    ValidationErrorKind,
    fingerprint,
)


class TestFieldFormats:
    """Built-in field formats."""

    @pytest.mark.parametrize("field_name, value", [
        ('employeeId', 'EMP001'),
        ('employeeId', 'ABC12345'),
        ('employeeName', '田中太郎'),
        ('employeeName', 'John Smith'),
        ('department', '営業部'),
        ('email', 'user@example.com'),
        ('phoneNumber', '090-1234-5678'),
        ('phoneNumber', '03 1234 5678'),
        ('cardType', 'PASMO'),
        ('lossDate', '2024-01-15'),
        ('lossTime', '09:30'),
        ('lossTime', '23:59'),
        ('lossLocation', '名古屋駅 (2F)'),
        ('transportationProvider', 'JR東海'),
        ('reportStatus', 'SUBMITTED'),
        ('priority', 'URGENT'),
    ])
    def test_valid_values(self, validator, field_name, value):
        result = validator.validate_field(field_name, value)

        assert result.valid, result.message
        assert result.sanitized_value == value
        assert result.error_kind is None

    @pytest.mark.parametrize("field_name, value", [
        ('employeeId', 'EMP1'),
        ('employeeId', 'EMP-001'),
        ('employeeName', '田中123'),
        ('email', 'invalid-email'),
        ('phoneNumber', '12345'),
        ('cardType', 'OCTOPUS'),
        ('lossDate', '2024-13-01'),
        ('lossDate', '2024/01/15'),
        ('lossTime', '9:30'),
        ('lossTime', '24:00'),
        ('lossDate', '２０２４-01-15'),
        ('lossTime', '０９:３０'),
        ('reportStatus', 'submitted'),
        ('priority', 'CRITICAL'),
    ])
    def test_invalid_formats(self, validator, field_name, value):
        result = validator.validate_field(field_name, value)

        assert not result.valid
        assert result.error_kind is ValidationErrorKind.INVALID_FORMAT
        assert result.sanitized_value is None

    def test_free_text_accepts_any_safe_text(self, validator):
        result = validator.validate_field('description', '改札付近で紛失しました。黒いケース付き')
        assert result.valid


class TestFieldValidationOrder:

    def test_unknown_field(self, validator):
        result = validator.validate_field('favouriteColour', 'blue')

        assert result.error_kind is ValidationErrorKind.UNKNOWN_FIELD
        assert result.field == 'favouriteColour'
        assert result.message == "Unknown field: favouriteColour"

    def test_unknown_field_message_escapes_markup(self, validator):
        result = validator.validate_field('<b>name</b>', 'x')

        assert result.error_kind is ValidationErrorKind.UNKNOWN_FIELD
        assert "<b>" not in result.message
        assert "&lt;b&gt;name&lt;/b&gt;" in result.message

    @pytest.mark.security
    @pytest.mark.parametrize("value", ["x_onerror=alert(1)", "a_onload=1"])
    def test_handler_glued_to_word_rejected(self, validator, value):
        result = validator.validate_field('description', value)

        assert result.error_kind is ValidationErrorKind.SECURITY_VIOLATION
        assert result.violation_type is SecurityViolationKind.XSS

    def test_absent_required_value(self, validator):
        result = validator.validate_field('employeeId', None)
        assert result.error_kind is ValidationErrorKind.REQUIRED_FIELD

    def test_absent_value_allowed_when_empty_permitted(self, validator):
        result = validator.validate_field('employeeId', None, allow_empty=True)

        assert result.valid
        assert result.sanitized_value == ""

    def test_absent_optional_value(self, validator):
        result = validator.validate_field('email', None)

        assert result.valid
        assert result.sanitized_value == ""

    def test_blank_required_value(self, validator):
        result = validator.validate_field('employeeName', '   ')
        assert result.error_kind is ValidationErrorKind.REQUIRED_FIELD

    def test_blank_optional_value_skips_format(self, validator):
        result = validator.validate_field('email', '')

        assert result.valid
        assert result.sanitized_value == ""

    def test_number_promoted_to_text(self, validator):
        result = validator.validate_field('employeeId', 12345678)

        assert result.valid
        assert result.sanitized_value == "12345678"
        assert result.original_value == "12345678"

    @pytest.mark.parametrize("value", [True, {'id': 'EMP001'}, ['EMP001'], b'EMP001'])
    def test_unsupported_value_types(self, validator, value):
        result = validator.validate_field('employeeId', value)

        assert result.error_kind is ValidationErrorKind.INVALID_FORMAT
        assert "unsupported value type" in result.message

    def test_excessive_length(self, validator):
        result = validator.validate_field('description', 'あ' * 501)

        assert result.error_kind is ValidationErrorKind.EXCESSIVE_LENGTH
        assert result.actual_length == 501
        assert result.max_length == 500

    def test_length_checked_before_format(self, validator):
        result = validator.validate_field('employeeId', 'EMP0012345678')
        assert result.error_kind is ValidationErrorKind.EXCESSIVE_LENGTH

    @pytest.mark.security
    def test_security_checked_before_length(self, validator):
        result = validator.validate_field('description', '<script>' + 'a' * 600)

        assert result.error_kind is ValidationErrorKind.SECURITY_VIOLATION
        assert result.violation_type is SecurityViolationKind.XSS

    @pytest.mark.security
    @pytest.mark.parametrize("value, violation", [
        ("'; DROP TABLE users; --", SecurityViolationKind.SQL_INJECTION),
        ("test; rm -rf /", SecurityViolationKind.OS_COMMAND_INJECTION),
        ("<img src=x onerror=alert(1)>", SecurityViolationKind.XSS),
    ])
    def test_security_violations(self, validator, value, violation):
        result = validator.validate_field('employeeName', value)

        assert not result.valid
        assert result.error_kind is ValidationErrorKind.SECURITY_VIOLATION
        assert result.violation_type is violation
        assert value not in result.message

    def test_sanitized_value_is_trimmed(self, validator):
        result = validator.validate_field('notes', '  trimmed note  ')

        assert result.sanitized_value == "trimmed note"
        assert result.original_value == "  trimmed note  "

    def test_sanitization_can_be_disabled(self, validator):
        validator.register_rule('rawNote', {
            'max_length': 50, 'required': False, 'sanitize': False, 'description': "Raw note",
        })

        result = validator.validate_field('rawNote', '  kept as is  ')
        assert result.sanitized_value == "  kept as is  "

    def test_internal_error_is_reported_not_raised(self, validator, monkeypatch):
        def broken_scan(value):
            raise RuntimeError("scanner failure")

        monkeypatch.setattr(validator.scanner, 'scan', broken_scan)

        result = validator.validate_field('employeeName', '田中太郎')

        assert result.error_kind is ValidationErrorKind.VALIDATION_ERROR
        assert "scanner failure" not in result.message
        assert validator.get_stats().failed_validations == 1


class TestCardNumberField:

    def test_known_card_accepted(self, validator, valid_card_number):
        result = validator.validate_field('icCardNumber', valid_card_number)
        assert result.valid

    def test_checksum_not_enforced_at_field_level(self, validator):
        assert validator.validate_field('icCardNumber', '1234567890123456').valid

    def test_student_card_accepted(self, validator):
        assert validator.validate_field('icCardNumber', '12345678').valid

    @pytest.mark.parametrize("value", ['1234', '12345', '123456789012345', 'abcd1234'])
    def test_unrecognised_card_rejected(self, validator, value):
        result = validator.validate_field('icCardNumber', value)
        assert result.error_kind is ValidationErrorKind.INVALID_FORMAT


class TestObjectValidation:

    def test_valid_report(self, validator, valid_report_data):
        result = validator.validate_object(valid_report_data, required_fields=['employeeId', 'icCardNumber'])

        assert result.valid
        assert result.errors == []
        assert result.sanitized_data == valid_report_data
        assert result.data_hash == fingerprint(result.sanitized_data)
        assert len(result.data_hash) == 64

    def test_missing_required_field(self, validator):
        result = validator.validate_object(
            {'employeeId': 'EMP001'},
            required_fields=['employeeId', 'employeeName']
        )

        assert not result.valid
        assert result.errors == [FieldError(
            field='employeeName',
            error_kind=ValidationErrorKind.MISSING_REQUIRED_FIELD,
            message="Missing required field: employeeName",
        )]
        assert result.sanitized_data == {'employeeId': 'EMP001'}

    def test_required_field_set_to_none(self, validator):
        result = validator.validate_object({'employeeName': None}, required_fields=['employeeName'])

        assert len(result.errors_of(ValidationErrorKind.MISSING_REQUIRED_FIELD)) == 1
        assert len(result.errors_of(ValidationErrorKind.REQUIRED_FIELD)) == 1

    def test_invalid_fields_excluded_from_sanitized_data(self, validator):
        result = validator.validate_object({
            'employeeId': 'EMP001',
            'employeeName': "'; DROP TABLE users; --",
            'lossDate': '2024-02-30x',
        })

        assert not result.valid
        assert list(result.sanitized_data) == ['employeeId']
        assert [error.field for error in result.errors] == ['employeeName', 'lossDate']
        assert result.errors[0].violation_type is SecurityViolationKind.SQL_INJECTION
        assert result.data_hash == fingerprint({'employeeId': 'EMP001'})

    def test_unknown_fields_reported(self, validator):
        result = validator.validate_object({'employeeId': 'EMP001', 'extra': 'x'})

        assert result.errors_of(ValidationErrorKind.UNKNOWN_FIELD)[0].field == 'extra'

    @pytest.mark.parametrize("data", [None, "report", ['employeeId'], 42])
    def test_non_mapping_input(self, validator, data):
        result = validator.validate_object(data)

        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].error_kind is ValidationErrorKind.VALIDATION_ERROR
        assert result.errors[0].field is None

    def test_internal_error_is_reported_not_raised(self, validator, monkeypatch):
        def broken_fingerprint(data):
            raise RuntimeError("digest failure")

        monkeypatch.setattr('icguard.validator.fingerprint', broken_fingerprint)

        result = validator.validate_object({'employeeId': 'EMP001'})

        assert not result.valid
        assert result.errors[0].error_kind is ValidationErrorKind.VALIDATION_ERROR

    def test_to_dict(self, validator):
        result = validator.validate_object({'employeeId': 'EMP001', 'lossTime': '9:30'}).to_dict()

        assert result['valid'] is False
        assert result['sanitized_data'] == {'employeeId': 'EMP001'}
        assert result['errors'][0]['field'] == 'lossTime'
        assert result['errors'][0]['error'] == 'INVALID_FORMAT'


class TestDataHash:

    def test_empty_mapping_digest(self):
        assert fingerprint({}) == "44136fa355b3678a1146ad16f7e8649e94fb4fc21fe77e8310c060f61caaff8a"

    def test_canonical_json(self):
        expected = hashlib.sha256('{"a":"1","b":"田中"}'.encode("utf-8")).hexdigest()
        assert fingerprint({'b': '田中', 'a': '1'}) == expected

    def test_independent_of_key_order(self, validator):
        first = validator.validate_object({'employeeId': 'EMP001', 'department': '営業部'})
        second = validator.validate_object({'department': '営業部', 'employeeId': 'EMP001'})

        assert first.data_hash == second.data_hash

    def test_changes_with_content(self, validator):
        first = validator.validate_object({'employeeId': 'EMP001'})
        second = validator.validate_object({'employeeId': 'EMP002'})

        assert first.data_hash != second.data_hash

    def test_hash_uses_sanitized_values(self, validator):
        padded = validator.validate_object({'notes': '  memo  '})
        trimmed = validator.validate_object({'notes': 'memo'})

        assert padded.data_hash == trimmed.data_hash


class TestValidationStatistics:

    def test_initial_statistics(self, validator):
        stats = validator.get_stats()

        assert stats.total_validations == 0
        assert stats.success_rate == 0.0
        assert stats.last_validation is None

    def test_counts_successes_and_failures(self, validator):
        validator.validate_field('employeeId', 'EMP001')
        validator.validate_field('employeeName', "'; DROP TABLE users; --")

        stats = validator.get_stats()
        assert stats.total_validations == 2
        assert stats.successful_validations == 1
        assert stats.failed_validations == 1
        assert stats.security_violations == 1
        assert stats.violation_types['sql_injection'] == 1
        assert stats.success_rate == 50.0
        assert stats.security_violation_rate == 50.0
        assert stats.last_validation is not None

    def test_counts_error_categories(self, validator):
        validator.validate_field('lossTime', '9:30')
        validator.validate_field('description', 'x' * 501)
        validator.validate_field('description', '<script>alert(1)</script>')
        validator.validate_field('employeeName', 'test; rm -rf /')

        violation_types = validator.get_stats().violation_types
        assert violation_types == {
            'sql_injection': 0,
            'os_command': 1,
            'xss': 1,
            'invalid_format': 1,
            'excessive_length': 1,
        }

    def test_object_validation_counts_each_field(self, validator, valid_report_data):
        validator.validate_object(valid_report_data)
        assert validator.get_stats().total_validations == len(valid_report_data)

    def test_snapshot_is_immutable_copy(self, validator):
        snapshot = validator.get_stats()
        validator.validate_field('employeeId', 'EMP001')

        assert snapshot.total_validations == 0
        assert validator.get_stats().total_validations == 1

    def test_reset(self, validator):
        validator.validate_field('employeeName', '<script>x</script>')
        validator.reset_stats()

        stats = validator.get_stats()
        assert stats.total_validations == 0
        assert stats.security_violations == 0
        assert all(count == 0 for count in stats.violation_types.values())

    def test_stats_to_dict(self, validator):
        validator.validate_field('employeeId', 'EMP001')
        stats = validator.get_stats().to_dict()

        assert stats['success_rate'] == 100.0
        assert isinstance(stats['last_validation'], str)


class TestSecurityEventLogging:

    @pytest.mark.security
    def test_security_event_logged_with_masked_preview(self, validator):
        payload = "'; DROP TABLE users; --"

        with capture_logs() as logs:
            validator.validate_field('employeeName', payload)

        events = [entry for entry in logs if entry['event'] == "Security event detected"]
        assert len(events) == 1
        assert events[0]['event_type'] == 'sql_injection_attempt'
        assert events[0]['field'] == 'employeeName'
        assert events[0]['log_level'] == 'warning'
        assert "DROP" not in events[0]['masked_preview']
        assert all(payload not in str(value) for entry in logs for value in entry.values())

    def test_no_security_event_for_valid_input(self, validator):
        with capture_logs() as logs:
            validator.validate_field('employeeName', '田中太郎')

        assert not [entry for entry in logs if entry['event'] == "Security event detected"]


class TestRuleManagement:

    def test_register_and_get_rule(self, validator):
        assert validator.register_rule('stationCode', {
            'pattern': r"[A-Z]{3}", 'max_length': 3, 'required': True,
            'sanitize': True, 'description': "Station code",
        })

        assert validator.get_rule('stationCode').max_length == 3
        assert validator.validate_field('stationCode', 'NGO').valid
        assert validator.validate_field('stationCode', 'ngo').error_kind is ValidationErrorKind.INVALID_FORMAT

    def test_invalid_rule_not_registered(self, validator):
        assert validator.register_rule('stationCode', {'pattern': "["}) is False
        assert validator.get_rule('stationCode') is None

    def test_supported_fields(self, validator):
        names = [entry['name'] for entry in validator.supported_fields()]
        assert 'icCardNumber' in names
