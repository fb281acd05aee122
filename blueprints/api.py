"""
Flask API Blueprint - Report Validation Endpoints

This blueprint exposes the icguard validation core over JSON. It owns no
business rules: each endpoint loads its request body through a marshmallow
schema, calls one core operation and wraps the result in the standard
response envelope.

Validation outcomes (including rejected values) are successful requests and
come back as HTTP 200 with ``valid: false`` in the payload. Only malformed
request bodies produce 400 responses.

API Coverage:
- GET    /api/v1/fields                          supported fields
- POST   /api/v1/fields/<field>/validate         single field validation
- POST   /api/v1/reports/validate                whole report validation
- POST   /api/v1/cards/classify                  IC card classification
- GET    /api/v1/cards/types                     supported card types
- GET    /api/v1/cards/<type>/regions/<region>   region support lookup
- GET    /api/v1/stats                           validation statistics
- DELETE /api/v1/stats                           reset statistics

Raw card numbers never appear in a response: report payloads carry the
masked number and a PBKDF2 hash instead.
"""

import uuid
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional, Tuple

import structlog
from flask import Blueprint, current_app, g, jsonify, request
from marshmallow import Schema, ValidationError, fields

from icguard import mask_card_number

logger = structlog.get_logger("api")

CARD_NUMBER_FIELD = 'icCardNumber'

api_bp = Blueprint('api', __name__)


# =============================================================================
# MARSHMALLOW SCHEMAS FOR REQUEST VALIDATION
# =============================================================================

class FieldValidationRequestSchema(Schema):
    """Single field validation request."""

    value = fields.Raw(allow_none=True, load_default=None)
    allow_empty = fields.Boolean(load_default=False)


class ReportValidationRequestSchema(Schema):
    """Whole report validation request."""

    data = fields.Dict(keys=fields.String(), values=fields.Raw(allow_none=True), required=True)
    required_fields = fields.List(fields.String(), load_default=list)


class CardClassificationRequestSchema(Schema):
    """IC card classification request."""

    card_number = fields.Raw(required=True, allow_none=True)


# =============================================================================
# REQUEST AND RESPONSE HELPERS
# =============================================================================

def generate_request_id() -> str:
    """Return the current request identifier, creating one outside requests."""
    return g.get('request_id') or str(uuid.uuid4())


def validate_request_data(schema_class):
    """
    Decorator for validating the JSON request body with a marshmallow schema.

    The loaded data is stored on ``g.validated_data``.

    Args:
        schema_class: Marshmallow schema class for validation

    Returns:
        Decorator function that validates and injects validated data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            raw_data = request.get_json(silent=True)
            if not isinstance(raw_data, dict):
                raise ValidationError({'_schema': ["Request body must be a JSON object"]})

            g.validated_data = schema_class().load(raw_data)
            return func(*args, **kwargs)

        return wrapper
    return decorator


def create_success_response(
    data: Any = None,
    message: str = "Operation successful",
    status_code: int = 200,
    **kwargs
) -> Tuple[Any, int]:
    """
    Create standardized success response.

    Args:
        data: Response data payload
        message: Human-readable success message
        status_code: HTTP status code
        **kwargs: Additional response fields

    Returns:
        Tuple of (response, status_code)
    """
    response_data = {
        'success': True,
        'message': message,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'request_id': generate_request_id(),
        **kwargs
    }

    if data is not None:
        response_data['data'] = data

    return jsonify(response_data), status_code


def create_error_response(
    message: str,
    error_code: str,
    status_code: int = 400,
    details: Optional[Dict[str, Any]] = None
) -> Tuple[Any, int]:
    """
    Create standardized error response.

    Args:
        message: Human-readable error message
        error_code: Machine-readable error code
        status_code: HTTP status code
        details: Additional error context

    Returns:
        Tuple of (response, status_code)
    """
    response_data = {
        'success': False,
        'message': message,
        'error_code': error_code,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'request_id': generate_request_id()
    }

    if details:
        response_data['error_details'] = details

    logger.info(
        "API error response",
        error_code=error_code,
        status_code=status_code,
        request_id=response_data['request_id']
    )

    return jsonify(response_data), status_code


def _icguard(component: str):
    return current_app.extensions['icguard'][component]


# =============================================================================
# FIELD ENDPOINTS
# =============================================================================

@api_bp.route('/fields', methods=['GET'])
def list_fields():
    """List the fields the validator knows about."""
    return create_success_response(
        data={'fields': _icguard('validator').supported_fields()},
        message="Supported fields retrieved"
    )


@api_bp.route('/fields/<field_name>/validate', methods=['POST'])
@validate_request_data(FieldValidationRequestSchema)
def validate_field(field_name: str):
    """Validate one field value."""
    payload = g.validated_data
    result = _icguard('validator').validate_field(
        field_name,
        payload['value'],
        allow_empty=payload['allow_empty']
    )

    data = result.to_dict()
    if field_name == CARD_NUMBER_FIELD and result.valid:
        data['sanitized_value'] = mask_card_number(result.sanitized_value)

    return create_success_response(data=data, message="Field validated")


# =============================================================================
# REPORT ENDPOINTS
# =============================================================================

@api_bp.route('/reports/validate', methods=['POST'])
@validate_request_data(ReportValidationRequestSchema)
def validate_report():
    """
    Validate a complete loss report.

    A valid report carrying an IC card number gets a salted PBKDF2 hash of
    the number for storage; the number itself is only returned masked.
    """
    payload = g.validated_data
    result = _icguard('validator').validate_object(payload['data'], payload['required_fields'])

    data = result.to_dict()
    card_number = result.sanitized_data.get(CARD_NUMBER_FIELD)
    if card_number:
        data['sanitized_data'][CARD_NUMBER_FIELD] = mask_card_number(card_number)
        if result.valid:
            data['card_hash'] = _icguard('hasher').hash_card_number(card_number).to_dict()

    logger.info(
        "Report validation completed",
        valid=result.valid,
        error_count=len(result.errors),
        data_hash=result.data_hash
    )

    return create_success_response(data=data, message="Report validated")


# =============================================================================
# CARD ENDPOINTS
# =============================================================================

@api_bp.route('/cards/classify', methods=['POST'])
@validate_request_data(CardClassificationRequestSchema)
def classify_card():
    """Classify an IC card number."""
    result = _icguard('classifier').classify(g.validated_data['card_number'])
    return create_success_response(data=result.to_dict(), message="Card classified")


@api_bp.route('/cards/types', methods=['GET'])
def list_card_types():
    """List supported IC card types."""
    return create_success_response(
        data={'card_types': _icguard('classifier').supported_card_types()},
        message="Supported card types retrieved"
    )


@api_bp.route('/cards/<card_type>/regions/<region>', methods=['GET'])
def check_region(card_type: str, region: str):
    """Check whether a card type is usable in a region."""
    classifier = _icguard('classifier')
    if classifier.get_format(card_type) is None:
        return create_error_response(
            message="Unknown card type",
            error_code="NOT_FOUND",
            status_code=404
        )

    return create_success_response(
        data={
            'card_type': card_type.upper(),
            'region': region,
            'supported': classifier.is_region_supported(card_type, region),
        },
        message="Region support checked"
    )


# =============================================================================
# STATISTICS ENDPOINTS
# =============================================================================

@api_bp.route('/stats', methods=['GET'])
def get_stats():
    """Return validator and classifier statistics."""
    return create_success_response(
        data={
            'validation': _icguard('validator').get_stats().to_dict(),
            'cards': _icguard('classifier').get_stats().to_dict(),
        },
        message="Statistics retrieved"
    )


@api_bp.route('/stats', methods=['DELETE'])
def reset_stats():
    """Reset validator and classifier statistics."""
    _icguard('validator').reset_stats()
    _icguard('classifier').reset_stats()
    return create_success_response(message="Statistics reset")
