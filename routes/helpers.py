import math
from datetime import datetime, timezone
from flask import jsonify, current_app, request
from models import db


def error_response(error):
    """JSON body for a rejected request; domain errors carry their own status."""
    status = getattr(error, 'status_code', 400)
    return jsonify({'success': False, 'message': str(error)}), status


def server_error(error, action):
    db.session.rollback()
    current_app.logger.exception('Unexpected error while %s', action)
    return jsonify({'success': False, 'message': f'An error occurred while {action}: {error}'}), 500


def json_body():
    """The request's JSON object; an empty or unparsable body reads as ``{}``."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError('Request body must be a JSON object')
    return data


def json_object(data, field):
    value = data.get(field) or {}
    if not isinstance(value, dict):
        raise ValueError(f'{field} must be a JSON object')
    return value


def parse_datetime(value):
    """Accept ISO strings or epoch milliseconds from JSON payloads."""
    if value in (None, ''):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, timezone.utc).replace(tzinfo=None)
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValueError(f'Invalid date: {value}')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_weights(data):
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError('weights must be a JSON object')
    weights = {}
    for service in ('clothes', 'blankets_light', 'blankets_thick'):
        value = data.get(service)
        if value in (None, ''):
            continue
        try:
            weight = float(value)
        except (TypeError, ValueError):
            raise ValueError(f'Invalid weight for {service}')
        if not math.isfinite(weight):
            raise ValueError(f'Invalid weight for {service}')
        weights[service] = weight
    return weights
