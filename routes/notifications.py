from flask import Blueprint, jsonify, current_app
from flask_login import login_required
from routes.auth import staff_required
from routes.helpers import json_body, json_object, parse_datetime
from services import mailer

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api')


def _send(send, *args):
    if not mailer.is_configured():
        current_app.logger.error('Email configuration missing')
        return jsonify({'success': False, 'error': (
            'Email service not configured. Please check MAIL_USERNAME and MAIL_PASSWORD settings.'
        )}), 500
    try:
        message_id = send(*args)
    except mailer.MailError as e:
        return jsonify({'success': False, 'error': str(e)}), 500
    except (TypeError, ValueError) as e:
        return jsonify({'success': False, 'error': f'Invalid payload: {e}'}), 400
    return jsonify({'success': True, 'message_id': message_id})


def _missing(*fields):
    return jsonify({'success': False, 'error': f'Missing required fields: {", ".join(fields)}'}), 400


def _bad_request(error):
    return jsonify({'success': False, 'error': str(error)}), 400


@notifications_bp.route('/send-order-email', methods=['POST'])
@login_required
@staff_required
def send_order_email():
    try:
        data = json_body()
    except ValueError as e:
        return _bad_request(e)
    missing = [f for f in ('to', 'customerName', 'orderId') if not data.get(f)]
    if missing:
        return _missing(*missing)
    try:
        pickup = parse_datetime(data.get('expectedPickupDate'))
        order_type = json_object(data, 'orderType')
    except ValueError as e:
        return _bad_request(e)
    services = {
        'clothes': order_type.get('clothes'),
        'blankets_light': order_type.get('blanketsLight'),
        'blankets_thick': order_type.get('blanketsThick'),
    }
    return _send(mailer.send_order_confirmation, data['to'], data['customerName'], data['orderId'],
                 services, pickup)


@notifications_bp.route('/send-ready-email', methods=['POST'])
@login_required
@staff_required
def send_ready_email():
    try:
        data = json_body()
    except ValueError as e:
        return _bad_request(e)
    missing = [f for f in ('to', 'customerName', 'orderId', 'pricing') if not data.get(f)]
    if missing:
        return _missing(*missing)
    try:
        pricing = json_object(data, 'pricing')
        weight = json_object(data, 'weight')
    except ValueError as e:
        return _bad_request(e)
    return _send(
        mailer.send_ready_email, data['to'], data['customerName'], data['orderId'],
        {
            'clothes_price': pricing.get('clothesPrice'),
            'blankets_light_price': pricing.get('blanketsLightPrice'),
            'blankets_thick_price': pricing.get('blanketsThickPrice'),
            'total_price': pricing.get('totalPrice'),
        },
        {
            'clothes': weight.get('clothes'),
            'blankets_light': weight.get('blanketsLight'),
            'blankets_thick': weight.get('blanketsThick'),
        },
    )


@notifications_bp.route('/send-test-email', methods=['POST'])
@login_required
@staff_required
def send_test_email():
    try:
        data = json_body()
    except ValueError as e:
        return _bad_request(e)
    if not data.get('to'):
        return jsonify({'success': False, 'error': 'Email address is required'}), 400
    return _send(mailer.send_test_email, data['to'])
