from flask import Blueprint, render_template, request, jsonify
from models.order import get_order_by_order_id

track_bp = Blueprint('track', __name__, url_prefix='/track')


# public, no login
@track_bp.route('')
@track_bp.route('/')
def track_order():
    order_id = request.args.get('id', '').strip()
    order = get_order_by_order_id(order_id) if order_id else None
    return render_template('track/track.html', title='Track Your Laundry',
                           order_id=order_id, order=order)


@track_bp.route('/api/<order_id>')
def api_track_order(order_id):
    order = get_order_by_order_id(order_id)
    if order is None:
        return jsonify({'success': False, 'message': 'Order not found'}), 404
    return jsonify(order.to_tracking_dict())
