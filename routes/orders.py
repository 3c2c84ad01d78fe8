from flask import Blueprint, render_template, request, redirect, url_for, flash, jsonify, current_app
from flask_login import login_required, current_user
from forms.order_forms import OrderForm, StatusForm
from models.customer import get_all_customers
from models.order import (
    STATUSES, PAYMENT_STATUSES, create_order, update_order_status, update_payment_status,
    complete_and_mark_paid, delete_order, generate_order_id, get_order_or_404, get_all_orders,
    search_orders, get_order_statistics, get_status_counts,
)
from models.pricing import calculate_price, get_current_pricing
from routes.auth import staff_required, admin_required
from routes.helpers import error_response, server_error, json_body, json_object, parse_datetime, parse_weights
from services import mailer

orders_bp = Blueprint('orders', __name__, url_prefix='/orders')


def _send_created(order):
    customer = order.customer
    return mailer.notify(mailer.send_order_confirmation, customer.email, customer.name, order.order_id,
                         order.services(), order.expected_pickup_date)


def _send_status(order):
    customer = order.customer
    if order.status == 'ready':
        return mailer.notify(mailer.send_ready_email, customer.email, customer.name, order.order_id,
                             order.pricing(), order.weights())
    if order.status in ('in-progress', 'cancelled'):
        return mailer.notify(mailer.send_status_email, customer.email, customer.name, order.order_id,
                             order.status)
    return None


def _customer_choices(form):
    form.customer_id.choices = [(c.id, f'{c.name} ({c.phone})') for c in get_all_customers()]


@orders_bp.route('/')
@login_required
@staff_required
def list_orders():
    status = request.args.get('status') or None
    payment_status = request.args.get('payment_status') or None
    q = request.args.get('q', '').strip()
    if status not in STATUSES:
        status = None
    if payment_status not in PAYMENT_STATUSES:
        payment_status = None

    if q:
        orders = search_orders(q)
    else:
        orders = get_all_orders(status=status, payment_status=payment_status)
    counts = get_status_counts()
    return render_template('orders/list.html', title='Manage Laundry', orders=orders, counts=counts,
                           status=status, payment_status=payment_status, q=q)


@orders_bp.route('/new', methods=['GET', 'POST'])
@login_required
@staff_required
def new_order():
    form = OrderForm()
    _customer_choices(form)
    if request.method == 'GET':
        form.order_id.data = generate_order_id()
        if request.args.get('customer_id', type=int):
            form.customer_id.data = request.args.get('customer_id', type=int)
    if form.validate_on_submit():
        try:
            order = create_order(current_user, form.customer_id.data, form.services(), notes=form.notes.data,
                                 expected_pickup_date=form.expected_pickup_date.data,
                                 order_id=form.order_id.data or None)
        except ValueError as e:
            flash(str(e), 'danger')
        else:
            flash(f'Order {order.order_id} created', 'success')
            if _send_created(order):
                flash(f'Confirmation sent to {order.customer.email}', 'info')
            return redirect(url_for('orders.order_detail', order_pk=order.id))
    return render_template('orders/new.html', title='New Order', form=form)


@orders_bp.route('/<int:order_pk>')
@login_required
@staff_required
def order_detail(order_pk):
    try:
        order = get_order_or_404(order_pk)
    except ValueError as e:
        flash(str(e), 'danger')
        return redirect(url_for('orders.list_orders'))
    if order.is_deleted and not current_user.is_admin():
        flash('Order has been deleted', 'warning')
        return redirect(url_for('orders.list_orders'))
    return render_template('orders/detail.html', title=order.order_id, order=order,
                           form=StatusForm(), pricing=get_current_pricing())


@orders_bp.route('/<int:order_pk>/status', methods=['POST'])
@login_required
@staff_required
def change_status(order_pk):
    form = StatusForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
        return redirect(url_for('orders.order_detail', order_pk=order_pk))
    try:
        if form.status.data == 'completed' and form.mark_paid.data:
            order = complete_and_mark_paid(current_user, order_pk)
        else:
            order = update_order_status(current_user, order_pk, form.status.data,
                                        weights=form.weights(),
                                        cancellation_reason=form.cancellation_reason.data)
    except ValueError as e:
        current_app.logger.info('Status change rejected for order %s: %s', order_pk, e)
        flash(str(e), 'danger')
    else:
        flash(f'Order {order.order_id} is now {order.get_status_display()}', 'success')
        if _send_status(order):
            flash(f'Notification sent to {order.customer.email}', 'info')
    return redirect(url_for('orders.order_detail', order_pk=order_pk))


@orders_bp.route('/<int:order_pk>/payment', methods=['POST'])
@login_required
@staff_required
def change_payment(order_pk):
    try:
        order = update_payment_status(current_user, order_pk, request.form.get('payment_status', ''))
        flash(f'Order {order.order_id} marked {order.payment_status}', 'success')
    except ValueError as e:
        flash(str(e), 'danger')
    return redirect(url_for('orders.order_detail', order_pk=order_pk))


@orders_bp.route('/<int:order_pk>/delete', methods=['POST'])
@login_required
@admin_required
def remove_order(order_pk):
    try:
        delete_order(current_user, order_pk)
        flash('Order deleted', 'success')
    except ValueError as e:
        flash(str(e), 'danger')
    return redirect(url_for('orders.list_orders'))


# JSON API

@orders_bp.route('/api', methods=['GET'])
@login_required
@staff_required
def api_list_orders():
    include_deleted = request.args.get('include_deleted') == '1' and current_user.is_admin()
    orders = get_all_orders(
        status=request.args.get('status') or None,
        payment_status=request.args.get('payment_status') or None,
        customer_id=request.args.get('customer_id', type=int),
        include_deleted=include_deleted,
    )
    return jsonify([o.to_dict() for o in orders])


@orders_bp.route('/api', methods=['POST'])
@login_required
@staff_required
def api_create_order():
    try:
        data = json_body()
        order = create_order(
            current_user,
            data.get('customer_id'),
            json_object(data, 'services'),
            notes=data.get('notes'),
            expected_pickup_date=parse_datetime(data.get('expected_pickup_date')),
            order_id=data.get('order_id'),
        )
    except ValueError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, 'creating the order')
    email_sent = _send_created(order) is not None
    return jsonify({'success': True, 'order': order.to_dict(), 'email_sent': email_sent}), 201


@orders_bp.route('/api/<int:order_pk>')
@login_required
@staff_required
def api_get_order(order_pk):
    try:
        order = get_order_or_404(order_pk)
    except ValueError as e:
        return error_response(e)
    return jsonify(order.to_dict())


@orders_bp.route('/api/<int:order_pk>/status', methods=['POST'])
@login_required
@staff_required
def api_update_status(order_pk):
    try:
        data = json_body()
        order = update_order_status(
            current_user, order_pk, data.get('status'),
            weights=parse_weights(data.get('weights')),
            cancellation_reason=data.get('cancellation_reason'),
        )
    except ValueError as e:
        current_app.logger.info('Status change rejected for order %s: %s', order_pk, e)
        return error_response(e)
    except Exception as e:
        return server_error(e, 'updating the order status')
    email_sent = _send_status(order) is not None
    return jsonify({'success': True, 'order': order.to_dict(), 'email_sent': email_sent})


@orders_bp.route('/api/<int:order_pk>/payment', methods=['POST'])
@login_required
@staff_required
def api_update_payment(order_pk):
    try:
        data = json_body()
        order = update_payment_status(current_user, order_pk, data.get('payment_status'))
    except ValueError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, 'updating the payment status')
    return jsonify({'success': True, 'order': order.to_dict()})


@orders_bp.route('/api/<int:order_pk>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_order(order_pk):
    try:
        delete_order(current_user, order_pk)
    except ValueError as e:
        return error_response(e)
    return jsonify({'success': True})


@orders_bp.route('/api/search')
@login_required
@staff_required
def api_search_orders():
    return jsonify([o.to_dict() for o in search_orders(request.args.get('q', ''))])


@orders_bp.route('/api/statistics')
@login_required
@staff_required
def api_statistics():
    try:
        stats = get_order_statistics(
            start_date=parse_datetime(request.args.get('start')),
            end_date=parse_datetime(request.args.get('end')),
        )
    except ValueError as e:
        return error_response(e)
    return jsonify(stats)


@orders_bp.route('/api/generate-id', methods=['POST'])
@login_required
@staff_required
def api_generate_order_id():
    return jsonify({'order_id': generate_order_id()})


@orders_bp.route('/api/calculate-price')
@login_required
@staff_required
def api_calculate_price():
    try:
        weights = parse_weights({
            'clothes': request.args.get('clothes'),
            'blankets_light': request.args.get('blankets_light'),
            'blankets_thick': request.args.get('blankets_thick'),
        })
        return jsonify(calculate_price(weights))
    except ValueError as e:
        return error_response(e)
