from flask import Blueprint, render_template, request, redirect, url_for, flash, jsonify, send_file
from flask_login import login_required, current_user
from datetime import datetime
import io
import pandas as pd
from forms.customer_forms import CustomerForm
from models.customer import (
    Customer, create_customer, update_customer, delete_customer, get_customer_or_404,
    get_customer_by_email, get_customer_by_phone, get_all_customers, search_customers,
)
from models.order import get_orders_by_customer
from routes.auth import staff_required
from routes.helpers import error_response, server_error, json_body

customers_bp = Blueprint('customers', __name__, url_prefix='/customers')


@customers_bp.route('/')
@login_required
@staff_required
def list_customers():
    q = request.args.get('q', '').strip()
    customers = search_customers(q) if q else get_all_customers()
    return render_template('customers/list.html', title='Manage Customers',
                           customers=customers, q=q, form=CustomerForm())


@customers_bp.route('/add', methods=['POST'])
@login_required
@staff_required
def add_customer():
    form = CustomerForm()
    if form.validate_on_submit():
        try:
            customer = create_customer(current_user, form.name.data, form.email.data,
                                       form.phone.data, form.notes.data)
            flash(f'Customer {customer.name} added', 'success')
        except ValueError as e:
            flash(str(e), 'danger')
    else:
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
    return redirect(url_for('customers.list_customers'))


@customers_bp.route('/<int:customer_id>')
@login_required
@staff_required
def customer_detail(customer_id):
    try:
        customer = get_customer_or_404(customer_id)
    except ValueError as e:
        flash(str(e), 'danger')
        return redirect(url_for('customers.list_customers'))
    orders = get_orders_by_customer(customer.id)
    return render_template('customers/detail.html', title=customer.name, customer=customer, orders=orders)


@customers_bp.route('/<int:customer_id>/edit', methods=['GET', 'POST'])
@login_required
@staff_required
def edit_customer(customer_id):
    try:
        customer = get_customer_or_404(customer_id)
    except ValueError as e:
        flash(str(e), 'danger')
        return redirect(url_for('customers.list_customers'))
    form = CustomerForm(obj=customer)
    if form.validate_on_submit():
        try:
            update_customer(current_user, customer.id, name=form.name.data, email=form.email.data,
                            phone=form.phone.data, notes=form.notes.data or '')
            flash('Customer updated', 'success')
            return redirect(url_for('customers.list_customers'))
        except ValueError as e:
            flash(str(e), 'danger')
    return render_template('customers/edit.html', title='Edit Customer', form=form, customer=customer)


@customers_bp.route('/<int:customer_id>/delete', methods=['POST'])
@login_required
@staff_required
def remove_customer(customer_id):
    try:
        delete_customer(current_user, customer_id)
        flash('Customer deleted', 'success')
    except ValueError as e:
        flash(str(e), 'danger')
    return redirect(url_for('customers.list_customers'))


@customers_bp.route('/api', methods=['POST'])
@login_required
@staff_required
def api_create_customer():
    try:
        data = json_body()
        customer = create_customer(current_user, data.get('name'), data.get('email'),
                                   data.get('phone'), data.get('notes'))
    except ValueError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, 'creating the customer')
    return jsonify({'success': True, 'customer': customer.to_dict()}), 201


@customers_bp.route('/api/<int:customer_id>', methods=['PATCH'])
@login_required
@staff_required
def api_update_customer(customer_id):
    try:
        data = json_body()
        customer = update_customer(current_user, customer_id, name=data.get('name'), email=data.get('email'),
                                   phone=data.get('phone'), notes=data.get('notes'))
    except ValueError as e:
        return error_response(e)
    except Exception as e:
        return server_error(e, 'updating the customer')
    return jsonify({'success': True, 'customer': customer.to_dict()})


@customers_bp.route('/api/search')
@login_required
@staff_required
def api_search_customers():
    customers = search_customers(request.args.get('q', ''))
    return jsonify([c.to_dict() for c in customers])


@customers_bp.route('/api/lookup')
@login_required
@staff_required
def api_lookup_customer():
    """Duplicate check for the customer form."""
    by_email = get_customer_by_email(request.args.get('email', ''))
    by_phone = get_customer_by_phone(request.args.get('phone', ''))
    return jsonify({
        'email': by_email.to_dict() if by_email else None,
        'phone': by_phone.to_dict() if by_phone else None,
    })


@customers_bp.route('/export')
@login_required
@staff_required
def export_customers():
    customers = Customer.query.filter_by(is_active=True).order_by(Customer.created_at.desc()).all()
    data = [{
        'Name': c.name,
        'Email': c.email,
        'Phone': c.phone,
        'Orders': len([o for o in c.orders if not o.is_deleted]),
        'Notes': c.notes or '',
        'Added': c.created_at.strftime('%Y-%m-%d %H:%M'),
    } for c in customers]
    df = pd.DataFrame(data, columns=['Name', 'Email', 'Phone', 'Orders', 'Notes', 'Added'])

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        df.to_excel(writer, sheet_name='Customers', index=False)
        worksheet = writer.sheets['Customers']
        worksheet.set_column(0, 2, 25)
        worksheet.set_column(4, 4, 40)
        worksheet.set_column(5, 5, 18)
    output.seek(0)

    filename = f'customers_{datetime.now().strftime("%Y%m%d_%H%M%S")}.xlsx'
    return send_file(
        output,
        as_attachment=True,
        download_name=filename,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
