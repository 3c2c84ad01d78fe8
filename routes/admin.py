from flask import Blueprint, render_template, redirect, url_for, flash, request, jsonify, send_file
from flask_login import login_required, current_user
from datetime import datetime
import io
import pandas as pd
from forms.auth_forms import UserForm
from forms.pricing_forms import PricingForm
from models.user import get_all_users, create_user, update_user, set_user_role, delete_user
from models.pricing import get_current_pricing, update_pricing
from models.audit_log import (
    create_audit_log, get_all_audit_logs, get_audit_logs_for_user, get_recent_audit_logs, get_action_types,
)
from models.alert import get_active_alerts, mark_alert_as_read, resolve_alert
from models.order import get_all_orders
from routes.auth import admin_required
from routes.helpers import error_response, json_body
from services import analytics, mailer
from services.alerts import generate_alerts

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _time_range():
    time_range = request.args.get('range', 'week')
    return time_range if time_range in analytics.TIME_RANGES else 'week'


@admin_bp.route('/')
@login_required
@admin_required
def dashboard():
    time_range = _time_range()
    return render_template('admin/dashboard.html',
                           title='Admin Dashboard',
                           time_range=time_range,
                           stats=analytics.get_dashboard_stats(time_range),
                           recent_activity=analytics.get_recent_activity(10),
                           top_customers=analytics.get_top_customers(5),
                           alerts=get_active_alerts())


@admin_bp.route('/api/dashboard-stats')
@login_required
@admin_required
def api_dashboard_stats():
    return jsonify(analytics.get_dashboard_stats(_time_range()))


@admin_bp.route('/api/recent-activity')
@login_required
@admin_required
def api_recent_activity():
    activity = analytics.get_recent_activity(request.args.get('limit', 10, type=int))
    for item in activity:
        item['timestamp'] = item['timestamp'].isoformat() if item['timestamp'] else None
    return jsonify(activity)


@admin_bp.route('/api/top-customers')
@login_required
@admin_required
def api_top_customers():
    return jsonify(analytics.get_top_customers(request.args.get('limit', 5, type=int)))


# Users

@admin_bp.route('/users')
@login_required
@admin_required
def list_users():
    return render_template('admin/users.html', title='Manage Users',
                           users=get_all_users(current_user), form=UserForm())


@admin_bp.route('/users/add', methods=['POST'])
@login_required
@admin_required
def add_user():
    form = UserForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
        return redirect(url_for('admin.list_users'))
    if not form.password.data:
        flash('A temporary password is required for new users', 'danger')
        return redirect(url_for('admin.list_users'))
    try:
        user = create_user(current_user, form.name.data, form.email.data, form.password.data, form.role.data)
    except ValueError as e:
        flash(str(e), 'danger')
        return redirect(url_for('admin.list_users'))
    flash(f'User {user.email} created', 'success')
    if mailer.notify(mailer.send_welcome_email, user.email, user.name, form.password.data, user.role):
        flash(f'Welcome email sent to {user.email}', 'info')
    return redirect(url_for('admin.list_users'))


@admin_bp.route('/users/<int:user_id>/edit', methods=['POST'])
@login_required
@admin_required
def edit_user(user_id):
    form = UserForm()
    if form.validate_on_submit():
        try:
            update_user(current_user, user_id, name=form.name.data, email=form.email.data, role=form.role.data)
            flash('User updated', 'success')
        except ValueError as e:
            flash(str(e), 'danger')
    else:
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
    return redirect(url_for('admin.list_users'))


@admin_bp.route('/users/<int:user_id>/role', methods=['POST'])
@login_required
@admin_required
def change_role(user_id):
    try:
        user = set_user_role(current_user, user_id, request.form.get('role', ''))
        flash(f'{user.display_name()} is now {user.role}', 'success')
    except ValueError as e:
        flash(str(e), 'danger')
    return redirect(url_for('admin.list_users'))


@admin_bp.route('/users/<int:user_id>/delete', methods=['POST'])
@login_required
@admin_required
def remove_user(user_id):
    try:
        delete_user(current_user, user_id)
        flash('User deleted', 'success')
    except ValueError as e:
        flash(str(e), 'danger')
    return redirect(url_for('admin.list_users'))


@admin_bp.route('/api/users')
@login_required
@admin_required
def api_list_users():
    return jsonify([u.to_dict() for u in get_all_users(current_user)])


# Pricing

@admin_bp.route('/pricing', methods=['GET', 'POST'])
@login_required
@admin_required
def set_pricing():
    pricing = get_current_pricing()
    form = PricingForm(obj=pricing)
    if form.validate_on_submit():
        try:
            update_pricing(current_user, form.clothes_price_per_kg.data,
                           form.blankets_light_price_per_kg.data, form.blankets_thick_price_per_kg.data)
            flash('Pricing saved', 'success')
            return redirect(url_for('admin.set_pricing'))
        except ValueError as e:
            flash(str(e), 'danger')
    return render_template('admin/pricing.html', title='Set Price', form=form, pricing=pricing)


@admin_bp.route('/api/pricing')
@login_required
def api_pricing():
    return jsonify(get_current_pricing().to_dict())


# Audit log

@admin_bp.route('/audit-log')
@login_required
@admin_required
def audit_log():
    action = request.args.get('action') or None
    user_id = request.args.get('user_id', type=int)
    if user_id:
        logs = get_audit_logs_for_user(current_user, user_id, limit=500)
    else:
        logs = get_all_audit_logs(current_user, limit=500, action=action)
    return render_template('admin/audit_log.html', title='Audit Log', logs=logs,
                           action=action, actions=get_action_types())


@admin_bp.route('/api/audit-logs')
@login_required
@admin_required
def api_audit_logs():
    limit = request.args.get('limit', type=int)
    user_id = request.args.get('user_id', type=int)
    if request.args.get('recent'):
        logs = get_recent_audit_logs(current_user, limit or 10)
    elif user_id:
        logs = get_audit_logs_for_user(current_user, user_id, limit)
    else:
        logs = get_all_audit_logs(current_user, limit, request.args.get('action') or None)
    return jsonify([log.to_dict() for log in logs])


@admin_bp.route('/api/audit-logs', methods=['POST'])
@login_required
@admin_required
def api_create_audit_log():
    try:
        data = json_body()
    except ValueError as e:
        return error_response(e)
    if not data.get('action'):
        return jsonify({'success': False, 'message': 'action is required'}), 400
    try:
        entry = create_audit_log(current_user, data['action'],
                                 target_user_id=data.get('target_user_id'),
                                 target_user_email=data.get('target_user_email'),
                                 details=data.get('details'),
                                 old_values=data.get('old_values'),
                                 new_values=data.get('new_values'))
    except ValueError as e:
        return error_response(e)
    return jsonify({'success': True, 'audit_log': entry.to_dict()}), 201


@admin_bp.route('/audit-log/export')
@login_required
@admin_required
def export_audit_log():
    logs = get_all_audit_logs(current_user, action=request.args.get('action') or None)
    df = pd.DataFrame([{
        'Timestamp': log.timestamp.strftime('%Y-%m-%d %H:%M:%S'),
        'Action': log.action,
        'Performed By': log.performed_by_name,
        'Email': log.performed_by_email,
        'Target User': log.target_user_email or '',
        'Details': log.details or '',
    } for log in logs], columns=['Timestamp', 'Action', 'Performed By', 'Email', 'Target User', 'Details'])

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        df.to_excel(writer, sheet_name='Audit Log', index=False)
        worksheet = writer.sheets['Audit Log']
        worksheet.set_column(0, 4, 22)
        worksheet.set_column(5, 5, 60)
    output.seek(0)
    return send_file(output, as_attachment=True, mimetype=XLSX_MIMETYPE,
                     download_name=f'audit_log_{datetime.now().strftime("%Y%m%d_%H%M%S")}.xlsx')


# Alerts

@admin_bp.route('/alerts/<int:alert_id>/read', methods=['POST'])
@login_required
@admin_required
def read_alert(alert_id):
    try:
        mark_alert_as_read(current_user, alert_id)
    except ValueError as e:
        flash(str(e), 'danger')
    return redirect(url_for('admin.dashboard'))


@admin_bp.route('/alerts/<int:alert_id>/resolve', methods=['POST'])
@login_required
@admin_required
def resolve(alert_id):
    try:
        resolve_alert(current_user, alert_id)
        flash('Alert resolved', 'success')
    except ValueError as e:
        flash(str(e), 'danger')
    return redirect(url_for('admin.dashboard'))


@admin_bp.route('/alerts/generate', methods=['POST'])
@login_required
@admin_required
def run_alert_checks():
    created = generate_alerts()
    flash(f'{len(created)} new alert(s) raised', 'info')
    return redirect(url_for('admin.dashboard'))


@admin_bp.route('/api/alerts')
@login_required
@admin_required
def api_alerts():
    return jsonify([a.to_dict() for a in get_active_alerts()])


# Analytics report

@admin_bp.route('/analytics')
@login_required
@admin_required
def analytics_report():
    time_range = _time_range()
    return render_template('admin/analytics.html', title='Analytics Report',
                           time_range=time_range,
                           stats=analytics.get_dashboard_stats(time_range),
                           top_customers=analytics.get_top_customers(10))


@admin_bp.route('/analytics/export')
@login_required
@admin_required
def export_analytics():
    time_range = _time_range()
    stats = analytics.get_dashboard_stats(time_range)
    start, _ = analytics.get_period_bounds(time_range)
    orders = [o for o in get_all_orders() if start is None or o.created_at >= start]

    summary = pd.DataFrame([
        ['Time range', time_range],
        ['Total revenue', stats['total_revenue']],
        ['Revenue growth (%)', stats['revenue_growth']],
        ['Total orders', stats['total_orders']],
        ['Active orders', stats['active_orders']],
        ['Customers', stats['total_customers']],
        ['Average turnaround (h)', stats['avg_turnaround_time']],
        ['Payment collection rate (%)', stats['payment_collection_rate']],
    ], columns=['Metric', 'Value'])

    orders_df = pd.DataFrame([{
        'Order ID': o.order_id,
        'Customer': o.customer.name if o.customer else '',
        'Services': ', '.join(o.service_labels()),
        'Status': o.get_status_display(),
        'Payment': o.payment_status,
        'Total': o.total_price or 0,
        'Created': o.created_at.strftime('%Y-%m-%d %H:%M'),
        'Completed': o.completed_at.strftime('%Y-%m-%d %H:%M') if o.completed_at else '',
    } for o in orders], columns=['Order ID', 'Customer', 'Services', 'Status', 'Payment', 'Total',
                                 'Created', 'Completed'])

    top_df = pd.DataFrame(analytics.get_top_customers(10),
                          columns=['customer_id', 'customer_name', 'total_spent', 'order_count'])

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        workbook = writer.book
        header_format = workbook.add_format({'bold': True, 'fg_color': '#D7E4BC', 'border': 1})
        currency_format = workbook.add_format({'num_format': '₱#,##0.00', 'border': 1})

        summary.to_excel(writer, sheet_name='Summary', index=False)
        orders_df.to_excel(writer, sheet_name='Orders', index=False)
        top_df.to_excel(writer, sheet_name='Top Customers', index=False)

        for sheet_name, df in (('Summary', summary), ('Orders', orders_df), ('Top Customers', top_df)):
            worksheet = writer.sheets[sheet_name]
            for col_num, value in enumerate(df.columns.values):
                worksheet.write(0, col_num, value, header_format)
            worksheet.set_column(0, len(df.columns) - 1, 20)
        writer.sheets['Orders'].set_column(5, 5, 14, currency_format)
    output.seek(0)

    return send_file(output, as_attachment=True, mimetype=XLSX_MIMETYPE,
                     download_name=f'analytics_{time_range}_{datetime.now().strftime("%Y%m%d_%H%M%S")}.xlsx')
