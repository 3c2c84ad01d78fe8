from flask import Blueprint, render_template
from flask_login import login_required
from models.order import get_order_statistics, get_all_orders
from models.customer import get_recent_customers
from routes.auth import staff_required

staff_bp = Blueprint('staff', __name__, url_prefix='/staff')


@staff_bp.route('/')
@login_required
@staff_required
def dashboard():
    stats = get_order_statistics()
    recent_orders = get_all_orders()[:10]
    ready_orders = get_all_orders(status='ready')
    return render_template('staff/dashboard.html',
                           title='Staff Dashboard',
                           stats=stats,
                           recent_orders=recent_orders,
                           ready_orders=ready_orders,
                           recent_customers=get_recent_customers(5))
