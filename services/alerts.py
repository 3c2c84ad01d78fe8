"""Heuristic business alerts, run hourly by ``flask alerts generate``."""
from datetime import datetime, timedelta
from flask import current_app
from models.order import LaundryOrder, TERMINAL_STATUSES
from models.alert import create_alert

REVENUE_DROP_THRESHOLD = -20  # percent
UNPAID_RATE_THRESHOLD = 30  # percent
SLOW_TURNAROUND_HOURS = 72


def _revenue(orders):
    return sum(o.revenue() for o in orders)


def check_revenue_drop(current, previous):
    current_revenue = _revenue(current)
    previous_revenue = _revenue(previous)
    if previous_revenue <= 0:
        return None
    change = (current_revenue - previous_revenue) / previous_revenue * 100
    if change >= REVENUE_DROP_THRESHOLD:
        return None
    return {
        'alert_type': 'revenue_drop',
        'severity': 'critical',
        'title': 'Revenue Drop Detected',
        'message': (f'Revenue has decreased by {abs(round(change))}% '
                    f'compared to the previous period.'),
    }


def check_high_unpaid(current):
    if not current:
        return None
    unpaid = [o for o in current if o.payment_status == 'unpaid']
    rate = len(unpaid) / len(current) * 100
    if rate <= UNPAID_RATE_THRESHOLD:
        return None
    return {
        'alert_type': 'high_unpaid',
        'severity': 'warning',
        'title': 'High Unpaid Orders',
        'message': (f'{round(rate)}% of orders are unpaid. '
                    f'Total unpaid value: ₱{_revenue(unpaid):,.2f}'),
    }


def check_no_recent_orders(last_week):
    if last_week:
        return None
    return {
        'alert_type': 'no_new_customers',
        'severity': 'warning',
        'title': 'No Orders This Week',
        'message': 'No new orders have been placed in the last 7 days.',
    }


def check_slow_turnaround(current):
    hours = [o.turnaround_hours() for o in current if o.completed_at]
    if not hours:
        return None
    average = sum(hours) / len(hours)
    if average <= SLOW_TURNAROUND_HOURS:
        return None
    return {
        'alert_type': 'slow_turnaround',
        'severity': 'warning',
        'title': 'Slow Turnaround Time',
        'message': (f'Average completion time is {round(average)} hours. '
                    f'Consider improving efficiency.'),
    }


def check_overdue(orders, now):
    overdue = [o for o in orders if o.is_overdue(now)]
    if not overdue:
        return None
    return {
        'alert_type': 'overdue_orders',
        'severity': 'critical',
        'title': 'Overdue Orders',
        'message': f'{len(overdue)} order(s) are past their expected pickup date.',
    }


def generate_alerts(now=None):
    """Run every check and raise an alert for each that trips.

    Returns the list of alerts that were newly created; checks that trip
    again inside the 24h dedup window do not add rows.
    """
    now = now or datetime.utcnow()
    month_ago = now - timedelta(days=30)
    two_months_ago = now - timedelta(days=60)
    week_ago = now - timedelta(days=7)

    orders = LaundryOrder.query.filter(LaundryOrder.is_deleted.is_(False)).all()
    last_30 = [o for o in orders if o.created_at >= month_ago]
    previous_30 = [o for o in orders if two_months_ago <= o.created_at < month_ago]
    last_7 = [o for o in orders if o.created_at >= week_ago]

    findings = [
        check_revenue_drop(last_30, previous_30),
        check_high_unpaid(last_30),
        check_no_recent_orders(last_7),
        check_slow_turnaround(last_30),
        check_overdue([o for o in orders if o.status not in TERMINAL_STATUSES], now),
    ]

    created = []
    for finding in findings:
        if finding is None:
            continue
        alert, is_new = create_alert(now=now, **finding)
        if is_new:
            created.append(alert)

    current_app.logger.info(
        'Alert generation finished: %d check(s) tripped, %d new alert(s)',
        sum(1 for f in findings if f), len(created),
    )
    return created
