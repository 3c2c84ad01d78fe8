"""Tests for dashboard aggregations."""

from datetime import datetime, timedelta

import pytest

from models import db
from models.customer import create_customer
from models.order import LaundryOrder, delete_order, update_order_status, update_payment_status
from services.analytics import (
    get_dashboard_stats, get_period_bounds, get_recent_activity, get_top_customers, service_type_distribution,
)
from tests.conftest import make_order


def _ready(staff, order, kg):
    update_order_status(staff, order.id, 'in-progress')
    update_order_status(staff, order.id, 'ready', weights={'clothes': kg})
    return order


class TestPeriodBounds:
    def test_week(self):
        now = datetime(2025, 6, 15, 14, 30)
        start, previous = get_period_bounds('week', now)
        assert start == datetime(2025, 6, 8)
        assert previous == datetime(2025, 6, 1)

    def test_today(self):
        start, previous = get_period_bounds('today', datetime(2025, 6, 15, 14, 30))
        assert start == datetime(2025, 6, 15)
        assert previous == datetime(2025, 6, 14)

    def test_all_is_unbounded(self):
        assert get_period_bounds('all') == (None, None)

    def test_invalid(self):
        with pytest.raises(ValueError):
            get_period_bounds('decade')


class TestDashboardStats:
    def test_empty(self, app):
        stats = get_dashboard_stats('week')
        assert stats['total_orders'] == 0
        assert stats['revenue_growth'] == 0
        assert stats['payment_collection_rate'] == 0
        assert len(stats['revenue_by_day']) == 7

    def test_growth_against_previous_period(self, staff, customer):
        now = datetime.utcnow()
        old = _ready(staff, make_order(staff, customer), 1)
        old.created_at = now - timedelta(days=10)
        db.session.commit()
        _ready(staff, make_order(staff, customer), 2)
        paid = make_order(staff, customer)
        update_payment_status(staff, paid.id, 'paid')

        stats = get_dashboard_stats('week', now)
        assert stats['total_orders'] == 2
        assert stats['orders_growth'] == 100
        assert stats['total_revenue'] == 60.0
        assert stats['revenue_growth'] == 100
        assert stats['active_orders'] == 2
        assert stats['total_customers'] == 1
        assert stats['payment_collection_rate'] == 50
        assert stats['orders_by_status']['ready'] == 1
        assert stats['orders_by_day'][-1]['value'] == 2

    def test_deleted_orders_excluded(self, admin, staff, customer):
        order = make_order(staff, customer)
        delete_order(admin, order.id)
        assert get_dashboard_stats('all')['total_orders'] == 0

    def test_turnaround(self, staff, customer):
        now = datetime.utcnow()
        order = _ready(staff, make_order(staff, customer), 1)
        update_order_status(staff, order.id, 'completed')
        order.created_at = now - timedelta(hours=30)
        order.completed_at = now - timedelta(hours=6)
        db.session.commit()
        assert get_dashboard_stats('week', now)['avg_turnaround_time'] == 24

    def test_all_range_buckets_by_month(self, staff, customer):
        order = make_order(staff, customer)
        order.created_at = datetime(2024, 2, 10)
        db.session.commit()
        make_order(staff, customer)
        series = get_dashboard_stats('all')['orders_by_day']
        assert series[0] == {'date': 'Feb 2024', 'value': 1}
        assert len(series) == 2


class TestDistributionAndRankings:
    def test_service_distribution(self, staff, customer):
        make_order(staff, customer, clothes=True)
        make_order(staff, customer, clothes=True, blankets_thick=True)
        dist = service_type_distribution(LaundryOrder.query.all())
        assert dist == {'clothes': 67, 'blankets_light': 0, 'blankets_thick': 33}
        assert get_dashboard_stats('all')['service_type_distribution'] == dist

    def test_top_customers(self, staff, customer):
        other = create_customer(staff, 'Pedro', 'pedro@example.com', '0920')
        _ready(staff, make_order(staff, customer), 1)
        _ready(staff, make_order(staff, other), 5)
        top = get_top_customers(5)
        assert [c['customer_name'] for c in top] == ['Pedro', 'Maria Santos']
        assert top[0]['total_spent'] == 150.0
        assert top[0]['order_count'] == 1

    def test_recent_activity(self, staff, customer):
        order = _ready(staff, make_order(staff, customer), 1)
        update_order_status(staff, order.id, 'completed')
        activity = get_recent_activity(5)
        assert activity[0]['type'] == 'order_completed'
        assert order.order_id in activity[0]['description']
