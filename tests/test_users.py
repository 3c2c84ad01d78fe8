"""Tests for user management and role checks."""

import pytest

from models import db
from models.audit_log import AuditLog
from models.customer import Customer
from models.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from models.user import User, create_user, delete_user, get_all_users, set_user_role, update_user
from tests.conftest import make_user


class TestCreateUser:
    def test_creates_staff_by_default(self, admin):
        user = create_user(admin, 'New Person', 'New@Example.com ', 'secret1')
        assert user.email == 'new@example.com'
        assert user.role == 'staff'
        assert user.check_password('secret1')

    def test_audits_creation(self, admin):
        user = create_user(admin, 'New Person', 'new@example.com', 'secret1', role='admin')
        entry = AuditLog.query.filter_by(action='user_created').one()
        assert entry.target_user_id == user.id
        assert entry.performed_by == admin.id
        assert entry.new_values['role'] == 'admin'

    def test_staff_cannot_create(self, staff):
        with pytest.raises(PermissionDenied):
            create_user(staff, 'X', 'x@example.com', 'secret1')

    def test_short_password_rejected(self, admin):
        with pytest.raises(ValidationError, match='at least 6'):
            create_user(admin, 'X', 'x@example.com', '123')

    def test_duplicate_email(self, admin, staff):
        with pytest.raises(ConflictError):
            create_user(admin, 'Dup', 'STAFF@example.com', 'secret1')

    def test_invalid_role(self, admin):
        with pytest.raises(ValidationError):
            create_user(admin, 'X', 'x@example.com', 'secret1', role='owner')


class TestUpdateUser:
    def test_records_changes(self, admin, staff):
        update_user(admin, staff.id, name='Samantha')
        entry = AuditLog.query.filter_by(action='user_updated').one()
        assert 'Samantha' in entry.details
        assert entry.old_values['name'] == 'Sam Staff'
        assert staff.name == 'Samantha'

    def test_email_conflict(self, admin, staff):
        with pytest.raises(ConflictError):
            update_user(admin, staff.id, email='admin@example.com')

    def test_missing_user(self, admin):
        with pytest.raises(NotFoundError):
            update_user(admin, 9999, name='Ghost')


class TestRoles:
    def test_promote_staff(self, admin, staff):
        set_user_role(admin, staff.id, 'admin')
        assert staff.is_admin()
        entry = AuditLog.query.filter_by(action='role_changed').one()
        assert entry.old_values == {'role': 'staff'}
        assert entry.new_values == {'role': 'admin'}

    def test_cannot_demote_self(self, admin):
        with pytest.raises(PermissionDenied):
            set_user_role(admin, admin.id, 'staff')
        assert admin.is_admin()

    def test_home_endpoint_follows_role(self, admin, staff):
        assert admin.home_endpoint() == 'admin.dashboard'
        assert staff.home_endpoint() == 'staff.dashboard'

    def test_list_requires_admin(self, admin, staff):
        assert {u.email for u in get_all_users(admin)} == {admin.email, staff.email}
        with pytest.raises(PermissionDenied):
            get_all_users(staff)


class TestDeleteUser:
    def test_cannot_delete_self(self, admin):
        with pytest.raises(PermissionDenied):
            delete_user(admin, admin.id)

    def test_delete_keeps_audit_snapshot(self, admin, staff, customer):
        staff_id = staff.id
        delete_user(admin, staff_id)

        assert db.session.get(User, staff_id) is None
        entry = AuditLog.query.filter_by(action='user_deleted').one()
        assert entry.target_user_id is None
        assert entry.target_user_email == 'staff@example.com'
        created = AuditLog.query.filter_by(action='customer_created').one()
        assert created.performed_by is None
        assert created.performed_by_email == 'staff@example.com'
        assert db.session.get(Customer, customer.id).created_by is None

    def test_staff_cannot_delete(self, admin, staff):
        other = make_user('other@example.com')
        with pytest.raises(PermissionDenied):
            delete_user(staff, other.id)
