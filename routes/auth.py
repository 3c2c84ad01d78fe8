from flask import Blueprint, render_template, redirect, url_for, flash, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from functools import wraps
from forms.auth_forms import LoginForm
from models.user import User

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def wants_json():
    return request.is_json or '/api/' in request.path


def _deny(message):
    if wants_json():
        return jsonify({'success': False, 'message': message}), 403
    flash(message, 'danger')
    if current_user.is_authenticated:
        return redirect(url_for(current_user.home_endpoint()))
    return redirect(url_for('auth.login'))


# admin-only pages
def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_admin():
            return _deny('You do not have permission to access this page')
        return f(*args, **kwargs)
    return decorated_function


# staff pages; admins are let through too
def staff_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or current_user.role not in ('admin', 'staff'):
            return _deny('You do not have permission to access this page')
        return f(*args, **kwargs)
    return decorated_function


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for(current_user.home_endpoint()))
    form = LoginForm()
    if form.validate_on_submit():
        user = User.query.filter_by(email=form.email.data.strip().lower()).first()
        if user and user.is_active and user.check_password(form.password.data):
            login_user(user)
            current_app.logger.info('User %s signed in', user.email)
            flash('Signed in successfully', 'success')
            next_url = request.args.get('next')
            if next_url and next_url.startswith('/') and not next_url.startswith('//'):
                return redirect(next_url)
            return redirect(url_for(user.home_endpoint()))
        current_app.logger.warning('Failed sign-in for %s', form.email.data)
        flash('Invalid email or password', 'danger')
    return render_template('auth/login.html', title='Sign In', form=form)


@auth_bp.route('/logout')
@login_required
def logout():
    logout_user()
    flash('Signed out successfully', 'success')
    return redirect(url_for('auth.login'))
