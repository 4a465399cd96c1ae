import logging
from functools import wraps

from flask import Blueprint, jsonify, request, session
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from models import db, User

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)


# ---------------------- Session Resolver ----------------------
def current_user():
    """Return the logged-in user for the active request, or None.

    A missing session is not an error. Store failures are logged and also
    reported as None so callers only ever see "authenticated or not".
    """
    uid = session.get('user_id')
    if not uid:
        return None
    try:
        return db.session.get(User, uid)
    except SQLAlchemyError:
        logger.exception('Failed to resolve session user %s', uid)
        db.session.rollback()
        return None


def login_required(view_func):
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        if not current_user():
            return jsonify({'success': False, 'error': 'User is not authenticated.'}), 401
        return view_func(*args, **kwargs)
    return wrapped


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return request.form
    return data if isinstance(data, dict) else {}


def _text(data, key):
    value = data.get(key)
    return value if isinstance(value, str) else ''


# ---------------------- Routes: Auth ----------------------
@bp.route('/register', methods=['POST'])
def register():
    data = _payload()
    name = _text(data, 'name').strip()
    email = _text(data, 'email').lower().strip()
    password = _text(data, 'password')
    if not name or not email or not password:
        return jsonify({'success': False, 'error': 'All fields are required.'}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({'success': False, 'error': 'Email already registered.'}), 409
    user = User(name=name, email=email, password_hash=generate_password_hash(password))
    db.session.add(user)
    db.session.commit()
    logger.info('Registered user %s', user.id)
    return jsonify({'success': True, 'data': user.to_dict()}), 201


@bp.route('/login', methods=['POST'])
def login():
    data = _payload()
    email = _text(data, 'email').lower().strip()
    password = _text(data, 'password')
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        return jsonify({'success': False, 'error': 'Invalid credentials.'}), 401
    session.clear()
    session['user_id'] = user.id
    return jsonify({'success': True, 'data': user.to_dict()})


@bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True})


@bp.route('/api/me')
@login_required
def me():
    return jsonify({'success': True, 'data': current_user().to_dict()})


@bp.route('/api/me', methods=['PATCH'])
@login_required
def update_name():
    user = current_user()
    name = _text(_payload(), 'name').strip()
    if not name:
        return jsonify({'success': False, 'error': 'Name cannot be empty.'}), 400
    if len(name) < 2:
        return jsonify({'success': False, 'error': 'Name must have at least 2 characters.'}), 400
    if len(name) > 100:
        return jsonify({'success': False, 'error': 'Name is too long (maximum 100 characters).'}), 400
    try:
        user.name = name
        db.session.commit()
    except SQLAlchemyError:
        logger.exception('Failed to update name for user %s', user.id)
        db.session.rollback()
        return jsonify({'success': False, 'error': 'Internal server error.'}), 500
    return jsonify({'success': True, 'data': user.to_dict()})
