import csv
import io
import logging
import os
from datetime import datetime

from flask import Blueprint, Flask, abort, g, jsonify, request

import auth
from analytics import dashboard
from auth import login_required
from ledger import operations
from ledger.kinds import get_kind
from ledger.results import ErrorKind
from models import db

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'

ERROR_STATUS = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OWNERSHIP_MISMATCH: 409,
    ErrorKind.STORE_FAILURE: 500,
}

api = Blueprint('api', __name__)


def create_app(config=None):
    app = Flask(__name__)
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///finance.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    if config:
        app.config.update(config)

    logging.basicConfig(level=app.config['LOG_LEVEL'], format=LOG_FORMAT)

    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.register_blueprint(auth.bp)
    app.register_blueprint(api)

    operations.ledger_changed.connect(_remember_stale_path, sender=app, weak=False)
    app.after_request(_revalidate_header)
    return app


# ---------------------- Invalidation ----------------------
def _remember_stale_path(sender, path, user_id, **extra):
    logger.debug('View %s is stale for user %s', path, user_id)
    stale = g.setdefault('stale_paths', [])
    if path not in stale:
        stale.append(path)


def _revalidate_header(response):
    stale = g.get('stale_paths')
    if stale:
        response.headers['X-Revalidate-Path'] = ', '.join(stale)
    return response


# ---------------------- Result Helpers ----------------------
def _error_response(result):
    return jsonify({'success': False, 'error': result.message}), ERROR_STATUS[result.kind]


def _row_response(result, status=200):
    if not result.ok:
        return _error_response(result)
    return jsonify({'success': True, 'data': result.value.to_dict()}), status


def _kind_or_404(slug, template=None):
    kind = get_kind(slug)
    if kind is None or (template is not None and kind.is_template != template):
        abort(404)
    return kind


def _payload():
    """JSON object body, form fields, or None when the JSON body is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return request.form.to_dict()
    return data if isinstance(data, dict) else None


def _user_frame():
    """(frame, None) for the caller's ledger rows, or (None, error response)."""
    result = dashboard.load_user_frame()
    if not result.ok:
        return None, _error_response(result)
    return result.value, None


# ---------------------- Routes: Ledger API ----------------------
@api.route('/api/<slug>', methods=['GET'])
def list_rows(slug):
    kind = _kind_or_404(slug)
    result = operations.list_rows(kind)
    if not result.ok:
        return _error_response(result)
    return jsonify({'success': True, 'data': [row.to_dict() for row in result.value]})


@api.route('/api/<slug>', methods=['POST'])
def create_row(slug):
    kind = _kind_or_404(slug)
    return _row_response(operations.create(kind, _payload()), status=201)


@api.route('/api/<slug>/delete', methods=['POST'])
def delete_rows(slug):
    kind = _kind_or_404(slug)
    data = request.get_json(silent=True)
    if data is None:
        ids = request.form.getlist('ids')
    elif isinstance(data, dict):
        ids = data.get('ids')
    else:
        return jsonify({'success': False, 'error': 'Expected an object with an ids list.'}), 400
    result = operations.delete_batch(kind, ids)
    if not result.ok:
        return _error_response(result)
    return jsonify({'success': True, 'deletedCount': result.value})


@api.route('/api/<slug>/<row_id>', methods=['PUT'])
def update_template(slug, row_id):
    kind = _kind_or_404(slug, template=True)
    return _row_response(operations.update(kind, row_id, _payload()))


@api.route('/api/<slug>/<row_id>/register', methods=['POST'])
def register_template(slug, row_id):
    kind = _kind_or_404(slug, template=True)
    return _row_response(operations.register_from_template(kind, row_id), status=201)


# ---------------------- Routes: Dashboard API ----------------------
@api.route('/api/transactions')
@login_required
def api_transactions():
    """Income and expense rows of the caller, newest first."""
    df, error = _user_frame()
    if error:
        return error
    return jsonify({'success': True, 'data': dashboard.combined_transactions(df)})


@api.route('/api/summary')
@login_required
def api_summary():
    df, error = _user_frame()
    if error:
        return error
    return jsonify({'success': True, 'data': dashboard.compute_totals(df)})


@api.route('/api/charts/daily')
@login_required
def api_daily_chart():
    """Per-day income/expense/volume for a month; month is 0-based."""
    now = datetime.now()
    month = request.args.get('month', default=now.month - 1, type=int)
    year = request.args.get('year', default=now.year, type=int)
    if month is None or year is None or not 0 <= month <= 11 or not 1 <= year <= 9999:
        return jsonify({'success': False, 'error': 'Invalid month or year.'}), 400
    df, error = _user_frame()
    if error:
        return error
    return jsonify({'success': True, 'data': dashboard.daily_chart(df, month, year)})


@api.route('/api/available_years')
@login_required
def api_available_years():
    df, error = _user_frame()
    if error:
        return error
    return jsonify({'success': True, 'data': dashboard.available_years(df, datetime.now().year)})


# ---------------------- Export CSV ----------------------
@api.route('/export/<slug>.csv')
@login_required
def export_csv(slug):
    kind = _kind_or_404(slug)
    result = operations.list_rows(kind)
    if not result.ok:
        return _error_response(result)
    si = io.StringIO()
    writer = csv.writer(si)
    writer.writerow(['date', 'title', 'description', 'amount'])
    for row in result.value:
        writer.writerow([row.created_at.isoformat(), row.title, row.description or '',
                         f'{row.amount_in_cents / 100:.2f}'])
    output = si.getvalue().encode('utf-8')
    return (output, 200, {'Content-Type': 'text/csv; charset=utf-8',
                          'Content-Disposition': f'attachment; filename={kind.slug}.csv'})


# ---------------------- Run App ----------------------
if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
