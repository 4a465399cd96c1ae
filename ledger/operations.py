"""Owner-scoped create/list/delete/update/register operations.

One implementation serves every table; the ``LedgerKind`` passed in decides
which model is touched and which view path is invalidated. Each operation
returns ``Ok`` or ``Err`` and never raises.
"""
import logging
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from functools import wraps

from blinker import Namespace
from flask import current_app

from auth import current_user
from models import db
from ledger.results import (
    Err,
    ErrorKind,
    LedgerError,
    NotFound,
    Ok,
    OwnershipMismatch,
    Unauthenticated,
    ValidationError,
)

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100
MAX_AMOUNT_IN_CENTS = 2**31 - 1

_signals = Namespace()
# Sent after every committed mutation with the stale view path.
ledger_changed = _signals.signal('ledger-changed')


# ---------------------- Input normalization ----------------------
def parse_amount_to_cents(amount) -> int:
    """Convert a decimal currency string to a positive amount in cents.

    Negative input is taken by absolute value and half-cents round up, so
    "-10.005" becomes 1001. A lone comma is accepted as the decimal separator.
    Amounts must fit the 32-bit integer column.
    """
    if amount is None:
        raise ValidationError('Amount is required.')
    text = str(amount).strip()
    if not text:
        raise ValidationError('Amount is required.')
    if ',' in text and '.' not in text:
        text = text.replace(',', '.')
    try:
        value = Decimal(text)
        if not value.is_finite():
            raise ValidationError(f'Invalid amount: {amount!r}.')
        cents = int((abs(value) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise ValidationError(f'Invalid amount: {amount!r}.')
    if cents <= 0:
        raise ValidationError('Amount must be greater than zero.')
    if cents > MAX_AMOUNT_IN_CENTS:
        raise ValidationError('Amount is too large.')
    return cents


def clean_title(title) -> str:
    if title is not None and not isinstance(title, str):
        raise ValidationError('Title must be text.')
    title = (title or '').strip()
    if not title:
        raise ValidationError('Title is required.')
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f'Title is too long (maximum {TITLE_MAX_LENGTH} characters).')
    return title


def clean_description(description):
    if description is not None and not isinstance(description, str):
        raise ValidationError('Description must be text.')
    return (description or '').strip() or None


def parse_timestamp(date_str, time_str) -> datetime:
    """Combine a ``YYYY-MM-DD`` date and ``HH:MM`` time; default to now."""
    if not date_str or not time_str:
        return datetime.now()
    try:
        return datetime.strptime(f'{date_str} {time_str}', '%Y-%m-%d %H:%M')
    except ValueError:
        raise ValidationError('Invalid date or time format.')


def _clean_fields(data):
    if not isinstance(data, Mapping):
        raise ValidationError('Expected an object with title and amount.')
    return {
        'title': clean_title(data.get('title')),
        'description': clean_description(data.get('description')),
        'amount_in_cents': parse_amount_to_cents(data.get('amount')),
    }


# ---------------------- Operation boundary ----------------------
def ledger_operation(name):
    """Turn a function that returns a value or raises into one returning Ok/Err."""
    def decorator(func):
        @wraps(func)
        def wrapped(kind, *args, **kwargs):
            try:
                return Ok(func(kind, *args, **kwargs))
            except LedgerError as e:
                db.session.rollback()
                logger.warning('%s %s failed: %s', name, kind.slug, e.message)
                return e.to_result()
            except Exception:
                db.session.rollback()
                logger.exception('%s %s failed with a store error', name, kind.slug)
                return Err(ErrorKind.STORE_FAILURE, f'Could not {name} {kind.label}.')
        return wrapped
    return decorator


def _require_user():
    user = current_user()
    if user is None:
        raise Unauthenticated()
    return user


def _require_template(kind):
    if not kind.is_template:
        raise ValidationError(f'{kind.label.capitalize()} entries cannot be edited or registered.')


def _get_owned(kind, row_id, user):
    row = kind.model.query.filter_by(id=str(row_id), user_id=user.id).first()
    if row is None:
        raise NotFound(f'{kind.label.capitalize()} not found.')
    return row


def _notify(kind, user):
    logger.debug('Invalidating %s for user %s', kind.revalidate_path, user.id)
    ledger_changed.send(current_app._get_current_object(), path=kind.revalidate_path, user_id=user.id)


# ---------------------- Operations ----------------------
@ledger_operation('create')
def create(kind, data):
    user = _require_user()
    fields = _clean_fields(data)
    now = datetime.now()
    if kind.is_template:
        created_at = now
    else:
        created_at = parse_timestamp(data.get('date'), data.get('time'))
    row = kind.model(user_id=user.id, created_at=created_at, updated_at=now, **fields)
    db.session.add(row)
    db.session.commit()
    _notify(kind, user)
    return row


@ledger_operation('list')
def list_rows(kind):
    user = _require_user()
    model = kind.model
    q = model.query.filter(model.user_id == user.id)
    if kind.positive_only:
        q = q.filter(model.amount_in_cents > 0)
    return q.order_by(model.created_at.desc()).all()


@ledger_operation('delete')
def delete_batch(kind, ids):
    user = _require_user()
    if not isinstance(ids, (list, tuple)):
        raise ValidationError(f'Ids to delete must be a list of {kind.label} ids.')
    if not ids:
        raise ValidationError(f'No {kind.label} selected for deletion.')
    if not all(isinstance(i, (str, int)) for i in ids):
        raise ValidationError(f'Invalid {kind.label} id in deletion list.')
    requested = {str(i) for i in ids}
    model = kind.model
    owned = (
        db.session.query(model.id)
        .filter(model.user_id == user.id, model.id.in_(requested))
        .with_for_update()
        .all()
    )
    if len(owned) != len(requested):
        raise OwnershipMismatch(
            f'Some {kind.label} entries were not found or do not belong to the user.'
        )
    deleted = (
        model.query
        .filter(model.user_id == user.id, model.id.in_(requested))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    _notify(kind, user)
    return deleted


@ledger_operation('update')
def update(kind, row_id, data):
    user = _require_user()
    _require_template(kind)
    row = _get_owned(kind, row_id, user)
    fields = _clean_fields(data)
    for key, value in fields.items():
        setattr(row, key, value)
    row.updated_at = datetime.now()
    db.session.commit()
    _notify(kind, user)
    return row


@ledger_operation('register')
def register_from_template(kind, template_id):
    user = _require_user()
    _require_template(kind)
    template = _get_owned(kind, template_id, user)
    target = kind.register_target
    now = datetime.now()
    row = target.model(
        user_id=user.id,
        title=template.title,
        description=template.description,
        amount_in_cents=template.amount_in_cents,
        created_at=now,
        updated_at=now,
    )
    db.session.add(row)
    db.session.commit()
    _notify(target, user)
    return row
