import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import declared_attr

db = SQLAlchemy()


def _new_id():
    return str(uuid.uuid4())


class User(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'email': self.email}


class LedgerRowMixin:
    """Columns shared by every owned ledger row and template.

    amount_in_cents is always stored positive; the sign of a kind is applied
    when aggregating, never in the table.
    """
    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    @declared_attr
    def user_id(cls):
        return db.Column(db.String(36), db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)

    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    amount_in_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'title': self.title,
            'description': self.description,
            'amountInCents': self.amount_in_cents,
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }


class Income(LedgerRowMixin, db.Model):
    __tablename__ = 'income'


class Expense(LedgerRowMixin, db.Model):
    __tablename__ = 'expense'


class Investment(LedgerRowMixin, db.Model):
    __tablename__ = 'investment'


class EssentialIncome(LedgerRowMixin, db.Model):
    __tablename__ = 'essential_income'


class EssentialExpense(LedgerRowMixin, db.Model):
    __tablename__ = 'essential_expense'


class EssentialInvestment(LedgerRowMixin, db.Model):
    __tablename__ = 'essential_investment'
