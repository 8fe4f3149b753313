from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

CATEGORIES = (
    "Rent",
    "School Fees",
    "City Transport",
    "Vacation",
    "Shopping",
    "Food",
    "Grocery",
)


def _iso(value):
    return value.isoformat() if value else None


class Salary(db.Model):
    __tablename__ = 'salaries'

    id = db.Column(db.Integer, primary_key=True)
    amount = db.Column(db.Float, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'amount': float(self.amount),
            'month': self.month,
            'year': self.year,
            'createdAt': _iso(self.created_at),
        }


class Expense(db.Model):
    __tablename__ = 'expenses'

    id = db.Column(db.Integer, primary_key=True)
    amount = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(50), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    # always derived from `date`
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now)

    def to_dict(self):
        return {
            'id': self.id,
            'amount': float(self.amount),
            'category': self.category,
            'date': _iso(self.date),
            'month': self.month,
            'year': self.year,
            'createdAt': _iso(self.created_at),
        }
