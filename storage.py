"""
Persistence for salaries and expenses.

Each write commits on its own. Updates replace every editable field of the
record; ``id`` and ``created_at`` are kept. Concurrent edits are not
coordinated, the last commit wins.
"""

import logging

from models import db, Salary, Expense

logger = logging.getLogger(__name__)


class RecordNotFound(LookupError):
    """Raised when an update targets an id that is not stored."""

    def __init__(self, kind: str, record_id: int):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


# ==================== Salaries ====================

def list_salaries():
    return Salary.query.order_by(Salary.year.desc(), Salary.month.desc(), Salary.id.desc()).all()


def find_salary(month: int, year: int):
    """First salary stored for ``month``/``year``, or None."""
    return Salary.query.filter_by(month=month, year=year).order_by(Salary.id).first()


def create_salary(data) -> Salary:
    salary = Salary(amount=data.amount, month=data.month, year=data.year)
    db.session.add(salary)
    db.session.commit()
    logger.info("Created salary %s for %02d/%s", salary.id, salary.month, salary.year)
    return salary


def update_salary(salary_id: int, data) -> Salary:
    salary = db.session.get(Salary, salary_id)
    if salary is None:
        raise RecordNotFound("Salary", salary_id)
    salary.amount = data.amount
    salary.month = data.month
    salary.year = data.year
    db.session.commit()
    logger.info("Updated salary %s", salary_id)
    return salary


# ==================== Expenses ====================

def list_expenses():
    return Expense.query.order_by(Expense.date.desc(), Expense.id.desc()).all()


def create_expense(data) -> Expense:
    expense = Expense(
        amount=data.amount,
        category=data.category,
        date=data.date,
        month=data.date.month,
        year=data.date.year,
    )
    db.session.add(expense)
    db.session.commit()
    logger.info("Created expense %s (%s) on %s", expense.id, expense.category, expense.date)
    return expense


def update_expense(expense_id: int, data) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise RecordNotFound("Expense", expense_id)
    expense.amount = data.amount
    expense.category = data.category
    expense.date = data.date
    expense.month = data.date.month
    expense.year = data.date.year
    db.session.commit()
    logger.info("Updated expense %s", expense_id)
    return expense
