import logging
from datetime import date

from flask import Blueprint, Flask, current_app, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

import reports
import storage
from config import Config
from models import CATEGORIES, db
from schemas import (
    DashboardQuery,
    ExpenseIn,
    ExpenseWindowQuery,
    PeriodQuery,
    SalaryIn,
    error_fields,
)

api = Blueprint('api', __name__, url_prefix='/api')


def _records(rows):
    return [row.to_dict() for row in rows]


# ==============================
# SALARIES
# ==============================

@api.route('/salaries', methods=['GET'])
def list_salaries():
    return jsonify(_records(storage.list_salaries()))


@api.route('/salaries', methods=['POST'])
def create_salary():
    data = SalaryIn.model_validate_json(request.get_data())
    return jsonify(storage.create_salary(data).to_dict())


@api.route('/salaries/<int:salary_id>', methods=['PUT'])
def update_salary(salary_id):
    data = SalaryIn.model_validate_json(request.get_data())
    return jsonify(storage.update_salary(salary_id, data).to_dict())


@api.route('/salaries/lookup')
def lookup_salary():
    # Lets the client offer "modify existing" before adding a second entry for a month.
    query = PeriodQuery.model_validate(request.args.to_dict())
    salary = storage.find_salary(query.month, query.year)
    if salary is None:
        return jsonify({'error': f'No salary for {query.month:02d}/{query.year}'}), 404
    return jsonify(salary.to_dict())


# ==============================
# EXPENSES
# ==============================

@api.route('/expenses', methods=['GET'])
def list_expenses():
    return jsonify(_records(storage.list_expenses()))


@api.route('/expenses', methods=['POST'])
def create_expense():
    data = ExpenseIn.model_validate_json(request.get_data())
    return jsonify(storage.create_expense(data).to_dict())


@api.route('/expenses/<int:expense_id>', methods=['PUT'])
def update_expense(expense_id):
    data = ExpenseIn.model_validate_json(request.get_data())
    return jsonify(storage.update_expense(expense_id, data).to_dict())


@api.route('/categories')
def list_categories():
    return jsonify(list(CATEGORIES))


# ==============================
# REPORTS
# ==============================

@api.route('/dashboard')
def dashboard():
    query = DashboardQuery.model_validate(request.args.to_dict())
    summary = reports.dashboard(
        _records(storage.list_salaries()),
        _records(storage.list_expenses()),
        month=query.month,
        year=query.year,
    )
    return jsonify(summary)


@api.route('/expenses/summary')
def expense_summary():
    # Params: window=all|today|yesterday|thisWeek|thisMonth|custom, start=YYYY-MM-DD, end=YYYY-MM-DD
    query = ExpenseWindowQuery.model_validate(request.args.to_dict())
    report = reports.expense_report(
        _records(storage.list_expenses()),
        window=query.window,
        start=query.start,
        end=query.end,
        order=CATEGORIES,
    )
    report['total'] = round(report['total'], 2)
    return jsonify(report)


# ==============================
# ERRORS
# ==============================

def handle_validation_error(exc):
    current_app.logger.warning('Rejected %s %s: %s', request.method, request.path, exc.error_count())
    return jsonify({'error': 'Invalid request', 'fields': error_fields(exc)}), 400


def handle_not_found(exc):
    current_app.logger.warning('%s %s: %s', request.method, request.path, exc)
    return jsonify({'error': str(exc)}), 404


def handle_http_error(exc):
    if not request.path.startswith(api.url_prefix):
        return exc
    return jsonify({'error': exc.description}), exc.code


# ==============================
# APP FACTORY
# ==============================

def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    db.init_app(app)
    app.register_blueprint(api)
    app.register_error_handler(ValidationError, handle_validation_error)
    app.register_error_handler(storage.RecordNotFound, handle_not_found)
    app.register_error_handler(HTTPException, handle_http_error)

    @app.cli.command('initdb')
    def initdb():
        db.create_all()
        print('Database initialized.')

    @app.cli.command('inspect')
    def inspect():
        salaries = storage.list_salaries()
        expenses = storage.list_expenses()

        print('Salaries in DB:')
        for s in salaries:
            print(f'- {s.id} | {s.month:02d}/{s.year} | {s.amount:.2f}')

        print('\nExpenses in DB:')
        for e in expenses:
            print(f'- {e.id} | {e.date.isoformat()} | {e.category} | {e.amount:.2f}')

        today = date.today()
        summary = reports.dashboard(_records(salaries), _records(expenses), today.month, today.year)
        month = summary['selected']
        print(f"\n{month['month']} {today.year}: income {month['salary']:.2f}, "
              f"expenses {month['expenses']:.2f}, savings rate {month['savingsRate']:.1f}%")

    return app


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(debug=True)
