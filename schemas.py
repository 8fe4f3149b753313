"""Request bodies and query strings accepted by the API."""
import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from models import CATEGORIES
from reports import WINDOW_KINDS


class SalaryIn(BaseModel):
    # Bodies are validated from raw JSON, so strict mode still accepts ISO
    # date strings but refuses "12" for a number.
    model_config = ConfigDict(strict=True)

    amount: float = Field(ge=0, allow_inf_nan=False)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1)


class ExpenseIn(BaseModel):
    model_config = ConfigDict(strict=True)

    amount: float = Field(ge=0, allow_inf_nan=False)
    category: Literal[CATEGORIES]
    date: datetime.date
    month: Optional[int] = None
    year: Optional[int] = None

    @model_validator(mode='after')
    def period_from_date(self):
        self.month = self.date.month
        self.year = self.date.year
        return self


def _this_month():
    return datetime.date.today().month


def _this_year():
    return datetime.date.today().year


class DashboardQuery(BaseModel):
    month: int = Field(default_factory=_this_month, ge=1, le=12)
    year: int = Field(default_factory=_this_year, ge=1)


class PeriodQuery(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1)


class ExpenseWindowQuery(BaseModel):
    window: Literal[WINDOW_KINDS] = 'all'
    start: Optional[datetime.date] = None
    end: Optional[datetime.date] = None

    @field_validator('start', 'end', mode='before')
    @classmethod
    def blank_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


def error_fields(exc: ValidationError) -> list:
    """Flatten a pydantic error into ``[{field, message}]`` for a 400 body."""
    fields = []
    for err in exc.errors(include_url=False):
        loc = '.'.join(str(part) for part in err['loc'])
        fields.append({'field': loc or 'body', 'message': err['msg']})
    return fields
