"""Dashboard totals and per-day chart series.

Everything here works on a DataFrame with one row per ledger entry
(``kind``, ``amount_in_cents``, ``created_at``). Sums stay in integer cents
and are divided by 100 only when building the output dictionaries.
"""
import calendar

import pandas as pd

from ledger import operations
from ledger.kinds import EXPENSE, INCOME, INVESTMENT
from ledger.results import Ok

COLUMNS = ['id', 'kind', 'title', 'description', 'amount_in_cents', 'created_at']
FLOW_KINDS = ('income', 'expense')


def build_frame(records):
    """Build the analysis frame from dicts carrying at least kind/amount/created_at."""
    df = pd.DataFrame(list(records), columns=COLUMNS)
    if df.empty:
        return df
    df['amount_in_cents'] = df['amount_in_cents'].astype('int64')
    df['created_at'] = pd.to_datetime(df['created_at'])
    # keep the wall-clock date the row was recorded with
    if df['created_at'].dt.tz is not None:
        df['created_at'] = df['created_at'].dt.tz_localize(None)
    return df


def _row_record(kind_name, row):
    return {
        'id': row.id,
        'kind': kind_name,
        'title': row.title,
        'description': row.description,
        'amount_in_cents': row.amount_in_cents,
        'created_at': row.created_at,
    }


def load_user_frame(kinds=(INCOME, EXPENSE, INVESTMENT)):
    """List the caller's rows of each kind and combine them into one frame.

    Returns the first ``Err`` any listing produced, else ``Ok(frame)``.
    """
    records = []
    for kind in kinds:
        result = operations.list_rows(kind)
        if not result.ok:
            return result
        records.extend(_row_record(kind.label, row) for row in result.value)
    return Ok(build_frame(records))


def combined_transactions(df):
    """Income and expense rows tagged with their type, most recent first."""
    if df.empty:
        return []
    flows = df[df['kind'].isin(FLOW_KINDS)].sort_values('created_at', ascending=False, kind='stable')
    return [{
        'id': r.id,
        'type': r.kind,
        'title': r.title,
        'description': r.description,
        'amountInCents': int(r.amount_in_cents),
        'createdAt': r.created_at.isoformat(),
    } for r in flows.itertuples(index=False)]


def _kind_cents(df, kind_name):
    if df.empty:
        return 0
    return int(df.loc[df['kind'] == kind_name, 'amount_in_cents'].sum())


def compute_totals(df):
    income = _kind_cents(df, 'income')
    expense = _kind_cents(df, 'expense')
    invested = _kind_cents(df, 'investment')
    count = 0 if df.empty else int(df['kind'].isin(FLOW_KINDS).sum())
    return {
        'totalIncome': income / 100,
        'totalExpense': expense / 100,
        'balance': (income * INCOME.sign + expense * EXPENSE.sign) / 100,
        'totalInvested': invested / 100,
        'transactionCount': count,
    }


def days_in_month(year: int, month: int) -> int:
    """Number of days in a 0-based ``month`` (January is 0)."""
    return calendar.monthrange(year, month + 1)[1]


def daily_series(df, month: int, year: int):
    """Dense per-day cent sums for one month.

    Returns a frame indexed by every calendar day of the month with integer
    ``income``, ``expense`` and ``total`` (absolute movement) columns. Days
    without activity are zero.
    """
    if not 0 <= month <= 11:
        raise ValueError(f'month must be between 0 and 11, got {month}')
    days = pd.date_range(pd.Timestamp(year=year, month=month + 1, day=1),
                         periods=days_in_month(year, month), freq='D')
    series = pd.DataFrame(0, index=days, columns=['income', 'expense'], dtype='int64')
    if not df.empty:
        flows = df[df['kind'].isin(FLOW_KINDS)]
        stamps = flows['created_at']
        flows = flows[(stamps.dt.year == year) & (stamps.dt.month == month + 1)]
        if not flows.empty:
            grouped = (
                flows.assign(day=flows['created_at'].dt.normalize(),
                             amount=flows['amount_in_cents'].abs())
                .groupby(['day', 'kind'])['amount'].sum()
                .unstack(fill_value=0)
                .reindex(index=days, columns=['income', 'expense'], fill_value=0)
            )
            series = grouped.astype('int64')
    series['total'] = series['income'] + series['expense']
    return series


def daily_chart(df, month: int, year: int):
    series = daily_series(df, month, year)
    days = [{
        'date': day.strftime('%Y-%m-%d'),
        'income': int(row['income']) / 100,
        'expense': int(row['expense']) / 100,
        'total': int(row['total']) / 100,
    } for day, row in series.iterrows()]
    return {
        'month': month,
        'year': year,
        'days': days,
        'totals': {col: int(series[col].sum()) / 100 for col in ('income', 'expense', 'total')},
    }


def available_years(df, default_year: int):
    if df.empty:
        return [default_year]
    return sorted(int(y) for y in df['created_at'].dt.year.unique())
