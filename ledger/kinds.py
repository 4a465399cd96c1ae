from dataclasses import dataclass
from typing import Optional

from models import (
    EssentialExpense,
    EssentialIncome,
    EssentialInvestment,
    Expense,
    Income,
    Investment,
)


@dataclass(frozen=True)
class LedgerKind:
    """Describes one owned table and how the ledger treats it.

    ``register_target`` is set only for essential templates and names the
    kind a registered copy is inserted into. ``sign`` is applied when
    aggregating (expenses count against the balance).
    """
    slug: str
    label: str
    model: type
    revalidate_path: str
    sign: int = 1
    register_target: Optional['LedgerKind'] = None
    positive_only: bool = False

    @property
    def is_template(self) -> bool:
        return self.register_target is not None


INCOME = LedgerKind('incomes', 'income', Income, '/ganhos', positive_only=True)
EXPENSE = LedgerKind('expenses', 'expense', Expense, '/gastos', sign=-1)
INVESTMENT = LedgerKind('investments', 'investment', Investment, '/investimentos')

ESSENTIAL_INCOME = LedgerKind('essential-incomes', 'essential income', EssentialIncome,
                              '/ganhos', register_target=INCOME)
ESSENTIAL_EXPENSE = LedgerKind('essential-expenses', 'essential expense', EssentialExpense,
                               '/gastos', sign=-1, register_target=EXPENSE)
ESSENTIAL_INVESTMENT = LedgerKind('essential-investments', 'essential investment', EssentialInvestment,
                                  '/investimentos', register_target=INVESTMENT)

ALL_KINDS = (INCOME, EXPENSE, INVESTMENT, ESSENTIAL_INCOME, ESSENTIAL_EXPENSE, ESSENTIAL_INVESTMENT)
KINDS_BY_SLUG = {k.slug: k for k in ALL_KINDS}


def get_kind(slug: str) -> Optional[LedgerKind]:
    return KINDS_BY_SLUG.get(slug)
