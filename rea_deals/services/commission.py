"""
Commission calculation for closed deals.

Rules:
- Brokerage deal: sale price × the property's brokerage percent
- Branch-owned property: 5% of net profit, split evenly between
  REA INVEST (head office) and the owning branch

All functions are pure and never raise for malformed upstream data;
they return zero instead. Results are not rounded.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Branch profit split, percent of net profit
REA_INVEST_SHARE_PERCENT = Decimal("2.5")
BRANCH_SHARE_PERCENT = Decimal("2.5")


@dataclass(frozen=True)
class CommissionBreakdown:
    """Branch profit split. Transient, folded into Deal fields."""

    rea_invest_commission: Decimal = ZERO
    branch_commission: Decimal = ZERO
    total_commission: Decimal = ZERO


def _positive(value: Optional[Decimal]) -> bool:
    return value is not None and value > 0


def calculate_brokerage_commission(
    sale_price: Optional[Decimal],
    commission_percent: Optional[Decimal],
) -> Decimal:
    """Calculate the brokerage commission for a sale.

    Args:
        sale_price: Sale price of the property
        commission_percent: Commission percentage (5 means 5%)

    Returns:
        sale_price * commission_percent / 100, or 0 if either input is
        missing, zero or negative
    """
    if not _positive(sale_price) or not _positive(commission_percent):
        return ZERO
    return Decimal(sale_price) * Decimal(commission_percent) / HUNDRED


def calculate_branch_commission(profit: Optional[Decimal]) -> CommissionBreakdown:
    """Split a branch sale's net profit between REA INVEST and the branch.

    Returns an all-zero breakdown when profit is missing or not positive.
    """
    if not _positive(profit):
        return CommissionBreakdown()

    profit = Decimal(profit)
    rea_commission = profit * REA_INVEST_SHARE_PERCENT / HUNDRED
    branch_commission = profit * BRANCH_SHARE_PERCENT / HUNDRED

    return CommissionBreakdown(
        rea_invest_commission=rea_commission,
        branch_commission=branch_commission,
        total_commission=rea_commission + branch_commission,
    )


def calculate_branch_profit(
    sell_price: Decimal,
    buy_price: Decimal,
    total_expenses: Optional[Decimal],
) -> Decimal:
    """Net profit of a branch sale after recorded expenses."""
    return Decimal(sell_price) - Decimal(buy_price) - Decimal(total_expenses or ZERO)
