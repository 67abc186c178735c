"""
AccountLedger: balance arithmetic for the simulated account.

No validation beyond types. Orders are always sized from the current
balance, so a negative balance means a caller bug.
"""

from __future__ import annotations

from decimal import Decimal

from spreadmaker.core.models import Account, Asset, FreedAssets


def debit(account: Account, asset: Asset, amount: Decimal) -> None:
    if asset is Asset.QUOTE:
        account.quote -= amount
    else:
        account.base -= amount


def credit(account: Account, asset: Asset, amount: Decimal) -> None:
    if asset is Asset.QUOTE:
        account.quote += amount
    else:
        account.base += amount


def credit_freed(account: Account, freed: FreedAssets) -> None:
    """Apply assets released by filled orders."""
    credit(account, Asset.QUOTE, freed.quote)
    credit(account, Asset.BASE, freed.base)
