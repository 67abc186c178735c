"""Shared test helpers."""

from decimal import Decimal

from spreadmaker.core.models import RawMarketEntry


def make_entries(rows):
    return [RawMarketEntry.from_row(r) for r in rows]


class FixedRandom:
    """Deterministic random source cycling through given draws."""

    def __init__(self, *draws):
        self.draws = [Decimal(str(d)) for d in draws]
        self.calls = 0

    def __call__(self) -> Decimal:
        value = self.draws[self.calls % len(self.draws)]
        self.calls += 1
        return value
