"""
Pytest configuration and fixtures.
Adds the repo root to sys.path so tests can import spreadmaker without installing.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from spreadmaker.core.models import Account  # noqa: E402
from spreadmaker.execution.order_book import EngineState  # noqa: E402
from tests.helpers import make_entries  # noqa: E402


@pytest.fixture
def snapshot_rows():
    """Bids at 299/300, asks at 302/305 (best bid 300, best ask 302)."""
    return [
        [1, 299, 2.5],
        [2, 300, 1],
        [3, 302, -1],
        [4, 305, -0.5],
    ]


@pytest.fixture
def snapshot(snapshot_rows):
    return make_entries(snapshot_rows)


@pytest.fixture
def state():
    return EngineState(Account(quote=Decimal("1000"), base=Decimal("2")))
