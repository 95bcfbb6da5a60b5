# tests/conftest.py
import pandas as pd
import pytest

from utils.document_tracker.queries import normalize_customers


class FakeClock:
    """Monotonic clock driven by the test."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_customers():
    """Build normalized customer rows from (id, name, in_process, other) tuples."""
    def _make(rows):
        raw = pd.DataFrame([
            {
                'id': cid,
                'customer_name': name,
                'cs_documents_in_process': in_process,
                'cs_documents_other': other,
                'cs_documents_inbox': 0,
                'is_active': True,
            }
            for cid, name, in_process, other in rows
        ])
        return normalize_customers(raw)
    return _make


@pytest.fixture
def customers(make_customers):
    return make_customers([
        ('5', 'Bakkerij de Vries', 4, 6),
        ('2', 'Acme Holding', 10, 20),
        ('9', 'Zeeman Logistiek', 15, 5),
    ])
