import os
import shutil
import tempfile
from datetime import datetime, timezone
from decimal import Decimal

_DATA_DIR = tempfile.mkdtemp(prefix="produce-quote-test-")
os.environ["DATA_DIR"] = _DATA_DIR
os.environ["PROVIDER_NAME"] = "mock"
os.environ["REFRESH_ENABLED"] = "false"

import pytest
from fastapi import BackgroundTasks

from produce_quote.dates import DateConverter
from produce_quote.providers.base import MarketDataProvider, UpstreamRecord
from produce_quote.stores.base import InMemorySnapshotStore

# 2025-12-09 10:30 in Taipei, a Tuesday.
FIXED_NOW = datetime(2025, 12, 9, 2, 30, tzinfo=timezone.utc)
TODAY = "114/12/09"


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_DATA_DIR, ignore_errors=True)


class StubProvider(MarketDataProvider):
    name = "stub"

    def __init__(self, records=None, error=None):
        self.records = list(records or [])
        self.error = error
        self.calls = []

    def fetch_records(self, local_date):
        self.calls.append(local_date)
        if self.error is not None:
            raise self.error
        return list(self.records)


@pytest.fixture()
def make_record():
    def _make(code, average="25.5", category_code="N04", name=None):
        return UpstreamRecord(
            category_code=category_code,
            product_code=code,
            product_name=name or f"product-{code}",
            upper_price=Decimal("40.0"),
            middle_price=Decimal("30.0"),
            lower_price=Decimal("10.0"),
            average_price=Decimal(average) if isinstance(average, str) else average,
            transaction_volume=1200,
        )

    return _make


@pytest.fixture()
def stub_provider():
    return StubProvider


@pytest.fixture()
def converter():
    return DateConverter("Asia/Taipei", clock=lambda: FIXED_NOW)


@pytest.fixture()
def store():
    return InMemorySnapshotStore()


@pytest.fixture()
def background_tasks():
    return BackgroundTasks()
