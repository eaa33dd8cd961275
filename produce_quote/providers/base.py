from dataclasses import dataclass
from typing import Any


class UpstreamError(RuntimeError):
    pass


@dataclass
class UpstreamRecord:
    category_code: str
    product_code: str
    product_name: str
    upper_price: Any
    middle_price: Any
    lower_price: Any
    average_price: Any
    transaction_volume: Any


class MarketDataProvider:
    name = "unknown"

    def fetch_records(self, local_date: str) -> list[UpstreamRecord]:
        raise NotImplementedError
