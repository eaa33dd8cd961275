from decimal import Decimal
import hashlib
import random

from produce_quote.dates import to_gregorian
from produce_quote.models import Category
from produce_quote.providers.base import MarketDataProvider, UpstreamRecord

SAMPLE_PRODUCTS = [
    {"code": "LA1", "name": "甘藍-初秋", "category": Category.VEGETABLE, "base": 18.0},
    {"code": "LB1", "name": "小白菜-土白菜", "category": Category.VEGETABLE, "base": 25.0},
    {"code": "SB1", "name": "胡蘿蔔-清洗", "category": Category.VEGETABLE, "base": 22.0},
    {"code": "FB1", "name": "青花苔-青花菜", "category": Category.VEGETABLE, "base": 60.0},
    {"code": "SD1", "name": "洋蔥-本產", "category": Category.VEGETABLE, "base": 30.0},
    {"code": "LD1", "name": "萵苣菜-蘿美", "category": Category.VEGETABLE, "base": 40.0},
    {"code": "A1", "name": "香蕉", "category": Category.FRUIT, "base": 35.0},
    {"code": "11", "name": "椰子", "category": Category.FRUIT, "base": 28.0},
    {"code": "O1", "name": "木瓜-網室紅肉", "category": Category.FRUIT, "base": 32.0},
    {"code": "R1", "name": "芒果-愛文", "category": Category.FRUIT, "base": 90.0},
    {"code": "T1", "name": "西瓜-大西瓜", "category": Category.FRUIT, "base": 20.0},
    {"code": "X69", "name": "蘋果-富士進口", "category": Category.FRUIT, "base": 70.0},
]


def _quantize(value: float) -> Decimal:
    return Decimal(f"{value:.1f}")


class MockMarketDataProvider(MarketDataProvider):
    name = "mock"

    def fetch_records(self, local_date: str) -> list[UpstreamRecord]:
        ordinal = to_gregorian(local_date).toordinal()
        records: list[UpstreamRecord] = []
        for product in SAMPLE_PRODUCTS:
            seed_material = f"{product['code']}:{ordinal}".encode("utf-8")
            seed = int(hashlib.sha256(seed_material).hexdigest(), 16) % (10**8)
            rng = random.Random(seed)

            average = product["base"] * (1 + rng.uniform(-0.15, 0.15))
            spread = average * rng.uniform(0.1, 0.3)
            records.append(
                UpstreamRecord(
                    category_code=product["category"].upstream_code,
                    product_code=product["code"],
                    product_name=product["name"],
                    upper_price=_quantize(average + spread),
                    middle_price=_quantize(average),
                    lower_price=_quantize(max(1.0, average - spread)),
                    average_price=_quantize(average),
                    transaction_volume=int(max(50, rng.gauss(4200, 1500))),
                )
            )
        return records
