from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional


class Category(str, Enum):
    VEGETABLE = "Vegetable"
    FRUIT = "Fruit"

    @property
    def upstream_code(self) -> str:
        return UPSTREAM_CATEGORY_CODES[self]

    @classmethod
    def from_upstream_code(cls, code: str) -> Optional["Category"]:
        for category, category_code in UPSTREAM_CATEGORY_CODES.items():
            if category_code == code:
                return category
        return None


UPSTREAM_CATEGORY_CODES = {Category.VEGETABLE: "N04", Category.FRUIT: "N05"}


class RequestScope(str, Enum):
    VEGETABLE = "Vegetable"
    FRUIT = "Fruit"
    ALL = "all"

    @property
    def categories(self) -> list[Category]:
        if self is RequestScope.ALL:
            return [Category.VEGETABLE, Category.FRUIT]
        return [Category(self.value)]

    @classmethod
    def parse(cls, value: str) -> "RequestScope":
        normalized = (value or "").strip()
        if normalized.lower() in ("all", "both"):
            return cls.ALL
        for scope in cls:
            if scope.value.lower() == normalized.lower():
                return scope
        raise ValueError(f"unknown category: {value!r}")


class RetrievalStatus(str, Enum):
    FRESH = "fresh"
    CACHED = "cached"
    UNAVAILABLE = "unavailable"


class FallbackCause(str, Enum):
    TRANSPORT = "transport"
    MARKET_CLOSED = "market_closed"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class MarketRow:
    product_code: str
    product_name: str
    upper_price: str
    middle_price: str
    lower_price: str
    average_price: str
    transaction_volume: str
    category: Optional[Category] = None

    def with_category(self, category: Category) -> "MarketRow":
        if self.category is not None:
            return self
        return replace(self, category=category)

    def to_dict(self) -> dict[str, str]:
        payload = {
            "productCode": self.product_code,
            "productName": self.product_name,
            "upperPrice": self.upper_price,
            "middlePrice": self.middle_price,
            "lowerPrice": self.lower_price,
            "averagePrice": self.average_price,
            "transactionVolume": self.transaction_volume,
        }
        if self.category is not None:
            payload["category"] = self.category.value
        return payload

    @classmethod
    def from_dict(cls, item: Mapping[str, Any]) -> Optional["MarketRow"]:
        code = item.get("productCode")
        if not code:
            return None
        raw_category = item.get("category")
        try:
            category = Category(raw_category) if raw_category else None
        except ValueError:
            category = None
        return cls(
            product_code=str(code),
            product_name=_text(item.get("productName")),
            upper_price=_text(item.get("upperPrice")),
            middle_price=_text(item.get("middlePrice")),
            lower_price=_text(item.get("lowerPrice")),
            average_price=_text(item.get("averagePrice")),
            transaction_volume=_text(item.get("transactionVolume")),
            category=category,
        )


UNKNOWN_TRADING_DATE = "Unknown"


@dataclass
class Snapshot:
    trading_date: str
    retrieved_at: Optional[str]
    rows: list[MarketRow]

    def to_dict(self) -> dict[str, Any]:
        return {
            "tradingDate": self.trading_date,
            "retrievedAt": self.retrieved_at,
            "rows": [row.to_dict() for row in self.rows],
        }


@dataclass
class CatalogEntry:
    product_code: str
    product_name: str

    def to_dict(self) -> dict[str, str]:
        return {"productCode": self.product_code, "productName": self.product_name}


@dataclass
class RetrievalRequest:
    requested_date: Optional[str]
    scope: RequestScope = RequestScope.VEGETABLE
    force_cache: bool = False


@dataclass
class RetrievalResult:
    status: RetrievalStatus
    scope: RequestScope
    trading_date: str = ""
    rows: list[MarketRow] = field(default_factory=list)
    provenance_timestamp: Optional[str] = None
    is_non_trading_day: bool = False
    note: Optional[str] = None
    backup_date: Optional[str] = None
    requested_date: Optional[str] = None
    sources: dict[Category, RetrievalStatus] = field(default_factory=dict)
