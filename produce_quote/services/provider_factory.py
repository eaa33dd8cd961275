from produce_quote.config import settings
from produce_quote.providers.base import MarketDataProvider
from produce_quote.providers.mock_provider import MockMarketDataProvider
from produce_quote.providers.moa_provider import MoaMarketDataProvider


def build_provider() -> MarketDataProvider:
    if settings.provider_name == "mock":
        return MockMarketDataProvider()
    if settings.provider_name == "moa":
        return MoaMarketDataProvider()
    return MoaMarketDataProvider()
