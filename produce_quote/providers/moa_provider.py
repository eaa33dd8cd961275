from decimal import Decimal
import logging
from typing import Optional

import httpx

from produce_quote.config import settings
from produce_quote.dates import format_request_date
from produce_quote.providers.base import MarketDataProvider, UpstreamError, UpstreamRecord

logger = logging.getLogger(__name__)


class MoaMarketDataProvider(MarketDataProvider):
    """Agricultural wholesale transaction feed (FarmTransData open data)."""

    name = "moa_farm_trans"

    def __init__(
        self,
        base_url: Optional[str] = None,
        market_name: Optional[str] = None,
        date_style: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.upstream_url
        self.market_name = market_name or settings.market_name
        self.date_style = date_style or settings.upstream_date_style
        self.timeout = timeout if timeout is not None else settings.upstream_timeout_seconds
        self.transport = transport

    def fetch_records(self, local_date: str) -> list[UpstreamRecord]:
        request_date = format_request_date(local_date, self.date_style)
        params = {"StartDate": request_date, "EndDate": request_date, "MarketName": self.market_name}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.get(self.base_url, params=params)
                resp.raise_for_status()
                # Decimal keeps the upstream's own decimal text, e.g. "12.50".
                payload = resp.json(parse_float=Decimal)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"upstream request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError(f"upstream returned malformed JSON: {exc}") from exc

        if not isinstance(payload, list):
            raise UpstreamError(f"expected a JSON array, got {type(payload).__name__}")

        records: list[UpstreamRecord] = []
        for item in payload:
            if not isinstance(item, dict) or not item.get("作物代號"):
                continue
            records.append(
                UpstreamRecord(
                    category_code=str(item.get("種類代碼", "")),
                    product_code=str(item["作物代號"]),
                    product_name=str(item.get("作物名稱", "")),
                    upper_price=item.get("上價"),
                    middle_price=item.get("中價"),
                    lower_price=item.get("下價"),
                    average_price=item.get("平均價"),
                    transaction_volume=item.get("交易量"),
                )
            )
        logger.info("fetched %d records for %s from %s", len(records), local_date, self.market_name)
        return records
