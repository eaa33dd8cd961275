from typing import Optional

from pydantic import BaseModel, Field

from produce_quote.dates import DateConverter
from produce_quote.models import MarketRow, RetrievalResult


class MarketRowRead(BaseModel):
    productCode: str
    productName: str
    upperPrice: str
    middlePrice: str
    lowerPrice: str
    averagePrice: str
    transactionVolume: str
    category: Optional[str] = None

    @classmethod
    def from_row(cls, row: MarketRow) -> "MarketRowRead":
        return cls(**row.to_dict())


class RetrievalResponse(BaseModel):
    status: str
    date: str
    type: str
    data: list[MarketRowRead]
    message: Optional[str] = None
    backupDate: Optional[str] = None
    scrapedAt: Optional[str] = None
    scrapedAtDisplay: Optional[str] = None
    isMarketClosed: bool = False
    sources: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: RetrievalResult, converter: DateConverter) -> "RetrievalResponse":
        return cls(
            status=result.status.value,
            date=result.trading_date,
            type=result.scope.value,
            data=[MarketRowRead.from_row(row) for row in result.rows],
            message=result.note,
            backupDate=result.backup_date,
            scrapedAt=result.provenance_timestamp,
            scrapedAtDisplay=converter.format_provenance(result.provenance_timestamp),
            isMarketClosed=result.is_non_trading_day,
            sources={category.value: status.value for category, status in result.sources.items()},
        )


class CatalogEntryRead(BaseModel):
    productCode: str
    productName: str
    category: Optional[str] = None


class CatalogUpdateRequest(BaseModel):
    date: str
    data: list[CatalogEntryRead]


class CatalogImportRequest(BaseModel):
    data: list[CatalogEntryRead]


class CatalogUpdateRead(BaseModel):
    message: str
    updated: list[str]


class MigrationRead(BaseModel):
    status: str
    message: str
    logs: list[str]
