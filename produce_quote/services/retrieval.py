from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Callable, Iterable, Optional

from produce_quote.dates import DateConverter, parse_local_date
from produce_quote.models import (
    Category,
    FallbackCause,
    MarketRow,
    RetrievalRequest,
    RetrievalResult,
    RetrievalStatus,
    Snapshot,
)
from produce_quote.providers.base import MarketDataProvider, UpstreamRecord
from produce_quote.services.catalog import ProductCatalog
from produce_quote.stores.base import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 5


def stringify_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


def partition_records(
    records: Iterable[UpstreamRecord], categories: Iterable[Category]
) -> dict[Category, list[MarketRow]]:
    wanted = {category.upstream_code: category for category in categories}
    partitioned: dict[Category, list[MarketRow]] = {category: [] for category in wanted.values()}
    seen: dict[Category, set[str]] = {category: set() for category in wanted.values()}

    for record in records:
        category = wanted.get(record.category_code)
        if category is None:
            continue
        # First occurrence of a product code wins.
        if record.product_code in seen[category]:
            continue
        seen[category].add(record.product_code)
        partitioned[category].append(
            MarketRow(
                product_code=record.product_code,
                product_name=record.product_name,
                upper_price=stringify_value(record.upper_price),
                middle_price=stringify_value(record.middle_price),
                lower_price=stringify_value(record.lower_price),
                average_price=stringify_value(record.average_price),
                transaction_volume=stringify_value(record.transaction_volume),
                category=category,
            )
        )
    return partitioned


def is_placeholder_price(value: str, threshold: Decimal) -> bool:
    try:
        price = Decimal(value)
    except (InvalidOperation, TypeError):
        return False
    if price.is_nan():
        return False
    return abs(price) <= threshold


def run_write(label: str, fn: Callable[..., Any], *args: Any) -> None:
    # Runs after the response when scheduled; failures stay in the log.
    try:
        fn(*args)
    except Exception as exc:
        logger.error("write %s failed: %s", label, exc)


@dataclass
class CategoryOutcome:
    category: Category
    status: RetrievalStatus
    rows: list[MarketRow] = field(default_factory=list)
    trading_date: str = ""
    retrieved_at: Optional[str] = None
    cause: Optional[FallbackCause] = None


def _date_rank(local_date: str) -> date:
    return parse_local_date(local_date) or date.min


class RetrievalPolicy:
    def __init__(
        self,
        provider: MarketDataProvider,
        store: SnapshotStore,
        converter: DateConverter,
        schedule: Optional[Callable[..., Any]] = None,
        catalog: Optional[ProductCatalog] = None,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        zero_threshold: Any = Decimal("0"),
    ) -> None:
        self.provider = provider
        self.store = store
        self.converter = converter
        self.schedule = schedule
        self.catalog = catalog
        self.sample_size = max(1, sample_size)
        self.zero_threshold = Decimal(str(zero_threshold))

    def retrieve(self, request: RetrievalRequest) -> RetrievalResult:
        try:
            return self._retrieve(request)
        except Exception:
            logger.exception("retrieval for %s (%s) failed unexpectedly", request.requested_date, request.scope.value)
            return RetrievalResult(
                status=RetrievalStatus.UNAVAILABLE,
                scope=request.scope,
                requested_date=request.requested_date,
                note="Retrieval failed unexpectedly and no data could be served.",
            )

    def is_usable(self, rows: list[MarketRow]) -> bool:
        if not rows:
            return False
        sample = rows[: self.sample_size]
        return not all(is_placeholder_price(row.average_price, self.zero_threshold) for row in sample)

    def _retrieve(self, request: RetrievalRequest) -> RetrievalResult:
        categories = request.scope.categories
        non_trading = self.converter.is_fixed_non_trading_day(request.requested_date)

        if request.force_cache or non_trading:
            outcomes = [self._from_snapshot(category, None) for category in categories]
            return self._assemble(request, outcomes, cache_only=True, non_trading=non_trading)

        if parse_local_date(request.requested_date) is None:
            return RetrievalResult(
                status=RetrievalStatus.UNAVAILABLE,
                scope=request.scope,
                requested_date=request.requested_date,
                note="A valid trading date (YYY/MM/DD) is required to query the market.",
            )

        try:
            records = self.provider.fetch_records(request.requested_date)
        except Exception as exc:
            logger.warning("upstream fetch failed for %s: %s", request.requested_date, exc)
            outcomes = [self._from_snapshot(category, FallbackCause.TRANSPORT) for category in categories]
            return self._assemble(request, outcomes)

        partitioned = partition_records(records, categories)
        outcomes = []
        for category in categories:
            rows = partitioned[category]
            if self.is_usable(rows):
                outcomes.append(self._commit(request.requested_date, category, rows))
            else:
                logger.warning(
                    "no usable %s prices for %s (%d rows), using backup",
                    category.value,
                    request.requested_date,
                    len(rows),
                )
                outcomes.append(self._from_snapshot(category, FallbackCause.MARKET_CLOSED))
        return self._assemble(request, outcomes)

    def _commit(self, requested_date: str, category: Category, rows: list[MarketRow]) -> CategoryOutcome:
        stamp = self.converter.provenance_stamp(requested_date)
        snapshot = Snapshot(trading_date=requested_date, retrieved_at=stamp, rows=list(rows))
        self._persist(f"snapshot:{category.value}", self.store.save, category, snapshot)
        if self.catalog is not None:
            self._persist(f"catalog:{category.value}", self.catalog.merge, category, list(rows), requested_date)
        logger.info("fresh %s prices for %s: %d rows", category.value, requested_date, len(rows))
        return CategoryOutcome(
            category=category,
            status=RetrievalStatus.FRESH,
            rows=rows,
            trading_date=requested_date,
            retrieved_at=stamp,
        )

    def _persist(self, label: str, fn: Callable[..., Any], *args: Any) -> None:
        if self.schedule is not None:
            self.schedule(run_write, label, fn, *args)
        else:
            run_write(label, fn, *args)

    def _from_snapshot(self, category: Category, cause: Optional[FallbackCause]) -> CategoryOutcome:
        snapshot = self.store.load(category)
        if snapshot is None or not snapshot.rows:
            return CategoryOutcome(category=category, status=RetrievalStatus.UNAVAILABLE, cause=cause)
        return CategoryOutcome(
            category=category,
            status=RetrievalStatus.CACHED,
            rows=[row.with_category(category) for row in snapshot.rows],
            trading_date=snapshot.trading_date,
            retrieved_at=snapshot.retrieved_at,
            cause=cause,
        )

    def _assemble(
        self,
        request: RetrievalRequest,
        outcomes: list[CategoryOutcome],
        cache_only: bool = False,
        non_trading: bool = False,
    ) -> RetrievalResult:
        fresh = [o for o in outcomes if o.status is RetrievalStatus.FRESH]
        cached = [o for o in outcomes if o.status is RetrievalStatus.CACHED]
        missing = [o for o in outcomes if o.status is RetrievalStatus.UNAVAILABLE]
        closed = non_trading or any(o.cause is FallbackCause.MARKET_CLOSED for o in cached + missing)

        result = RetrievalResult(
            status=RetrievalStatus.FRESH,
            scope=request.scope,
            rows=[row for outcome in outcomes for row in outcome.rows],
            is_non_trading_day=closed,
            requested_date=request.requested_date,
            sources={o.category: o.status for o in outcomes},
        )

        if not fresh and not cached:
            result.status = RetrievalStatus.UNAVAILABLE
            result.note = self._unavailable_note(request, outcomes, cache_only, non_trading)
            return result

        if not cached:
            if missing:
                result.status = RetrievalStatus.CACHED
            result.trading_date = request.requested_date or ""
            result.provenance_timestamp = fresh[0].retrieved_at
            if missing:
                result.note = "No data available for " + ", ".join(o.category.value for o in missing) + "."
            return result

        latest_backup = max(cached, key=lambda o: _date_rank(o.trading_date))
        result.status = RetrievalStatus.CACHED
        result.trading_date = request.requested_date if fresh else latest_backup.trading_date
        if latest_backup.trading_date != request.requested_date:
            result.backup_date = latest_backup.trading_date
        if fresh:
            result.provenance_timestamp = fresh[0].retrieved_at
        else:
            stamps = [o.retrieved_at for o in cached if o.retrieved_at]
            result.provenance_timestamp = max(stamps) if stamps else None
        result.note = self._fallback_note(request, fresh, cached, missing, cache_only, non_trading)
        return result

    def _unavailable_note(
        self,
        request: RetrievalRequest,
        outcomes: list[CategoryOutcome],
        cache_only: bool,
        non_trading: bool,
    ) -> str:
        if non_trading:
            return f"{request.requested_date} is a fixed market holiday and no backup data is available."
        if cache_only:
            return "No backup data available."
        if any(o.cause is FallbackCause.TRANSPORT for o in outcomes):
            return "Fetching failed and no backup available."
        return "Market closed and no backup data available."

    def _fallback_note(
        self,
        request: RetrievalRequest,
        fresh: list[CategoryOutcome],
        cached: list[CategoryOutcome],
        missing: list[CategoryOutcome],
        cache_only: bool,
        non_trading: bool,
    ) -> str:
        requested = request.requested_date
        if non_trading:
            parts = [f"{requested} is a fixed market holiday."]
        elif cache_only:
            parts = ["Loaded local backup without querying the market."]
        elif any(o.cause is FallbackCause.TRANSPORT for o in cached):
            parts = ["Fetching failed."]
        else:
            parts = [f"Market closed or no trading data for {requested}."]

        backup_dates = sorted({o.trading_date for o in cached}, key=_date_rank, reverse=True)
        if len(backup_dates) > 1:
            parts.append(
                "Loaded local backups: "
                + ", ".join(f"{o.category.value} from {o.trading_date}" for o in cached)
                + "."
            )
        elif requested and backup_dates[0] == requested:
            parts.append("Loaded local backup for this date.")
        elif requested and (non_trading or not cache_only):
            parts.append(f"No backup for {requested}; loaded latest backup from {backup_dates[0]}.")
        else:
            parts.append(f"Loaded latest backup from {backup_dates[0]}.")

        if fresh:
            parts.append("Fresh data for " + ", ".join(o.category.value for o in fresh) + ".")
        if missing:
            parts.append("No data available for " + ", ".join(o.category.value for o in missing) + ".")
        return " ".join(parts)
