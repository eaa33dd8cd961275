import logging
from typing import Any, Callable, Optional

from produce_quote.config import settings
from produce_quote.dates import DateConverter
from produce_quote.models import RequestScope, RetrievalRequest, RetrievalResult
from produce_quote.services.catalog import ProductCatalog
from produce_quote.services.provider_factory import build_provider
from produce_quote.services.retrieval import RetrievalPolicy
from produce_quote.stores.file_store import FileSnapshotStore

logger = logging.getLogger(__name__)


def build_converter() -> DateConverter:
    return DateConverter(settings.market_timezone, closed_weekday=settings.closed_weekday)


def build_policy(
    schedule: Optional[Callable[..., Any]] = None,
    catalog: Optional[ProductCatalog] = None,
    converter: Optional[DateConverter] = None,
) -> RetrievalPolicy:
    return RetrievalPolicy(
        provider=build_provider(),
        store=FileSnapshotStore(settings.data_dir),
        converter=converter or build_converter(),
        schedule=schedule,
        catalog=catalog if catalog is not None else ProductCatalog(settings.data_dir),
        sample_size=settings.zero_sample_size,
        zero_threshold=settings.zero_threshold,
    )


def track_prices_for_date(policy: RetrievalPolicy, local_date: Optional[str] = None) -> RetrievalResult:
    local_date = local_date or policy.converter.today()
    result = policy.retrieve(RetrievalRequest(requested_date=local_date, scope=RequestScope.ALL))
    logger.info(
        "tracked %s: status=%s rows=%d sources=%s",
        local_date,
        result.status.value,
        len(result.rows),
        {category.value: status.value for category, status in result.sources.items()},
    )
    return result
