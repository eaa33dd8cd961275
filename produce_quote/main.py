from pathlib import Path
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query
from prometheus_fastapi_instrumentator import Instrumentator

from produce_quote.config import configure_logging, settings
from produce_quote.models import RequestScope, RetrievalRequest
from produce_quote.schemas import (
    CatalogEntryRead,
    CatalogImportRequest,
    CatalogUpdateRead,
    CatalogUpdateRequest,
    MigrationRead,
    RetrievalResponse,
)
from produce_quote.services.catalog import ProductCatalog
from produce_quote.services.migration import migrate_data
from produce_quote.services.retrieval import RetrievalPolicy
from produce_quote.services.tracker import build_converter, build_policy, track_prices_for_date

app = FastAPI(title=settings.app_name)
Instrumentator().instrument(app).expose(app)

scheduler = BackgroundScheduler(timezone=settings.market_timezone)
converter = build_converter()
catalog = ProductCatalog(settings.data_dir)


def get_catalog() -> ProductCatalog:
    return catalog


def get_policy(background_tasks: BackgroundTasks) -> RetrievalPolicy:
    return build_policy(schedule=background_tasks.add_task, catalog=catalog, converter=converter)


@app.on_event("startup")
def startup() -> None:
    configure_logging()
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    if settings.refresh_enabled:
        scheduler.add_job(
            _refresh_job,
            "interval",
            hours=settings.refresh_interval_hours,
            id="market-refresh",
            replace_existing=True,
        )
        scheduler.start()


@app.on_event("shutdown")
def shutdown() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)


def _refresh_job() -> None:
    track_prices_for_date(build_policy(catalog=catalog, converter=converter))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/scrape", response_model=RetrievalResponse, response_model_exclude_none=True)
def scrape(
    date: Optional[str] = None,
    scope: str = Query("Vegetable", alias="type"),
    use_cache: bool = Query(False, alias="useCache"),
    policy: RetrievalPolicy = Depends(get_policy),
) -> RetrievalResponse:
    try:
        request_scope = RequestScope.parse(scope)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    result = policy.retrieve(RetrievalRequest(requested_date=date, scope=request_scope, force_cache=use_cache))
    return RetrievalResponse.from_result(result, policy.converter)


@app.get("/api/products", response_model=list[CatalogEntryRead])
def list_products(products: ProductCatalog = Depends(get_catalog)) -> list[CatalogEntryRead]:
    return [CatalogEntryRead(**entry) for entry in products.entries()]


@app.post("/api/products", response_model=CatalogUpdateRead)
def update_products(
    payload: CatalogUpdateRequest, products: ProductCatalog = Depends(get_catalog)
) -> CatalogUpdateRead:
    if not payload.date:
        raise HTTPException(status_code=400, detail="Invalid payload")
    updated = products.merge_rows([item.model_dump() for item in payload.data], payload.date)
    return CatalogUpdateRead(message="Lists updated successfully", updated=[c.value for c in updated])


@app.post("/api/products/import", response_model=CatalogUpdateRead)
def import_products(
    payload: CatalogImportRequest,
    save: bool = False,
    date: Optional[str] = None,
    products: ProductCatalog = Depends(get_catalog),
) -> CatalogUpdateRead:
    count = products.import_replace([item.model_dump() for item in payload.data])
    updated = []
    if save:
        updated = products.save_imported(date or converter.today())
    return CatalogUpdateRead(message=f"Imported {count} products", updated=[c.value for c in updated])


@app.get("/api/migrate", response_model=MigrationRead)
def migrate() -> MigrationRead:
    logs = migrate_data(settings.data_dir)
    return MigrationRead(status="success", message="Migration completed", logs=logs)
