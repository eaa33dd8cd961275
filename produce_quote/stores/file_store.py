from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, Optional, Union

from produce_quote.models import UNKNOWN_TRADING_DATE, Category, MarketRow, Snapshot
from produce_quote.stores.base import SnapshotStore, check_snapshot
from produce_quote.stores.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


@dataclass
class LegacyArrayPayload:
    rows: list[Any]


@dataclass
class VersionedPayload:
    trading_date: str
    retrieved_at: Optional[str]
    rows: list[Any]


StoredPayload = Union[LegacyArrayPayload, VersionedPayload]


def classify_payload(raw: Any) -> Optional[StoredPayload]:
    if isinstance(raw, list):
        return LegacyArrayPayload(rows=raw)
    if not isinstance(raw, dict):
        return None

    trading_date = raw.get("tradingDate", raw.get("date"))
    rows = raw.get("rows", raw.get("data"))
    if not trading_date or not isinstance(rows, list):
        return None
    retrieved_at = raw.get("retrievedAt", raw.get("scrapedAt"))
    return VersionedPayload(
        trading_date=str(trading_date),
        retrieved_at=str(retrieved_at) if retrieved_at else None,
        rows=rows,
    )


def _parse_rows(items: list[Any], category: Category) -> list[MarketRow]:
    rows: list[MarketRow] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        row = MarketRow.from_dict(item)
        if row is not None:
            rows.append(row.with_category(category))
    return rows


class FileSnapshotStore(SnapshotStore):
    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, category: Category) -> Path:
        return self.data_dir / f"backup_{category.value}.json"

    def load(self, category: Category) -> Optional[Snapshot]:
        path = self.path_for(category)
        try:
            raw = read_json(path)
            modified_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("unreadable snapshot %s: %s", path, exc)
            return None

        payload = classify_payload(raw)
        if payload is None:
            logger.warning("snapshot %s has an unrecognised shape, ignoring it", path)
            return None

        fallback_stamp = modified_at.isoformat(timespec="seconds")
        if isinstance(payload, LegacyArrayPayload):
            return Snapshot(
                trading_date=UNKNOWN_TRADING_DATE,
                retrieved_at=fallback_stamp,
                rows=_parse_rows(payload.rows, category),
            )
        return Snapshot(
            trading_date=payload.trading_date,
            retrieved_at=payload.retrieved_at or fallback_stamp,
            rows=_parse_rows(payload.rows, category),
        )

    def save(self, category: Category, snapshot: Snapshot) -> None:
        check_snapshot(snapshot)
        rows = [row.with_category(category) for row in snapshot.rows]
        payload = Snapshot(snapshot.trading_date, snapshot.retrieved_at, rows).to_dict()
        write_json_atomic(self.path_for(category), payload)
        logger.info("saved %d %s rows for %s", len(rows), category.value, snapshot.trading_date)
