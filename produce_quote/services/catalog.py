from dataclasses import dataclass, field
import logging
from pathlib import Path
import threading
from typing import Any, Iterable, Mapping, Optional, Union

from produce_quote.models import CatalogEntry, Category, MarketRow
from produce_quote.stores.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


@dataclass
class CatalogFile:
    date: str = ""
    entries: list[CatalogEntry] = field(default_factory=list)


def _row_fields(row: Union[MarketRow, Mapping[str, Any]]) -> tuple[str, str, str]:
    if isinstance(row, MarketRow):
        category = row.category.value if row.category else ""
        return row.product_code, row.product_name, category
    return (
        str(row.get("productCode") or ""),
        str(row.get("productName") or ""),
        str(row.get("category") or ""),
    )


class ProductCatalog:
    """Product code/name lists backing the quotation autocomplete."""

    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)
        self._imported: Optional[list[dict[str, str]]] = None
        self._lock = threading.Lock()

    def path_for(self, category: Category) -> Path:
        return self.data_dir / f"list_{category.value}.json"

    def load(self, category: Category) -> CatalogFile:
        path = self.path_for(category)
        try:
            raw = read_json(path)
        except FileNotFoundError:
            return CatalogFile()
        except (OSError, ValueError) as exc:
            logger.warning("unreadable catalog %s, starting fresh: %s", path, exc)
            return CatalogFile()
        if not isinstance(raw, dict):
            return CatalogFile()

        entries = []
        for item in raw.get("data") or []:
            if isinstance(item, dict) and item.get("productCode"):
                entries.append(CatalogEntry(str(item["productCode"]), str(item.get("productName") or "")))
        return CatalogFile(date=str(raw.get("date") or ""), entries=entries)

    def merge(
        self,
        category: Category,
        incoming_rows: Iterable[Union[MarketRow, Mapping[str, Any]]],
        effective_date: str,
    ) -> bool:
        incoming = [fields for fields in map(_row_fields, incoming_rows) if fields[2] == category.value]
        if not incoming:
            return False

        with self._lock:
            existing = self.load(category)
            by_code = {entry.product_code: entry for entry in existing.entries}
            for code, name, _ in incoming:
                if code and name:
                    by_code[code] = CatalogEntry(code, name)

            write_json_atomic(
                self.path_for(category),
                {"date": effective_date, "data": [entry.to_dict() for entry in by_code.values()]},
            )
        logger.info("catalog %s now holds %d products", category.value, len(by_code))
        return True

    def merge_rows(
        self, incoming_rows: Iterable[Union[MarketRow, Mapping[str, Any]]], effective_date: str
    ) -> list[Category]:
        rows = list(incoming_rows)
        return [category for category in Category if self.merge(category, rows, effective_date)]

    def import_replace(self, new_entries: Iterable[Mapping[str, Any]]) -> int:
        imported = []
        for item in new_entries:
            code, name, category = _row_fields(item)
            if code:
                imported.append({"productCode": code, "productName": name, "category": category})
        self._imported = imported
        return len(imported)

    def save_imported(self, effective_date: str) -> list[Category]:
        if not self._imported:
            return []
        updated = self.merge_rows(self._imported, effective_date)
        # Once persisted, the files are the source again so later merges show up.
        self._imported = None
        return updated

    def entries(self) -> list[dict[str, str]]:
        if self._imported is not None:
            return list(self._imported)
        products = []
        for category in Category:
            for entry in self.load(category).entries:
                products.append({**entry.to_dict(), "category": category.value})
        return products
