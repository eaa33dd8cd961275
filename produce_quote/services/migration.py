import logging
from pathlib import Path
import shutil
from typing import Union

from produce_quote.models import Category
from produce_quote.stores.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


def migrate_data(data_dir: Union[str, Path]) -> list[str]:
    """Promote legacy ``golden_dataset``/``backup`` exports to the live file layout."""
    data_dir = Path(data_dir)
    golden_dir = data_dir / "golden_dataset"
    backup_dir = data_dir / "backup"
    logs: list[str] = []

    for category in Category:
        golden_path = golden_dir / f"latest_{category.value}.json"
        if not golden_path.exists():
            logs.append(f"Golden dataset not found: {golden_path}")
            continue
        logs.append(f"Processing {category.value} golden dataset...")
        try:
            content = read_json(golden_path)
            entries = [
                {"productCode": item.get("productCode"), "productName": item.get("productName")}
                for item in content.get("data", [])
                if isinstance(item, dict)
            ]
            output_path = data_dir / f"list_{category.value}.json"
            write_json_atomic(output_path, {"date": content.get("date", ""), "data": entries})
            logs.append(f"Created {output_path}")
        except (OSError, ValueError, AttributeError) as exc:
            logger.warning("golden dataset migration failed for %s: %s", category.value, exc)
            logs.append(f"Error processing {category.value}: {exc}")

    for category in Category:
        backup_path = backup_dir / f"latest_{category.value}.json"
        if not backup_path.exists():
            continue
        logs.append(f"Copying {category.value} backup dataset...")
        try:
            dest_path = data_dir / f"backup_{category.value}.json"
            shutil.copyfile(backup_path, dest_path)
            logs.append(f"Copied to {dest_path}")
        except OSError as exc:
            logger.warning("backup migration failed for %s: %s", category.value, exc)
            logs.append(f"Error copying backup {category.value}: {exc}")

    return logs
