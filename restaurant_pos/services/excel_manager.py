"""
Excel File Manager with Concurrency Control

Appends paid bills to a shared workbook. Several Celery workers may export
at once, so every read-modify-write happens under a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from restaurant_pos.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class ExcelManager:
    """Process-safe Excel file manager."""

    DATA_DIR = Path(settings.data_directory)
    FILENAME = settings.bills_excel_filename
    LOCK_TIMEOUT = settings.excel_lock_timeout

    BILL_COLUMNS = [
        "bill_id",
        "table_id",
        "table_name",
        "date_check_in",
        "date_check_out",
        "items",
        "total_amount",
        "discount",
        "final_price",
        "staff_id",
        "exported_at",
    ]

    @classmethod
    def bills_file(cls) -> Path:
        return cls.DATA_DIR / cls.FILENAME

    @classmethod
    def lock_file(cls) -> Path:
        return cls.DATA_DIR / f"{cls.FILENAME}.lock"

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        if not cls.DATA_DIR.exists():
            cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {cls.DATA_DIR}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path, columns: list) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}: {e}")
                return pd.DataFrame(columns=columns)
        return pd.DataFrame(columns=columns)

    @classmethod
    def export_bill(cls, bill_data: dict[str, Any]) -> dict[str, Any]:
        """Append one paid bill to the workbook under the file lock."""
        cls._ensure_data_dir()

        bill_id = bill_data.get("bill_id", 0)
        result = {
            "success": False,
            "message": "",
            "bill_id": bill_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(cls.lock_file()), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for Bill #{bill_id}")

                df = cls._load_or_create_df(cls.bills_file(), cls.BILL_COLUMNS)

                export_time = datetime.now().isoformat()
                new_row = {
                    "bill_id": bill_id,
                    "table_id": bill_data.get("table_id"),
                    "table_name": bill_data.get("table_name"),
                    "date_check_in": bill_data.get("date_check_in"),
                    "date_check_out": bill_data.get("date_check_out", export_time),
                    "items": bill_data.get("items"),
                    "total_amount": bill_data.get("total_amount"),
                    "discount": bill_data.get("discount", 0),
                    "final_price": bill_data.get("final_price"),
                    "staff_id": bill_data.get("staff_id"),
                    "exported_at": export_time,
                }

                new_df = pd.DataFrame([new_row], columns=cls.BILL_COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(cls.bills_file()), index=False, engine="openpyxl")

                logger.info(f"Bill #{bill_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Bill #{bill_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Bill #{bill_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Bill #{bill_id}")

        except OSError as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Bill #{bill_id}")

        return result

    @classmethod
    def get_all_bills(cls) -> list[dict[str, Any]]:
        """Get all exported bills."""
        if not cls.bills_file().exists():
            return []

        try:
            df = pd.read_excel(cls.bills_file(), engine="openpyxl")
            return df.to_dict("records")
        except Exception as e:
            logger.error(f"Error reading bills: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the workbook and its lock file."""
        try:
            for f in [cls.bills_file(), cls.lock_file()]:
                if f.exists():
                    f.unlink()
            logger.info("Bill workbook cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing files: {e}")
            return False
