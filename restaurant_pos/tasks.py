"""
Celery Tasks
Background tasks that keep slow file I/O out of the check-out request.
"""

import logging
import time
from datetime import datetime

from restaurant_pos.celery_worker import celery_app
from restaurant_pos.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def export_bill_to_excel(self, bill_data: dict) -> dict:
    """
    Append a paid bill to the Excel workbook.

    Args:
        bill_data: Serialized bill, see ``schemas.BillExport``

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    bill_id = bill_data.get('bill_id', 'unknown')

    logger.info(f"Task {task_id}: exporting bill #{bill_id}")
    start_time = time.time()

    result = ExcelManager.export_bill(bill_data)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if result['success']:
        logger.info(f"Task {task_id}: bill #{bill_id} exported in {elapsed}s")
    else:
        logger.warning(f"Task {task_id}: bill #{bill_id} failed - {result['message']}")

    return result


@celery_app.task
def clear_excel_file() -> dict:
    """
    Clear the bill workbook (for testing/reset purposes).
    """
    success = ExcelManager.clear_all()
    return {
        'success': success,
        'message': 'Excel file cleared' if success else 'Failed to clear Excel file',
        'timestamp': datetime.now().isoformat()
    }
