"""
Table Service

Floor plan operations: listing visible tables, moving a party to another
table, and keeping table names and statuses tidy.
"""

import logging
from functools import lru_cache

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.errors import ConflictError, NotFoundError, ValidationError
from restaurant_pos.models import DiningTable, TableStatus
from restaurant_pos.services import bills

logger = logging.getLogger(__name__)


class TableService:
    """CRUD and occupancy operations on dining tables."""

    def __init__(self, locked_prefix: str):
        self.locked_prefix = locked_prefix

    def is_locked(self, table: DiningTable) -> bool:
        return bool(table.name) and table.name.startswith(self.locked_prefix)

    async def get_table(self, db: AsyncSession, table_id: int) -> DiningTable:
        table = await db.get(DiningTable, table_id)
        if table is None:
            raise NotFoundError(f"Table #{table_id} not found", {"table_id": table_id})
        return table

    async def load_table_list(self, db: AsyncSession) -> list[DiningTable]:
        """Tables shown on the floor plan: named and not locked."""
        result = await db.execute(
            select(DiningTable)
            .where(DiningTable.name.is_not(None))
            .order_by(DiningTable.id)
        )
        # Prefix match in Python: LIKE is case-insensitive on some backends
        return [table for table in result.scalars().all() if not self.is_locked(table)]

    async def switch_table(self, db: AsyncSession, from_id: int, to_id: int) -> bool:
        """
        Move the open bill of one table to another.

        If the destination already has an open bill the two are merged and
        the source bill is removed.

        Returns:
            False when the ids are equal, a table is missing or the source
            has nothing to move
        """
        if from_id == to_id:
            return False

        from_table = await db.get(DiningTable, from_id)
        to_table = await db.get(DiningTable, to_id)
        if from_table is None or to_table is None:
            return False

        bill_from = await bills.get_open_bill(db, from_id)
        if bill_from is None:
            return False

        bill_to = await bills.get_open_bill(db, to_id)
        if bill_to is None:
            bill_from.table_id = to_id
        else:
            await bills.move_bill_items(db, bill_from, bill_to)
            if not await bills.has_items(db, bill_from.id):
                await db.delete(bill_from)

        to_table.status = TableStatus.OCCUPIED
        from_table.status = TableStatus.EMPTY
        await db.commit()

        logger.info(f"Switched table #{from_id} -> #{to_id}")
        return True

    async def ensure_tables_default_status(self, db: AsyncSession) -> int:
        """Give tables without a status the EMPTY status."""
        result = await db.execute(select(DiningTable).where(DiningTable.status.is_(None)))
        tables = result.scalars().all()
        if not tables:
            return 0

        for table in tables:
            table.status = TableStatus.EMPTY
        await db.commit()

        logger.info(f"Set default status on {len(tables)} table(s)")
        return len(tables)

    async def create_table(self, db: AsyncSession, name: str) -> DiningTable:
        if not name or not name.strip():
            raise ValidationError("Table name must not be empty")

        table = DiningTable(name=name.strip(), status=TableStatus.EMPTY)
        db.add(table)
        await db.commit()
        await db.refresh(table)

        logger.info(f"Table #{table.id} '{table.name}' created")
        return table

    async def rename_table(self, db: AsyncSession, table_id: int, name: str) -> DiningTable:
        """Rename a table, keeping its lock marker if it has one."""
        if not name or not name.strip():
            raise ValidationError("Table name must not be empty")

        table = await self.get_table(db, table_id)
        new_name = name.strip()
        if self.is_locked(table) and not new_name.startswith(self.locked_prefix):
            new_name = f"{self.locked_prefix}{new_name}"
        table.name = new_name
        await db.commit()
        return table

    async def lock_table(self, db: AsyncSession, table_id: int) -> DiningTable:
        """Hide a table from the floor plan. A table with an open bill cannot be locked."""
        table = await self.get_table(db, table_id)
        if self.is_locked(table):
            return table

        if await bills.get_open_bill(db, table_id) is not None:
            raise ConflictError(f"Table #{table_id} has an open bill", {"table_id": table_id})

        table.name = f"{self.locked_prefix}{table.name or ''}"
        await db.commit()

        logger.info(f"Table #{table_id} locked")
        return table

    async def unlock_table(self, db: AsyncSession, table_id: int) -> DiningTable:
        table = await self.get_table(db, table_id)
        if not self.is_locked(table):
            return table

        table.name = table.name[len(self.locked_prefix):]
        if table.status is None:
            table.status = TableStatus.EMPTY
        await db.commit()

        logger.info(f"Table #{table_id} unlocked")
        return table


@lru_cache()
def get_table_service() -> TableService:
    return TableService(locked_prefix=get_settings().locked_table_prefix)
