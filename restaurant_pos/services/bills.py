"""
Bill helpers shared by the table and menu services.

None of these commit; the calling service owns the transaction.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.models import Bill, BillItem, BillStatus


async def get_open_bill(db: AsyncSession, table_id: int) -> Optional[Bill]:
    """The table's UNPAID bill, if any."""
    result = await db.execute(
        select(Bill)
        .where(Bill.table_id == table_id, Bill.status == BillStatus.UNPAID)
        .order_by(Bill.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def open_bill(db: AsyncSession, table_id: int) -> Bill:
    """Start an UNPAID bill on a table and flush it to get an id."""
    bill = Bill(
        table_id=table_id,
        date_check_in=datetime.now(),
        status=BillStatus.UNPAID,
        discount=0,
    )
    db.add(bill)
    await db.flush()
    return bill


async def get_bill_item(db: AsyncSession, bill_id: int, food_id: int) -> Optional[BillItem]:
    result = await db.execute(
        select(BillItem).where(BillItem.bill_id == bill_id, BillItem.food_id == food_id)
    )
    return result.scalar_one_or_none()


async def get_bill_items(db: AsyncSession, bill_id: int) -> list[BillItem]:
    result = await db.execute(
        select(BillItem).where(BillItem.bill_id == bill_id).order_by(BillItem.id)
    )
    return list(result.scalars().all())


async def has_items(db: AsyncSession, bill_id: int) -> bool:
    result = await db.execute(
        select(BillItem.id).where(BillItem.bill_id == bill_id).limit(1)
    )
    return result.first() is not None


async def move_bill_items(db: AsyncSession, source: Bill, target: Bill) -> None:
    """
    Move every line of ``source`` onto ``target``.

    Lines for a food already on ``target`` are folded into its count;
    the rest change owner.
    """
    for item in await get_bill_items(db, source.id):
        existing = await get_bill_item(db, target.id, item.food_id)
        if existing is not None:
            existing.count += item.count
            await db.delete(item)
        else:
            item.bill_id = target.id
    await db.flush()
