"""
Menu Service

Everything that happens to a bill between check-in and check-out, plus the
food catalogue the bills are built from.

Workflow:
    1. A waiter adds food to a table -> an UNPAID bill is opened if needed
    2. Lines are incremented or removed as the party orders
    3. Tables may be merged, folding one open bill into another
    4. Check-out prices the bill, applies the discount and frees the table
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.errors import NotFoundError, ValidationError
from restaurant_pos.models import (
    Bill,
    BillItem,
    BillStatus,
    DiningTable,
    Food,
    FoodCategory,
    TableStatus,
)
from restaurant_pos.services import bills

logger = logging.getLogger(__name__)


@dataclass
class MenuItem:
    """One priced line of a table's open bill."""
    food_id: int
    name: str
    price: float
    count: int
    total: float

    def to_dict(self) -> dict:
        return {
            "food_id": self.food_id,
            "name": self.name,
            "price": self.price,
            "count": self.count,
            "total": self.total,
        }


class MenuService:
    """Bill line items, check-out and the food catalogue."""

    async def _get_table(self, db: AsyncSession, table_id: int) -> DiningTable:
        table = await db.get(DiningTable, table_id)
        if table is None:
            raise NotFoundError(f"Table #{table_id} not found", {"table_id": table_id})
        return table

    async def _get_food(self, db: AsyncSession, food_id: int) -> Food:
        food = await db.get(Food, food_id)
        if food is None:
            raise NotFoundError(f"Food #{food_id} not found", {"food_id": food_id})
        return food

    # =========================================================================
    # BILL LINES
    # =========================================================================

    async def get_open_bill(self, db: AsyncSession, table_id: int) -> Optional[Bill]:
        return await bills.get_open_bill(db, table_id)

    async def get_bill(self, db: AsyncSession, bill_id: int) -> Bill:
        bill = await db.get(Bill, bill_id)
        if bill is None:
            raise NotFoundError(f"Bill #{bill_id} not found", {"bill_id": bill_id})
        return bill

    async def get_bill_lines(self, db: AsyncSession, bill_id: int) -> list[MenuItem]:
        """Priced lines of any bill, open or paid."""
        result = await db.execute(
            select(BillItem.food_id, Food.name, Food.price, BillItem.count)
            .join(Food, Food.id == BillItem.food_id)
            .where(BillItem.bill_id == bill_id)
            .order_by(BillItem.id)
        )
        return [
            MenuItem(
                food_id=food_id,
                name=name,
                price=price,
                count=count,
                total=count * price,
            )
            for food_id, name, price, count in result.all()
        ]

    async def get_menu_list_by_table(self, db: AsyncSession, table_id: int) -> list[MenuItem]:
        """Lines of the table's open bill; empty when the table is free."""
        bill = await bills.get_open_bill(db, table_id)
        if bill is None:
            return []
        return await self.get_bill_lines(db, bill.id)

    async def add_food_to_bill(self, db: AsyncSession, table_id: int, food_id: int, count: int) -> BillItem:
        """
        Add ``count`` portions of a food to the table's open bill.

        Opens a bill when the table has none and marks the table occupied.

        Raises:
            ValidationError: count is below 1 or the food is inactive
            NotFoundError: table or food does not exist
        """
        if count < 1:
            raise ValidationError("Count must be at least 1", {"count": count})

        table = await self._get_table(db, table_id)
        food = await self._get_food(db, food_id)
        if not food.is_active:
            raise ValidationError(f"Food #{food_id} is no longer on the menu", {"food_id": food_id})

        bill = await bills.get_open_bill(db, table_id)
        if bill is None:
            bill = await bills.open_bill(db, table_id)
            logger.info(f"Bill #{bill.id} opened on table #{table_id}")

        item = await bills.get_bill_item(db, bill.id, food_id)
        if item is None:
            item = BillItem(bill_id=bill.id, food_id=food_id, count=count)
            db.add(item)
        else:
            item.count += count

        table.status = TableStatus.OCCUPIED
        await db.commit()
        await db.refresh(item)

        logger.debug(f"Table #{table_id}: food #{food_id} x{count} added to bill #{bill.id}")
        return item

    async def remove_food_from_bill(self, db: AsyncSession, table_id: int, food_id: int, count: int) -> bool:
        """
        Take ``count`` portions of a food off the table's open bill.

        The line is dropped when its count reaches zero, and the bill itself
        is dropped (freeing the table) once it has no lines left.

        Returns:
            False when there was no open bill or no such line

        Raises:
            ValidationError: count is below 1
        """
        if count < 1:
            raise ValidationError("Count must be at least 1", {"count": count})

        bill = await bills.get_open_bill(db, table_id)
        if bill is None:
            return False

        item = await bills.get_bill_item(db, bill.id, food_id)
        if item is None:
            return False

        item.count -= count
        if item.count <= 0:
            await db.delete(item)
        await db.flush()

        if not await bills.has_items(db, bill.id):
            await db.delete(bill)
            table = await db.get(DiningTable, table_id)
            if table is not None:
                table.status = TableStatus.EMPTY
            logger.info(f"Bill #{bill.id} emptied and removed; table #{table_id} is free")

        await db.commit()
        return True

    async def check_out(self, db: AsyncSession, bill_id: int, discount: int, staff_id: Optional[int]) -> bool:
        """
        Price and close a bill.

        Args:
            bill_id: Bill to close
            discount: Percentage off the total (0-100)
            staff_id: Account that took the payment

        Returns:
            False when the bill does not exist or is already paid
        """
        if discount < 0 or discount > 100:
            raise ValidationError("Discount must be between 0 and 100", {"discount": discount})

        bill = await db.get(Bill, bill_id)
        if bill is None or bill.status == BillStatus.PAID:
            return False

        total = sum(line.total for line in await self.get_bill_lines(db, bill_id))

        bill.total_amount = total
        bill.final_price = total * (1 - discount / 100.0)
        bill.discount = discount
        bill.date_check_out = datetime.now()
        bill.status = BillStatus.PAID
        bill.staff_id = staff_id

        table = await db.get(DiningTable, bill.table_id)
        if table is not None:
            table.status = TableStatus.EMPTY

        await db.commit()

        logger.info(
            f"Bill #{bill_id} checked out: total {total:.2f}, "
            f"discount {discount}%, final {bill.final_price:.2f}"
        )
        return True

    async def merge_table(self, db: AsyncSession, from_table_id: int, to_table_id: int) -> bool:
        """
        Fold the open bill of one table into another table's bill.

        Returns:
            False when the ids are equal, either table is missing
            or the source has no open bill
        """
        if from_table_id == to_table_id:
            return False

        from_table = await db.get(DiningTable, from_table_id)
        to_table = await db.get(DiningTable, to_table_id)
        if from_table is None or to_table is None:
            return False

        from_bill = await bills.get_open_bill(db, from_table_id)
        if from_bill is None:
            return False

        to_bill = await bills.get_open_bill(db, to_table_id)
        if to_bill is None:
            to_bill = await bills.open_bill(db, to_table_id)

        await bills.move_bill_items(db, from_bill, to_bill)

        if not await bills.has_items(db, from_bill.id):
            await db.delete(from_bill)
            from_table.status = TableStatus.EMPTY

        to_table.status = TableStatus.OCCUPIED

        await db.commit()

        logger.info(f"Merged table #{from_table_id} into #{to_table_id}")
        return True

    async def list_bills(
        self,
        db: AsyncSession,
        status: Optional[BillStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[Bill]]:
        """Paginated bills, newest first, with the unpaginated total."""
        query = select(Bill).order_by(Bill.date_check_in.desc(), Bill.id.desc())
        count_query = select(func.count(Bill.id))

        if status is not None:
            query = query.where(Bill.status == status)
            count_query = count_query.where(Bill.status == status)

        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(query.offset(skip).limit(limit))
        return total, list(result.scalars().all())

    # =========================================================================
    # FOOD CATALOGUE
    # =========================================================================

    async def list_categories(self, db: AsyncSession) -> list[FoodCategory]:
        result = await db.execute(select(FoodCategory).order_by(FoodCategory.id))
        return list(result.scalars().all())

    async def create_category(self, db: AsyncSession, name: str) -> FoodCategory:
        if not name or not name.strip():
            raise ValidationError("Category name must not be empty")

        category = FoodCategory(name=name.strip())
        db.add(category)
        await db.commit()
        await db.refresh(category)
        return category

    async def list_foods(
        self,
        db: AsyncSession,
        category_id: Optional[int] = None,
        include_inactive: bool = False,
    ) -> list[Food]:
        query = select(Food).order_by(Food.id)
        if category_id is not None:
            query = query.where(Food.category_id == category_id)
        if not include_inactive:
            query = query.where(Food.is_active.is_(True))

        result = await db.execute(query)
        return list(result.scalars().all())

    async def create_food(
        self,
        db: AsyncSession,
        name: str,
        category_id: int,
        price: float,
        unit: str = "",
    ) -> Food:
        if price < 0:
            raise ValidationError("Price must not be negative", {"price": price})
        if await db.get(FoodCategory, category_id) is None:
            raise NotFoundError(f"Category #{category_id} not found", {"category_id": category_id})

        food = Food(name=name, category_id=category_id, price=price, unit=unit, is_active=True)
        db.add(food)
        await db.commit()
        await db.refresh(food)

        logger.info(f"Food #{food.id} '{name}' created")
        return food

    async def update_food(
        self,
        db: AsyncSession,
        food_id: int,
        name: Optional[str] = None,
        category_id: Optional[int] = None,
        price: Optional[float] = None,
        unit: Optional[str] = None,
    ) -> Food:
        """
        Change catalogue fields of a food.

        Open bills are priced at check-out, so a price change applies to
        them too.
        """
        food = await self._get_food(db, food_id)

        if price is not None:
            if price < 0:
                raise ValidationError("Price must not be negative", {"price": price})
            food.price = price
        if category_id is not None:
            if await db.get(FoodCategory, category_id) is None:
                raise NotFoundError(f"Category #{category_id} not found", {"category_id": category_id})
            food.category_id = category_id
        if name is not None:
            food.name = name
        if unit is not None:
            food.unit = unit

        await db.commit()
        return food

    async def set_food_active(self, db: AsyncSession, food_id: int, is_active: bool) -> Food:
        food = await self._get_food(db, food_id)
        food.is_active = is_active
        await db.commit()
        return food


@lru_cache()
def get_menu_service() -> MenuService:
    return MenuService()
