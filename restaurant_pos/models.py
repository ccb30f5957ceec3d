"""
SQLAlchemy Database Models

Relational schema of the point-of-sale tier:
- Staff accounts with legacy salted password hashes
- Food catalogue grouped by category
- Dining tables and their occupancy
- Bills and the food lines on each bill
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from restaurant_pos.database import Base


class TableStatus(str, enum.Enum):
    """Occupancy of a dining table."""
    EMPTY = "empty"
    OCCUPIED = "occupied"


class BillStatus(str, enum.Enum):
    """A table has at most one UNPAID bill at a time."""
    UNPAID = "unpaid"
    PAID = "paid"


class AccountType(int, enum.Enum):
    STAFF = 0
    ADMIN = 1


class Account(Base):
    """
    Staff login account.

    ``password_hash`` may hold any of the historical hash layouts; see
    ``restaurant_pos.services.passwords`` for the variants accepted at login.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_name = Column(String(100), nullable=False, unique=True, index=True)
    display_name = Column(String(100), nullable=False)
    password_hash = Column(String(1000), nullable=False, default="")
    salt = Column(String(50), nullable=False)
    account_type = Column(Integer, nullable=False, default=AccountType.STAFF.value)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Account #{self.id} - {self.user_name}>"


class FoodCategory(Base):
    __tablename__ = "food_categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<FoodCategory #{self.id} - {self.name}>"


class Food(Base):
    __tablename__ = "foods"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    category_id = Column(Integer, ForeignKey("food_categories.id"), nullable=False, index=True)
    price = Column(Float, nullable=False, default=0.0)
    unit = Column(String(50), nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Food #{self.id} - {self.name} - {self.price}>"


class DiningTable(Base):
    """
    A table on the floor plan.

    Tables whose name starts with the configured locked prefix are hidden
    from the floor plan but kept for bill history.
    """
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=True)
    status = Column(Enum(TableStatus), nullable=True)

    def __repr__(self):
        status = self.status.value if self.status else None
        return f"<DiningTable #{self.id} - {self.name} - {status}>"


class Bill(Base):
    """
    A bill opened on a table.

    Pricing columns stay empty until check-out.
    """
    __tablename__ = "bills"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False, index=True)
    date_check_in = Column(DateTime, nullable=False)
    date_check_out = Column(DateTime, nullable=True)
    status = Column(
        Enum(BillStatus),
        default=BillStatus.UNPAID,
        nullable=False,
        index=True
    )
    discount = Column(Integer, nullable=False, default=0)  # percent
    total_amount = Column(Float, nullable=True)
    final_price = Column(Float, nullable=True)
    staff_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)

    def __repr__(self):
        return f"<Bill #{self.id} - table {self.table_id} - {self.status.value}>"


class BillItem(Base):
    """One food line on a bill; food is unique per bill."""
    __tablename__ = "bill_items"
    __table_args__ = (UniqueConstraint("bill_id", "food_id", name="uq_bill_items_bill_food"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=False, index=True)
    food_id = Column(Integer, ForeignKey("foods.id"), nullable=False)
    count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<BillItem bill {self.bill_id} - food {self.food_id} x{self.count}>"
