"""
Pydantic Schemas for Request/Response Validation
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from restaurant_pos.models import AccountType, BillStatus, TableStatus
from restaurant_pos.services.account_service import LoginStatus


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class LoginRequest(BaseModel):
    user_name: str = Field(..., max_length=100, examples=["admin"])
    password: str = Field(..., max_length=200, examples=["123456"])


class AccountCreate(BaseModel):
    user_name: str = Field(..., min_length=1, max_length=100, examples=["cashier1"])
    display_name: str = Field(..., min_length=1, max_length=100, examples=["Front Cashier"])
    password: str = Field(..., min_length=1, max_length=200)
    account_type: AccountType = Field(default=AccountType.STAFF)

    @field_validator("user_name")
    @classmethod
    def validate_user_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("User name must not be blank")
        return v


class PasswordChange(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=1, max_length=200)


class AccountActivation(BaseModel):
    is_active: bool


class TableCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Table 7"])


class TableRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class TableMove(BaseModel):
    """Source and destination for switching or merging tables."""
    from_table_id: int
    to_table_id: int


class BillItemAdd(BaseModel):
    food_id: int
    count: int = Field(default=1, ge=1, le=999)


class CheckOutRequest(BaseModel):
    discount: int = Field(default=0, ge=0, le=100, examples=[10])
    staff_id: Optional[int] = Field(None)


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Drinks"])


class FoodCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Phở bò"])
    category_id: int
    price: float = Field(..., ge=0, examples=[45000])
    unit: str = Field(default="", max_length=50, examples=["bowl"])


class FoodUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category_id: Optional[int] = None
    price: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=50)


class FoodActivation(BaseModel):
    is_active: bool


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class AccountResponse(BaseModel):
    """Account without any credential material."""
    id: int
    user_name: str
    display_name: str
    account_type: int
    is_active: bool
    last_login: Optional[datetime]

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    success: bool
    status: LoginStatus
    account: Optional[AccountResponse] = None


class TableResponse(BaseModel):
    id: int
    name: Optional[str]
    status: Optional[TableStatus]

    class Config:
        from_attributes = True


class MenuItemResponse(BaseModel):
    food_id: int
    name: str
    price: float
    count: int
    total: float


class TableBillResponse(BaseModel):
    """The open bill of a table as shown at the counter."""
    table_id: int
    bill_id: Optional[int]
    items: List[MenuItemResponse]
    total: float


class BillItemResponse(BaseModel):
    id: int
    bill_id: int
    food_id: int
    count: int

    class Config:
        from_attributes = True


class BillResponse(BaseModel):
    id: int
    table_id: int
    date_check_in: datetime
    date_check_out: Optional[datetime]
    status: BillStatus
    discount: int
    total_amount: Optional[float]
    final_price: Optional[float]
    staff_id: Optional[int]

    class Config:
        from_attributes = True


class BillListResponse(BaseModel):
    total: int
    bills: List[BillResponse]


class OperationResponse(BaseModel):
    """Result of an operation that may legitimately do nothing."""
    success: bool
    message: str


class CategoryResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class FoodResponse(BaseModel):
    id: int
    name: str
    category_id: int
    price: float
    unit: str
    is_active: bool

    class Config:
        from_attributes = True


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    timestamp: datetime


class BillExport(BaseModel):
    """Payload handed to the Excel export task."""
    bill_id: int
    table_id: int
    table_name: Optional[str]
    date_check_in: str
    date_check_out: Optional[str]
    items: str  # JSON list of priced lines
    total_amount: float
    discount: int
    final_price: float
    staff_id: Optional[int]
