"""
FastAPI Application Entry Point

Restaurant point-of-sale business tier.

Endpoints:
    - POST /api/auth/login: Staff login
    - /api/accounts: Account maintenance
    - /api/tables: Floor plan, switching, merging, locking
    - /api/tables/{id}/bill: Lines of a table's open bill
    - /api/bills: Bill history and check-out
    - /api/categories, /api/foods: Food catalogue
    - GET /health: System health check
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

import redis
from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings, setup_logging
from restaurant_pos.core.errors import POSError
from restaurant_pos.database import async_session_maker, engine, get_db, init_db
from restaurant_pos.models import Bill, BillStatus
from restaurant_pos.schemas import (
    AccountActivation,
    AccountCreate,
    AccountResponse,
    BillExport,
    BillItemAdd,
    BillItemResponse,
    BillListResponse,
    BillResponse,
    CategoryCreate,
    CategoryResponse,
    CheckOutRequest,
    ErrorResponse,
    FoodActivation,
    FoodCreate,
    FoodResponse,
    FoodUpdate,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    MenuItemResponse,
    OperationResponse,
    PasswordChange,
    TableBillResponse,
    TableCreate,
    TableMove,
    TableRename,
    TableResponse,
)
from restaurant_pos.services.account_service import LoginStatus, get_account_service
from restaurant_pos.services.menu_service import get_menu_service
from restaurant_pos.services.table_service import get_table_service
from restaurant_pos.tasks import export_bill_to_excel

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

LOGIN_HTTP_STATUS = {
    LoginStatus.SUCCESS: 200,
    LoginStatus.USER_NOT_FOUND: 401,
    LoginStatus.WRONG_PASSWORD: 401,
    LoginStatus.INACTIVE: 403,
    LoginStatus.ERROR: 500,
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name} for {settings.restaurant_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    async with async_session_maker() as db:
        fixed = await get_table_service().ensure_tables_default_status(db)
        if fixed:
            logger.info(f"Defaulted status of {fixed} table(s)")

    logger.info("Application ready")

    yield  # Application runs

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Tables, bills, menu and staff login for the restaurant floor.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

async def queue_bill_export(db: AsyncSession, bill_id: int) -> None:
    """Hand a freshly paid bill to the Excel export worker."""
    menu_service = get_menu_service()
    table_service = get_table_service()

    bill = await menu_service.get_bill(db, bill_id)
    table = await table_service.get_table(db, bill.table_id)
    lines = await menu_service.get_bill_lines(db, bill_id)

    payload = BillExport(
        bill_id=bill.id,
        table_id=bill.table_id,
        table_name=table.name,
        date_check_in=bill.date_check_in.isoformat(),
        date_check_out=bill.date_check_out.isoformat() if bill.date_check_out else None,
        items=json.dumps([line.to_dict() for line in lines], ensure_ascii=False),
        total_amount=bill.total_amount or 0.0,
        discount=bill.discount,
        final_price=bill.final_price or 0.0,
        staff_id=bill.staff_id,
    )

    try:
        export_bill_to_excel.delay(payload.model_dump())
    except Exception as e:
        # The bill is already committed; a broker outage must not fail check-out
        logger.error(f"Could not queue export of bill #{bill_id}: {e}")


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.restaurant_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify the database and the export broker are reachable."""

    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# AUTH & ACCOUNT ENDPOINTS
# =============================================================================

@app.post(
    "/api/auth/login",
    response_model=LoginResponse,
    responses={401: {"model": LoginResponse}, 403: {"model": LoginResponse}},
    tags=["Accounts"],
    summary="Staff Login",
)
async def login(
    credentials: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Authenticate a staff member; the status explains any failure."""
    result = await get_account_service().check_login(db, credentials.user_name, credentials.password)
    response.status_code = LOGIN_HTTP_STATUS[result.status]

    return LoginResponse(
        success=result.success,
        status=result.status,
        account=AccountResponse.model_validate(result.account) if result.account else None,
    )


@app.get("/api/accounts", response_model=list[AccountResponse], tags=["Accounts"])
async def list_accounts(db: AsyncSession = Depends(get_db)) -> list[AccountResponse]:
    accounts = await get_account_service().list_accounts(db)
    return [AccountResponse.model_validate(a) for a in accounts]


@app.post(
    "/api/accounts",
    response_model=AccountResponse,
    status_code=201,
    responses={409: {"model": ErrorResponse}},
    tags=["Accounts"],
)
async def create_account(
    data: AccountCreate,
    db: AsyncSession = Depends(get_db),
) -> AccountResponse:
    account = await get_account_service().create_account(
        db,
        user_name=data.user_name,
        display_name=data.display_name,
        password=data.password,
        account_type=data.account_type,
    )
    return AccountResponse.model_validate(account)


@app.post(
    "/api/accounts/{account_id}/password",
    response_model=OperationResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Accounts"],
)
async def change_password(
    account_id: int,
    data: PasswordChange,
    db: AsyncSession = Depends(get_db),
) -> OperationResponse:
    await get_account_service().change_password(db, account_id, data.old_password, data.new_password)
    return OperationResponse(success=True, message="Password changed")


@app.patch(
    "/api/accounts/{account_id}/active",
    response_model=AccountResponse,
    tags=["Accounts"],
)
async def set_account_active(
    account_id: int,
    data: AccountActivation,
    db: AsyncSession = Depends(get_db),
) -> AccountResponse:
    account = await get_account_service().set_active(db, account_id, data.is_active)
    return AccountResponse.model_validate(account)


# =============================================================================
# TABLE ENDPOINTS
# =============================================================================

@app.get("/api/tables", response_model=list[TableResponse], tags=["Tables"])
async def list_tables(db: AsyncSession = Depends(get_db)) -> list[TableResponse]:
    """Tables on the floor plan (locked tables are hidden)."""
    tables = await get_table_service().load_table_list(db)
    return [TableResponse.model_validate(t) for t in tables]


@app.post("/api/tables", response_model=TableResponse, status_code=201, tags=["Tables"])
async def create_table(data: TableCreate, db: AsyncSession = Depends(get_db)) -> TableResponse:
    table = await get_table_service().create_table(db, data.name)
    return TableResponse.model_validate(table)


@app.patch("/api/tables/{table_id}", response_model=TableResponse, tags=["Tables"])
async def rename_table(
    table_id: int,
    data: TableRename,
    db: AsyncSession = Depends(get_db),
) -> TableResponse:
    table = await get_table_service().rename_table(db, table_id, data.name)
    return TableResponse.model_validate(table)


@app.post("/api/tables/{table_id}/lock", response_model=TableResponse, tags=["Tables"])
async def lock_table(table_id: int, db: AsyncSession = Depends(get_db)) -> TableResponse:
    table = await get_table_service().lock_table(db, table_id)
    return TableResponse.model_validate(table)


@app.post("/api/tables/{table_id}/unlock", response_model=TableResponse, tags=["Tables"])
async def unlock_table(table_id: int, db: AsyncSession = Depends(get_db)) -> TableResponse:
    table = await get_table_service().unlock_table(db, table_id)
    return TableResponse.model_validate(table)


@app.post("/api/tables/switch", response_model=OperationResponse, tags=["Tables"])
async def switch_table(data: TableMove, db: AsyncSession = Depends(get_db)) -> OperationResponse:
    """Move a party (and its open bill) to another table."""
    moved = await get_table_service().switch_table(db, data.from_table_id, data.to_table_id)
    return OperationResponse(
        success=moved,
        message="Table switched" if moved else "Nothing to switch",
    )


@app.post("/api/tables/merge", response_model=OperationResponse, tags=["Tables"])
async def merge_table(data: TableMove, db: AsyncSession = Depends(get_db)) -> OperationResponse:
    """Fold one table's open bill into another table's bill."""
    merged = await get_menu_service().merge_table(db, data.from_table_id, data.to_table_id)
    return OperationResponse(
        success=merged,
        message="Tables merged" if merged else "Nothing to merge",
    )


@app.get("/api/tables/{table_id}/bill", response_model=TableBillResponse, tags=["Tables"])
async def get_table_bill(table_id: int, db: AsyncSession = Depends(get_db)) -> TableBillResponse:
    """Lines of the table's open bill."""
    menu_service = get_menu_service()
    await get_table_service().get_table(db, table_id)

    bill = await menu_service.get_open_bill(db, table_id)
    items = await menu_service.get_menu_list_by_table(db, table_id)

    return TableBillResponse(
        table_id=table_id,
        bill_id=bill.id if bill else None,
        items=[MenuItemResponse(**item.to_dict()) for item in items],
        total=sum(item.total for item in items),
    )


@app.post(
    "/api/tables/{table_id}/items",
    response_model=BillItemResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Tables"],
)
async def add_food(
    table_id: int,
    data: BillItemAdd,
    db: AsyncSession = Depends(get_db),
) -> BillItemResponse:
    item = await get_menu_service().add_food_to_bill(db, table_id, data.food_id, data.count)
    return BillItemResponse.model_validate(item)


@app.delete(
    "/api/tables/{table_id}/items/{food_id}",
    response_model=OperationResponse,
    tags=["Tables"],
)
async def remove_food(
    table_id: int,
    food_id: int,
    count: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
) -> OperationResponse:
    removed = await get_menu_service().remove_food_from_bill(db, table_id, food_id, count)
    return OperationResponse(
        success=removed,
        message="Item removed" if removed else "Item not on the open bill",
    )


# =============================================================================
# BILL ENDPOINTS
# =============================================================================

@app.get("/api/bills", response_model=BillListResponse, tags=["Bills"])
async def list_bills(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[BillStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> BillListResponse:
    """Paginated bill history, newest first."""
    total, bills = await get_menu_service().list_bills(db, status=status, skip=skip, limit=limit)
    return BillListResponse(
        total=total,
        bills=[BillResponse.model_validate(b) for b in bills],
    )


@app.get("/api/bills/{bill_id}", response_model=BillResponse, tags=["Bills"])
async def get_bill(bill_id: int, db: AsyncSession = Depends(get_db)) -> BillResponse:
    bill = await get_menu_service().get_bill(db, bill_id)
    return BillResponse.model_validate(bill)


@app.post(
    "/api/bills/{bill_id}/checkout",
    response_model=BillResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Bills"],
)
async def check_out(
    bill_id: int,
    data: CheckOutRequest,
    db: AsyncSession = Depends(get_db),
) -> Any:
    menu_service = get_menu_service()
    if not await menu_service.check_out(db, bill_id, data.discount, data.staff_id):
        bill = await db.get(Bill, bill_id)
        if bill is None:
            return JSONResponse(
                status_code=404,
                content={"success": False, "error": f"Bill #{bill_id} not found"},
            )
        return JSONResponse(
            status_code=409,
            content={"success": False, "error": f"Bill #{bill_id} is already paid"},
        )

    if settings.export_bills_enabled:
        await queue_bill_export(db, bill_id)

    bill = await menu_service.get_bill(db, bill_id)
    return BillResponse.model_validate(bill)


# =============================================================================
# FOOD CATALOGUE ENDPOINTS
# =============================================================================

@app.get("/api/categories", response_model=list[CategoryResponse], tags=["Menu"])
async def list_categories(db: AsyncSession = Depends(get_db)) -> list[CategoryResponse]:
    categories = await get_menu_service().list_categories(db)
    return [CategoryResponse.model_validate(c) for c in categories]


@app.post("/api/categories", response_model=CategoryResponse, status_code=201, tags=["Menu"])
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)) -> CategoryResponse:
    category = await get_menu_service().create_category(db, data.name)
    return CategoryResponse.model_validate(category)


@app.get("/api/foods", response_model=list[FoodResponse], tags=["Menu"])
async def list_foods(
    category_id: Optional[int] = Query(None),
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
) -> list[FoodResponse]:
    foods = await get_menu_service().list_foods(db, category_id, include_inactive)
    return [FoodResponse.model_validate(f) for f in foods]


@app.post("/api/foods", response_model=FoodResponse, status_code=201, tags=["Menu"])
async def create_food(data: FoodCreate, db: AsyncSession = Depends(get_db)) -> FoodResponse:
    food = await get_menu_service().create_food(db, data.name, data.category_id, data.price, data.unit)
    return FoodResponse.model_validate(food)


@app.patch("/api/foods/{food_id}", response_model=FoodResponse, tags=["Menu"])
async def update_food(
    food_id: int,
    data: FoodUpdate,
    db: AsyncSession = Depends(get_db),
) -> FoodResponse:
    food = await get_menu_service().update_food(db, food_id, **data.model_dump(exclude_unset=True))
    return FoodResponse.model_validate(food)


@app.patch("/api/foods/{food_id}/active", response_model=FoodResponse, tags=["Menu"])
async def set_food_active(
    food_id: int,
    data: FoodActivation,
    db: AsyncSession = Depends(get_db),
) -> FoodResponse:
    food = await get_menu_service().set_food_active(db, food_id, data.is_active)
    return FoodResponse.model_validate(food)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(POSError)
async def pos_error_handler(request: Request, exc: POSError) -> JSONResponse:
    """Translate service errors to their HTTP status."""
    logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.message,
            "detail": json.dumps(exc.context, default=str) if exc.context else None,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
