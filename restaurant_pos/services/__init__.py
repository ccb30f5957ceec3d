"""
                        Services Module

Business logic of the point-of-sale tier. Services take an AsyncSession
per call and own the commit of their operation.

Services:
    - account_service: login with legacy password layouts, account CRUD
    - table_service: floor plan, switching and locking tables
    - menu_service: bill lines, check-out, merging, food catalogue
    - excel_manager: process-safe export of paid bills
"""

from restaurant_pos.services.account_service import (
    AccountService,
    LoginResult,
    LoginStatus,
    get_account_service,
)
from restaurant_pos.services.excel_manager import ExcelManager
from restaurant_pos.services.menu_service import MenuItem, MenuService, get_menu_service
from restaurant_pos.services.table_service import TableService, get_table_service

__all__ = [
    "AccountService",
    "LoginResult",
    "LoginStatus",
    "get_account_service",
    "ExcelManager",
    "MenuItem",
    "MenuService",
    "get_menu_service",
    "TableService",
    "get_table_service",
]
