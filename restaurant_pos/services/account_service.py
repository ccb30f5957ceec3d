"""
Account Service

Login flow and staff account maintenance.

Login accepts every historical password layout (see ``passwords``) and
reports *why* a login failed through ``LoginStatus`` so the front desk can
tell a typo from a locked account.
"""

import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.errors import ConflictError, NotFoundError, ValidationError
from restaurant_pos.models import Account, AccountType
from restaurant_pos.services import passwords

logger = logging.getLogger(__name__)


class LoginStatus(str, enum.Enum):
    SUCCESS = "success"
    USER_NOT_FOUND = "user_not_found"
    WRONG_PASSWORD = "wrong_password"
    INACTIVE = "inactive"
    ERROR = "error"


@dataclass
class LoginResult:
    """Outcome of a login attempt; ``account`` is set only on success."""
    status: LoginStatus
    account: Optional[Account] = None

    @property
    def success(self) -> bool:
        return self.status == LoginStatus.SUCCESS


def generate_salt() -> str:
    """Random hex salt that fits the 50 character column."""
    return secrets.token_hex(16).upper()


class AccountService:
    """Authentication and CRUD operations on the accounts table."""

    def __init__(self, default_salt: str, default_password: str):
        self.default_salt = default_salt
        self.default_password = default_password

    async def _get_by_user_name(self, db: AsyncSession, user_name: str) -> Optional[Account]:
        result = await db.execute(select(Account).where(Account.user_name == user_name))
        return result.scalar_one_or_none()

    async def _get_or_404(self, db: AsyncSession, account_id: int) -> Account:
        account = await db.get(Account, account_id)
        if account is None:
            raise NotFoundError(f"Account #{account_id} not found", {"account_id": account_id})
        return account

    # =========================================================================
    # LOGIN
    # =========================================================================

    async def ensure_default_hashed_password(
        self,
        db: AsyncSession,
        default_salt: Optional[str] = None,
        default_password: Optional[str] = None,
    ) -> int:
        """
        Fill in the hash of sample accounts that were seeded without one.

        Only rows that carry the default salt AND an empty (or blank) hash are
        touched, so a real password is never overwritten.

        Returns:
            Number of accounts updated
        """
        salt = self.default_salt if default_salt is None else default_salt
        plain = self.default_password if default_password is None else default_password

        result = await db.execute(
            select(Account).where(
                Account.salt == salt,
                or_(Account.password_hash.is_(None), func.trim(Account.password_hash) == ""),
            )
        )
        accounts = result.scalars().all()
        if not accounts:
            return 0

        canonical = passwords.compute_hash_canonical(salt, plain)
        for account in accounts:
            account.password_hash = canonical

        await db.commit()
        logger.info(f"Filled default password hash for {len(accounts)} sample account(s)")
        return len(accounts)

    async def check_login(self, db: AsyncSession, user_name: Optional[str], password: Optional[str]) -> LoginResult:
        """
        Authenticate a user and explain the outcome.

        On success the account's ``last_login`` is stamped and committed.
        Database failures are reported as ``LoginStatus.ERROR``.
        """
        if not user_name or not user_name.strip():
            return LoginResult(LoginStatus.USER_NOT_FOUND)

        try:
            account = await self._get_by_user_name(db, user_name)
            if account is None:
                logger.info(f"Login rejected: unknown user '{user_name}'")
                return LoginResult(LoginStatus.USER_NOT_FOUND)

            if not account.is_active:
                logger.info(f"Login rejected: account '{user_name}' is inactive")
                return LoginResult(LoginStatus.INACTIVE)

            # Sample accounts get their hash on first login
            try:
                await self.ensure_default_hashed_password(db)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(f"Could not fill default password hashes: {e}")
                account = await self._get_by_user_name(db, user_name)

            if passwords.verify_password(account.password_hash, account.salt, password):
                account.last_login = datetime.now()
                await db.commit()
                logger.info(f"Login succeeded for '{user_name}'")
                return LoginResult(LoginStatus.SUCCESS, account)

            logger.info(f"Login rejected: wrong password for '{user_name}'")
            return LoginResult(LoginStatus.WRONG_PASSWORD)

        except SQLAlchemyError:
            await db.rollback()
            logger.exception(f"Database error during login for '{user_name}'")
            return LoginResult(LoginStatus.ERROR)

    async def login(self, db: AsyncSession, user_name: Optional[str], password: Optional[str]) -> Optional[Account]:
        """Return the account on success, None otherwise."""
        result = await self.check_login(db, user_name, password)
        return result.account if result.success else None

    async def diagnose_login(self, db: AsyncSession, user_name: Optional[str], password: Optional[str]) -> str:
        """Explain in plain words why a login would fail."""
        if not user_name or not user_name.strip():
            return "Username is empty."
        if not password:
            return "Password is empty."

        account = await self._get_by_user_name(db, user_name)
        if account is None:
            return "User not found in the database (UserName does not match)."

        if not account.is_active:
            return "Account exists but is locked (IsActive = false)."

        if not account.salt or not account.password_hash:
            return "Salt or PassWordHash is empty in the database."

        return passwords.diagnose(account.salt, account.password_hash, password)

    # =========================================================================
    # ACCOUNT MAINTENANCE
    # =========================================================================

    async def list_accounts(self, db: AsyncSession) -> list[Account]:
        result = await db.execute(select(Account).order_by(Account.id))
        return list(result.scalars().all())

    async def create_account(
        self,
        db: AsyncSession,
        user_name: str,
        display_name: str,
        password: str,
        account_type: AccountType = AccountType.STAFF,
        salt: Optional[str] = None,
    ) -> Account:
        """Create an account with the canonical hash layout."""
        if not user_name or not user_name.strip():
            raise ValidationError("User name must not be empty")
        if not password:
            raise ValidationError("Password must not be empty")

        if await self._get_by_user_name(db, user_name) is not None:
            raise ConflictError(f"User name '{user_name}' is already taken", {"user_name": user_name})

        salt = salt or generate_salt()
        account = Account(
            user_name=user_name,
            display_name=display_name,
            salt=salt,
            password_hash=passwords.compute_hash_canonical(salt, password),
            account_type=AccountType(account_type).value,
            is_active=True,
        )
        db.add(account)
        await db.commit()
        await db.refresh(account)

        logger.info(f"Account #{account.id} '{user_name}' created")
        return account

    async def change_password(
        self,
        db: AsyncSession,
        account_id: int,
        old_password: str,
        new_password: str,
    ) -> Account:
        """
        Replace a password after checking the old one.

        The new hash always uses a fresh salt and the canonical layout, which
        retires whatever legacy layout the account had.
        """
        if not new_password:
            raise ValidationError("New password must not be empty")

        account = await self._get_or_404(db, account_id)
        if not passwords.verify_password(account.password_hash, account.salt, old_password):
            raise ValidationError("Old password is incorrect", {"account_id": account_id})

        account.salt = generate_salt()
        account.password_hash = passwords.compute_hash_canonical(account.salt, new_password)
        await db.commit()

        logger.info(f"Password changed for account #{account_id}")
        return account

    async def set_active(self, db: AsyncSession, account_id: int, is_active: bool) -> Account:
        account = await self._get_or_404(db, account_id)
        account.is_active = is_active
        await db.commit()

        logger.info(f"Account #{account_id} {'activated' if is_active else 'deactivated'}")
        return account


@lru_cache()
def get_account_service() -> AccountService:
    """Cached AccountService wired with the configured sample credentials."""
    settings = get_settings()
    return AccountService(
        default_salt=settings.default_account_salt,
        default_password=settings.default_account_password,
    )
