"""
Tests for the login flow and account maintenance.
"""

import hashlib
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.errors import ConflictError, NotFoundError, ValidationError
from restaurant_pos.models import Account
from restaurant_pos.services import passwords
from restaurant_pos.services.account_service import LoginStatus

from tests.conftest import DEFAULT_PASSWORD, DEFAULT_SALT


async def add_account(db, user_name, salt, password_hash, is_active=True):
    account = Account(
        user_name=user_name,
        display_name=user_name.title(),
        salt=salt,
        password_hash=password_hash,
        is_active=is_active,
    )
    db.add(account)
    await db.commit()
    return account


class TestCheckLogin:
    """Test check_login outcomes."""

    @pytest.mark.asyncio
    async def test_sample_account_gets_hash_on_first_login(self, db, seeded, account_service):
        result = await account_service.check_login(db, "admin", DEFAULT_PASSWORD)

        assert result.status == LoginStatus.SUCCESS
        assert result.account.id == seeded.admin.id
        assert result.account.last_login is not None
        assert seeded.admin.password_hash == passwords.compute_hash_canonical(DEFAULT_SALT, DEFAULT_PASSWORD)

    @pytest.mark.asyncio
    async def test_blank_user_name(self, db, seeded, account_service):
        assert (await account_service.check_login(db, "   ", "x")).status == LoginStatus.USER_NOT_FOUND
        assert (await account_service.check_login(db, None, "x")).status == LoginStatus.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unknown_user(self, db, seeded, account_service):
        result = await account_service.check_login(db, "ghost", "123456")
        assert result.status == LoginStatus.USER_NOT_FOUND
        assert result.account is None

    @pytest.mark.asyncio
    async def test_user_name_is_exact(self, db, seeded, account_service):
        result = await account_service.check_login(db, "admin ", DEFAULT_PASSWORD)
        assert result.status == LoginStatus.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_inactive_account(self, db, seeded, account_service):
        await add_account(db, "former", "s", passwords.compute_hash_canonical("s", "pw"), is_active=False)

        result = await account_service.check_login(db, "former", "pw")
        assert result.status == LoginStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_wrong_password(self, db, seeded, account_service):
        result = await account_service.check_login(db, "admin", "not-it")

        assert result.status == LoginStatus.WRONG_PASSWORD
        assert not result.success

    @pytest.mark.asyncio
    async def test_legacy_utf16_account(self, db, seeded, account_service):
        stored = hashlib.sha256("pw".encode("utf-16-le") + "legacy".encode("utf-16-le")).hexdigest()
        await add_account(db, "old_timer", "legacy", stored.upper())

        result = await account_service.check_login(db, "old_timer", "pw")
        assert result.status == LoginStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_database_error_reports_error(self, account_service):
        session = AsyncMock(spec=AsyncSession)
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("database is down"))

        result = await account_service.check_login(session, "admin", "123456")

        assert result.status == LoginStatus.ERROR
        session.rollback.assert_awaited()

    @pytest.mark.asyncio
    async def test_failed_hash_upgrade_does_not_block_login(self, db, seeded, account_service, monkeypatch):
        await add_account(db, "cashier", "s", passwords.compute_hash_canonical("s", "pw"))
        upgrade = AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("database is locked")))
        monkeypatch.setattr(account_service, "ensure_default_hashed_password", upgrade)

        result = await account_service.check_login(db, "cashier", "pw")

        assert result.status == LoginStatus.SUCCESS
        assert result.account.user_name == "cashier"
        assert result.account.last_login is not None
        upgrade.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unencodable_password_is_rejected_not_raised(self, db, seeded, account_service):
        result = await account_service.check_login(db, "admin", "\ud800")
        assert result.status == LoginStatus.WRONG_PASSWORD

    @pytest.mark.asyncio
    async def test_login_returns_account_or_none(self, db, seeded, account_service):
        assert await account_service.login(db, "admin", "wrong") is None

        account = await account_service.login(db, "admin", DEFAULT_PASSWORD)
        assert account is not None
        assert account.user_name == "admin"


class TestEnsureDefaultHashedPassword:
    """Test the sample account hash fill-in."""

    @pytest.mark.asyncio
    async def test_fills_only_blank_hashes(self, db, seeded, account_service):
        real_hash = passwords.compute_hash_canonical(DEFAULT_SALT, "a-real-password")
        await add_account(db, "manager", DEFAULT_SALT, real_hash)
        await add_account(db, "blank", DEFAULT_SALT, "   ")
        await add_account(db, "other_salt", "ZZZ", "")

        updated = await account_service.ensure_default_hashed_password(db)

        assert updated == 2
        rows = {a.user_name: a.password_hash for a in (await db.execute(select(Account))).scalars()}
        canonical = passwords.compute_hash_canonical(DEFAULT_SALT, DEFAULT_PASSWORD)
        assert rows["admin"] == canonical
        assert rows["blank"] == canonical
        assert rows["manager"] == real_hash
        assert rows["other_salt"] == ""

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, db, account_service):
        assert await account_service.ensure_default_hashed_password(db) == 0


class TestDiagnoseLogin:
    """Test the plain-language diagnosis."""

    @pytest.mark.asyncio
    async def test_messages(self, db, seeded, account_service):
        await add_account(db, "locked", "s", "h", is_active=False)

        assert await account_service.diagnose_login(db, "", "x") == "Username is empty."
        assert await account_service.diagnose_login(db, "admin", "") == "Password is empty."
        assert "User not found" in await account_service.diagnose_login(db, "ghost", "x")
        assert "locked" in await account_service.diagnose_login(db, "locked", "x")
        assert "empty" in await account_service.diagnose_login(db, "admin", "x")

    @pytest.mark.asyncio
    async def test_full_report(self, db, seeded, account_service):
        await add_account(db, "cashier", "pepper", "deadbeef")

        report = await account_service.diagnose_login(db, "cashier", "pw")

        assert report.startswith("Stored: deadbeef")
        assert "SaltLooksLikeHex: False" in report


class TestAccountMaintenance:
    """Test account creation and password changes."""

    @pytest.mark.asyncio
    async def test_create_and_login(self, db, account_service):
        account = await account_service.create_account(db, "cashier", "Cashier", "s3cret")

        assert account.id is not None
        assert account.salt
        assert account.password_hash == passwords.compute_hash_canonical(account.salt, "s3cret")

        result = await account_service.check_login(db, "cashier", "s3cret")
        assert result.status == LoginStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_duplicate_user_name(self, db, seeded, account_service):
        with pytest.raises(ConflictError):
            await account_service.create_account(db, "admin", "Again", "pw")

    @pytest.mark.asyncio
    async def test_empty_password_rejected(self, db, account_service):
        with pytest.raises(ValidationError):
            await account_service.create_account(db, "nobody", "Nobody", "")

    @pytest.mark.asyncio
    async def test_change_password(self, db, account_service):
        account = await account_service.create_account(db, "cashier", "Cashier", "old")
        old_salt = account.salt

        await account_service.change_password(db, account.id, "old", "new")

        assert account.salt != old_salt
        assert (await account_service.check_login(db, "cashier", "old")).status == LoginStatus.WRONG_PASSWORD
        assert (await account_service.check_login(db, "cashier", "new")).status == LoginStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_change_password_from_legacy_hash(self, db, account_service):
        stored = hashlib.sha256(b"pw").hexdigest()
        account = await add_account(db, "legacy", "whatever", stored)

        await account_service.change_password(db, account.id, "pw", "better")

        assert account.password_hash == passwords.compute_hash_canonical(account.salt, "better")

    @pytest.mark.asyncio
    async def test_change_password_wrong_old(self, db, account_service):
        account = await account_service.create_account(db, "cashier", "Cashier", "old")

        with pytest.raises(ValidationError):
            await account_service.change_password(db, account.id, "guess", "new")

    @pytest.mark.asyncio
    async def test_change_password_unknown_account(self, db, account_service):
        with pytest.raises(NotFoundError):
            await account_service.change_password(db, 999, "a", "b")

    @pytest.mark.asyncio
    async def test_deactivate_blocks_login(self, db, account_service):
        account = await account_service.create_account(db, "cashier", "Cashier", "pw")

        await account_service.set_active(db, account.id, False)

        assert (await account_service.check_login(db, "cashier", "pw")).status == LoginStatus.INACTIVE
        assert [a.user_name for a in await account_service.list_accounts(db)] == ["cashier"]
