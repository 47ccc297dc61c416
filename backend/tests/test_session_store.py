"""
Tests for employee_directory/services/session_store.py - Refresh token sessions.
"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import select


async def _ceo_id(db):
    from employee_directory.models.employee import Employee

    return await db.scalar(select(Employee.id).where(Employee.email == "ceo@company.com"))


class TestRefreshTokenModel:
    """Test the RefreshToken model helpers."""

    def test_is_valid_for_live_token(self):
        from employee_directory.db.base_class import utcnow
        from employee_directory.models.refresh_token import RefreshToken

        token = RefreshToken(
            token_hash="test_hash",
            employee_id=1,
            expires_at=utcnow() + timedelta(days=7),
            is_revoked=False,
        )

        assert token.is_valid() is True

    def test_expired_token_not_valid(self):
        from employee_directory.db.base_class import utcnow
        from employee_directory.models.refresh_token import RefreshToken

        token = RefreshToken(
            token_hash="test_hash",
            employee_id=1,
            expires_at=utcnow() - timedelta(seconds=1),
            is_revoked=False,
        )

        assert token.is_expired() is True
        assert token.is_valid() is False

    def test_revoke_sets_timestamp(self):
        from employee_directory.db.base_class import utcnow
        from employee_directory.models.refresh_token import RefreshToken

        token = RefreshToken(
            token_hash="test_hash",
            employee_id=1,
            expires_at=utcnow() + timedelta(days=7),
            is_revoked=False,
        )
        token.revoke()

        assert token.is_revoked is True
        assert token.revoked_at is not None
        assert token.is_valid() is False


class TestSessionLifecycle:
    """Create, validate, rotate and revoke against a real database."""

    @pytest.mark.asyncio
    async def test_create_stores_only_hash(self, seeded_database):
        from employee_directory.core.security import hash_refresh_token
        from employee_directory.models.refresh_token import RefreshToken
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            employee_id = await _ceo_id(db)
            raw, expires_at = await session_store.create_session(
                db, employee_id, ip_address="203.0.113.1", device_info="pytest"
            )
            row = await db.scalar(select(RefreshToken).where(RefreshToken.employee_id == employee_id))

        assert row.token_hash == hash_refresh_token(raw)
        assert row.token_hash != raw
        assert row.expires_at == expires_at
        assert row.ip_address == "203.0.113.1"
        assert row.is_revoked is False

    @pytest.mark.asyncio
    async def test_default_ttl_is_seven_days(self, seeded_database):
        from employee_directory.db.base_class import utcnow
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            _, expires_at = await session_store.create_session(db, await _ceo_id(db))

        remaining = expires_at - utcnow()
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)

    @pytest.mark.asyncio
    async def test_validate_live_session(self, seeded_database):
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            employee_id = await _ceo_id(db)
            raw, _ = await session_store.create_session(db, employee_id)
            session = await session_store.validate_session(db, raw)

        assert session.employee_id == employee_id
        assert session.employee.email == "ceo@company.com"

    @pytest.mark.asyncio
    async def test_validate_rejects_empty_and_unknown(self, seeded_database):
        from employee_directory.core.exceptions import AuthenticationError
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            with pytest.raises(AuthenticationError) as empty:
                await session_store.validate_session(db, "")
            with pytest.raises(AuthenticationError) as unknown:
                await session_store.validate_session(db, "no-such-token")

        assert empty.value.message == "Refresh token is required"
        assert unknown.value.message == "Invalid refresh token"

    @pytest.mark.asyncio
    async def test_validate_rejects_expired(self, seeded_database):
        from employee_directory.core.exceptions import AuthenticationError
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            raw, _ = await session_store.create_session(
                db, await _ceo_id(db), ttl=timedelta(seconds=-1)
            )
            with pytest.raises(AuthenticationError) as exc_info:
                await session_store.validate_session(db, raw)

        assert exc_info.value.message == "Refresh token has expired"

    @pytest.mark.asyncio
    async def test_rotation_is_one_shot(self, seeded_database):
        """The original token can be rotated once; reuse fails as revoked."""
        from employee_directory.core.exceptions import AuthenticationError
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            raw, _ = await session_store.create_session(db, await _ceo_id(db))

        async with seeded_database.session() as db:
            successor, _ = await session_store.rotate_session(db, raw)

        async with seeded_database.session() as db:
            with pytest.raises(AuthenticationError) as exc_info:
                await session_store.rotate_session(db, raw)
            with pytest.raises(AuthenticationError) as validate_info:
                await session_store.validate_session(db, raw)
            still_live = await session_store.validate_session(db, successor)

        assert successor != raw
        assert exc_info.value.message == "Refresh token has been revoked"
        assert validate_info.value.message == "Refresh token has been revoked"
        assert still_live.is_revoked is False

    @pytest.mark.asyncio
    async def test_rotation_losing_race_inserts_nothing(self, mock_db_session):
        """When the conditional revoke matches no row, nothing is added and the transaction is rolled back."""
        from employee_directory.core.exceptions import AuthenticationError
        from employee_directory.services import session_store

        current = MagicMock()
        current.id = 10
        current.employee_id = 1
        mock_db_session.scalar = AsyncMock(return_value=current)
        mock_db_session.execute = AsyncMock(return_value=MagicMock(rowcount=0))

        with pytest.raises(AuthenticationError) as exc_info:
            await session_store.rotate_session(mock_db_session, "raw-token")

        assert exc_info.value.message == "Refresh token has been revoked"
        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.add.assert_not_called()
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, seeded_database):
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            raw, _ = await session_store.create_session(db, await _ceo_id(db))
            first = await session_store.revoke_session(db, raw)
            second = await session_store.revoke_session(db, raw)
            unknown = await session_store.revoke_session(db, "never-issued")
            missing = await session_store.revoke_session(db, None)

        assert (first, second, unknown, missing) == (True, False, False, False)

    @pytest.mark.asyncio
    async def test_revoke_all_for_employee(self, seeded_database):
        from employee_directory.core.exceptions import AuthenticationError
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            employee_id = await _ceo_id(db)
            first, _ = await session_store.create_session(db, employee_id)
            await session_store.create_session(db, employee_id)

            revoked = await session_store.revoke_all_for_employee(db, employee_id)
            await db.commit()

        async with seeded_database.session() as db:
            with pytest.raises(AuthenticationError):
                await session_store.validate_session(db, first)

        assert revoked == 2

    @pytest.mark.asyncio
    async def test_inactive_employee_session_revoked_on_validate(self, seeded_database):
        from employee_directory.core.exceptions import AuthenticationError
        from employee_directory.db.base_class import utcnow
        from employee_directory.models.employee import Employee
        from employee_directory.services import session_store

        async with seeded_database.session() as db:
            employee = await db.scalar(
                select(Employee).where(Employee.email == "sarah.johnson@company.com")
            )
            raw, _ = await session_store.create_session(db, employee.id)
            employee.deactivated_at = utcnow()
            await db.commit()

        async with seeded_database.session() as db:
            with pytest.raises(AuthenticationError) as exc_info:
                await session_store.validate_session(db, raw)

        async with seeded_database.session() as db:
            with pytest.raises(AuthenticationError) as again:
                await session_store.validate_session(db, raw)

        assert exc_info.value.message == "Employee account is inactive"
        assert again.value.message == "Refresh token has been revoked"
