"""Unit tests for the record store adapter and its SQL implementation."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from downline.config.constants import PREFIX_SCAN_SUFFIX
from downline.models.user import User
from downline.repositories.record_store import (
    AppendReferral,
    CreateNode,
    PageCursor,
    check_field,
)
from downline.repositories.sql_record_store import SqlRecordStore
from downline.repositories.user_repository import UserRepository
from downline.utils.exceptions import (
    InvalidCursorError,
    NodeNotFoundError,
    RegistrationError,
    StoreUnavailableError,
)
from tests.fakes import make_node


def async_context(value=None) -> MagicMock:
    """Async context manager mock yielding `value`."""
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=value)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


@pytest.fixture
def session():
    session = MagicMock()
    session.begin = MagicMock(return_value=async_context())
    return session


@pytest.fixture
def repo(session):
    """Patched UserRepository instance used by the store."""
    with patch("downline.repositories.sql_record_store.UserRepository") as repo_cls:
        instance = repo_cls.return_value
        instance.session = session
        yield instance


@pytest.fixture
def sql_store(session):
    return SqlRecordStore(MagicMock(return_value=async_context(session)))


def user_row(node_id: str, upline: str | None = None) -> MagicMock:
    row = MagicMock()
    row.to_node.return_value = make_node(node_id, upline)
    return row


class TestPageCursor:
    """Tests for cursor encoding."""

    def test_roundtrip(self):
        cursor = PageCursor(datetime(2025, 1, 1, 12, 30, tzinfo=UTC), "node/42")

        assert PageCursor.decode(cursor.encode()) == cursor

    def test_token_is_urlsafe(self):
        token = PageCursor(datetime(2025, 1, 1, tzinfo=UTC), "a+b/c?").encode()

        assert "=" not in token
        assert "+" not in token
        assert "/" not in token

    def test_after_node(self):
        node = make_node("K", "P", minute=5)

        cursor = PageCursor.after(node)

        assert cursor.id == "K"
        assert cursor.created_at == node.created_at

    @pytest.mark.parametrize("token", ["", "!!!", "bm90LWpzb24", "eyJ4IjoxfQ"])
    def test_malformed(self, token):
        """Undecodable tokens, non-JSON and missing keys are rejected."""
        with pytest.raises(InvalidCursorError):
            PageCursor.decode(token)


class TestCheckField:
    """Tests for queryable field validation."""

    @pytest.mark.parametrize(
        "field", ["id", "upline", "referral_code", "email", "normalized_name", "phone"]
    )
    def test_queryable(self, field):
        assert check_field(field) == field

    def test_not_queryable(self):
        with pytest.raises(ValueError):
            check_field("referrals")


class TestSqlRecordStore:
    """Tests for SqlRecordStore with a mocked session and repository."""

    @pytest.mark.asyncio
    async def test_get(self, sql_store, repo):
        repo.get_by_id = AsyncMock(return_value=user_row("A"))

        node = await sql_store.get("A")

        assert node.id == "A"
        repo.get_by_id.assert_awaited_once_with("A")

    @pytest.mark.asyncio
    async def test_get_missing(self, sql_store, repo):
        repo.get_by_id = AsyncMock(return_value=None)

        assert await sql_store.get("A") is None

    @pytest.mark.asyncio
    async def test_find_equal_passes_filter(self, sql_store, repo):
        repo.find_by = AsyncMock(return_value=[user_row("A")])

        nodes = await sql_store.find_equal("email", "a@example.com", limit=1)

        assert [node.id for node in nodes] == ["A"]
        repo.find_by.assert_awaited_once_with(limit=1, email="a@example.com")

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, sql_store, repo):
        with pytest.raises(ValueError):
            await sql_store.find_in("name", ["x"])

    @pytest.mark.asyncio
    async def test_count_in(self, sql_store, repo):
        repo.count_in = AsyncMock(return_value=7)

        assert await sql_store.count_in("upline", ["A", "B"]) == 7

    @pytest.mark.asyncio
    async def test_children_page_unpacks_cursor(self, sql_store, repo):
        repo.find_children_page = AsyncMock(return_value=[])
        cursor = PageCursor(datetime(2025, 1, 1, tzinfo=UTC), "K9")

        await sql_store.find_children_page("P", cursor, 50)

        repo.find_children_page.assert_awaited_once_with(
            "P", cursor.created_at, "K9", 50
        )

    @pytest.mark.asyncio
    async def test_driver_error_translated(self, sql_store, repo):
        """Driver errors surface as StoreUnavailableError."""
        repo.find_in = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
        )

        with pytest.raises(StoreUnavailableError):
            await sql_store.find_in("upline", ["A"])

    @pytest.mark.asyncio
    async def test_session_open_failure_translated(self, repo):
        context = async_context()
        context.__aenter__ = AsyncMock(side_effect=OSError("refused"))
        store = SqlRecordStore(MagicMock(return_value=context))

        with pytest.raises(StoreUnavailableError):
            await store.get("A")

    @pytest.mark.asyncio
    async def test_open_sessions_capped(self, session, repo):
        """Concurrent callers wait for a free slot instead of opening sessions."""
        state = {"open": 0, "peak": 0}

        async def slow_get(node_id):
            state["open"] += 1
            state["peak"] = max(state["peak"], state["open"])
            await asyncio.sleep(0)
            state["open"] -= 1
            return user_row(node_id)

        repo.get_by_id = AsyncMock(side_effect=slow_get)
        store = SqlRecordStore(
            MagicMock(return_value=async_context(session)), max_concurrency=2
        )

        nodes = await asyncio.gather(*(store.get(f"N{i}") for i in range(6)))

        assert [node.id for node in nodes] == [f"N{i}" for i in range(6)]
        assert state["peak"] == 2

    @pytest.mark.asyncio
    async def test_commit_applies_ops_in_transaction(self, sql_store, repo, session):
        repo.create = AsyncMock()
        repo.append_referral = AsyncMock(return_value=user_row("S"))
        node = make_node("N", "S")

        await sql_store.commit([
            CreateNode(node=node),
            AppendReferral(parent_id="S", child_id="N"),
        ])

        session.begin.assert_called_once()
        repo.create.assert_awaited_once()
        assert repo.create.await_args.kwargs["referral_code"] == "NUN"
        repo.append_referral.assert_awaited_once_with("S", "N")

    @pytest.mark.asyncio
    async def test_commit_missing_parent(self, sql_store, repo):
        repo.create = AsyncMock()
        repo.append_referral = AsyncMock(return_value=None)

        with pytest.raises(NodeNotFoundError):
            await sql_store.commit([AppendReferral(parent_id="S", child_id="N")])

    @pytest.mark.asyncio
    async def test_commit_unique_violation(self, sql_store, repo):
        """Unique constraint violations are registration errors."""
        repo.create = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("duplicate key"))
        )

        with pytest.raises(RegistrationError):
            await sql_store.commit([CreateNode(node=make_node("N", "S"))])


def compiled_sql(statement) -> tuple[str, dict]:
    """Render a statement for PostgreSQL with its bound parameters."""
    compiled = statement.compile(dialect=postgresql.dialect())
    return " ".join(str(compiled).split()), compiled.params


@pytest.fixture
def db_session():
    """Session whose execute records the statement it was given."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = []
    db_session = MagicMock()
    db_session.execute = AsyncMock(return_value=result)
    db_session.flush = AsyncMock()
    return db_session


def executed(db_session) -> tuple[str, dict]:
    return compiled_sql(db_session.execute.await_args.args[0])


class TestUserRepository:
    """Tests for the SQL emitted by UserRepository."""

    @pytest.mark.asyncio
    async def test_children_first_page(self, db_session):
        await UserRepository(db_session).find_children_page("P", None, None, 5)

        sql, params = executed(db_session)
        assert "WHERE users.upline = " in sql
        assert "users.created_at <" not in sql
        assert sql.endswith(
            "ORDER BY users.created_at DESC, users.id DESC LIMIT %(param_1)s"
        )
        assert params["upline_1"] == "P"
        assert params["param_1"] == 5

    @pytest.mark.asyncio
    async def test_children_keyset_condition(self, db_session):
        """Later pages resume strictly after the (created_at, id) cursor."""
        after = datetime(2025, 1, 1, 0, 4, tzinfo=UTC)

        await UserRepository(db_session).find_children_page("P", after, "C9", 5)

        sql, params = executed(db_session)
        assert (
            "users.created_at < %(created_at_1)s OR "
            "users.created_at = %(created_at_2)s AND users.id < %(id_1)s"
        ) in sql
        assert params["created_at_1"] == after
        assert params["created_at_2"] == after
        assert params["id_1"] == "C9"
        assert "ORDER BY users.created_at DESC, users.id DESC" in sql

    @pytest.mark.asyncio
    async def test_prefix_range_scan(self, db_session):
        await UserRepository(db_session).find_range(
            "normalized_name", "aar", "aar", 20
        )

        sql, params = executed(db_session)
        assert "users.normalized_name >= %(normalized_name_1)s" in sql
        assert "users.normalized_name < %(normalized_name_2)s" in sql
        assert "ORDER BY users.normalized_name ASC, users.id ASC" in sql
        assert params["normalized_name_1"] == "aar"
        assert params["normalized_name_2"] == "aar"
        assert params["param_1"] == 20

    @pytest.mark.asyncio
    async def test_membership_query(self, db_session):
        await UserRepository(db_session).find_in("upline", ["A", "B"], limit=10)

        sql, params = executed(db_session)
        assert "users.upline IN" in sql
        assert params["upline_1"] == ["A", "B"]
        assert params["param_1"] == 10

    @pytest.mark.asyncio
    async def test_empty_membership_skips_query(self, db_session):
        repository = UserRepository(db_session)

        assert await repository.find_in("upline", []) == []
        assert await repository.count_in("upline", []) == 0
        db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_append_referral_locks_parent(self, db_session):
        """The parent row is read FOR UPDATE and the new id appended."""
        parent = User(id="P", referral_code="NUP", referrals=["C1"])
        db_session.execute.return_value.scalar_one_or_none.return_value = parent

        updated = await UserRepository(db_session).append_referral("P", "C2")

        sql, params = executed(db_session)
        assert sql.endswith("FOR UPDATE")
        assert params["id_1"] == "P"
        assert updated.referrals == ["C1", "C2"]
        db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_append_referral_already_listed(self, db_session):
        parent = User(id="P", referral_code="NUP", referrals=["C1"])
        db_session.execute.return_value.scalar_one_or_none.return_value = parent

        await UserRepository(db_session).append_referral("P", "C1")

        assert parent.referrals == ["C1"]
        db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_append_referral_missing_parent(self, db_session):
        db_session.execute.return_value.scalar_one_or_none.return_value = None

        assert await UserRepository(db_session).append_referral("P", "C1") is None
