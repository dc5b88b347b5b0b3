"""
Test suite for PgVectorIndexStore and EmbeddingCRUD.

Uses a mocked session factory and CRUD; SQL statements are compiled
against the PostgreSQL dialect without a live database.

System role: Verification of the production index store
"""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from backend.boundary.db.CRUD.embedding_crud import EmbeddingCRUD
from backend.boundary.vdb.pgvector_store import PgVectorIndexStore
from backend.core.exceptions import DimensionMismatchError, VectorStoreError
from backend.models.embedding import EmbeddingRecord

DIMS = 4


@pytest.fixture
def mock_session() -> AsyncSession:
    """Provide mock async database session."""
    return AsyncMock(spec=AsyncSession)


@pytest.fixture
def session_factory(mock_session: AsyncSession) -> MagicMock:
    """Session factory whose context manager yields the mock session."""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_session
    factory.return_value.__aexit__.return_value = False
    return factory


@pytest.fixture
def mock_crud() -> AsyncMock:
    """Provide mock embedding CRUD."""
    return AsyncMock(spec=EmbeddingCRUD)


@pytest.fixture
def store(session_factory: MagicMock, mock_crud: AsyncMock) -> PgVectorIndexStore:
    """PgVectorIndexStore wired to mocks."""
    return PgVectorIndexStore(session_factory=session_factory, dimensions=DIMS, crud=mock_crud)


def _record(vector: list[float] | None = None) -> EmbeddingRecord:
    return EmbeddingRecord(
        collection_id="gem-1",
        document_id="doc-1",
        content="stored text",
        metadata={"chunk_index": 0},
        vector=vector or [1.0, 0.0, 0.0, 0.0],
    )


class TestPgVectorIndexStoreInsert:
    """Test suite for insert_embeddings."""

    @pytest.mark.asyncio
    async def test_insert_should_create_rows_and_commit(
        self, store: PgVectorIndexStore, mock_crud: AsyncMock, mock_session: AsyncMock
    ) -> None:
        """Test rows carry generated ids and the transaction is committed."""
        # Arrange
        mock_crud.create_many.side_effect = lambda session, rows: [
            SimpleNamespace(id=row["id"]) for row in rows
        ]

        # Act
        ids = await store.insert_embeddings([_record(), _record()])

        # Assert
        rows = mock_crud.create_many.await_args.args[1]
        assert ids == [str(row["id"]) for row in rows]
        assert all(isinstance(row["id"], uuid.UUID) for row in rows)
        assert rows[0]["chunk_metadata"] == {"chunk_index": 0}
        assert rows[0]["embedding"] == [1.0, 0.0, 0.0, 0.0]
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_insert_should_rollback_and_raise_on_database_error(
        self, store: PgVectorIndexStore, mock_crud: AsyncMock, mock_session: AsyncMock
    ) -> None:
        """Test database failures roll back and surface as VectorStoreError."""
        mock_crud.create_many.side_effect = OperationalError("INSERT", {}, Exception("down"))

        with pytest.raises(VectorStoreError) as exc_info:
            await store.insert_embeddings([_record()])

        assert exc_info.value.details["operation"] == "insert"
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_insert_should_wrap_connection_refused(
        self, store: PgVectorIndexStore, mock_crud: AsyncMock, mock_session: AsyncMock
    ) -> None:
        """Test an unreachable server surfaces as VectorStoreError, not OSError."""
        mock_crud.create_many.side_effect = ConnectionRefusedError(111, "Connect call failed")

        with pytest.raises(VectorStoreError, match="Connect call failed") as exc_info:
            await store.insert_embeddings([_record()])

        assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)
        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call, crud_method",
        [
            (lambda s: s.query_nearest("gem-1", [1.0, 0.0, 0.0, 0.0], 0.5, 3), "nearest"),
            (lambda s: s.delete_by_collection("gem-1"), "delete_by_collection"),
            (lambda s: s.count_by_collection("gem-1"), "count_by_collection"),
            (lambda s: s.stats_by_collection("gem-1"), "document_stats"),
        ],
        ids=["query", "delete", "count", "stats"],
    )
    async def test_operations_should_wrap_os_errors(
        self, store: PgVectorIndexStore, mock_crud: AsyncMock, call, crud_method: str
    ) -> None:
        """Test socket-level failures of every operation become VectorStoreError."""
        getattr(mock_crud, crud_method).side_effect = OSError("Name or service not known")

        with pytest.raises(VectorStoreError):
            await call(store)

    @pytest.mark.asyncio
    async def test_insert_should_check_dimensions_before_opening_session(
        self, store: PgVectorIndexStore, session_factory: MagicMock
    ) -> None:
        """Test a wrong-length vector rejects the whole call up front."""
        with pytest.raises(DimensionMismatchError):
            await store.insert_embeddings([_record(), _record([1.0, 0.0])])

        session_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_should_skip_database_for_empty_input(
        self, store: PgVectorIndexStore, session_factory: MagicMock
    ) -> None:
        """Test nothing to insert means no session."""
        assert await store.insert_embeddings([]) == []
        session_factory.assert_not_called()


class TestPgVectorIndexStoreQuery:
    """Test suite for query_nearest, deletes and statistics."""

    @pytest.mark.asyncio
    async def test_query_should_map_rows_to_matches(
        self, store: PgVectorIndexStore, mock_crud: AsyncMock
    ) -> None:
        """Test model rows become SimilarityMatch with clamped scores."""
        # Arrange
        row_id = uuid.uuid4()
        model = SimpleNamespace(id=row_id, content="stored text", chunk_metadata={"section": "Intro"})
        mock_crud.nearest.return_value = [(model, 1.0000001)]

        # Act
        matches = await store.query_nearest("gem-1", [1.0, 0.0, 0.0, 0.0], threshold=0.7, limit=5)

        # Assert
        assert len(matches) == 1
        assert matches[0].id == str(row_id)
        assert matches[0].similarity == 1.0
        assert matches[0].metadata == {"section": "Intro"}
        args = mock_crud.nearest.await_args.args
        assert args[1:] == ("gem-1", [1.0, 0.0, 0.0, 0.0], 0.7, 5)

    @pytest.mark.asyncio
    async def test_query_should_reject_wrong_dimension(self, store: PgVectorIndexStore) -> None:
        """Test query vectors are length checked."""
        with pytest.raises(DimensionMismatchError):
            await store.query_nearest("gem-1", [1.0], threshold=0.7, limit=5)

    @pytest.mark.asyncio
    async def test_delete_by_document_should_commit_and_return_count(
        self, store: PgVectorIndexStore, mock_crud: AsyncMock, mock_session: AsyncMock
    ) -> None:
        """Test deletes run in a committed transaction."""
        mock_crud.delete_by_document.return_value = 3

        deleted = await store.delete_by_document("doc-1")

        assert deleted == 3
        mock_crud.delete_by_document.assert_awaited_once_with(mock_session, "doc-1")
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_count_should_wrap_database_errors(
        self, store: PgVectorIndexStore, mock_crud: AsyncMock
    ) -> None:
        """Test count failures surface as VectorStoreError."""
        mock_crud.count_by_collection.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(VectorStoreError, match="Count failed"):
            await store.count_by_collection("gem-1")

    @pytest.mark.asyncio
    async def test_stats_should_sum_document_rows(
        self, store: PgVectorIndexStore, mock_crud: AsyncMock
    ) -> None:
        """Test aggregate rows become CollectionStats."""
        indexed_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
        mock_crud.document_stats.return_value = [("doc-a", 2, 120, indexed_at), ("doc-b", 1, 30, indexed_at)]

        stats = await store.stats_by_collection("gem-1")

        assert stats.total_embeddings == 3
        assert stats.total_content_size == 150
        assert [doc.document_id for doc in stats.documents] == ["doc-a", "doc-b"]
        assert stats.documents[0].last_indexed == indexed_at


class TestPgVectorIndexStoreClose:
    """Test suite for aclose."""

    @pytest.mark.asyncio
    async def test_aclose_should_dispose_owned_engine(
        self, session_factory: MagicMock, mock_crud: AsyncMock
    ) -> None:
        """Test the engine handed to the store is disposed on close."""
        engine = AsyncMock(spec=AsyncEngine)
        store = PgVectorIndexStore(session_factory, dimensions=DIMS, crud=mock_crud, engine=engine)

        await store.aclose()

        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aclose_should_ignore_missing_engine(self, store: PgVectorIndexStore) -> None:
        """Test a store without an owned engine closes cleanly."""
        await store.aclose()


class TestEmbeddingCRUD:
    """Test suite for EmbeddingCRUD SQL generation."""

    @pytest.mark.asyncio
    async def test_nearest_should_use_cosine_distance_operator(self, mock_session: AsyncMock) -> None:
        """Test the similarity query filters by collection and uses pgvector's <=> operator."""
        # Arrange
        crud = EmbeddingCRUD()

        # Act
        await crud.nearest(mock_session, "gem-1", [1.0, 0.0, 0.0, 0.0], threshold=0.7, limit=5)

        # Assert
        stmt = mock_session.execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "<=>" in sql
        assert "embeddings.collection_id" in sql
        assert "ORDER BY" in sql
        assert "LIMIT" in sql

    @pytest.mark.asyncio
    async def test_delete_by_document_should_return_zero_when_nothing_matched(
        self, mock_session: AsyncMock
    ) -> None:
        """Test a missing rowcount is reported as 0."""
        mock_session.execute.return_value = MagicMock(rowcount=None)

        deleted = await EmbeddingCRUD().delete_by_document(mock_session, "never-existed")

        assert deleted == 0
