"""Unit tests for TaskService and bulk patch helpers."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from src.schemas.task import TaskCreate, TaskFilters, TaskPatch, TaskUpdate
from src.services.task_service import TaskService, apply_filters, build_patch, follow_up_time

NOW = datetime(2024, 3, 7, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def mock_supabase() -> MagicMock:
    """Create a mock Supabase client."""
    return MagicMock()


@pytest.fixture
def task_service(mock_supabase: MagicMock) -> TaskService:
    """Create TaskService with mocked client."""
    with patch("src.services.task_service.get_supabase_client", return_value=mock_supabase):
        return TaskService()


def _response(data, count=None) -> MagicMock:
    response = MagicMock()
    response.data = data
    response.count = count
    return response


class TestBuildPatch:
    """Tests for build_patch."""

    def test_done_archives_and_completes(self) -> None:
        data = build_patch(TaskPatch(status="DONE"), NOW)

        assert data == {"status": "DONE", "archived_at": NOW.isoformat(), "completed_at": NOW.isoformat()}

    def test_open_clears_timestamps(self) -> None:
        data = build_patch(TaskPatch(status="OPEN"), NOW)

        assert data == {"status": "OPEN", "archived_at": None, "completed_at": None}

    def test_explicit_null_clears_due_date_and_label(self) -> None:
        patch_ = TaskPatch.model_validate({"dueAt": None, "label": None})

        assert build_patch(patch_, NOW) == {"due_at": None, "label": None}

    def test_omitted_fields_are_untouched(self) -> None:
        assert build_patch(TaskPatch(priority="HIGH"), NOW) == {"priority": "HIGH"}

    def test_due_date_is_serialized(self) -> None:
        due = datetime(2024, 3, 8, 10, 0, tzinfo=timezone.utc)

        assert build_patch(TaskPatch(due_at=due), NOW) == {"due_at": due.isoformat()}

    def test_unknown_patch_keys_rejected(self) -> None:
        with pytest.raises(ValueError):
            TaskPatch.model_validate({"title": "x"})


class TestApplyFilters:
    """Tests for apply_filters."""

    def test_default_hides_archived(self) -> None:
        query = MagicMock()

        result = apply_filters(query, TaskFilters())

        query.is_.assert_called_once_with("archived_at", "null")
        assert result is query.is_.return_value

    def test_all_filters(self) -> None:
        query = MagicMock()
        query.is_.return_value = query
        query.in_.return_value = query
        query.eq.return_value = query
        query.ilike.return_value = query
        query.gte.return_value = query
        query.lte.return_value = query
        filters = TaskFilters.model_validate({
            "status": ["OPEN"],
            "stage": ["QUOTE"],
            "priority": ["HIGH", "MEDIUM"],
            "contactId": "c-1",
            "q": "call",
            "label": "hot",
            "dueFrom": "2024-03-01T00:00:00Z",
            "dueTo": "2024-03-31T23:59:59Z",
            "showArchived": True,
        })

        apply_filters(query, filters)

        query.is_.assert_not_called()
        assert [c.args for c in query.in_.call_args_list] == [
            ("status", ["OPEN"]),
            ("stage", ["QUOTE"]),
            ("priority", ["HIGH", "MEDIUM"]),
        ]
        query.eq.assert_called_once_with("contact_id", "c-1")
        assert [c.args for c in query.ilike.call_args_list] == [("title", "%call%"), ("label", "%hot%")]
        query.gte.assert_called_once_with("due_at", "2024-03-01T00:00:00+00:00")
        query.lte.assert_called_once_with("due_at", "2024-03-31T23:59:59+00:00")


class TestFollowUp:
    """Tests for follow-up task creation."""

    def test_follow_up_time_is_tomorrow_ten(self) -> None:
        due = follow_up_time(NOW)

        assert due == datetime(2024, 3, 8, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_create_follow_up(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        insert = mock_supabase.table.return_value.insert
        insert.return_value.execute.return_value = _response([{"id": "t-1"}])

        result = await task_service.create_follow_up("c-1", "Follow up on call attempt", now=NOW)

        row = insert.call_args[0][0]
        assert result == {"id": "t-1"}
        assert row["status"] == "OPEN"
        assert row["source"] == "SYSTEM"
        assert row["contact_id"] == "c-1"
        assert row["due_at"].startswith("2024-03-08T10:00:00")


class TestSingleTask:
    """Tests for single-task operations."""

    @pytest.mark.asyncio
    async def test_create_task_defaults(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        insert = mock_supabase.table.return_value.insert
        insert.return_value.execute.return_value = _response([{"id": "t-1"}])

        await task_service.create_task(TaskCreate(title="Send quote"))

        row = insert.call_args[0][0]
        assert row["status"] == "OPEN"
        assert row["source"] == "MANUAL"
        assert row["due_at"] is None

    @pytest.mark.asyncio
    async def test_complete_task_archives(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        update = mock_supabase.table.return_value.update
        update.return_value.eq.return_value.execute.return_value = _response([{"id": "t-1", "status": "DONE"}])

        result = await task_service.complete_task("t-1")

        values = update.call_args[0][0]
        assert values["status"] == "DONE"
        assert values["archived_at"] == values["completed_at"]
        assert values["archived_at"] is not None
        update.return_value.eq.assert_called_once_with("id", "t-1")
        assert result["status"] == "DONE"

    @pytest.mark.asyncio
    async def test_reopen_task_clears(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        update = mock_supabase.table.return_value.update
        update.return_value.eq.return_value.execute.return_value = _response([])

        assert await task_service.reopen_task("missing") is None
        assert update.call_args[0][0] == {"status": "OPEN", "archived_at": None, "completed_at": None}

    @pytest.mark.asyncio
    async def test_update_with_explicit_null_label(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        update = mock_supabase.table.return_value.update
        update.return_value.eq.return_value.execute.return_value = _response([{"id": "t-1"}])

        await task_service.update_task("t-1", TaskUpdate(label=None))

        assert update.call_args[0][0] == {"label": None}

    @pytest.mark.asyncio
    async def test_delete_task(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        mock_supabase.table.return_value.delete.return_value.eq.return_value.execute.return_value = _response([])

        assert await task_service.delete_task("missing") is False

    @pytest.mark.asyncio
    async def test_complete_open_for_contact(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        update = mock_supabase.table.return_value.update
        update.return_value.eq.return_value.eq.return_value.execute.return_value = _response([{"id": "a"}, {"id": "b"}])

        assert await task_service.complete_open_for_contact("c-1") == 2
        update.return_value.eq.assert_called_once_with("contact_id", "c-1")
        update.return_value.eq.return_value.eq.assert_called_once_with("status", "OPEN")


class TestListing:
    """Tests for list_tasks and list_overdue."""

    @pytest.mark.asyncio
    async def test_list_missing_table(
        self, task_service: TaskService, mock_supabase: MagicMock, missing_table_error: Exception
    ) -> None:
        query = mock_supabase.table.return_value.select.return_value
        ordered = query.order.return_value.order.return_value.order.return_value.order.return_value
        ordered.range.return_value.execute.side_effect = missing_table_error

        assert await task_service.list_tasks() == []

    @pytest.mark.asyncio
    async def test_list_overdue(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        ordered = query.lt.return_value.order.return_value.order.return_value
        ordered.range.return_value.execute.return_value = _response([{"id": "t-1"}])

        result = await task_service.list_overdue(NOW)

        assert result == [{"id": "t-1"}]
        mock_supabase.table.return_value.select.return_value.eq.assert_called_once_with("status", "OPEN")
        query.lt.assert_called_once_with("due_at", NOW.isoformat())

    @pytest.mark.asyncio
    async def test_list_reads_every_page(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        ordered = query.order.return_value.order.return_value.order.return_value.order.return_value
        ordered.range.return_value.execute.side_effect = [
            _response([{"id": f"t-{i}"} for i in range(1000)]),
            _response([{"id": "t-1000"}]),
        ]

        result = await task_service.list_tasks(status="OPEN")

        assert len(result) == 1001
        assert [c.args for c in ordered.range.call_args_list] == [(0, 999), (1000, 1999)]
        query.order.return_value.order.return_value.order.return_value.order.assert_called_with("id")


class TestBulkUpdate:
    """Tests for bulk_update."""

    @pytest.mark.asyncio
    async def test_ids_scope(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        update = mock_supabase.table.return_value.update
        update.return_value.in_.return_value.execute.return_value = _response([{"id": "t-1"}, {"id": "t-2"}])

        result = await task_service.bulk_update("SELECTED", TaskPatch(status="DONE"), ids=["t-1", "t-2", "t-1"])

        assert result == {"matched": 2, "modified": 2}
        update.return_value.in_.assert_called_once_with("id", ["t-1", "t-2"])
        mock_supabase.table.return_value.select.assert_not_called()

    @pytest.mark.asyncio
    async def test_large_id_list_is_chunked(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        ids = [f"t-{n}" for n in range(450)]
        update = mock_supabase.table.return_value.update
        update.return_value.in_.return_value.execute.side_effect = [
            _response([{"id": i} for i in ids[:200]]),
            _response([{"id": i} for i in ids[200:400]]),
            _response([{"id": i} for i in ids[400:]]),
        ]

        result = await task_service.bulk_update("SELECTED", TaskPatch(priority="HIGH"), ids=ids)

        assert result == {"matched": 450, "modified": 450}
        chunks = [c.args[1] for c in update.return_value.in_.call_args_list]
        assert [len(chunk) for chunk in chunks] == [200, 200, 50]
        assert sum(chunks, []) == ids

    @pytest.mark.asyncio
    async def test_global_scope_filters_the_update(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        select = mock_supabase.table.return_value.select
        count_query = select.return_value.is_.return_value.in_.return_value.limit
        count_query.return_value.execute.return_value = _response([{"id": "t-1"}], count=2500)
        update = mock_supabase.table.return_value.update
        filtered = update.return_value.is_.return_value.in_.return_value
        filtered.execute.return_value = _response([{"id": f"t-{n}"} for n in range(2500)])

        result = await task_service.bulk_update(
            "GLOBAL", TaskPatch(priority="LOW"), filters=TaskFilters(status=["OPEN"])
        )

        assert result == {"matched": 2500, "modified": 2500}
        select.assert_called_once_with("id", count="exact")
        update.assert_called_once_with({"priority": "LOW"})
        update.return_value.is_.assert_called_once_with("archived_at", "null")
        update.return_value.is_.return_value.in_.assert_called_once_with("status", ["OPEN"])
        # No id list is sent for filter-scoped updates
        assert not update.return_value.in_.called

    @pytest.mark.asyncio
    async def test_global_without_matches_skips_update(
        self, task_service: TaskService, mock_supabase: MagicMock
    ) -> None:
        select = mock_supabase.table.return_value.select
        select.return_value.is_.return_value.limit.return_value.execute.return_value = _response([], count=0)

        result = await task_service.bulk_update("GLOBAL", TaskPatch(status="DONE"), filters=TaskFilters())

        assert result == {"matched": 0, "modified": 0}
        mock_supabase.table.return_value.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_matches_skips_update(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        result = await task_service.bulk_update("SELECTED", TaskPatch(status="DONE"), ids=[])

        assert result == {"matched": 0, "modified": 0}
        mock_supabase.table.return_value.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_patch_skips_update(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        result = await task_service.bulk_update("SELECTED", TaskPatch(), ids=["t-1"])

        assert result == {"matched": 1, "modified": 0}
        mock_supabase.table.return_value.update.assert_not_called()


class TestBulkDelete:
    """Tests for bulk_delete."""

    @pytest.mark.asyncio
    async def test_ids_scope(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        delete = mock_supabase.table.return_value.delete
        delete.return_value.in_.return_value.execute.return_value = _response([{"id": "t-1"}])

        result = await task_service.bulk_delete("SELECTED", ids=["t-1", "t-9"])

        assert result == {"matched": 2, "deleted": 1}
        delete.return_value.in_.assert_called_once_with("id", ["t-1", "t-9"])

    @pytest.mark.asyncio
    async def test_global_scope_filters_the_delete(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        select = mock_supabase.table.return_value.select
        select.return_value.is_.return_value.eq.return_value.limit.return_value.execute.return_value = _response(
            [{"id": "t-1"}], count=1200
        )
        delete = mock_supabase.table.return_value.delete
        delete.return_value.is_.return_value.eq.return_value.execute.return_value = _response(
            [{"id": f"t-{n}"} for n in range(1200)]
        )

        result = await task_service.bulk_delete("GLOBAL", filters=TaskFilters(contact_id="c-1"))

        assert result == {"matched": 1200, "deleted": 1200}
        delete.return_value.is_.return_value.eq.assert_called_once_with("contact_id", "c-1")
        assert not delete.return_value.in_.called

    @pytest.mark.asyncio
    async def test_global_without_matches(self, task_service: TaskService, mock_supabase: MagicMock) -> None:
        select = mock_supabase.table.return_value.select
        select.return_value.is_.return_value.limit.return_value.execute.return_value = _response([], count=0)

        result = await task_service.bulk_delete("GLOBAL", filters=TaskFilters())

        assert result == {"matched": 0, "deleted": 0}
        mock_supabase.table.return_value.delete.assert_not_called()
