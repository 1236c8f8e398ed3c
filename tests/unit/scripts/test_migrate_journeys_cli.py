"""Unit tests for the journey migration CLI."""

import pytest

from localite.application.migration.schema_migrator import MigrationMode
from localite.infrastructure.persistence.record_store import JOURNEYS, RecordStore
from localite.scripts.migrate_journeys import main, parse_args, select_mode


class TestArguments:
    """Flag parsing and mode selection."""

    @pytest.mark.parametrize(
        "argv,mode",
        [
            ([], MigrationMode.MIGRATE),
            (["--dry-run"], MigrationMode.DRY_RUN),
            (["--rollback"], MigrationMode.ROLLBACK),
            (["--dry-run", "--rollback"], MigrationMode.DRY_RUN),
        ],
    )
    def test_select_mode(self, argv, mode) -> None:
        assert select_mode(parse_args(argv)) is mode

    def test_batch_limit(self) -> None:
        assert parse_args(["--batch-limit", "100"]).batch_limit == 100
        assert parse_args([]).batch_limit is None


class TestMain:
    """Exit codes."""

    @pytest.mark.asyncio
    async def test_migrate_succeeds(self, records: RecordStore, capsys) -> None:
        await records.put(None, JOURNEYS, "j1", {"user_id": "u1", "date": "2025-09-14"})

        assert await main([], records=records) == 0

        assert await records.count(JOURNEYS, owner_id="u1") == 1
        output = capsys.readouterr().out
        assert "Consistent" in output

    @pytest.mark.asyncio
    async def test_mismatch_is_a_warning(self, records: RecordStore, capsys) -> None:
        await records.put(None, JOURNEYS, "j1", {"user_id": "u1"})
        await records.put(None, JOURNEYS, "j2", {"user_id": "u1"})
        await records.put("u1", JOURNEYS, "j1", {})

        assert await main(["--dry-run"], records=records) == 0
        assert "Mismatch" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_invalid_batch_limit_exits_1(self, records: RecordStore) -> None:
        assert await main(["--batch-limit", "9999"], records=records) == 1

    @pytest.mark.asyncio
    async def test_store_failure_exits_1(
        self, flaky_store, flaky_records: RecordStore, capsys
    ) -> None:
        await flaky_records.put(None, JOURNEYS, "j1", {"user_id": "u1"})
        flaky_store.fail_on.add("commit")

        assert await main([], records=flaky_records) == 1

        output = capsys.readouterr().out
        # The plan is shown before any write is attempted
        assert "👤 u1: 1" in output
        assert "Stopped after 0 committed chunks (0 operations)" in output

    @pytest.mark.asyncio
    async def test_refuses_in_memory_backend(self, capsys) -> None:
        assert await main(["--dry-run"]) == 1
        assert "REPOSITORY_BACKEND=inmemory" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_mongodb_backend_without_uri_exits_1(self, monkeypatch) -> None:
        monkeypatch.setenv("REPOSITORY_BACKEND", "mongodb")
        monkeypatch.delenv("MONGODB_URI", raising=False)

        assert await main(["--dry-run"]) == 1
