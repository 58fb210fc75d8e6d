"""Tests for holdsweep.services.snapshot and in-memory services."""

from pathlib import Path

import pytest
import yaml

from holdsweep.core.config import RunConfig
from holdsweep.core.errors import MutationError, PreconditionError, StatusQueryError
from holdsweep.core.models import StatusRecord
from holdsweep.execution.runner import SweepRunner
from holdsweep.services.memory import InMemoryDirectory, InMemoryStatusService
from holdsweep.services.snapshot import (
    SnapshotDirectory,
    SnapshotStatusService,
    SnapshotStore,
)

from tests.conftest import make_subject


class TestSnapshotStore:
    def test_load(self, snapshot_file: Path):
        document = SnapshotStore(snapshot_file).load()
        assert len(document.subjects) == 5
        assert document.catalog["sku-e3"] == "ENTERPRISEPACK"

    def test_find_is_case_insensitive(self, snapshot_file: Path):
        store = SnapshotStore(snapshot_file)
        assert store.find("ADA@contoso.com").identity == "ada@contoso.com"
        assert store.find("nobody@contoso.com") is None

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(PreconditionError, match="Cannot read snapshot"):
            SnapshotStore(tmp_path / "missing.yaml").load()

    def test_malformed_file(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"subjects": [{"label": "no identity"}]}))
        with pytest.raises(PreconditionError):
            SnapshotStore(path).load()

    def test_duplicate_identity_rejected(self, tmp_path: Path, snapshot_data: dict):
        duplicate = dict(snapshot_data["subjects"][1], identity="Grace@contoso.com")
        snapshot_data["subjects"].append(duplicate)
        path = tmp_path / "dupes.yaml"
        path.write_text(yaml.safe_dump(snapshot_data))

        with pytest.raises(PreconditionError, match="listed more than once"):
            SnapshotStore(path).load()

    @pytest.mark.asyncio
    async def test_duplicate_identity_stops_run_before_mutation(
        self, tmp_path: Path, snapshot_data: dict
    ):
        duplicate = dict(snapshot_data["subjects"][1], identity="GRACE@contoso.com")
        snapshot_data["subjects"].append(duplicate)
        path = tmp_path / "dupes.yaml"
        path.write_text(yaml.safe_dump(snapshot_data, sort_keys=False))
        original = path.read_text()
        store = SnapshotStore(path)
        runner = SweepRunner(
            RunConfig(), SnapshotDirectory(store), SnapshotStatusService(store)
        )

        with pytest.raises(PreconditionError, match="listed more than once"):
            await runner.run()

        assert runner.get_report() is None
        assert path.read_text() == original


class TestSnapshotDirectory:
    @pytest.mark.asyncio
    async def test_list_subjects(self, snapshot_file: Path):
        directory = SnapshotDirectory(SnapshotStore(snapshot_file))
        subjects = await directory.list_subjects()
        assert len(subjects) == 5
        assert subjects[0].licenses == frozenset({"sku-e3"})
        assert subjects[4].enabled is False

    @pytest.mark.asyncio
    async def test_identity_filter(self, snapshot_file: Path):
        directory = SnapshotDirectory(SnapshotStore(snapshot_file))
        subjects = await directory.list_subjects("GRACE")
        assert [s.identity for s in subjects] == ["grace@contoso.com"]

    @pytest.mark.asyncio
    async def test_catalog_and_health(self, snapshot_file: Path, tmp_path: Path):
        directory = SnapshotDirectory(SnapshotStore(snapshot_file))
        assert await directory.list_license_catalog() == {
            "sku-e3": "ENTERPRISEPACK",
            "sku-f3": "SPE_F1",
        }
        assert await directory.health_check() is True
        missing = SnapshotDirectory(SnapshotStore(tmp_path / "gone.yaml"))
        assert await missing.health_check() is False


class TestSnapshotStatusService:
    @pytest.mark.asyncio
    async def test_get_statuses_skips_subjects_without_mailbox(self, snapshot_file: Path):
        service = SnapshotStatusService(SnapshotStore(snapshot_file))
        statuses = await service.get_statuses(
            ["ada@contoso.com", "grace@contoso.com", "linus@contoso.com"]
        )
        assert set(statuses) == {"ada@contoso.com", "grace@contoso.com"}
        assert statuses["ada@contoso.com"].compliance_enabled is True
        assert statuses["ada@contoso.com"].owner == "legal"

    @pytest.mark.asyncio
    async def test_get_status(self, snapshot_file: Path):
        service = SnapshotStatusService(SnapshotStore(snapshot_file))
        assert await service.get_status("linus@contoso.com") == StatusRecord.missing()
        with pytest.raises(StatusQueryError):
            await service.get_status("nobody@contoso.com")

    @pytest.mark.asyncio
    async def test_set_compliance_persists_on_close(self, snapshot_file: Path):
        service = SnapshotStatusService(SnapshotStore(snapshot_file), hold_owner="sweeper")

        await service.set_compliance("grace@contoso.com")
        await service.close()

        reloaded = SnapshotStore(snapshot_file)
        mailbox = reloaded.find("grace@contoso.com").mailbox
        assert mailbox.litigation_hold_enabled is True
        assert mailbox.hold_owner == "sweeper"
        assert mailbox.hold_date is not None

    @pytest.mark.asyncio
    async def test_no_persist(self, snapshot_file: Path):
        original = snapshot_file.read_text()
        service = SnapshotStatusService(SnapshotStore(snapshot_file), persist=False)

        await service.set_compliance("grace@contoso.com")
        await service.close()

        assert snapshot_file.read_text() == original

    @pytest.mark.asyncio
    async def test_set_compliance_without_mailbox(self, snapshot_file: Path):
        service = SnapshotStatusService(SnapshotStore(snapshot_file))
        with pytest.raises(MutationError):
            await service.set_compliance("linus@contoso.com")


class TestInMemoryServices:
    @pytest.mark.asyncio
    async def test_directory_prefix_filter(self):
        directory = InMemoryDirectory([make_subject("Ada@x.com"), make_subject("bob@x.com")])
        assert [s.identity for s in await directory.list_subjects("ada")] == ["Ada@x.com"]
        assert len(await directory.list_subjects()) == 2

    @pytest.mark.asyncio
    async def test_status_service_records_calls(self):
        service = InMemoryStatusService({"a": StatusRecord()})
        await service.get_statuses(["a", "b"])
        await service.set_compliance("a")
        assert service.aggregate_calls == [["a", "b"]]
        assert service.statuses["a"].compliance_enabled is True
        assert service.mutation_calls == ["a"]
