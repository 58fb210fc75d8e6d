"""Services backed by a YAML tenant snapshot.

A snapshot is an exported view of a tenant: the license catalog plus each
account with its licenses and mailbox hold state. It lets a sweep run
offline, for rehearsals and for reviewing what a live run would change.
Changes made through SnapshotStatusService are written back on close().

Example snapshot:
    catalog:
      6fd2c87f-b296-42f0-b197-1e91e994b900: ENTERPRISEPACK
    subjects:
      - identity: ada@contoso.com
        label: Ada Lovelace
        licenses: [6fd2c87f-b296-42f0-b197-1e91e994b900]
        mailbox:
          litigation_hold_enabled: false
      - identity: kiosk@contoso.com
        enabled: false
        licenses: []
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from holdsweep.core.errors import MutationError, PreconditionError, StatusQueryError
from holdsweep.core.logging import get_logger
from holdsweep.core.models import StatusRecord, Subject
from holdsweep.services.base import DirectorySource, StatusService
from holdsweep.utils.time import utc_now

_logger = get_logger("snapshot")


class SnapshotMailbox(BaseModel):
    litigation_hold_enabled: bool = False
    hold_date: datetime | None = None
    hold_owner: str | None = None

    def to_status(self) -> StatusRecord:
        return StatusRecord(
            compliance_enabled=self.litigation_hold_enabled,
            enabled_date=self.hold_date,
            owner=self.hold_owner,
            has_target_resource=True,
        )


class SnapshotSubject(BaseModel):
    identity: str = Field(min_length=1)
    label: str = ""
    enabled: bool = True
    licenses: list[str] = Field(default_factory=list)
    mailbox: SnapshotMailbox | None = None

    def to_subject(self) -> Subject:
        return Subject(
            identity=self.identity,
            label=self.label,
            enabled=self.enabled,
            licenses=frozenset(self.licenses),
        )


class SnapshotDocument(BaseModel):
    catalog: dict[str, str] = Field(default_factory=dict)
    subjects: list[SnapshotSubject] = Field(default_factory=list)

    @field_validator("subjects")
    @classmethod
    def _unique_identities(cls, v: list[SnapshotSubject]) -> list[SnapshotSubject]:
        seen: set[str] = set()
        for subject in v:
            key = subject.identity.lower()
            if key in seen:
                raise ValueError(f"identity {subject.identity} is listed more than once")
            seen.add(key)
        return v


class SnapshotStore:
    """Loads a snapshot file and tracks unsaved changes."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._document: SnapshotDocument | None = None
        self._index: dict[str, SnapshotSubject] = {}
        self.dirty = False

    @property
    def document(self) -> SnapshotDocument:
        if self._document is None:
            self.load()
        assert self._document is not None
        return self._document

    def load(self) -> SnapshotDocument:
        """Parse the snapshot file.

        Raises:
            PreconditionError: If the file is missing or malformed.
        """
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
            document = SnapshotDocument.model_validate(data or {})
        except (OSError, yaml.YAMLError, ValidationError) as e:
            raise PreconditionError(f"Cannot read snapshot {self.path}: {e}") from e

        self._document = document
        self._index = {s.identity.lower(): s for s in document.subjects}
        _logger.info(
            "snapshot.loaded",
            path=str(self.path),
            subjects=len(document.subjects),
            catalog=len(document.catalog),
        )
        return document

    def find(self, identity: str) -> SnapshotSubject | None:
        if self._document is None:
            self.load()
        return self._index.get(identity.lower())

    def save(self) -> None:
        data = self.document.model_dump(mode="json", exclude_none=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(data, f, sort_keys=False)
        self.dirty = False
        _logger.info("snapshot.saved", path=str(self.path))


class SnapshotDirectory(DirectorySource):
    """Directory source reading subjects from a snapshot."""

    def __init__(self, store: SnapshotStore) -> None:
        self.store = store

    async def list_subjects(self, identity_filter: str | None = None) -> list[Subject]:
        prefix = (identity_filter or "").lower()
        return [
            s.to_subject()
            for s in self.store.document.subjects
            if s.identity.lower().startswith(prefix)
        ]

    async def list_license_catalog(self) -> dict[str, str]:
        return dict(self.store.document.catalog)

    async def health_check(self) -> bool:
        return self.store.path.is_file()

    @property
    def name(self) -> str:
        return f"snapshot directory ({self.store.path.name})"


class SnapshotStatusService(StatusService):
    """Status service reading and updating mailbox state in a snapshot.

    Args:
        store: The snapshot store shared with the directory source.
        hold_owner: Recorded as the hold owner for holds applied here.
        persist: Write changes back to the snapshot file on close().
    """

    def __init__(
        self,
        store: SnapshotStore,
        hold_owner: str = "holdsweep",
        persist: bool = True,
    ) -> None:
        self.store = store
        self.hold_owner = hold_owner
        self.persist = persist

    async def get_statuses(self, identities: Sequence[str]) -> dict[str, StatusRecord]:
        result: dict[str, StatusRecord] = {}
        for identity in identities:
            entry = self.store.find(identity)
            if entry is not None and entry.mailbox is not None:
                result[identity] = entry.mailbox.to_status()
        return result

    async def get_status(self, identity: str) -> StatusRecord:
        entry = self.store.find(identity)
        if entry is None:
            raise StatusQueryError(f"{identity} is not present in the snapshot")
        if entry.mailbox is None:
            return StatusRecord.missing()
        return entry.mailbox.to_status()

    async def set_compliance(self, identity: str, enabled: bool = True) -> None:
        entry = self.store.find(identity)
        if entry is None or entry.mailbox is None:
            raise MutationError(f"No mailbox found for {identity}")
        entry.mailbox.litigation_hold_enabled = enabled
        entry.mailbox.hold_date = utc_now() if enabled else None
        entry.mailbox.hold_owner = self.hold_owner if enabled else None
        self.store.dirty = True

    async def health_check(self) -> bool:
        return self.store.path.is_file()

    async def close(self) -> None:
        if self.persist and self.store.dirty:
            self.store.save()

    @property
    def name(self) -> str:
        return f"snapshot status service ({self.store.path.name})"
