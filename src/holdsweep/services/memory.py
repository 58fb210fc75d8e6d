"""In-memory services for tests and demos.

Stores everything in dicts, records every call, and can be told to fail
specific lookups or mutations so the pipeline's degradation paths can be
exercised without a real tenant.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import replace

from holdsweep.core.errors import MutationError, StatusQueryError
from holdsweep.core.models import StatusRecord, Subject
from holdsweep.services.base import DirectorySource, StatusService
from holdsweep.utils.time import utc_now


class InMemoryDirectory(DirectorySource):
    """Directory source backed by a list of subjects."""

    def __init__(
        self,
        subjects: Iterable[Subject],
        catalog: dict[str, str] | None = None,
        healthy: bool = True,
    ) -> None:
        self.subjects = list(subjects)
        self.catalog = dict(catalog or {})
        self.healthy = healthy

    async def list_subjects(self, identity_filter: str | None = None) -> list[Subject]:
        if not identity_filter:
            return list(self.subjects)
        prefix = identity_filter.lower()
        return [s for s in self.subjects if s.identity.lower().startswith(prefix)]

    async def list_license_catalog(self) -> dict[str, str]:
        return dict(self.catalog)

    async def health_check(self) -> bool:
        return self.healthy

    @property
    def name(self) -> str:
        return "in-memory directory"


class InMemoryStatusService(StatusService):
    """Status service backed by a dict of StatusRecords.

    Identities missing from ``statuses`` have no target resource.

    Attributes:
        aggregate_calls: Identity lists passed to ``get_statuses``.
        single_calls: Identities passed to ``get_status``.
        mutation_calls: Identities passed to ``set_compliance``.
        max_in_flight: Highest number of concurrent ``set_compliance`` calls.
    """

    def __init__(
        self,
        statuses: dict[str, StatusRecord] | None = None,
        *,
        fail_aggregate: bool = False,
        fail_aggregate_containing: Iterable[str] = (),
        fail_lookups: Iterable[str] = (),
        fail_mutations: Iterable[str] = (),
        mutation_delay_seconds: float = 0.0,
        healthy: bool = True,
    ) -> None:
        self.statuses = dict(statuses or {})
        self.fail_aggregate = fail_aggregate
        self.fail_aggregate_containing = set(fail_aggregate_containing)
        self.fail_lookups = set(fail_lookups)
        self.fail_mutations = set(fail_mutations)
        self.mutation_delay_seconds = mutation_delay_seconds
        self.healthy = healthy

        self.aggregate_calls: list[list[str]] = []
        self.single_calls: list[str] = []
        self.mutation_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_statuses(self, identities: Sequence[str]) -> dict[str, StatusRecord]:
        self.aggregate_calls.append(list(identities))
        if self.fail_aggregate or self.fail_aggregate_containing.intersection(identities):
            raise StatusQueryError("aggregate status query failed")
        return {i: self.statuses[i] for i in identities if i in self.statuses}

    async def get_status(self, identity: str) -> StatusRecord:
        self.single_calls.append(identity)
        if identity in self.fail_lookups:
            raise StatusQueryError(f"status lookup failed for {identity}")
        return self.statuses.get(identity, StatusRecord.missing())

    async def set_compliance(self, identity: str, enabled: bool = True) -> None:
        self.mutation_calls.append(identity)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.mutation_delay_seconds:
                await asyncio.sleep(self.mutation_delay_seconds)
            if identity in self.fail_mutations:
                raise MutationError(f"could not enable hold for {identity}")
            current = self.statuses.get(identity, StatusRecord())
            self.statuses[identity] = replace(
                current, compliance_enabled=enabled, enabled_date=utc_now()
            )
        finally:
            self.in_flight -= 1

    async def health_check(self) -> bool:
        return self.healthy

    @property
    def name(self) -> str:
        return "in-memory status service"
