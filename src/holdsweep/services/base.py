"""Abstract interfaces for the external services a sweep talks to.

The directory source enumerates accounts and the license catalog. The status
service reads and changes the per-mailbox litigation hold flag. Concrete
implementations raise StatusQueryError / MutationError for failed calls;
any other exception is treated the same way by the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from holdsweep.core.models import StatusRecord, Subject


class DirectorySource(ABC):
    """Enumerates subjects and license catalog entries."""

    @abstractmethod
    async def list_subjects(self, identity_filter: str | None = None) -> list[Subject]:
        """Return every subject, optionally restricted to an identity prefix.

        Paging is handled inside the implementation.
        """
        ...

    @abstractmethod
    async def list_license_catalog(self) -> dict[str, str]:
        """Return SKU identifier -> SKU name for licenses in the tenant."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the source is reachable and authenticated."""
        ...

    async def close(self) -> None:
        """Release any held resources."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...


class StatusService(ABC):
    """Reads and applies the compliance flag."""

    @abstractmethod
    async def get_statuses(self, identities: Sequence[str]) -> dict[str, StatusRecord]:
        """Aggregate status lookup.

        Identities without a target resource are simply absent from the
        result. A failure of the whole query raises StatusQueryError.
        """
        ...

    @abstractmethod
    async def get_status(self, identity: str) -> StatusRecord:
        """Single-subject status lookup, used as the per-item fallback."""
        ...

    @abstractmethod
    async def set_compliance(self, identity: str, enabled: bool = True) -> None:
        """Apply the compliance flag. The only mutating call.

        Raises:
            MutationError: If the change could not be applied.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the service is reachable and authenticated."""
        ...

    async def close(self) -> None:
        """Release any held resources."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...
