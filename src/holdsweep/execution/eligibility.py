"""License eligibility selection.

Directory subjects carry SKU identifiers. The tenant's license catalog maps
those identifiers to SKU names, and the license table says which SKU names
entitle a mailbox to litigation hold. A subject is eligible when it is
enabled (unless disabled accounts are included) and holds at least one
eligible SKU, optionally narrowed by a license filter.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from holdsweep.core.config.licenses import LicenseTable
from holdsweep.core.logging import get_logger
from holdsweep.core.models import Subject

_logger = get_logger("eligibility")


@dataclass
class EligibilityResult:
    """Outcome of splitting directory subjects by eligibility."""

    eligible: list[Subject] = field(default_factory=list)
    disabled: list[Subject] = field(default_factory=list)
    unlicensed: list[Subject] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.disabled) + len(self.unlicensed)


class LicenseEligibility:
    """Decides which subjects are entitled to the compliance setting."""

    def __init__(
        self,
        table: LicenseTable,
        catalog: Mapping[str, str] | None = None,
        license_filter: Iterable[str] = (),
        include_disabled: bool = False,
    ) -> None:
        self.table = table
        self.catalog = {sku_id: name.upper() for sku_id, name in (catalog or {}).items()}
        self.include_disabled = include_disabled

        eligible = table.eligible_licenses()
        requested = {sku.upper() for sku in license_filter}
        unknown = requested - eligible.keys()
        if unknown:
            _logger.warning(
                "eligibility.filter_not_eligible",
                skus=sorted(unknown),
                hint="filtered SKUs must be hold-capable in the license table",
            )
        self.eligible_skus: dict[str, str] = (
            {sku: name for sku, name in eligible.items() if sku in requested}
            if requested
            else eligible
        )

    def sku_names(self, subject: Subject) -> set[str]:
        """SKU names for the subject, resolving identifiers through the catalog.

        Identifiers missing from the catalog are used as names directly.
        """
        return {self.catalog.get(sku, sku.upper()) for sku in subject.licenses}

    def eligible_plans(self, subject: Subject) -> list[str]:
        """Display names of the subject's hold-capable plans."""
        return sorted(
            self.eligible_skus[sku]
            for sku in self.sku_names(subject)
            if sku in self.eligible_skus
        )

    def is_eligible(self, subject: Subject) -> bool:
        if not subject.enabled and not self.include_disabled:
            return False
        return bool(self.eligible_plans(subject))

    def select(self, subjects: Sequence[Subject]) -> EligibilityResult:
        """Split subjects into eligible, disabled and unlicensed, keeping order."""
        result = EligibilityResult()
        for subject in subjects:
            if self.is_eligible(subject):
                result.eligible.append(subject)
            elif not subject.enabled and not self.include_disabled:
                result.disabled.append(subject)
            else:
                result.unlicensed.append(subject)

        _logger.info(
            "eligibility.selected",
            discovered=len(subjects),
            eligible=len(result.eligible),
            disabled=len(result.disabled),
            unlicensed=len(result.unlicensed),
        )
        return result
