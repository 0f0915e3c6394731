"""Company Registry — validated, read-only index over the company catalog.

The hierarchy is exactly two levels deep: a top-level company and its
sub-companies. The registry is built once and never mutated; fixture
registries for tests are built the same way from hand-written records.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

import structlog

from app.modules.intake.catalog import company_records
from app.modules.intake.exceptions import CatalogIntegrityError, CompanyNotFoundError
from app.modules.intake.schemas import CATCH_ALL_COMPANY_ID, CompanyRecord

logger = structlog.get_logger()


class CompanyRegistry:
    """Immutable catalog of companies and sub-companies."""

    def __init__(
        self,
        records: Iterable[CompanyRecord],
        *,
        catch_all_id: str = CATCH_ALL_COMPANY_ID,
    ) -> None:
        ordered = tuple(records)

        by_id: dict[str, CompanyRecord] = {}
        for record in ordered:
            if record.id in by_id:
                raise CatalogIntegrityError(f"Duplicate company id: {record.id}")
            by_id[record.id] = record

        children: dict[str, list[CompanyRecord]] = {}
        for record in ordered:
            if record.parent_id is None:
                continue
            parent = by_id.get(record.parent_id)
            if parent is None:
                raise CatalogIntegrityError(
                    f"{record.id} references unknown parent {record.parent_id}"
                )
            if parent.parent_id is not None:
                raise CatalogIntegrityError(
                    f"{record.id} is nested under sub-company {parent.id}; "
                    "only two hierarchy levels are allowed"
                )
            if parent.status == "unresolved":
                raise CatalogIntegrityError(f"{record.id} cannot be a child of the unresolved sentinel")
            children.setdefault(parent.id, []).append(record)

        sentinels = [r for r in ordered if r.status == "unresolved"]
        if len(sentinels) != 1:
            raise CatalogIntegrityError(
                f"Expected exactly one unresolved sentinel, found {len(sentinels)}"
            )
        if sentinels[0].parent_id is not None:
            raise CatalogIntegrityError("The unresolved sentinel must be a top-level record")

        catch_all = by_id.get(catch_all_id)
        if catch_all is None:
            raise CatalogIntegrityError(f"Catch-all company {catch_all_id} is missing")
        if catch_all.status == "unresolved" or catch_all.parent_id is not None:
            raise CatalogIntegrityError(
                f"Catch-all company {catch_all_id} must be a regular top-level record"
            )

        self._records = ordered
        self._by_id = MappingProxyType(by_id)
        self._children = MappingProxyType(
            {parent_id: frozenset(kids) for parent_id, kids in children.items()}
        )
        self._unresolved = sentinels[0]
        self._catch_all = catch_all

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_id(self, company_id: str) -> CompanyRecord:
        record = self._by_id.get(company_id)
        if record is None:
            raise CompanyNotFoundError(company_id)
        return record

    def find(self, company_id: str | None) -> CompanyRecord | None:
        """Non-raising lookup; ``None`` for unknown or empty ids."""
        if not company_id:
            return None
        return self._by_id.get(company_id)

    def get_parent(self, record: CompanyRecord) -> CompanyRecord | None:
        if record.parent_id is None:
            return None
        return self._by_id[record.parent_id]

    def get_children(self, parent_id: str) -> frozenset[CompanyRecord]:
        return self._children.get(parent_id, frozenset())

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_selectable(self) -> list[CompanyRecord]:
        """Companies offered in the UI dropdown; the sentinel is never listed."""
        return [r for r in self._records if r.status != "unresolved"]

    def list_all(self) -> list[CompanyRecord]:
        """Every record, sentinel included, for internal dispatch."""
        return list(self._records)

    @property
    def unresolved(self) -> CompanyRecord:
        return self._unresolved

    @property
    def catch_all(self) -> CompanyRecord:
        return self._catch_all

    def __contains__(self, company_id: object) -> bool:
        return company_id in self._by_id

    def __iter__(self) -> Iterator[CompanyRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


def build_registry(catch_all_id: str = CATCH_ALL_COMPANY_ID) -> CompanyRegistry:
    """Build the production registry from the catalog table."""
    registry = CompanyRegistry(company_records(), catch_all_id=catch_all_id)
    logger.info(
        "Company registry built",
        companies=len(registry),
        sub_companies=sum(1 for r in registry if r.is_sub_company),
    )
    return registry
