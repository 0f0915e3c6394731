"""Intake error taxonomy.

Lookup misses and catalog violations are raised; ambiguous matches and
malformed descriptors are not errors and never raise.
"""

from __future__ import annotations


class IntakeError(Exception):
    """Base class for all intake pipeline errors."""


class CompanyNotFoundError(IntakeError, KeyError):
    """Registry lookup for an unknown company id."""

    def __init__(self, company_id: str) -> None:
        super().__init__(company_id)
        self.company_id = company_id

    def __str__(self) -> str:
        return f"Unknown company id: {self.company_id!r}"


class StrategyNotFoundError(IntakeError, KeyError):
    """Strategy table lookup for a company id with no prompt strategy."""

    def __init__(self, company_id: str) -> None:
        super().__init__(company_id)
        self.company_id = company_id

    def __str__(self) -> str:
        return f"No prompt strategy registered for company id: {self.company_id!r}"


class CatalogIntegrityError(IntakeError):
    """The company catalog, strategy table or rule set violates an invariant.

    Raised while the pipeline is being built; the process must not start
    serving requests with a broken catalog.
    """


class DispatchConsistencyError(IntakeError):
    """The classifier produced a company id the pipeline cannot render."""

    def __init__(self, company_id: str, file_name: str = "") -> None:
        super().__init__(
            f"Resolved company {company_id!r} has no usable prompt strategy"
            f" (file: {file_name!r})"
        )
        self.company_id = company_id
        self.file_name = file_name
