"""Prompt Strategy Table — one prompt-construction strategy per company.

Strategies are pure functions ``(file_name, context) -> prompt``. Each is
backed by a template in ``prompts/``, loaded once when the table is built:

  - placeholder.txt  — generic work-order prompt for companies whose PDF
                       format has not been specialised yet
  - unresolved.txt   — prompt for documents whose issuer is unknown
  - <company>.txt    — specialised prompts for ``active`` companies

The table is closed-world: every registry record has exactly one strategy
and every strategy belongs to a registry record.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from string import Template
from types import MappingProxyType
from typing import Optional

import structlog

from app.modules.intake.exceptions import CatalogIntegrityError, StrategyNotFoundError
from app.modules.intake.registry import CompanyRegistry
from app.modules.intake.schemas import CompanyRecord

logger = structlog.get_logger()

# Directory where prompt templates live
_PROMPTS_DIR = Path(__file__).parent / "prompts"

PLACEHOLDER_TEMPLATE = "placeholder.txt"
UNRESOLVED_TEMPLATE = "unresolved.txt"

# Company id -> template file for formats with dedicated extraction rules
SPECIALISED_TEMPLATES: dict[str, str] = {
    "NOHARA_G": "nohara_g.txt",
    "KATOUBENIYA_IKEBUKURO_MISAWA": "katoubeniya_ikebukuro_misawa.txt",
}


@dataclass(frozen=True)
class PromptContext:
    """Optional information a strategy may weave into its prompt."""

    company: CompanyRecord
    parent: CompanyRecord | None = None
    text_sample: str | None = None


PromptFunction = Callable[[str, Optional[PromptContext]], str]


@dataclass(frozen=True)
class PromptStrategy:
    company_id: str
    version: str
    template: str
    render: PromptFunction

    @property
    def identifier(self) -> str:
        return f"{self.company_id}_{self.version}"


def load_template(filename: str) -> Template:
    """Load a prompt template from the prompts/ directory."""
    path = _PROMPTS_DIR / filename
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    return Template(path.read_text(encoding="utf-8").strip())


def _parent_line(context: PromptContext | None) -> str:
    if context is not None and context.parent is not None:
        return f"親会社: {context.parent.display_name}"
    return ""


def template_strategy(record: CompanyRecord, template_name: str) -> PromptStrategy:
    """Bind a template to a company; the template is read once, here."""
    template = load_template(template_name)

    def render(file_name: str, context: PromptContext | None = None) -> str:
        return template.substitute(
            company_id=record.id,
            company_name=record.display_name,
            parent_line=_parent_line(context),
            file_name=file_name,
        )

    return PromptStrategy(
        company_id=record.id,
        version=record.prompt_version,
        template=template_name,
        render=render,
    )


class StrategyTable:
    """Closed-world mapping of company id to prompt strategy."""

    def __init__(
        self,
        registry: CompanyRegistry,
        strategies: Mapping[str, PromptStrategy],
    ) -> None:
        for company_id, strategy in strategies.items():
            if company_id not in registry:
                raise CatalogIntegrityError(
                    f"Strategy registered for unknown company id: {company_id}"
                )
            if strategy.company_id != company_id:
                raise CatalogIntegrityError(
                    f"Strategy for {strategy.company_id} registered under {company_id}"
                )

        missing = [r.id for r in registry if r.id not in strategies]
        if missing:
            raise CatalogIntegrityError(
                f"Companies without a prompt strategy: {', '.join(missing)}"
            )

        self._strategies = MappingProxyType(dict(strategies))

    def get_strategy(self, company_id: str) -> PromptStrategy:
        strategy = self._strategies.get(company_id)
        if strategy is None:
            raise StrategyNotFoundError(company_id)
        return strategy

    def __contains__(self, company_id: object) -> bool:
        return company_id in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)


def build_strategy_table(
    registry: CompanyRegistry,
    specialised: Mapping[str, PromptStrategy] | None = None,
) -> StrategyTable:
    """Assign a strategy to every registry record.

    ``active`` companies must come with a specialised strategy, either via
    ``specialised`` or ``SPECIALISED_TEMPLATES``; ``placeholder`` companies
    get the generic prompt and the sentinel gets the unknown-issuer prompt.
    """
    if specialised is None:
        specialised = {
            company_id: template_strategy(registry.get_by_id(company_id), template_name)
            for company_id, template_name in SPECIALISED_TEMPLATES.items()
            if company_id in registry
        }

    unknown = sorted(set(specialised) - {r.id for r in registry})
    if unknown:
        raise CatalogIntegrityError(
            f"Specialised strategies for unknown company ids: {', '.join(unknown)}"
        )

    strategies: dict[str, PromptStrategy] = {}
    for record in registry:
        if record.id in specialised:
            strategies[record.id] = specialised[record.id]
        elif record.status == "active":
            raise CatalogIntegrityError(
                f"Active company {record.id} has no specialised prompt strategy"
            )
        elif record.status == "unresolved":
            strategies[record.id] = template_strategy(record, UNRESOLVED_TEMPLATE)
        else:
            strategies[record.id] = template_strategy(record, PLACEHOLDER_TEMPLATE)

    table = StrategyTable(registry, strategies)
    logger.info(
        "Prompt strategy table built",
        strategies=len(table),
        specialised=sorted(specialised),
    )
    return table
