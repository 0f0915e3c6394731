"""Intake Dispatcher — pipeline controller, no I/O.

  DocumentDescriptor -> Classify -> Strategy lookup -> Render -> ResolutionResult

The dispatcher and everything it holds (registry, strategy table,
classifier) is built once by ``build_dispatcher`` and shared read-only
across requests.
"""

from __future__ import annotations

import structlog

from app.core.config import Settings, settings as default_settings
from app.modules.intake.catalog import default_detection_rules, load_detection_rules
from app.modules.intake.classifier import CompanyClassifier
from app.modules.intake.exceptions import (
    CompanyNotFoundError,
    DispatchConsistencyError,
    StrategyNotFoundError,
)
from app.modules.intake.registry import CompanyRegistry, build_registry
from app.modules.intake.schemas import DocumentDescriptor, ResolutionResult
from app.modules.intake.strategies import PromptContext, StrategyTable, build_strategy_table

logger = structlog.get_logger()


class IntakeDispatcher:
    """Resolves a document to a company and renders its extraction prompt."""

    def __init__(
        self,
        registry: CompanyRegistry,
        strategies: StrategyTable,
        classifier: CompanyClassifier,
    ) -> None:
        self.registry = registry
        self.strategies = strategies
        self.classifier = classifier

    def resolve_and_render(self, descriptor: DocumentDescriptor) -> ResolutionResult:
        resolution = self.classifier.classify(descriptor)

        try:
            company = self.registry.get_by_id(resolution.company_id)
            strategy = self.strategies.get_strategy(resolution.company_id)
        except (CompanyNotFoundError, StrategyNotFoundError) as exc:
            logger.error(
                "Resolved company cannot be dispatched",
                company_id=resolution.company_id,
                file=descriptor.file_name,
                error=str(exc),
            )
            raise DispatchConsistencyError(resolution.company_id, descriptor.file_name) from exc

        context = PromptContext(
            company=company,
            parent=self.registry.get_parent(company),
            text_sample=descriptor.raw_text_sample,
        )
        prompt_text = strategy.render(descriptor.file_name, context)

        logger.info(
            "Company resolved",
            file=descriptor.file_name,
            company_id=company.id,
            method=resolution.method,
            confidence=resolution.confidence,
            fallback=resolution.is_fallback,
            prompt=strategy.identifier,
        )

        return ResolutionResult(
            matched_company_id=company.id,
            company_name=company.display_name,
            is_fallback=resolution.is_fallback,
            prompt_text=prompt_text,
            prompt_identifier=strategy.identifier,
            detection_method=resolution.method,
            confidence=resolution.confidence,
            ambiguous=resolution.ambiguous,
            candidates=resolution.candidates,
            matched_rules=resolution.matched_rules,
        )


def build_dispatcher(settings: Settings | None = None) -> IntakeDispatcher:
    """Build the production pipeline from the catalog and settings."""
    settings = settings or default_settings

    registry = build_registry(catch_all_id=settings.intake_catch_all_company_id)
    strategies = build_strategy_table(registry)

    if settings.intake_detection_rules_path:
        rules = load_detection_rules(settings.intake_detection_rules_path)
    else:
        rules = default_detection_rules()

    classifier = CompanyClassifier(
        registry,
        rules,
        detection_threshold=settings.intake_detection_confidence_threshold,
        text_sample_max_chars=settings.intake_text_sample_max_chars,
    )
    logger.info("Intake dispatcher ready", detection_rules=len(rules))
    return IntakeDispatcher(registry, strategies, classifier)
