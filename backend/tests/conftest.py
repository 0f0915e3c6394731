"""Shared test fixtures for the work-order intake test suite."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.main import app
from app.modules.intake.classifier import CompanyClassifier
from app.modules.intake.dispatcher import IntakeDispatcher, build_dispatcher
from app.modules.intake.registry import CompanyRegistry, build_registry
from app.modules.intake.schemas import CompanyRecord, DetectionRule
from app.modules.intake.strategies import build_strategy_table


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client that talks directly to the FastAPI ASGI app."""
    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Production catalog
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> CompanyRegistry:
    return build_registry()


@pytest.fixture
def dispatcher() -> IntakeDispatcher:
    return build_dispatcher(Settings(intake_detection_rules_path=""))


# ---------------------------------------------------------------------------
# Synthetic catalog — one parent with two sibling sub-companies
# ---------------------------------------------------------------------------

FIXTURE_RECORDS = [
    CompanyRecord(id="SONOTA", display_name="その他"),
    CompanyRecord(id="ACME", display_name="アクメ建材"),
    CompanyRecord(id="ACME_BETA", display_name="アクメ建材_ベータ", parent_id="ACME"),
    CompanyRecord(id="ACME_ALPHA", display_name="アクメ建材_アルファ", parent_id="ACME"),
    CompanyRecord(id="ORBIT", display_name="オービット工務店"),
    CompanyRecord(id="UNKNOWN_OR_NOT_SET", display_name="会社を特定できませんでした", status="unresolved"),
]

FIXTURE_RULES = [
    DetectionRule(id="acme", company_id="ACME", rule_value="アクメ建材"),
    DetectionRule(id="acme-beta", company_id="ACME_BETA", rule_value="共通現場"),
    DetectionRule(id="acme-alpha", company_id="ACME_ALPHA", rule_value="共通現場"),
    DetectionRule(id="orbit", company_id="ORBIT", rule_value="オービット"),
    DetectionRule(
        id="orbit-file",
        company_id="ORBIT",
        rule_type="pattern",
        rule_value=r"^orbit[_-]",
        priority=60,
        source="file_name",
    ),
]


@pytest.fixture
def fixture_registry() -> CompanyRegistry:
    return CompanyRegistry(FIXTURE_RECORDS)


@pytest.fixture
def fixture_rules() -> list[DetectionRule]:
    return list(FIXTURE_RULES)


@pytest.fixture
def fixture_classifier(
    fixture_registry: CompanyRegistry,
    fixture_rules: list[DetectionRule],
) -> CompanyClassifier:
    return CompanyClassifier(fixture_registry, fixture_rules)


@pytest.fixture
def fixture_dispatcher(
    fixture_registry: CompanyRegistry,
    fixture_classifier: CompanyClassifier,
) -> IntakeDispatcher:
    return IntakeDispatcher(
        fixture_registry,
        build_strategy_table(fixture_registry, specialised={}),
        fixture_classifier,
    )
