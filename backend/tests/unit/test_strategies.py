"""Unit tests for the prompt strategy table."""

from __future__ import annotations

import pytest

from app.modules.intake.exceptions import CatalogIntegrityError, StrategyNotFoundError
from app.modules.intake.registry import CompanyRegistry
from app.modules.intake.schemas import CompanyRecord
from app.modules.intake.strategies import (
    PLACEHOLDER_TEMPLATE,
    PromptContext,
    PromptStrategy,
    StrategyTable,
    build_strategy_table,
    load_template,
    template_strategy,
)


@pytest.fixture
def table(registry: CompanyRegistry) -> StrategyTable:
    return build_strategy_table(registry)


# ---------------------------------------------------------------------------
# Closed-world completeness
# ---------------------------------------------------------------------------


def test_every_company_has_a_strategy(registry: CompanyRegistry, table: StrategyTable) -> None:
    for record in registry.list_all():
        strategy = table.get_strategy(record.id)
        assert strategy.company_id == record.id
    assert len(table) == len(registry)


def test_unknown_company_raises(table: StrategyTable) -> None:
    with pytest.raises(StrategyNotFoundError):
        table.get_strategy("NO_SUCH_COMPANY")


def test_prompt_identifier_uses_version(table: StrategyTable) -> None:
    assert table.get_strategy("KATOUBENIYA_IKEBUKURO_MISAWA").identifier == (
        "KATOUBENIYA_IKEBUKURO_MISAWA_V20250526"
    )
    assert table.get_strategy("AIBUILD").identifier == "AIBUILD_V20250610"


def test_specialised_templates_assigned(table: StrategyTable) -> None:
    assert table.get_strategy("NOHARA_G").template == "nohara_g.txt"
    assert table.get_strategy("NOHARA_G_MISAWA").template == PLACEHOLDER_TEMPLATE
    assert table.get_strategy("UNKNOWN_OR_NOT_SET").template == "unresolved.txt"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def test_placeholder_prompt_contains_company_and_file(
    registry: CompanyRegistry, table: StrategyTable
) -> None:
    record = registry.get_by_id("GOODHOUSER")
    prompt = table.get_strategy("GOODHOUSER").render("order_0612.pdf", PromptContext(company=record))
    assert "グッドハウザー" in prompt
    assert "GOODHOUSER" in prompt
    assert "order_0612.pdf" in prompt
    assert "抽出" in prompt


def test_placeholder_prompt_names_parent(registry: CompanyRegistry, table: StrategyTable) -> None:
    record = registry.get_by_id("JUTEC_KEFI")
    context = PromptContext(company=record, parent=registry.get_parent(record))
    prompt = table.get_strategy("JUTEC_KEFI").render("kefi.pdf", context)
    assert "ジューテック_KEFI WORKS" in prompt
    assert "親会社: ジューテック" in prompt


def test_placeholder_renders_without_context(table: StrategyTable) -> None:
    prompt = table.get_strategy("SONOTA").render("a.pdf", None)
    assert "その他" in prompt
    assert "a.pdf" in prompt


def test_empty_file_name_still_renders(table: StrategyTable) -> None:
    prompt = table.get_strategy("NOHARA_G").render("", None)
    assert isinstance(prompt, str)
    assert "野原Ｇ住環境" in prompt


def test_nohara_prompt_format_instructions(table: StrategyTable) -> None:
    prompt = table.get_strategy("NOHARA_G").render("test.pdf", None)
    assert "発注書" in prompt
    assert "全角" in prompt
    assert "半角" in prompt


def test_file_name_with_template_characters_rendered_verbatim(table: StrategyTable) -> None:
    file_name = "作業指示書_$price_{id}_#123.pdf"
    prompt = table.get_strategy("AIBUILD").render(file_name, None)
    assert file_name in prompt


def test_only_file_name_differs_between_renders(table: StrategyTable) -> None:
    strategy = table.get_strategy("KATOUBENIYA_IKEBUKURO_MISAWA")
    first = strategy.render("file1.pdf", None)
    second = strategy.render("file2.pdf", None)
    assert first.replace("file1.pdf", "FILENAME") == second.replace("file2.pdf", "FILENAME")


def test_every_strategy_renders_non_empty(registry: CompanyRegistry, table: StrategyTable) -> None:
    for record in registry.list_all():
        prompt = table.get_strategy(record.id).render("x.pdf", PromptContext(company=record))
        assert prompt.strip()


# ---------------------------------------------------------------------------
# Initialisation failures
# ---------------------------------------------------------------------------


def test_strategy_for_unknown_company_rejected(fixture_registry: CompanyRegistry) -> None:
    stray = template_strategy(
        CompanyRecord(id="GHOST", display_name="幽霊"), PLACEHOLDER_TEMPLATE
    )
    with pytest.raises(CatalogIntegrityError, match="unknown company ids"):
        build_strategy_table(fixture_registry, specialised={"GHOST": stray})


def test_active_company_without_specialised_strategy_rejected() -> None:
    registry = CompanyRegistry(
        [
            CompanyRecord(id="SONOTA", display_name="その他"),
            CompanyRecord(id="READY", display_name="専用書式", status="active"),
            CompanyRecord(id="UNKNOWN_OR_NOT_SET", display_name="不明", status="unresolved"),
        ]
    )
    with pytest.raises(CatalogIntegrityError, match="READY"):
        build_strategy_table(registry, specialised={})


def test_table_requires_every_company(fixture_registry: CompanyRegistry) -> None:
    only_one = {
        "SONOTA": template_strategy(fixture_registry.get_by_id("SONOTA"), PLACEHOLDER_TEMPLATE)
    }
    with pytest.raises(CatalogIntegrityError, match="without a prompt strategy"):
        StrategyTable(fixture_registry, only_one)


def test_table_rejects_mismatched_key(fixture_registry: CompanyRegistry) -> None:
    strategies = {
        r.id: template_strategy(r, PLACEHOLDER_TEMPLATE) for r in fixture_registry
    }
    strategies["ORBIT"] = PromptStrategy(
        company_id="ACME", version="V1", template="inline", render=lambda f, c: f
    )
    with pytest.raises(CatalogIntegrityError, match="registered under ORBIT"):
        StrategyTable(fixture_registry, strategies)


def test_missing_template_file_raises() -> None:
    with pytest.raises(FileNotFoundError):
        load_template("does_not_exist.txt")
