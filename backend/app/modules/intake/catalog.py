"""
Partner company catalog and default detection rules.

One row per company. Sub-companies carry a ``parent`` id; the sentinel row
for "company could not be determined" is last and never user-selectable.
``markers`` are keywords that identify the company in a file name or in
the header text of its work-order PDFs; they expand into keyword rules.

Companies whose PDF format has a dedicated prompt are ``active``; all
others use the generic placeholder prompt until their format is specified.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import TypeAdapter

from app.modules.intake.schemas import (
    CATCH_ALL_COMPANY_ID,
    UNRESOLVED_COMPANY_ID,
    CompanyRecord,
    DetectionRule,
)

logger = structlog.get_logger()


# ── Top-level companies ──

COMPANIES: list[dict] = [
    {"id": CATCH_ALL_COMPANY_ID, "name": "その他"},
    {"id": "AIBUILD", "name": "アイビルド", "markers": ["アイビルド"]},
    {"id": "GOODHOUSER", "name": "グッドハウザー", "markers": ["グッドハウザー"]},
    {"id": "JAPAN_KENZAI", "name": "ジャパン建材", "markers": ["ジャパン建材"]},
    {"id": "JUTEC", "name": "ジューテック", "markers": ["ジューテック"]},
    {"id": "CHIYODA_UTE", "name": "チヨダウーテ", "markers": ["チヨダウーテ"]},
    {"id": "TOWA_KENKO", "name": "トーア建工", "markers": ["トーア建工"]},
    {"id": "YUTAKA_KENSETSU", "name": "ユタカ建設", "markers": ["ユタカ建設"]},
    {"id": "ITO_KENSETSU", "name": "伊藤建設", "markers": ["伊藤建設"]},
    {"id": "KOSHIN_KENSETSU", "name": "公進建設", "markers": ["公進建設"]},
    {"id": "RIKOU_KENSETSU", "name": "利幸建設", "markers": ["利幸建設"]},
    {"id": "KATOUBENIYA_ASAGIRI", "name": "加藤ベニヤ朝霧", "markers": ["加藤ベニヤ朝霧"]},
    {"id": "KATOUBENIYA_IKEBUKURO", "name": "加藤ベニヤ池袋", "markers": ["加藤ベニヤ池袋"]},
    {"id": "YOSHINO_SEKKO", "name": "吉野石膏", "markers": ["吉野石膏"]},
    {"id": "WAIMI", "name": "和以美", "markers": ["和以美"]},
    {"id": "JONAN_SATO", "name": "城南佐藤工務店", "markers": ["城南佐藤工務店"]},
    {"id": "TAISEI_MOKUZAI", "name": "大成木材", "markers": ["大成木材"]},
    {"id": "MIYAKEN_HOUSING", "name": "宮建ハウジング", "markers": ["宮建ハウジング"]},
    {"id": "TOKUSAN_ZAIMOKU", "name": "徳三材木", "markers": ["徳三材木"]},
    {"id": "TOKYO_SHINKENZAI", "name": "東京新建材社", "markers": ["東京新建材社"]},
    {"id": "SAKAE_KENSETSU", "name": "栄建設", "markers": ["栄建設"]},
    {"id": "YAMAFUJI", "name": "株式会社山藤", "markers": ["山藤"]},
    {"id": "WATANABE_BENIYA_CHIBA", "name": "渡辺ベニヤ千葉", "markers": ["渡辺ベニヤ千葉"]},
    {"id": "WATANABE_BENIYA_JONANSHIMA", "name": "渡辺ベニヤ城南島", "markers": ["渡辺ベニヤ城南島"]},
    {"id": "WATABE_KOUMUTEN", "name": "渡部工務店", "markers": ["渡部工務店"]},
    {"id": "ISHIDA_MOKUZAI", "name": "石田木材", "markers": ["石田木材"]},
    {"id": "BENCHU", "name": "紅中", "markers": ["紅中"]},
    {"id": "MINOHIRO", "name": "美濃弘商店", "markers": ["美濃弘商店"]},
    {
        "id": "NOHARA_G",
        "name": "野原G住環境",
        "status": "active",
        "version": "V20250526",
        "markers": ["野原G住環境"],
    },
]


# ── Sub-companies (client brands handled through a partner) ──

SUB_COMPANIES: list[dict] = [
    # ジャパン建材
    {"id": "JAPAN_KENZAI_AIDA", "parent": "JAPAN_KENZAI", "name": "アイダ設計"},
    {"id": "JAPAN_KENZAI_APPLEHOME", "parent": "JAPAN_KENZAI", "name": "アップルホーム"},
    {"id": "JAPAN_KENZAI_ECOHOUSE", "parent": "JAPAN_KENZAI", "name": "エコハウス"},
    # ジューテック
    {"id": "JUTEC_KEFI", "parent": "JUTEC", "name": "KEFI WORKS"},
    {"id": "JUTEC_FSTAGE", "parent": "JUTEC", "name": "エフステージ"},
    {"id": "JUTEC_CAREN", "parent": "JUTEC", "name": "カレンエステート"},
    {"id": "JUTEC_RENOVESIA", "parent": "JUTEC", "name": "リノベシア"},
    # 加藤ベニヤ朝霧
    {"id": "KATOUBENIYA_ASAGIRI_AIDA", "parent": "KATOUBENIYA_ASAGIRI", "name": "アイダ設計"},
    {"id": "KATOUBENIYA_ASAGIRI_ACURA", "parent": "KATOUBENIYA_ASAGIRI", "name": "アキュラホーム"},
    {"id": "KATOUBENIYA_ASAGIRI_TAMURA", "parent": "KATOUBENIYA_ASAGIRI", "name": "タムラ建設"},
    {"id": "KATOUBENIYA_ASAGIRI_DAIWA", "parent": "KATOUBENIYA_ASAGIRI", "name": "大和ハウス"},
    {"id": "KATOUBENIYA_ASAGIRI_ASAHI", "parent": "KATOUBENIYA_ASAGIRI", "name": "旭ハウジング"},
    # 加藤ベニヤ池袋
    {
        "id": "KATOUBENIYA_IKEBUKURO_MISAWA",
        "parent": "KATOUBENIYA_IKEBUKURO",
        "name": "ミサワホーム",
        "status": "active",
        "version": "V20250526",
    },
    {"id": "KATOUBENIYA_IKEBUKURO_HAWKONE", "parent": "KATOUBENIYA_IKEBUKURO", "name": "ホークワン"},
    # 大成木材
    {"id": "TAISEI_MOKUZAI_SEKISUI", "parent": "TAISEI_MOKUZAI", "name": "積水ハウス"},
    # 渡辺ベニヤ城南島
    {"id": "WATANABE_JONANSHIMA_TOYOTA", "parent": "WATANABE_BENIYA_JONANSHIMA", "name": "トヨタホーム"},
    {"id": "WATANABE_JONANSHIMA_SUMIRIN", "parent": "WATANABE_BENIYA_JONANSHIMA", "name": "住友林業"},
    # 野原G住環境
    {"id": "NOHARA_G_TAMAC", "parent": "NOHARA_G", "name": "タマック"},
    {"id": "NOHARA_G_MISAWA", "parent": "NOHARA_G", "name": "ミサワホーム"},
    {"id": "NOHARA_G_MELDIA", "parent": "NOHARA_G", "name": "メルディア"},
    {"id": "NOHARA_G_YAMATO", "parent": "NOHARA_G", "name": "ヤマト住建"},
    {"id": "NOHARA_G_ISHO", "parent": "NOHARA_G", "name": "井笑ホーム"},
    {"id": "NOHARA_G_UCHIUMI", "parent": "NOHARA_G", "name": "内海工務店"},
    {"id": "NOHARA_G_SAKAE", "parent": "NOHARA_G", "name": "栄工務店"},
    {"id": "NOHARA_G_YOSHINO", "parent": "NOHARA_G", "name": "株式会社ヨシノ", "markers": ["ヨシノ"]},
    {"id": "NOHARA_G_BUSHU", "parent": "NOHARA_G", "name": "武州建設"},
    {"id": "NOHARA_G_MORO", "parent": "NOHARA_G", "name": "茂呂建設"},
]

UNRESOLVED_COMPANY: dict = {
    "id": UNRESOLVED_COMPANY_ID,
    "name": "会社を特定できませんでした",
    "status": "unresolved",
}


# ── Extra detection rules (beyond the per-company markers) ──

EXTRA_RULES: list[dict] = [
    # 「野原グループ株式会社」 on the letterhead is conclusive for 野原G住環境
    {"id": "nohara-g-corporate", "company_id": "NOHARA_G", "rule_value": "野原グループ株式会社", "priority": 150},
    {"id": "nohara-g-short", "company_id": "NOHARA_G", "rule_value": "野原G", "priority": 90},
    {"id": "nohara-g-group", "company_id": "NOHARA_G", "rule_value": "野原グループ", "priority": 80},
    {
        "id": "nohara-g-filename",
        "company_id": "NOHARA_G",
        "rule_type": "pattern",
        "rule_value": r"nohara[\s_-]?g",
        "priority": 60,
        "source": "file_name",
    },
    {
        "id": "nohara-g-misawa-filename",
        "company_id": "NOHARA_G_MISAWA",
        "rule_type": "pattern",
        "rule_value": r"nohara[\s_-]?g[\s_-]?misawa",
        "priority": 70,
        "source": "file_name",
    },
    {"id": "katoubeniya-ikebukuro-misawa-en", "company_id": "KATOUBENIYA_IKEBUKURO_MISAWA", "rule_value": "MISAWA", "priority": 50},
]


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _sub_company_name(row: dict, parents: dict[str, dict]) -> str:
    return f"{parents[row['parent']]['name']}_{row['name']}"


def company_records() -> list[CompanyRecord]:
    """Materialise the catalog rows as records, in selection-list order."""
    parents = {row["id"]: row for row in COMPANIES}
    records: list[CompanyRecord] = []

    for row in COMPANIES:
        records.append(
            CompanyRecord(
                id=row["id"],
                display_name=row["name"],
                status=row.get("status", "placeholder"),
                prompt_version=row.get("version", "V20250610"),
            )
        )

    for row in SUB_COMPANIES:
        records.append(
            CompanyRecord(
                id=row["id"],
                display_name=_sub_company_name(row, parents),
                parent_id=row["parent"],
                status=row.get("status", "placeholder"),
                prompt_version=row.get("version", "V20250610"),
            )
        )

    records.append(
        CompanyRecord(
            id=UNRESOLVED_COMPANY["id"],
            display_name=UNRESOLVED_COMPANY["name"],
            status=UNRESOLVED_COMPANY["status"],
        )
    )
    return records


def default_detection_rules() -> list[DetectionRule]:
    """Keyword rules from the catalog markers plus the extra rules."""
    rules: list[DetectionRule] = []

    for row in COMPANIES:
        for idx, marker in enumerate(row.get("markers", [])):
            rules.append(
                DetectionRule(id=f"{row['id'].lower()}-{idx}", company_id=row["id"], rule_value=marker)
            )

    # Sub-companies are recognised by their own brand name unless overridden
    for row in SUB_COMPANIES:
        for idx, marker in enumerate(row.get("markers", [row["name"]])):
            rules.append(
                DetectionRule(id=f"{row['id'].lower()}-{idx}", company_id=row["id"], rule_value=marker)
            )

    rules.extend(DetectionRule.model_validate(row) for row in EXTRA_RULES)
    return rules


_RULES_ADAPTER = TypeAdapter(list[DetectionRule])


def load_detection_rules(path: str | Path) -> list[DetectionRule]:
    """Load a JSON list of detection rules that replaces the defaults."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detection rules file not found: {path}")
    rules = _RULES_ADAPTER.validate_python(json.loads(path.read_text(encoding="utf-8")))
    logger.info("Loaded detection rules", path=str(path), count=len(rules))
    return rules
