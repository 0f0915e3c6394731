"""Intake data contracts — Pydantic models shared by the pipeline stages.

  Catalog    -> Registry:    CompanyRecord, DetectionRule
  Caller     -> Dispatcher:  DocumentDescriptor
  Classifier -> Dispatcher:  Resolution
  Dispatcher -> Caller:      ResolutionResult
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CompanyStatus = Literal["active", "placeholder", "unresolved"]
RuleType = Literal["keyword", "pattern", "address", "logo_text"]
RuleSource = Literal["file_name", "text", "any"]
DetectionMethod = Literal[
    "manual", "model_detection", "rule_based", "catch_all", "unresolved"
]

UNRESOLVED_COMPANY_ID = "UNKNOWN_OR_NOT_SET"
CATCH_ALL_COMPANY_ID = "SONOTA"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class CompanyRecord(BaseModel):
    """A partner company or one of its sub-companies."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., pattern=r"^[A-Z][A-Z0-9_]*$", description="Stable company identifier")
    display_name: str = Field(..., min_length=1, description="Human-readable name")
    parent_id: str | None = Field(None, description="Parent company id for sub-companies")
    status: CompanyStatus = "placeholder"
    prompt_version: str = Field("V20250610", description="Version tag of the prompt strategy")

    @property
    def is_sub_company(self) -> bool:
        return self.parent_id is not None


class DetectionRule(BaseModel):
    """A marker that identifies a company in a file name or header text."""

    model_config = ConfigDict(frozen=True)

    id: str
    company_id: str
    rule_type: RuleType = "keyword"
    rule_value: str = Field(..., min_length=1)
    priority: int = Field(100, ge=0, description="Score weight added when the rule fires")
    source: RuleSource = "any"


# ---------------------------------------------------------------------------
# Pipeline input / output
# ---------------------------------------------------------------------------


class DocumentDescriptor(BaseModel):
    """Evidence about an uploaded work-order PDF."""

    model_config = ConfigDict(frozen=True)

    file_name: str = ""
    raw_text_sample: str | None = Field(
        None, description="Header or body text extracted upstream from the PDF"
    )
    explicit_company_hint: str | None = Field(
        None, description="Company selected by the user; bypasses heuristics when valid"
    )
    detected_company_id: str | None = Field(
        None, description="Company proposed by the upstream OCR detector"
    )
    detection_confidence: float | None = Field(None, ge=0.0, le=1.0)

    @property
    def is_blank(self) -> bool:
        return not self.file_name.strip() and not (self.raw_text_sample or "").strip()


class Resolution(BaseModel):
    """Classifier decision for a single descriptor."""

    model_config = ConfigDict(frozen=True)

    company_id: str
    method: DetectionMethod
    is_fallback: bool = False
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    ambiguous: bool = False
    candidates: tuple[str, ...] = ()
    matched_rules: tuple[str, ...] = ()


class ResolutionResult(BaseModel):
    """Rendered prompt plus the resolution metadata recorded for audit."""

    model_config = ConfigDict(frozen=True)

    matched_company_id: str
    company_name: str
    is_fallback: bool
    prompt_text: str
    prompt_identifier: str = Field(..., description="<company_id>_<prompt_version>")
    detection_method: DetectionMethod
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    ambiguous: bool = False
    candidates: tuple[str, ...] = ()
    matched_rules: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# API responses
# ---------------------------------------------------------------------------


class CompanyDetail(CompanyRecord):
    children: list[str] = []
