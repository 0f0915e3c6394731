"""Company Classifier — resolves a document descriptor to one company id.

Resolution order (first match wins):
  1. Explicit company hint from the user, if it names a real company.
  2. Company proposed by the upstream OCR detector, if confident enough.
  3. Blank descriptor (no file name, no text)  -> unresolved sentinel.
  4. Marker rules over the file name and header text, unless a weaker
     detector signal is at least as confident as the best rule match.
  5. Detector signal below the threshold, if no rule fired.
  6. Nothing matched                            -> catch-all company.

Rule priorities are summed per company. A matched sub-company replaces its
own parent and inherits the parent's score; unrelated companies stay in
contention. The highest score wins and only equal scores go to
``prefer_candidate``.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

import structlog

from app.modules.intake.exceptions import CatalogIntegrityError
from app.modules.intake.registry import CompanyRegistry
from app.modules.intake.schemas import (
    DetectionRule,
    DocumentDescriptor,
    Resolution,
)

logger = structlog.get_logger()

# Score that maps to full confidence; rule-based confidence never exceeds the cap
_SCORE_SCALE = 200
_MAX_RULE_CONFIDENCE = 0.95

_TEXT_ONLY_RULE_TYPES = {"address", "logo_text"}


def prefer_candidate(candidate_ids: Iterable[str]) -> str:
    """Tie-break policy for ambiguous matches: lexicographically smallest id."""
    return min(candidate_ids)


def normalize(text: str) -> str:
    """NFKC + casefold so full-width / half-width variants compare equal."""
    return unicodedata.normalize("NFKC", text).casefold()


@dataclass(frozen=True)
class _CompiledRule:
    rule: DetectionRule
    matcher: Callable[[str], bool]

    def fires(self, file_name: str, text: str) -> bool:
        source = self.rule.source
        if self.rule.rule_type in _TEXT_ONLY_RULE_TYPES:
            source = "text"
        if source in ("file_name", "any") and file_name and self.matcher(file_name):
            return True
        if source in ("text", "any") and text and self.matcher(text):
            return True
        return False


def _compile(rule: DetectionRule) -> _CompiledRule:
    if rule.rule_type == "pattern":
        try:
            regex = re.compile(rule.rule_value, re.IGNORECASE)
        except re.error as exc:
            raise CatalogIntegrityError(
                f"Detection rule {rule.id} has an invalid pattern: {exc}"
            ) from exc
        return _CompiledRule(rule=rule, matcher=lambda value: regex.search(value) is not None)

    needle = normalize(rule.rule_value)
    return _CompiledRule(rule=rule, matcher=lambda value: needle in value)


class CompanyClassifier:
    """Rule-based company resolution over an immutable registry."""

    def __init__(
        self,
        registry: CompanyRegistry,
        rules: Sequence[DetectionRule],
        *,
        detection_threshold: float = 0.85,
        text_sample_max_chars: int = 4000,
        tie_break: Callable[[Iterable[str]], str] = prefer_candidate,
    ) -> None:
        seen: set[str] = set()
        for rule in rules:
            if rule.id in seen:
                raise CatalogIntegrityError(f"Duplicate detection rule id: {rule.id}")
            seen.add(rule.id)
            record = registry.find(rule.company_id)
            if record is None:
                raise CatalogIntegrityError(
                    f"Detection rule {rule.id} references unknown company {rule.company_id}"
                )
            if record.status == "unresolved":
                raise CatalogIntegrityError(
                    f"Detection rule {rule.id} targets the unresolved sentinel"
                )

        self.registry = registry
        self.detection_threshold = detection_threshold
        self.text_sample_max_chars = text_sample_max_chars
        self._tie_break = tie_break
        self._rules = tuple(_compile(rule) for rule in rules)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, descriptor: DocumentDescriptor) -> Resolution:
        hinted = self._from_hint(descriptor)
        if hinted is not None:
            return hinted

        detected = self._from_detection(descriptor)
        if detected is not None and detected.confidence >= self.detection_threshold:
            return detected

        if descriptor.is_blank:
            logger.info("Descriptor has no evidence, company unresolved")
            return Resolution(
                company_id=self.registry.unresolved.id,
                method="unresolved",
                is_fallback=True,
            )

        matched = self._from_rules(descriptor)
        if detected is not None and (matched is None or detected.confidence >= matched.confidence):
            logger.info(
                "Using low-confidence detection",
                detected=detected.company_id,
                confidence=detected.confidence,
                rule_match=matched.company_id if matched else None,
                file=descriptor.file_name,
            )
            return detected
        if matched is not None:
            return matched

        return Resolution(
            company_id=self.registry.catch_all.id,
            method="catch_all",
        )

    # ------------------------------------------------------------------
    # Resolution steps
    # ------------------------------------------------------------------

    def _usable(self, company_id: str | None) -> bool:
        record = self.registry.find((company_id or "").strip())
        return record is not None and record.status != "unresolved"

    def _from_hint(self, descriptor: DocumentDescriptor) -> Resolution | None:
        hint = (descriptor.explicit_company_hint or "").strip()
        if not hint:
            return None
        if not self._usable(hint):
            logger.warning(
                "Ignoring unusable company hint",
                hint=hint,
                file=descriptor.file_name,
            )
            return None
        return Resolution(company_id=hint, method="manual", confidence=1.0)

    def _from_detection(self, descriptor: DocumentDescriptor) -> Resolution | None:
        detected = (descriptor.detected_company_id or "").strip()
        confidence = descriptor.detection_confidence or 0.0
        if not detected or confidence <= 0.0:
            return None
        if not self._usable(detected):
            logger.warning(
                "Ignoring unknown detected company",
                detected=detected,
                file=descriptor.file_name,
            )
            return None
        if confidence < self.detection_threshold:
            logger.info(
                "Detected company below confidence threshold",
                detected=detected,
                confidence=confidence,
                threshold=self.detection_threshold,
            )
        return Resolution(
            company_id=detected,
            method="model_detection",
            confidence=confidence,
        )

    def _from_rules(self, descriptor: DocumentDescriptor) -> Resolution | None:
        file_name = normalize(descriptor.file_name)
        text = normalize((descriptor.raw_text_sample or "")[: self.text_sample_max_chars])

        scores: dict[str, int] = {}
        fired: dict[str, list[str]] = {}
        for compiled in self._rules:
            if compiled.fires(file_name, text):
                company_id = compiled.rule.company_id
                scores[company_id] = scores.get(company_id, 0) + compiled.rule.priority
                fired.setdefault(company_id, []).append(compiled.rule.id)

        if not scores:
            return None

        candidates = self._narrow(set(scores))
        totals = {cid: self._total(cid, scores) for cid in candidates}
        best = max(totals.values())
        leaders = {cid for cid, score in totals.items() if score == best}
        chosen = self._tie_break(leaders)
        ambiguous = len(leaders) > 1
        if ambiguous:
            logger.info(
                "Ambiguous company match resolved by tie-break",
                chosen=chosen,
                tied=sorted(leaders),
                score=best,
                file=descriptor.file_name,
            )

        parent_id = self.registry.get_by_id(chosen).parent_id
        return Resolution(
            company_id=chosen,
            method="rule_based",
            confidence=min(best / _SCORE_SCALE, _MAX_RULE_CONFIDENCE),
            ambiguous=ambiguous,
            candidates=tuple(sorted(candidates)),
            matched_rules=tuple(fired[chosen] + fired.get(parent_id or "", [])),
        )

    def _narrow(self, matched: set[str]) -> set[str]:
        """Drop parents whose own sub-company also matched."""
        superseded = {self.registry.get_by_id(cid).parent_id for cid in matched}
        return {cid for cid in matched if cid not in superseded}

    def _total(self, company_id: str, scores: dict[str, int]) -> int:
        """A sub-company's score includes its matched parent's score."""
        parent_id = self.registry.get_by_id(company_id).parent_id
        if parent_id is None:
            return scores[company_id]
        return scores[company_id] + scores.get(parent_id, 0)
