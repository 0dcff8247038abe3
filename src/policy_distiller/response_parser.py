"""Tolerant decoding of raw LLM completions into typed records.

Models rarely return clean JSON: arrays and objects arrive wrapped in
prose or markdown code fences, fields go missing, enums drift. The
functions here locate the JSON fragment, validate every element, apply
defaults and length bounds, and never raise: a malformed completion
yields ``[]`` or ``None`` plus a logged warning.
"""

from __future__ import annotations

import json
import logging
import math
import re
import uuid
from typing import Any, Optional

from .models import (
    SCORECARD_WEIGHTS,
    ContactType,
    KeyTerm,
    LinkPurpose,
    PrivacyContact,
    PrivacyLink,
    PrivacyProcedure,
    PrivacyRight,
    PrivacyRightsInfo,
    PrivacyRisk,
    PrivacyScorecard,
    RiskLevel,
    ScorecardCategory,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

MAX_ARRAY_ITEMS = 100
MAX_FIELD_LENGTH = 10_000

MAX_URL_LENGTH = 2000
MAX_LABEL_LENGTH = 200
MAX_VALUE_LENGTH = 500
MAX_STEP_LENGTH = 1000
MAX_TIMEFRAME_LENGTH = 200
MAX_ITEMS_PER_ARRAY = 20
MAX_JSON_CANDIDATES = 1000

DEFAULT_CATEGORY_SCORE = 5

_SEVERITY_SYNONYMS: dict[str, RiskLevel] = {
    "low": RiskLevel.LOW,
    "medium": RiskLevel.MEDIUM,
    "moderate": RiskLevel.MEDIUM,
    "high": RiskLevel.HIGH,
    "critical": RiskLevel.CRITICAL,
    "severe": RiskLevel.CRITICAL,
}

#: Lower bound of each letter grade, best first.
_GRADE_THRESHOLDS: list[tuple[int, str]] = [
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
]

_JSON_FENCE_RE = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE_RE = re.compile(r"```\s*")
_LEAD_IN_RE = re.compile(r"^(Here is|Here's|I've analyzed).+?:", re.IGNORECASE)
_HEADING_RE = re.compile(r"^(Summary|Analysis|Results?):\s*", re.IGNORECASE)
_BULLET_RE = re.compile(r"^[-•*]\s+(.+)$", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^\d+\.\s+(.+)$", re.MULTILINE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

_decoder = json.JSONDecoder()
_CLOSERS = {"[": "]", "{": "}"}
# Characters that may follow an opener (after whitespace) in a decodable value
_CANDIDATE_NEXT = {
    "[": frozenset('[]{"-0123456789tfnNI'),
    "{": frozenset('"}'),
}
_JSON_WHITESPACE_RE = re.compile(r"[ \t\n\r]*")
_OPENER_RUN_RE = {"[": re.compile(r"[\[ \t\n\r]+"), "{": re.compile(r"[{ \t\n\r]+")}


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around a payload."""
    return _FENCE_RE.sub("", _JSON_FENCE_RE.sub("", text)).strip()


def _extract_json(text: str, kind: type, opener: str) -> Any:
    """Find the first JSON value of type ``kind`` embedded in ``text``.

    The whole text is tried first. Failing that, a value is decoded
    starting at each ``opener`` character in turn, so leading prose,
    trailing notes and stray brackets before the payload are skipped.
    Openers that cannot begin a value, or that have no closer after them,
    are passed over without decoding, and at most
    :data:`MAX_JSON_CANDIDATES` decodes are attempted.
    """
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        pass
    else:
        if isinstance(value, kind):
            return value

    candidate_next = _CANDIDATE_NEXT[opener]
    last_closer = text.rfind(_CLOSERS[opener])
    attempts = 0
    start = text.find(opener)
    while 0 <= start < last_closer and attempts < MAX_JSON_CANDIDATES:
        resume = start + 1
        after = _JSON_WHITESPACE_RE.match(text, start + 1).end()
        if after < len(text) and text[after] in candidate_next:
            attempts += 1
            try:
                value, _ = _decoder.raw_decode(text, start)
            except RecursionError:
                # Nested deeper than the decoder follows: skip the whole run
                resume = _OPENER_RUN_RE[opener].match(text, start).end()
            except ValueError:
                pass
            else:
                if isinstance(value, kind):
                    return value
        start = text.find(opener, resume)
    return None


def extract_json_array(text: str) -> Optional[list]:
    return _extract_json(text, list, "[")


def extract_json_object(text: str) -> Optional[dict]:
    return _extract_json(text, dict, "{")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _clean(value: Any, limit: int = MAX_FIELD_LENGTH) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()[:limit]


def _clean_strings(values: Any, item_limit: int, max_items: int = MAX_ITEMS_PER_ARRAY) -> list[str]:
    """Trimmed, non-blank string members of ``values`` (non-lists yield [])."""
    if not isinstance(values, list):
        return []
    return [v.strip()[:item_limit] for v in values[:max_items] if isinstance(v, str) and v.strip()]


def _coerce_enum(value: Any, enum_type: type, default):
    if isinstance(value, str):
        try:
            return enum_type(value.strip().lower())
        except ValueError:
            pass
    return default


def normalize_severity(severity: Any) -> RiskLevel:
    """Map a model-supplied severity (case-insensitive, with synonyms) to a
    RiskLevel. Anything unrecognized is ``medium``."""
    if not isinstance(severity, str):
        return RiskLevel.MEDIUM
    return _SEVERITY_SYNONYMS.get(severity.strip().lower(), RiskLevel.MEDIUM)


# ---------------------------------------------------------------------------
# Prose
# ---------------------------------------------------------------------------


def clean_response(text: str) -> str:
    """Strip boilerplate lead-ins ("Here is...:", "Summary:") from prose."""
    if not text or not isinstance(text, str):
        return ""
    text = _LEAD_IN_RE.sub("", text.strip(), count=1).lstrip()
    return _HEADING_RE.sub("", text, count=1).strip()


def extract_key_points(text: str) -> list[str]:
    """Key points of a summary.

    Markdown bullets win, then numbered lines, then the first five
    sentences longer than 20 characters.
    """
    if not text or not isinstance(text, str):
        return []

    bullets = [m.strip() for m in _BULLET_RE.findall(text) if m.strip()]
    if bullets:
        return bullets

    numbered = [m.strip() for m in _NUMBERED_RE.findall(text) if m.strip()]
    if numbered:
        return numbered

    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(text)]
    return [s for s in sentences if len(s) > 20][:5]


# ---------------------------------------------------------------------------
# Risks and key terms
# ---------------------------------------------------------------------------


def parse_risks(text: str) -> list[PrivacyRisk]:
    """Parse the privacy-risks completion.

    Elements without a title, description or severity are dropped.
    Returns ``[]`` when no JSON array can be found.
    """
    try:
        items = extract_json_array(strip_code_fences(text))
        if items is None:
            logger.warning("No JSON array found in privacy risks response")
            return []

        risks: list[PrivacyRisk] = []
        for item in items[:MAX_ARRAY_ITEMS]:
            if not isinstance(item, dict):
                continue
            title = _clean(item.get("title"))
            description = _clean(item.get("description"))
            if not (title and description and item.get("severity")):
                continue
            risks.append(
                PrivacyRisk(
                    id=uuid.uuid4().hex,
                    title=title,
                    description=description,
                    severity=normalize_severity(item.get("severity")),
                    location=_clean(item.get("location")) or "General",
                    recommendation=_clean(item.get("recommendation")),
                )
            )
        return risks
    except Exception:
        logger.warning("Failed to parse privacy risks", exc_info=True)
        return []


def parse_key_terms(text: str) -> list[KeyTerm]:
    """Parse the glossary completion; elements need a term and a definition."""
    try:
        items = extract_json_array(strip_code_fences(text))
        if items is None:
            logger.warning("No JSON array found in key terms response")
            return []

        terms: list[KeyTerm] = []
        for item in items[:MAX_ARRAY_ITEMS]:
            if not isinstance(item, dict):
                continue
            term = _clean(item.get("term"))
            definition = _clean(item.get("definition"))
            if term and definition:
                terms.append(
                    KeyTerm(
                        term=term,
                        definition=definition,
                        location=_clean(item.get("location")) or "General",
                    )
                )
        return terms
    except Exception:
        logger.warning("Failed to parse key terms", exc_info=True)
        return []


# ---------------------------------------------------------------------------
# Scorecard
# ---------------------------------------------------------------------------


def score_to_grade(score: float) -> str:
    """Convert a 0-100 score to a letter grade."""
    for threshold, grade in _GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def _coerce_score(value: Any) -> float | int:
    """Clamp a category score to [1, 10]; missing, zero or non-numeric
    values count as the neutral default."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        score = float(DEFAULT_CATEGORY_SCORE)
    if math.isnan(score) or score == 0:
        score = float(DEFAULT_CATEGORY_SCORE)
    score = max(1.0, min(10.0, score))
    return int(score) if score.is_integer() else round(score, 2)


def weighted_score(categories: dict[str, ScorecardCategory]) -> int:
    """Sum of ``score / 10 * weight`` over all categories, half rounded up."""
    total = sum(c.score / 10 * c.weight for c in categories.values())
    return int(math.floor(total + 0.5))


def parse_scorecard(text: str) -> Optional[PrivacyScorecard]:
    """Parse the scorecard completion.

    Missing categories are scored 5 ("Unable to assess"); every score is
    clamped to [1, 10] and every weight replaced by the fixed constant
    from :data:`SCORECARD_WEIGHTS`, whatever the model returned.

    Returns:
        The scorecard, or ``None`` when no JSON object can be found.
    """
    try:
        data = extract_json_object(strip_code_fences(text))
        if data is None:
            logger.warning("No JSON object found in scorecard response")
            return None

        categories: dict[str, ScorecardCategory] = {}
        for key, weight in SCORECARD_WEIGHTS.items():
            raw = data.get(key)
            if not isinstance(raw, dict) or not raw:
                categories[key] = ScorecardCategory(
                    score=DEFAULT_CATEGORY_SCORE, weight=weight, summary="Unable to assess"
                )
                continue
            categories[key] = ScorecardCategory(
                score=_coerce_score(raw.get("score")),
                weight=weight,
                summary=_clean(raw.get("summary")),
            )

        overall = weighted_score(categories)
        return PrivacyScorecard(
            third_party_sharing=categories["thirdPartySharing"],
            user_rights=categories["userRights"],
            data_collection=categories["dataCollection"],
            data_retention=categories["dataRetention"],
            purpose_clarity=categories["purposeClarity"],
            security_measures=categories["securityMeasures"],
            policy_transparency=categories["policyTransparency"],
            overall_score=overall,
            overall_grade=score_to_grade(overall),
            top_concerns=_clean_strings(data.get("topConcerns"), MAX_FIELD_LENGTH, MAX_ARRAY_ITEMS),
            positive_aspects=_clean_strings(data.get("positiveAspects"), MAX_FIELD_LENGTH, MAX_ARRAY_ITEMS),
        )
    except Exception:
        logger.warning("Failed to parse scorecard", exc_info=True)
        return None


# ---------------------------------------------------------------------------
# Privacy rights
# ---------------------------------------------------------------------------


def _is_web_url(url: str) -> bool:
    return url.lower().startswith(("http://", "https://"))


def _parse_links(raw: Any) -> list[PrivacyLink]:
    links: list[PrivacyLink] = []
    if not isinstance(raw, list):
        return links
    for item in raw[:MAX_ITEMS_PER_ARRAY]:
        if not isinstance(item, dict) or not isinstance(item.get("url"), str):
            continue
        url = item["url"].strip()[:MAX_URL_LENGTH]
        # javascript:, data:, ftp: and friends are dropped outright
        if not url or not _is_web_url(url):
            continue
        links.append(
            PrivacyLink(
                label=_clean(item.get("label"), MAX_LABEL_LENGTH) or "Privacy Link",
                url=url,
                purpose=_coerce_enum(item.get("purpose"), LinkPurpose, LinkPurpose.OTHER),
            )
        )
    return links


def _parse_contacts(raw: Any) -> list[PrivacyContact]:
    contacts: list[PrivacyContact] = []
    if not isinstance(raw, list):
        return contacts
    for item in raw[:MAX_ITEMS_PER_ARRAY]:
        if not isinstance(item, dict) or not isinstance(item.get("value"), str):
            continue
        value = item["value"].strip()[:MAX_VALUE_LENGTH]
        if not value:
            continue
        contacts.append(
            PrivacyContact(
                type=_coerce_enum(item.get("type"), ContactType, ContactType.EMAIL),
                value=value,
                purpose=_clean(item.get("purpose"), MAX_LABEL_LENGTH) or "Privacy inquiries",
            )
        )
    return contacts


def _parse_procedures(raw: Any) -> list[PrivacyProcedure]:
    procedures: list[PrivacyProcedure] = []
    if not isinstance(raw, list):
        return procedures
    for item in raw[:MAX_ITEMS_PER_ARRAY]:
        if not isinstance(item, dict):
            continue
        steps = _clean_strings(item.get("steps"), MAX_STEP_LENGTH)
        if not steps:
            continue
        requirements = _clean_strings(item.get("requirements"), MAX_STEP_LENGTH)
        procedures.append(
            PrivacyProcedure(
                right=_coerce_enum(item.get("right"), PrivacyRight, PrivacyRight.OTHER),
                title=_clean(item.get("title"), MAX_LABEL_LENGTH) or "Privacy Procedure",
                steps=steps,
                requirements=requirements or None,
            )
        )
    return procedures


def parse_privacy_rights(text: str) -> Optional[PrivacyRightsInfo]:
    """Parse the take-action completion into links, contacts, procedures
    and timeframes.

    Only ``http``/``https`` links survive. Unknown link purposes become
    ``other``, unknown contact types ``email`` and unknown rights
    ``other``. Procedures without a non-blank step are dropped.

    Returns:
        The rights info, or ``None`` when no JSON object can be found.
    """
    try:
        data = extract_json_object(strip_code_fences(text))
        if data is None:
            logger.warning("No JSON object found in privacy rights response")
            return None

        return PrivacyRightsInfo(
            links=_parse_links(data.get("links")),
            contacts=_parse_contacts(data.get("contacts")),
            procedures=_parse_procedures(data.get("procedures")),
            timeframes=_clean_strings(data.get("timeframes"), MAX_TIMEFRAME_LENGTH),
        )
    except Exception:
        logger.warning("Failed to parse privacy rights", exc_info=True)
        return None
