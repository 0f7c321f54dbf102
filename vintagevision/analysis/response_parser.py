"""Response parsing utilities for vision model outputs.

This module turns raw model text into an ``AnalysisResult``, handling
markdown code fences, leading or trailing prose, snake_case keys and the
dollar-denominated value estimates the prompt asks for.

Example:
    >>> from vintagevision.analysis.response_parser import parse_analysis_response
    >>> result = parse_analysis_response(response.content)
    >>> print(result.name, result.estimated_value_min)
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from vintagevision.analysis.models import AnalysisResult

logger = logging.getLogger(__name__)

CODE_BLOCK_PATTERNS = (
    re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE),
    re.compile(r"```\s*([\s\S]*?)\s*```"),
)

# snake_case and legacy spellings the model sometimes emits
KEY_ALIASES = {
    "product_category": "productCategory",
    "domain_expert": "domainExpert",
    "domain": "domainExpert",
    "origin_region": "originRegion",
    "origin": "originRegion",
    "estimated_value_min": "estimatedValueMin",
    "estimated_value_max": "estimatedValueMax",
    "authenticity_risk": "authenticityRisk",
    "expert_referral_recommended": "expertReferralRecommended",
    "expert_referral_reason": "expertReferralReason",
    "historical_context": "historicalContext",
    "evidence_for": "evidenceFor",
    "evidence_against": "evidenceAgainst",
    "brand": "maker",
}

DEFAULT_NAME = "Unidentified item"


class ResponseParseError(Exception):
    """Raised when a model response cannot be parsed.

    Attributes:
        raw_response: The original unparseable response.
        reason: Short machine-readable explanation of the failure.
    """

    def __init__(self, message: str, raw_response: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.raw_response = raw_response
        self.reason = reason or message


def _is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
        return True
    except json.JSONDecodeError:
        return False


def _extract_balanced(text: str, open_char: str = "{", close_char: str = "}") -> str | None:
    """Extract the first balanced, valid JSON span starting at ``open_char``."""
    start = text.find(open_char)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text[start:], start):
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                candidate = text[start : i + 1]
                return candidate if _is_valid_json(candidate) else None

    return None


def extract_json_from_response(response: str) -> str:
    """Extract JSON content from a model response.

    Tries, in order: a fenced code block, the whole text, then the first
    balanced object in the text.

    Raises:
        ResponseParseError: If no valid JSON can be extracted.
    """
    if not response or not response.strip():
        raise ResponseParseError(
            "Empty response from vision model",
            raw_response=response,
            reason="empty_response",
        )

    text = response.strip()

    for pattern in CODE_BLOCK_PATTERNS:
        match = pattern.search(text)
        if match and _is_valid_json(match.group(1).strip()):
            return match.group(1).strip()

    if _is_valid_json(text):
        return text

    json_str = _extract_balanced(text)
    if json_str:
        return json_str

    raise ResponseParseError(
        "Could not extract valid JSON from response",
        raw_response=response,
        reason="no_json_found",
    )


def parse_json_response(response: str) -> dict[str, Any]:
    """Parse a JSON object from a model response.

    Raises:
        ResponseParseError: If the response holds no JSON object.
    """
    parsed = json.loads(extract_json_from_response(response))
    if not isinstance(parsed, dict):
        raise ResponseParseError(
            "Expected JSON object, got array or primitive",
            raw_response=response,
            reason="wrong_json_type",
        )
    return parsed


def parse_amount(value: Any) -> float | None:
    """Parse a number or a "$1,200" style string; None if unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip()
        if not value:
            return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return None


def dollars_to_cents(value: Any) -> int | None:
    """Convert a dollar amount to cents.

    Example:
        >>> dollars_to_cents("$1,250.50")
        125050
    """
    amount = parse_amount(value)
    return None if amount is None else round(amount * 100)


def _clamp_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    # Some models answer on a 0-100 scale
    if confidence > 1.0:
        confidence /= 100
    return max(0.0, min(1.0, confidence))


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if item]
    return []


def normalize_analysis_data(data: dict[str, Any], values_in_dollars: bool = True) -> dict[str, Any]:
    """Normalize raw model JSON into AnalysisResult input.

    Args:
        data: Parsed JSON object.
        values_in_dollars: Convert value estimates from dollars to cents.

    Returns:
        Dictionary keyed by AnalysisResult aliases.
    """
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        target = KEY_ALIASES.get(key, key)
        # Prefer the canonical key if the model sent both spellings
        if target in normalized and key != target:
            continue
        normalized[target] = value

    name = normalized.get("name")
    normalized["name"] = str(name).strip() if name and str(name).strip() else DEFAULT_NAME

    for key in ("estimatedValueMin", "estimatedValueMax"):
        raw = normalized.get(key)
        if values_in_dollars:
            normalized[key] = dollars_to_cents(raw)
        else:
            amount = parse_amount(raw)
            normalized[key] = None if amount is None else round(amount)

    low, high = normalized.get("estimatedValueMin"), normalized.get("estimatedValueMax")
    if low is not None and high is not None and high < low:
        normalized["estimatedValueMin"], normalized["estimatedValueMax"] = high, low

    normalized["confidence"] = _clamp_confidence(normalized.get("confidence"))
    normalized["evidenceFor"] = _string_list(normalized.get("evidenceFor"))
    normalized["evidenceAgainst"] = _string_list(normalized.get("evidenceAgainst"))

    risk = normalized.get("authenticityRisk")
    if isinstance(risk, str):
        normalized["authenticityRisk"] = risk.strip().lower().replace(" ", "_") or None

    return normalized


def parse_analysis_response(response: str, values_in_dollars: bool = True) -> AnalysisResult:
    """Parse a model response into an AnalysisResult.

    This is the main entry point for parsing identification responses.

    Args:
        response: Raw model response text.
        values_in_dollars: Whether value estimates in the response are dollars.

    Returns:
        Validated AnalysisResult.

    Raises:
        ResponseParseError: If the response cannot be parsed or validated.
    """
    data = parse_json_response(response)
    normalized = normalize_analysis_data(data, values_in_dollars=values_in_dollars)

    try:
        return AnalysisResult.model_validate(normalized)
    except ValidationError as e:
        logger.warning(f"Validation error, retrying with unrecognised fields dropped: {e}")
        bad_fields = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        fallback = {k: v for k, v in normalized.items() if k not in bad_fields or k == "name"}
        try:
            return AnalysisResult.model_validate(fallback)
        except ValidationError as e2:
            raise ResponseParseError(
                f"Failed to validate analysis: {e2}",
                raw_response=response,
                reason="validation_error",
            ) from e2


def safe_parse_analysis(response: str) -> AnalysisResult | None:
    """Parse an analysis, returning None instead of raising on failure."""
    try:
        return parse_analysis_response(response)
    except ResponseParseError as e:
        logger.warning(f"Failed to parse analysis: {e.reason}")
        return None
