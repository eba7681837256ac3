"""
Result Normalizer

Folds either a structured provider payload or a parsed AnalysisResult into
a flat list of StructuredIssue records for automated consumers.

Two tiers:
1. A structured `issues` array (in a payload dict, under `data.issues`, or
   as a JSON block inside the model's raw answer) is mapped field by field
   and returned as high-confidence entries.
2. Otherwise the serialized result is scanned for a WCAG reference followed
   by a selector-like token. These entries are marked low-confidence.
"""

import json
import re
from typing import Any, Optional, Union

from .models import AnalysisResult, StructuredIssue


HEURISTIC_SEVERITY = "medium"
HEURISTIC_RECOMMENDATION = "See report details."

FIELD_ALIASES = {
    "selector": ("selector", "target", "location", "element"),
    "standard_reference": ("wcag", "ruleId", "rule_id", "guideline", "standard", "standard_reference"),
    "severity": ("severity", "level", "impact"),
    "recommendation": ("fix", "recommendation", "suggest", "suggestion"),
    "description": ("description", "summary", "title", "message"),
}

WCAG_SELECTOR_RE = re.compile(
    r"(WCAG\s*\d\.\d\.[\dA-Za-z]+)"
    r".{0,200}?"
    r"(#[A-Za-z][\w-]*|(?<![\w.])\.[A-Za-z][\w-]*|\[[^\]\s\"]+\])",
    re.IGNORECASE,
)


def _first(item: dict, keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def extract_json_block(text: Optional[str]) -> Optional[dict]:
    """
    Pull a JSON object out of a model answer.

    Handles JSON embedded in markdown code blocks as well as a bare object
    somewhere in the text. Returns None when nothing parses to a dict.
    """
    if not text:
        return None

    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        candidate = text[start:end if end != -1 else None].strip()
    elif "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        candidate = text[start:end if end != -1 else None].strip()
    elif "{" in text and "}" in text:
        candidate = text[text.find("{"):text.rfind("}") + 1].strip()
    else:
        return None

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _structured_issues(payload: Optional[dict]) -> list:
    if not isinstance(payload, dict):
        return []
    issues = payload.get("issues")
    if not issues and isinstance(payload.get("data"), dict):
        issues = payload["data"].get("issues")
    return issues if isinstance(issues, list) else []


def _map_issue(item: Any, page_url: Optional[str]) -> StructuredIssue:
    if not isinstance(item, dict):
        return StructuredIssue(
            description=str(item),
            severity=HEURISTIC_SEVERITY,
            page_url=page_url,
        )
    return StructuredIssue(
        selector=_first(item, FIELD_ALIASES["selector"]),
        standard_reference=_first(item, FIELD_ALIASES["standard_reference"]),
        severity=_first(item, FIELD_ALIASES["severity"]) or HEURISTIC_SEVERITY,
        recommendation=_first(item, FIELD_ALIASES["recommendation"]),
        description=_first(item, FIELD_ALIASES["description"]),
        page_url=page_url,
        confidence="high",
    )


def _scan_text(text: str, page_url: Optional[str]) -> list[StructuredIssue]:
    # One entry per (reference, selector); the serialized result repeats the answer
    seen: set[tuple[str, str]] = set()
    issues = []
    for match in WCAG_SELECTOR_RE.finditer(text):
        reference = re.sub(r"(?i)^wcag\s*", "WCAG ", match.group(1))
        key = (reference.upper(), match.group(2))
        if key in seen:
            continue
        seen.add(key)
        issues.append(StructuredIssue(
            standard_reference=reference,
            selector=match.group(2),
            severity=HEURISTIC_SEVERITY,
            recommendation=HEURISTIC_RECOMMENDATION,
            page_url=page_url,
            confidence="low",
        ))
    return issues


def normalize_issues(
    result: Union[AnalysisResult, dict, None],
    page_url: Optional[str] = None,
) -> list[StructuredIssue]:
    """
    Normalize a provider payload or parsed result into StructuredIssues.

    Args:
        result: A payload dict, an AnalysisResult, or None
        page_url: URL recorded on every produced issue

    Returns:
        StructuredIssue list; identical input always yields identical output
    """
    if result is None:
        return []

    if isinstance(result, AnalysisResult):
        payload = extract_json_block(result.raw_analysis)
        serialized = result.model_dump_json(exclude={"id", "timestamp"})
    else:
        payload = result
        serialized = json.dumps(result, default=str, sort_keys=True)

    issues = _structured_issues(payload)
    if issues:
        return [_map_issue(item, page_url) for item in issues]

    return _scan_text(serialized, page_url)
