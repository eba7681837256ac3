"""
Response Parser

Best-effort extraction of a typed AnalysisResult from the free-text answer
of a vision model. The model's output format is not guaranteed, so nothing
here raises: a missing score falls back to 5, a missing section yields an
empty list.
"""

import re
from typing import Optional

from .models import (
    SCORE_CATEGORIES,
    AnalysisContext,
    AnalysisResult,
    Issue,
    Recommendation,
)


DEFAULT_SCORE = 5.0
TITLE_LIMIT = 50

_NUMBER = r"(\d+(?:\.\d+)?)"

OVERALL_SCORE_RE = re.compile(
    r"(?:OVERALL(?:\s+\w+)?\s+SCORE|QUALITY\s+SCORE)\s*:?\s*\**\s*" + _NUMBER + r"\s*/\s*10",
    re.IGNORECASE,
)

CATEGORY_SCORE_PATTERNS = {
    "usability": r"usability",
    "accessibility": r"accessibility",
    "visual_design": r"visual(?:[ _-]design)?",
    "performance": r"performance",
}

# A generic section header is a line like "**🚨 CONTEXTUAL INSIGHTS:**",
# "## STRENGTHS" or "NOTES:". The label must be upper case and end in ":" or
# "**", or fill the rest of a markdown heading line.
HEADER_RE = re.compile(
    r"^[ \t]*(?:(?P<hashes>#{1,6})[ \t]*)?(?:\*\*)?[^\w\s\-•*#]*[ \t]*"
    r"(?P<label>[A-Z][A-Z0-9&/\- ]{2,}?)[ \t]*"
    r"(?::[ \t]*\*\*|\*\*[ \t]*:?|:|(?(hashes)[ \t]*$|(?!)))",
    re.MULTILINE,
)

# Labels of the response format match in any case. A markdown heading may
# carry trailing text ("## Critical Issues (Blocks user success)"); other
# lines need ":", "**", a parenthetical or nothing after the label.
SECTION_LABELS = (
    "OVERALL UX SCORE",
    "STRENGTHS",
    "CRITICAL ISSUES",
    "MAJOR ISSUES",
    "MINOR ISSUES",
    "SPECIFIC RECOMMENDATIONS",
    "RECOMMENDATIONS",
    "CONTEXTUAL INSIGHTS",
    "DEVICE-SPECIFIC NOTES",
)

SECTION_RE = re.compile(
    r"^[ \t]*(?:(?P<hashes>#{1,6})[ \t]*)?(?:\*\*)?[^\w\s\-•*#]*[ \t]*"
    r"(?P<label>" + "|".join(re.escape(label) for label in SECTION_LABELS) + r")\b"
    r"(?(hashes).*$|[ \t]*(?::[ \t]*(?:\*\*)?|\*\*[ \t]*:?|(?:\*\*)?[ \t]*\([^)\n]*\)[ \t]*(?:\*\*)?:?|(?:\*\*)?[ \t]*$))",
    re.MULTILINE | re.IGNORECASE,
)

BULLET_RE = re.compile(r"^[ \t]*(?:[-•]|\*(?!\*)|\d+[.)])[ \t]+(?P<text>.*)$")

SEVERITY_IMPACT = {
    "critical": "Prevents users from completing their tasks or causes significant frustration",
    "major": "Makes the interface difficult or unpleasant to use, reducing user satisfaction",
    "minor": "Small improvement that would enhance the overall user experience",
}

ISSUE_CATEGORY_KEYWORDS = [
    ("accessibility", ("contrast", "accessibility", "wcag", "screen reader", "aria", "alt text", "keyboard")),
    ("mobile-optimization", ("mobile", "touch", "responsive", "44px", "thumb")),
    ("performance", ("performance", "loading", "speed", "slow", "lazy")),
    ("visual-design", ("visual", "design", "color", "colour", "typography", "font", "spacing")),
    ("conversion-optimization", ("conversion", "cta", "call-to-action", "purchase", "signup", "sign up", "checkout")),
]

FIX_PATTERNS = [
    re.compile(r"\b(?:fix|solution|recommend(?:ation)?)\b\s*[:\-]\s*([^.\n]+)", re.IGNORECASE),
    re.compile(r"\bshould\b[:\s]+([^.\n]+)", re.IGNORECASE),
    re.compile(r"\bchange\b[:\s]+([^.\n]+)", re.IGNORECASE),
]

SELECTOR_PATTERNS = [
    re.compile(r"`([^`\n]+)`"),
    re.compile(r"(?<![\w.#])#[A-Za-z][\w-]*"),
    re.compile(r"(?<![\w.])\.[A-Za-z][\w-]*[A-Za-z0-9]"),
    re.compile(r"\[[\w-]+(?:[~|^$*]?=[^\]]+)?\]"),
]

CODE_BLOCK_RE = re.compile(r"```[\s\S]*?```")
IMPLEMENT_RE = re.compile(r"\bimplement(?:ation)?\b\s*[:\-]\s*([^.\n]+)", re.IGNORECASE)


def _clean(text: str) -> str:
    """Collapse whitespace and drop markdown emphasis markers"""
    text = text.replace("**", "").replace("__", "")
    return re.sub(r"\s+", " ", text).strip()


def extract_overall_score(text: str) -> float:
    match = OVERALL_SCORE_RE.search(text)
    if not match:
        return DEFAULT_SCORE
    return max(0.0, min(10.0, float(match.group(1))))


def extract_category_score(text: str, category: str) -> Optional[float]:
    pattern = CATEGORY_SCORE_PATTERNS.get(category, re.escape(category))
    match = re.search(
        r"\b" + pattern + r"\b[^\d\n]{0,20}?" + _NUMBER + r"\s*/\s*10",
        text,
        re.IGNORECASE,
    )
    if not match:
        return None
    return max(0.0, min(10.0, float(match.group(1))))


def find_headers(text: str) -> list[re.Match]:
    """Section headers in text order, one per line; known labels win"""
    by_line = {match.start(): match for match in HEADER_RE.finditer(text)}
    by_line.update({match.start(): match for match in SECTION_RE.finditer(text)})
    return [by_line[start] for start in sorted(by_line)]


def extract_section(text: str, section: str) -> str:
    """
    Return the text between a section header and the next header.

    The first header whose label contains `section` wins. Returns an empty
    string when the section is absent.
    """
    headers = find_headers(text)
    wanted = section.upper()

    for index, header in enumerate(headers):
        if wanted not in header.group("label").upper():
            continue
        end = headers[index + 1].start() if index + 1 < len(headers) else len(text)
        return text[header.end():end]

    return ""


def split_items(block: str) -> list[str]:
    """
    Split a section body into bullet items.

    A bullet line (-, •, *, 1.) starts an item; following non-bullet lines
    continue it. Text before the first bullet is ignored.
    """
    items: list[list[str]] = []
    in_code = False

    for line in block.splitlines():
        if line.strip().startswith("```"):
            in_code = not in_code
            if items:
                items[-1].append(line.strip())
            continue

        bullet = None if in_code else BULLET_RE.match(line)
        if bullet:
            items.append([bullet.group("text")])
        elif items and line.strip():
            items[-1].append(line.strip() if not in_code else line)

    result = []
    for parts in items:
        code = "\n".join(parts)
        text = code if "```" in code else _clean(" ".join(parts))
        if text.strip():
            result.append(text.strip())
    return result


def extract_list_items(text: str, section: str) -> list[str]:
    return split_items(extract_section(text, section))


def categorize_issue(text: str) -> str:
    lower = text.lower()
    for category, keywords in ISSUE_CATEGORY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category
    return "usability"


def extract_title(text: str) -> str:
    """First sentence, truncated to 50 characters"""
    first = re.split(r"(?<=[.!?])\s", _clean(CODE_BLOCK_RE.sub("", text)), maxsplit=1)[0]
    first = first.rstrip(".")
    if len(first) > TITLE_LIMIT:
        return first[: TITLE_LIMIT - 3] + "..."
    return first


def extract_fix(text: str) -> Optional[str]:
    for pattern in FIX_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_selector(text: str) -> Optional[str]:
    for pattern in SELECTOR_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1) if match.groups() else match.group(0)
    return None


def categorize_recommendation(text: str) -> str:
    lower = text.lower()
    if any(k in lower for k in ("css", "html", "javascript", "code", "```", "aria-")):
        return "code"
    if any(k in lower for k in ("content", "copy", "wording", "text", "label")):
        return "content"
    if any(k in lower for k in ("process", "workflow", "team", "testing")):
        return "process"
    return "design"


def assess_impact(text: str) -> str:
    lower = text.lower()
    if any(k in lower for k in ("critical", "conversion", "accessibility", "revenue", "wcag")):
        return "high"
    if any(k in lower for k in ("major", "usability", "satisfaction")):
        return "medium"
    return "low"


def assess_effort(text: str) -> str:
    lower = text.lower()
    if any(k in lower for k in ("simple", "quick", "css change", "one line", "one-line")):
        return "low"
    if any(k in lower for k in ("redesign", "refactor", "complex", "major change", "rebuild")):
        return "high"
    return "medium"


def extract_implementation(text: str) -> str:
    code = CODE_BLOCK_RE.search(text)
    if code:
        return code.group(0)
    implement = IMPLEMENT_RE.search(text) or FIX_PATTERNS[0].search(text)
    if implement:
        return implement.group(1).strip()
    return text


def extract_issues(text: str, section: str, severity: str) -> list[Issue]:
    return [
        Issue(
            severity=severity,
            category=categorize_issue(item),
            title=extract_title(item),
            description=item,
            impact=SEVERITY_IMPACT[severity],
            selector=extract_selector(item),
            fix=extract_fix(item),
        )
        for item in extract_list_items(text, section)
    ]


def extract_recommendations(text: str) -> list[Recommendation]:
    return [
        Recommendation(
            type=categorize_recommendation(item),
            title=extract_title(item),
            description=item,
            implementation=extract_implementation(item),
            impact=assess_impact(item),
            effort=assess_effort(item),
        )
        for item in extract_list_items(text, "RECOMMENDATIONS")
    ]


def parse_analysis_text(
    text: Optional[str],
    context: Optional[AnalysisContext] = None,
    model: str = "unknown",
    provider: str = "unknown",
    tokens_used: int = 0,
    analysis_time: float = 0.0,
) -> AnalysisResult:
    """
    Parse a model answer into an AnalysisResult.

    Args:
        text: Raw model answer (None is treated as empty)
        context: Context the screenshot was analyzed in
        model: Model that produced the answer
        provider: Provider that served the model
        tokens_used: Token count reported by the provider
        analysis_time: Seconds spent on the provider call

    Returns:
        AnalysisResult; sections missing from the text become empty lists
        and a missing score becomes 5
    """
    text = text or ""
    overall = extract_overall_score(text)

    scores = {}
    for category in SCORE_CATEGORIES:
        specific = extract_category_score(text, category)
        scores[category] = overall if specific is None else specific

    page = "unknown"
    if context is not None:
        page = context.page_url or context.stage or "unknown"

    return AnalysisResult(
        page=page,
        context=context,
        overall_score=overall,
        scores=scores,
        strengths=extract_list_items(text, "STRENGTHS"),
        critical_issues=extract_issues(text, "CRITICAL ISSUES", "critical"),
        major_issues=extract_issues(text, "MAJOR ISSUES", "major"),
        minor_issues=extract_issues(text, "MINOR ISSUES", "minor"),
        recommendations=extract_recommendations(text),
        model=model,
        provider=provider,
        tokens_used=tokens_used,
        analysis_time=analysis_time,
        raw_analysis=text,
    )
