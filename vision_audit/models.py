"""
Data Models for Vision Audit

Type-safe Pydantic models for all data structures: analysis inputs,
parsed results, normalized issues, batch work units and configuration.
"""

import base64
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


AnalysisType = Literal[
    "usability",
    "accessibility",
    "visual-design",
    "performance",
    "mobile-optimization",
    "conversion-optimization",
    "brand-consistency",
    "error-handling",
]
ANALYSIS_TYPES: tuple[str, ...] = get_args(AnalysisType)

Severity = Literal["critical", "major", "minor"]
Level = Literal["high", "medium", "low"]
ProviderName = Literal["openai", "anthropic", "openrouter", "local"]
MessageFormat = Literal["openai", "anthropic", "auto"]

SCORE_CATEGORIES = ("usability", "accessibility", "visual_design", "performance")


def new_run_id() -> str:
    """Timestamped run identifier, e.g. 20250101T120000-1a2b3c"""
    return f"{datetime.now(timezone.utc):%Y%m%dT%H%M%S}-{uuid.uuid4().hex[:6]}"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Analysis inputs
# ---------------------------------------------------------------------------


class UserPersona(BaseModel):
    """
    A reusable description of who is using the interface.

    Attributes:
        name: Display name of the persona
        expertise: How familiar the user is with this kind of product
        device: Primary device class
        urgency: How time-pressed the user is
        goals: What the user wants to achieve
        pain_points: Known frustrations
        context: Free-text situational description
    """

    model_config = ConfigDict(frozen=True)

    name: str
    expertise: Literal["novice", "intermediate", "expert"] = "intermediate"
    device: Literal["mobile-primary", "desktop-primary", "mixed"] = "mixed"
    urgency: Literal["low", "medium", "high"] = "medium"
    goals: list[str] = Field(default_factory=list)
    pain_points: list[str] = Field(default_factory=list)
    context: Optional[str] = None


class UserContext(BaseModel):
    """Who is looking at the screen and under what constraints"""

    model_config = ConfigDict(frozen=True)

    persona: Optional[Union[UserPersona, str]] = None
    device_context: str = "desktop"
    expertise: Optional[Literal["novice", "intermediate", "expert"]] = None
    urgency: Optional[Literal["low", "medium", "high"]] = None
    time_constraint: Optional[Literal["none", "limited", "urgent"]] = None
    trust_level: Optional[Level] = None
    business_goals: list[str] = Field(default_factory=list)


class BusinessContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    industry: str
    conversion_goal: str
    competitive_advantage: Optional[str] = None
    brand_personality: Optional[str] = None
    target_audience: Optional[str] = None


class TechnicalContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    framework: Optional[str] = None
    design_system: Optional[str] = None
    device_support: Optional[Literal["mobile-first", "desktop-first", "responsive"]] = None
    performance_target: Optional[str] = None
    accessibility_target: Optional[Literal["WCAG-A", "WCAG-AA", "WCAG-AAA"]] = None


class AnalysisContext(BaseModel):
    """
    Situational context for a single analysis.

    Immutable: one context describes one (screenshot, context) pair and is
    owned by the caller.

    Attributes:
        stage: Where in the user journey the screenshot was taken
        user_intent: What the user is trying to do on this screen
        user_context: Persona, device and constraints
        business_context: Optional industry and conversion goal
        technical_context: Optional framework and design-system details
        critical_elements: Element identifiers the model should focus on
        page_url: URL of the analyzed page, when known
    """

    model_config = ConfigDict(frozen=True)

    stage: str = ""
    user_intent: str = ""
    user_context: UserContext = Field(default_factory=UserContext)
    business_context: Optional[BusinessContext] = None
    technical_context: Optional[TechnicalContext] = None
    critical_elements: list[str] = Field(default_factory=list)
    page_url: Optional[str] = None


class ScreenshotMetadata(BaseModel):
    width: int = 0
    height: int = 0
    device_pixel_ratio: float = 1.0
    timestamp: str = Field(default_factory=utc_now)


class ScreenshotData(BaseModel):
    """
    Raw image bytes plus capture metadata.

    Validation (size limit, image signature) happens in
    `vision_audit.validation` before the bytes reach a provider.
    """

    data: bytes
    metadata: ScreenshotMetadata = Field(default_factory=ScreenshotMetadata)
    path: Optional[str] = None

    @property
    def media_type(self) -> str:
        """MIME type derived from the image signature (PNG when unknown)"""
        if self.data[:3] == b"\xff\xd8\xff":
            return "image/jpeg"
        if self.data[:4] == b"RIFF" and self.data[8:12] == b"WEBP":
            return "image/webp"
        return "image/png"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")


# ---------------------------------------------------------------------------
# Analysis results
# ---------------------------------------------------------------------------


class Issue(BaseModel):
    """
    A usability or accessibility problem reported by the vision model.

    Attributes:
        severity: critical blocks the task, major hurts it, minor is polish
        category: Which analysis type the issue belongs to
        title: Short headline (first sentence, truncated)
        description: Full issue text
        impact: How the issue affects the user
        selector: CSS selector or element hint, if one was mentioned
        fix: Remediation hint, if one was mentioned
    """

    severity: Severity
    category: AnalysisType
    title: str
    description: str
    impact: str
    selector: Optional[str] = None
    fix: Optional[str] = None

    def __str__(self) -> str:
        severity_emoji = {"critical": "🔴", "major": "🟡", "minor": "🟢"}
        return f"{severity_emoji[self.severity]} [{self.category}] {self.title}"


class Recommendation(BaseModel):
    type: Literal["code", "design", "content", "process"]
    title: str
    description: str
    implementation: str
    impact: Level
    effort: Level


class AnalysisResult(BaseModel):
    """
    Complete analysis of one screenshot in one context.

    Produced once per (screenshot, context) pair. The only field set after
    creation is `report_path`, through `attach_report`.
    """

    id: str = Field(default_factory=lambda: f"vision-audit-{uuid.uuid4().hex[:12]}")
    timestamp: str = Field(default_factory=utc_now)
    page: str = "unknown"
    context: Optional[AnalysisContext] = None

    overall_score: float = 5.0
    scores: dict[str, float] = Field(default_factory=dict)

    strengths: list[str] = Field(default_factory=list)
    critical_issues: list[Issue] = Field(default_factory=list)
    major_issues: list[Issue] = Field(default_factory=list)
    minor_issues: list[Issue] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)

    model: str = "unknown"
    provider: str = "unknown"
    tokens_used: int = 0
    analysis_time: float = Field(default=0.0, description="Seconds spent on the analysis")
    raw_analysis: Optional[str] = None
    error: bool = False
    report_path: Optional[str] = None

    @field_validator("overall_score")
    @classmethod
    def clamp_score(cls, v: float) -> float:
        """Keep the overall score inside 0-10"""
        return max(0.0, min(10.0, v))

    @property
    def issues(self) -> list[Issue]:
        return [*self.critical_issues, *self.major_issues, *self.minor_issues]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def attach_report(self, path: Union[str, Path]) -> None:
        self.report_path = str(path)

    def summary(self) -> str:
        """Generate a human-readable summary"""
        summary = f"Score: {self.overall_score:g}/10\n"
        summary += (
            f"Issues: {len(self.issues)} total "
            f"({len(self.critical_issues)} critical, {len(self.major_issues)} major)\n"
        )

        if self.recommendations:
            summary += "\nTop recommendations:\n"
            for i, rec in enumerate(self.recommendations[:3], 1):
                summary += f"  {i}. {rec.title}\n"

        return summary


class StructuredIssue(BaseModel):
    """
    Provider-agnostic issue record for automated consumers.

    This is the only shape downstream tooling (auto-fix agents, CI gates)
    should depend on. `confidence` is "high" when the provider returned a
    structured issues array and "low" when the entry came from heuristic
    text scanning.
    """

    selector: Optional[str] = None
    standard_reference: Optional[str] = None
    severity: Optional[str] = None
    recommendation: Optional[str] = None
    description: Optional[str] = None
    page_url: Optional[str] = None
    confidence: Literal["high", "low"] = "high"


# ---------------------------------------------------------------------------
# Batch execution
# ---------------------------------------------------------------------------


class RetryPolicy(BaseModel):
    """
    Retry configuration for a single operation.

    Attributes:
        max_attempts: Retries after the first attempt (0 = one attempt only)
        base_delay: Seconds to wait before the first retry, doubled each time
        use_jitter: Multiply each delay by a random factor in [0.5, 1.5)
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=2, ge=0)
    base_delay: float = Field(default=0.5, ge=0)
    use_jitter: bool = True


class BatchItem(BaseModel):
    target: str = Field(description="URL of the page to analyze")
    context: AnalysisContext = Field(default_factory=AnalysisContext)
    timeout_ms: Optional[int] = Field(default=None, ge=1000, le=600000)


class JourneyStage(BaseModel):
    """
    One step of a multi-page user journey.

    Attributes:
        name: Stage name, used as the analysis stage ("cart", "payment")
        page: Page path or URL, resolved against the journey's base URL
        user_goal: What the user wants to do at this stage
        ai_analysis: Free-text focus for the model, used when user_goal is empty
        critical_elements: Element identifiers the model should focus on
    """

    name: str
    page: str
    user_goal: Optional[str] = None
    ai_analysis: Optional[str] = None
    critical_elements: list[str] = Field(default_factory=list)


class Journey(BaseModel):
    name: str
    persona: Optional[str] = None
    device: str = "desktop"
    stages: list[JourneyStage] = Field(min_length=1)


class BatchResult(BaseModel):
    target: str
    ok: bool
    seq: int
    worker_id: int
    stage: Optional[str] = None
    structured_issues: list[StructuredIssue] = Field(default_factory=list)
    error: Optional[str] = None
    attempts: int = 1


class RunSummary(BaseModel):
    run_id: str
    timestamp: str = Field(default_factory=utc_now)
    results: list[BatchResult] = Field(default_factory=list)

    @computed_field
    @property
    def total(self) -> int:
        return len(self.results)

    @computed_field
    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @computed_field
    @property
    def failed(self) -> int:
        return self.total - self.succeeded


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class Config(BaseModel):
    """
    Configuration for vision audit runs.

    Loaded from .env file and environment variables by `load_config`, then
    passed explicitly to providers, the analyzer and the batch executor.

    Attributes:
        provider: Primary vision provider
        model: Model identifier (OpenRouter style "vendor/model" is accepted)
        fallback_model: Model tried once when the primary provider fails
        api_key: Key for the primary provider, overrides the per-vendor keys
        base_url: API root override, including the version path (".../v1")
        message_format: Force a wire dialect instead of auto-detecting it
        analysis_types: Which analyses the prompt asks for
        concurrency: Batch worker count
        reporters: Reporter selection ("jsonl", "s3", "both")
    """

    provider: ProviderName = "openrouter"
    model: str = "openai/gpt-4o"
    fallback_model: Optional[str] = None

    api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None

    base_url: Optional[str] = None
    ollama_host: str = "http://localhost:11434"
    message_format: MessageFormat = "auto"
    max_tokens: int = Field(default=4000, ge=1)
    temperature: float = Field(default=0.1, ge=0, le=2)
    request_timeout: float = Field(default=120.0, gt=0)

    analysis_types: list[AnalysisType] = Field(
        default_factory=lambda: ["usability", "accessibility", "visual-design"],
        min_length=1,
    )

    concurrency: int = Field(default=2, ge=1, le=8)
    batch_timeout_ms: int = Field(default=120000, ge=1000, le=600000)
    retry_max: int = Field(default=2, ge=0, le=5)
    retry_base_delay_ms: int = Field(default=500, ge=100, le=10000)
    retry_jitter: bool = True

    reporters: str = "jsonl"
    report_dir: Path = Path("vision-audit-reports")
    s3_bucket: Optional[str] = None
    s3_region: str = "us-east-1"
    s3_prefix: str = "vision-audit"
    s3_endpoint_url: Optional[str] = None

    viewport_width: int = Field(default=1920, ge=320, le=3840)
    viewport_height: int = Field(default=1080, ge=480, le=2160)

    def api_key_for(self, provider: str) -> Optional[str]:
        """Resolve the API key to use for `provider`"""
        if self.api_key and provider == self.provider:
            return self.api_key
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "openrouter": self.openrouter_api_key,
        }.get(provider)

    def has_api_key(self, provider: str) -> bool:
        key = self.api_key_for(provider)
        return key is not None and len(key) > 0

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max,
            base_delay=self.retry_base_delay_ms / 1000,
            use_jitter=self.retry_jitter,
        )
