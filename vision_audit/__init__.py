"""
Vision Audit - AI UX and Accessibility Review

Captures web pages, sends the screenshots to a vision model together with
who the user is and what they are trying to do, and turns the answer into
scored issues, recommendations and provider-agnostic structured issues.

Supports multiple vision providers:
- OpenAI
- Anthropic Claude
- OpenRouter
- Local LLMs (Ollama)
"""

__version__ = "0.2.0"

from .analyzer import Analyzer
from .batch import BatchExecutor, run_journey, run_single
from .config import load_config
from .errors import (
    CaptureError,
    ConfigurationError,
    InvalidInputError,
    ParseContractError,
    ProviderError,
    VisionAuditError,
)
from .models import (
    AnalysisContext,
    AnalysisResult,
    BatchItem,
    BatchResult,
    Config,
    Issue,
    Journey,
    JourneyStage,
    Recommendation,
    RetryPolicy,
    RunSummary,
    ScreenshotData,
    StructuredIssue,
)
from .normalizer import normalize_issues
from .parser import parse_analysis_text
from .prompts import build_prompt, select_prompt

__all__ = [
    "Analyzer",
    "BatchExecutor",
    "run_single",
    "run_journey",
    "load_config",
    "CaptureError",
    "ConfigurationError",
    "InvalidInputError",
    "ParseContractError",
    "ProviderError",
    "VisionAuditError",
    "AnalysisContext",
    "AnalysisResult",
    "BatchItem",
    "BatchResult",
    "Config",
    "Issue",
    "Journey",
    "JourneyStage",
    "Recommendation",
    "RetryPolicy",
    "RunSummary",
    "ScreenshotData",
    "StructuredIssue",
    "normalize_issues",
    "parse_analysis_text",
    "build_prompt",
    "select_prompt",
]
