"""
Analysis Orchestrator

Validates inputs, builds the prompt, calls the primary vision provider and,
when it fails, the fallback provider once. Produces one AnalysisResult per
(screenshot, context) pair.
"""

import logging
import time
from typing import Optional

from .errors import InvalidInputError
from .models import SCORE_CATEGORIES, AnalysisContext, AnalysisResult, Config, Issue, ScreenshotData
from .prompts import select_prompt
from .providers import PROVIDERS, VisionProvider, get_provider
from .validation import validate_context, validate_screenshot


logger = logging.getLogger(__name__)


def fallback_provider_name(config: Config) -> str:
    """
    Provider that serves `config.fallback_model`.

    OpenRouter can serve any vendor's model, so it keeps serving the
    fallback. Otherwise a "vendor/" prefix naming a known provider wins,
    and the primary provider is used when there is none.
    """
    if config.provider == "openrouter":
        return "openrouter"
    model = config.fallback_model or ""
    if "/" in model:
        vendor = model.split("/", 1)[0]
        if vendor in PROVIDERS:
            return vendor
    return config.provider


class Analyzer:
    """
    Runs vision analyses with validation, fallback and graceful failure.

    Example:
        config = load_config()
        analyzer = Analyzer(config)

        result = await analyzer.analyze(screenshot, AnalysisContext(
            stage="checkout",
            user_intent="complete purchase",
        ))

        print(result.summary())
    """

    def __init__(
        self,
        config: Config,
        provider: Optional[VisionProvider] = None,
        fallback_provider: Optional[VisionProvider] = None,
    ):
        """
        Initialize the analyzer.

        Args:
            config: Configuration with provider, model and analysis types
            provider: Primary provider (built from config when omitted)
            fallback_provider: Provider tried once after a primary failure
                (built from config.fallback_model when omitted)

        Raises:
            ConfigurationError: If a provider cannot be built
        """
        self.config = config
        self.provider = provider or get_provider(config)

        if fallback_provider is None and config.fallback_model:
            fallback_provider = get_provider(
                config, fallback_provider_name(config), config.fallback_model
            )
        self.fallback_provider = fallback_provider
        self.analysis_types = list(config.analysis_types)

    def build_prompt(self, context: AnalysisContext) -> str:
        return select_prompt(context, self.analysis_types)

    async def analyze_strict(
        self,
        screenshot: ScreenshotData,
        context: AnalysisContext,
        prompt: Optional[str] = None,
        use_fallback: bool = True,
    ) -> AnalysisResult:
        """
        Analyze a screenshot, raising on failure.

        Args:
            screenshot: Screenshot to analyze
            context: Situational context
            prompt: Prompt override (e.g. from build_journey_prompt)
            use_fallback: Try the fallback provider once if the primary raises

        Returns:
            AnalysisResult from whichever provider succeeded

        Raises:
            InvalidInputError: If the screenshot or context is unusable
            ProviderError: If every provider call failed at the HTTP level
            ParseContractError: If the last provider answer was unusable
        """
        validate_screenshot(screenshot)
        validate_context(context)

        prompt = prompt or self.build_prompt(context)
        started = time.monotonic()

        try:
            result = await self.provider.analyze(screenshot, context, prompt)
        except Exception as e:
            if not use_fallback or self.fallback_provider is None:
                raise
            logger.warning(
                "%s failed (%s), falling back to %s/%s",
                self.provider.name, e,
                self.fallback_provider.name, self.fallback_provider.model,
            )
            result = await self.fallback_provider.analyze(screenshot, context, prompt)

        return result.model_copy(update={"analysis_time": time.monotonic() - started})

    async def analyze(
        self,
        screenshot: ScreenshotData,
        context: AnalysisContext,
        prompt: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Analyze a screenshot, degrading to an error result on provider failure.

        Invalid input still raises; any other failure produces an
        AnalysisResult with error=True, score 0 and one critical issue.

        Raises:
            InvalidInputError: If the screenshot or context is unusable
        """
        started = time.monotonic()
        try:
            return await self.analyze_strict(screenshot, context, prompt)
        except InvalidInputError:
            raise
        except Exception as e:
            logger.error("Analysis failed: %s", e)
            return self.error_result(context, e, time.monotonic() - started)

    def error_result(
        self,
        context: AnalysisContext,
        error: Exception,
        analysis_time: float = 0.0,
    ) -> AnalysisResult:
        """Degraded result standing in for a failed analysis"""
        return AnalysisResult(
            page=context.page_url or context.stage or "unknown",
            context=context,
            overall_score=0,
            scores={category: 0.0 for category in SCORE_CATEGORIES},
            critical_issues=[
                Issue(
                    severity="critical",
                    category="error-handling",
                    title="Analysis Failed",
                    description=f"AI analysis failed: {error}",
                    impact="Unable to provide UX insights",
                    fix="Check the provider configuration and API key",
                )
            ],
            model=self.provider.model,
            provider=self.provider.name,
            analysis_time=analysis_time,
            error=True,
        )
