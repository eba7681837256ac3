"""
Batch Executor

Analyzes many targets with a fixed pool of workers. Each worker owns one
execution session (a browser page), reuses it for every item it takes from
the shared queue and closes it when the queue is drained. A failing item is
recorded and the run continues.

`run_single` analyzes one page and writes a receipt; `run_journey` walks the
stages of a user journey in order on one page.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional
from urllib.parse import urljoin

from .analyzer import Analyzer
from .capture import ExecutionSession
from .errors import ConfigurationError, InvalidInputError, ParseContractError
from .models import (
    AnalysisContext,
    AnalysisResult,
    BatchItem,
    BatchResult,
    Journey,
    JourneyStage,
    RetryPolicy,
    RunSummary,
    StructuredIssue,
    UserContext,
    new_run_id,
)
from .normalizer import normalize_issues
from .prompts import build_journey_prompt
from .reporters import ReporterPipeline
from .retry import with_retry


logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Awaitable[ExecutionSession]]

NON_RETRYABLE = (InvalidInputError, ParseContractError, ConfigurationError)


def is_retryable(error: Exception) -> bool:
    """Input, contract and configuration errors fail the same way every time"""
    return not isinstance(error, NON_RETRYABLE)


def write_json(path: Path, payload: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
    return path


def _with_page_url(context: AnalysisContext, target: str) -> AnalysisContext:
    if context.page_url:
        return context
    return context.model_copy(update={"page_url": target})


class BatchExecutor:
    """
    Runs BatchItems through capture, analysis and normalization.

    Example:
        executor = BatchExecutor(
            analyzer,
            PlaywrightSessionFactory.from_config(config),
            concurrency=config.concurrency,
            retry_policy=config.retry_policy(),
            reporters=build_reporters("jsonl", run_id, config.report_dir, config),
            report_dir=config.report_dir,
        )
        summary = await executor.run(items, run_id=run_id)
        print(f"{summary.succeeded}/{summary.total} succeeded")
    """

    def __init__(
        self,
        analyzer: Analyzer,
        session_factory: SessionFactory,
        concurrency: int = 2,
        retry_policy: Optional[RetryPolicy] = None,
        reporters: Optional[ReporterPipeline] = None,
        report_dir: Path = Path("vision-audit-reports"),
        default_timeout_ms: int = 120000,
    ):
        """
        Initialize batch executor.

        Args:
            analyzer: Analyzer used in strict mode (errors raise)
            session_factory: Async callable opening one ExecutionSession
            concurrency: Number of workers (and sessions)
            retry_policy: Per-item retry policy
            reporters: Event sinks for start/item/complete
            report_dir: Where batch-summary-<run_id>.json is written
            default_timeout_ms: Navigation timeout for items without one
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.analyzer = analyzer
        self.session_factory = session_factory
        self.concurrency = concurrency
        self.retry_policy = retry_policy or RetryPolicy()
        self.reporters = reporters or ReporterPipeline()
        self.report_dir = Path(report_dir)
        self.default_timeout_ms = default_timeout_ms

    async def run(self, items: Iterable[BatchItem], run_id: Optional[str] = None) -> RunSummary:
        """
        Process every item and return the run summary.

        Sequence numbers are assigned in input order starting at 1; results
        come back sorted by them regardless of completion order.
        """
        run_id = run_id or new_run_id()
        items = list(items)

        queue: asyncio.Queue = asyncio.Queue()
        for seq, item in enumerate(items, start=1):
            queue.put_nowait((seq, item))

        logger.info(
            "Batch %s: %d item(s), %d worker(s)", run_id, len(items), self.concurrency
        )
        await self.reporters.start({
            "kind": "batch",
            "run_id": run_id,
            "report_dir": str(self.report_dir),
            "total": len(items),
            "concurrency": self.concurrency,
        })

        results: list[BatchResult] = []
        await asyncio.gather(*(
            self._worker(worker_id, queue, results)
            for worker_id in range(1, self.concurrency + 1)
        ))

        summary = RunSummary(run_id=run_id, results=sorted(results, key=lambda r: r.seq))
        summary_path = self.report_dir / f"batch-summary-{run_id}.json"
        await asyncio.to_thread(write_json, summary_path, summary.model_dump(mode="json"))
        logger.info(
            "Batch %s finished: %d succeeded, %d failed (%s)",
            run_id, summary.succeeded, summary.failed, summary_path,
        )

        await self.reporters.complete(summary)
        return summary

    async def _worker(
        self,
        worker_id: int,
        queue: asyncio.Queue,
        results: list[BatchResult],
    ) -> None:
        session: Optional[ExecutionSession] = None
        try:
            while True:
                try:
                    seq, item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    break

                if session is None:
                    try:
                        session = await self.session_factory()
                    except Exception as e:
                        logger.warning("Worker %d could not open a session: %s", worker_id, e)
                        result = BatchResult(
                            target=item.target,
                            ok=False,
                            seq=seq,
                            worker_id=worker_id,
                            error=f"Session failed to open: {e}",
                        )
                        results.append(result)
                        await self.reporters.item(result)
                        continue

                result = await self._process(session, worker_id, seq, item)
                results.append(result)
                await self.reporters.item(result)
        finally:
            if session is not None:
                await session.close()

    async def _process(
        self,
        session: ExecutionSession,
        worker_id: int,
        seq: int,
        item: BatchItem,
    ) -> BatchResult:
        timeout_ms = item.timeout_ms or self.default_timeout_ms
        context = _with_page_url(item.context, item.target)
        attempts = 0

        async def attempt() -> list[StructuredIssue]:
            nonlocal attempts
            attempts += 1
            await session.prepare(item.target, timeout_ms)
            screenshot = await session.capture()
            analysis = await self.analyzer.analyze_strict(screenshot, context, use_fallback=False)
            return normalize_issues(analysis, page_url=item.target)

        try:
            issues = await with_retry(attempt, self.retry_policy, should_retry=is_retryable)
        except Exception as e:
            logger.warning(
                "Item %d (%s) failed after %d attempt(s): %s", seq, item.target, attempts, e
            )
            return BatchResult(
                target=item.target,
                ok=False,
                seq=seq,
                worker_id=worker_id,
                error=str(e) or type(e).__name__,
                attempts=attempts,
            )

        logger.debug("Item %d (%s): %d issue(s)", seq, item.target, len(issues))
        return BatchResult(
            target=item.target,
            ok=True,
            seq=seq,
            worker_id=worker_id,
            structured_issues=issues,
            attempts=attempts,
        )


async def run_single(
    analyzer: Analyzer,
    session_factory: SessionFactory,
    target: str,
    context: AnalysisContext,
    reporters: Optional[ReporterPipeline] = None,
    report_dir: Path = Path("vision-audit-reports"),
    timeout_ms: int = 120000,
    run_id: Optional[str] = None,
) -> AnalysisResult:
    """
    Capture and analyze one target, writing a receipt.

    The receipt `receipt-<run_id>.json` holds the full AnalysisResult and
    its normalized issues; its path is attached to the returned result.
    Provider failures produce a degraded result, capture failures raise.

    Raises:
        InvalidInputError: If the context lacks stage or user_intent
        CaptureError: If the page cannot be loaded or captured
    """
    run_id = run_id or new_run_id()
    reporters = reporters or ReporterPipeline()
    report_dir = Path(report_dir)
    context = _with_page_url(context, target)

    await reporters.start({
        "kind": "single",
        "run_id": run_id,
        "target": target,
        "report_dir": str(report_dir),
        "total": 1,
    })

    try:
        session = await session_factory()
        try:
            await session.prepare(target, timeout_ms)
            screenshot = await session.capture()
        finally:
            await session.close()
        result = await analyzer.analyze(screenshot, context)
    except Exception as e:
        failed = BatchResult(target=target, ok=False, seq=1, worker_id=1, error=str(e))
        await reporters.item(failed)
        await reporters.complete(RunSummary(run_id=run_id, results=[failed]))
        raise

    issues = normalize_issues(result, page_url=target)
    entry = BatchResult(
        target=target,
        ok=not result.error,
        seq=1,
        worker_id=1,
        structured_issues=issues,
        error=result.critical_issues[0].description if result.error else None,
    )

    receipt = await asyncio.to_thread(
        write_json,
        report_dir / f"receipt-{run_id}.json",
        {
            "run_id": run_id,
            "target": target,
            "analysis": result.model_dump(mode="json"),
            "structured_issues": [issue.model_dump(mode="json") for issue in issues],
        },
    )
    result.attach_report(receipt)

    await reporters.item(entry)
    await reporters.complete(RunSummary(run_id=run_id, results=[entry]))
    return result


def _stage_context(journey: Journey, stage: JourneyStage, url: str) -> AnalysisContext:
    return AnalysisContext(
        stage=stage.name,
        user_intent=stage.user_goal or stage.ai_analysis or journey.name,
        user_context=UserContext(persona=journey.persona, device_context=journey.device),
        critical_elements=stage.critical_elements,
        page_url=url,
    )


async def run_journey(
    analyzer: Analyzer,
    session_factory: SessionFactory,
    base_url: str,
    journey: Journey,
    reporters: Optional[ReporterPipeline] = None,
    report_dir: Path = Path("vision-audit-reports"),
    timeout_ms: int = 120000,
    run_id: Optional[str] = None,
) -> RunSummary:
    """
    Walk a journey's stages in order on one page.

    Each stage page is resolved against `base_url`, analyzed with a
    journey-aware prompt naming the stages before it, and normalized. A
    failing stage is recorded and the walk continues. The summary is
    written to `journey-summary-<run_id>.json`.

    Example:
        journey = Journey(name="purchase", persona="mobile-consumer", stages=[
            JourneyStage(name="cart", page="/cart", user_goal="review items"),
            JourneyStage(name="payment", page="/pay", user_goal="pay"),
        ])
        summary = await run_journey(analyzer, factory, "https://shop.example.com", journey)
    """
    run_id = run_id or new_run_id()
    reporters = reporters or ReporterPipeline()
    report_dir = Path(report_dir)

    await reporters.start({
        "kind": "journey",
        "run_id": run_id,
        "journey": journey.name,
        "report_dir": str(report_dir),
        "total": len(journey.stages),
    })

    results: list[BatchResult] = []
    session: Optional[ExecutionSession] = None
    session_error: Optional[Exception] = None
    try:
        try:
            session = await session_factory()
        except Exception as e:
            logger.warning("Journey %s: could not open a session: %s", journey.name, e)
            session_error = e

        for seq, stage in enumerate(journey.stages, start=1):
            url = urljoin(base_url, stage.page)
            previous = [s.name for s in journey.stages[:seq - 1]]

            if session is None:
                result = BatchResult(
                    target=url, ok=False, seq=seq, worker_id=1, stage=stage.name,
                    error=f"Session failed to open: {session_error}",
                )
            else:
                try:
                    await session.prepare(url, timeout_ms)
                    screenshot = await session.capture()
                    context = _stage_context(journey, stage, url)
                    prompt = build_journey_prompt(journey.name, stage.name, previous, context)
                    analysis = await analyzer.analyze_strict(screenshot, context, prompt=prompt)
                    result = BatchResult(
                        target=url, ok=True, seq=seq, worker_id=1, stage=stage.name,
                        structured_issues=normalize_issues(analysis, page_url=url),
                    )
                except Exception as e:
                    logger.warning("Journey %s stage %s (%s) failed: %s", journey.name, stage.name, url, e)
                    result = BatchResult(
                        target=url, ok=False, seq=seq, worker_id=1, stage=stage.name,
                        error=str(e) or type(e).__name__,
                    )

            results.append(result)
            await reporters.item(result)
    finally:
        if session is not None:
            await session.close()

    summary = RunSummary(run_id=run_id, results=results)
    summary_path = report_dir / f"journey-summary-{run_id}.json"
    await asyncio.to_thread(write_json, summary_path, {
        "journey": journey.model_dump(mode="json"),
        **summary.model_dump(mode="json"),
    })
    logger.info(
        "Journey %s finished: %d/%d stage(s) succeeded (%s)",
        journey.name, summary.succeeded, summary.total, summary_path,
    )

    await reporters.complete(summary)
    return summary
