"""
Reporter Pipeline

Fans run events out to every configured sink: one `start`, one `item` per
finished batch entry, one `complete`. Sinks are independent; a failing sink
is logged and the run carries on.
"""

import asyncio
import json
import logging
import re
import time
from pathlib import Path
from typing import Iterable, Optional

import aioboto3
from botocore.exceptions import ClientError

from .models import BatchResult, Config, RunSummary


logger = logging.getLogger(__name__)


class Reporter:
    """Base sink; every hook is a no-op"""

    name = "reporter"

    async def on_start(self, meta: dict) -> None:
        pass

    async def on_item(self, result: BatchResult) -> None:
        pass

    async def on_complete(self, summary: RunSummary) -> None:
        pass


class NullReporter(Reporter):
    name = "null"


class JsonlReporter(Reporter):
    """
    Append-only JSON Lines event log at `<report_dir>/events-<run_id>.jsonl`.

    Each event becomes one `{"type": ..., **payload, "ts": <epoch ms>}` line,
    written with a single append.
    """

    name = "jsonl"

    def __init__(self, run_id: str, report_dir: Path):
        self.path = Path(report_dir) / f"events-{run_id}.jsonl"
        self._lock = asyncio.Lock()

    def _append(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def _emit(self, event_type: str, payload: dict) -> None:
        line = json.dumps(
            {"type": event_type, **payload, "ts": int(time.time() * 1000)},
            default=str,
        )
        async with self._lock:
            await asyncio.to_thread(self._append, line)

    async def on_start(self, meta: dict) -> None:
        await self._emit("start", meta)

    async def on_item(self, result: BatchResult) -> None:
        await self._emit("item", result.model_dump(mode="json"))

    async def on_complete(self, summary: RunSummary) -> None:
        await self._emit("complete", summary.model_dump(mode="json"))


class S3Reporter(Reporter):
    """
    Uploads run events to S3 (or any S3-compatible store) with aioboto3.

    Layout under `<prefix>/<run_id>/`: start.json, items/<seq>.json and
    summary.json.
    """

    name = "s3"

    def __init__(
        self,
        run_id: str,
        bucket: str,
        prefix: str = "vision-audit",
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
    ):
        self.run_id = run_id
        self.bucket = bucket
        self.prefix = prefix
        self.endpoint_url = endpoint_url
        self.session = aioboto3.Session(region_name=region)
        self._enabled: Optional[bool] = None
        self._lock = asyncio.Lock()

    def key(self, *parts: str) -> str:
        return re.sub(r"/+", "/", "/".join([self.prefix, self.run_id, *parts])).lstrip("/")

    async def enabled(self) -> bool:
        """Resolve AWS credentials once; without them every upload is skipped"""
        async with self._lock:
            if self._enabled is None:
                credentials = await self.session.get_credentials()
                self._enabled = credentials is not None
                if not self._enabled:
                    logger.info("No AWS credentials found, skipping S3 uploads to %s", self.bucket)
            return self._enabled

    async def _put(self, key: str, payload: dict) -> None:
        if not await self.enabled():
            return
        body = json.dumps(payload, indent=2, default=str).encode("utf-8")
        try:
            async with self.session.client("s3", endpoint_url=self.endpoint_url) as s3_client:
                await s3_client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    ContentType="application/json",
                )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            logger.error("S3 upload of %s to %s failed (%s)", key, self.bucket, error_code)
            raise
        logger.debug("Uploaded s3://%s/%s", self.bucket, key)

    async def on_start(self, meta: dict) -> None:
        await self._put(self.key("start.json"), meta)

    async def on_item(self, result: BatchResult) -> None:
        await self._put(self.key("items", f"{result.seq}.json"), result.model_dump(mode="json"))

    async def on_complete(self, summary: RunSummary) -> None:
        await self._put(self.key("summary.json"), summary.model_dump(mode="json"))


class ReporterPipeline:
    """
    Dispatches events to all sinks concurrently.

    Enforces the event order: `item` before `start` is a programming error
    and raises; a repeated `start` or `complete` is logged and ignored.

    Example:
        pipeline = ReporterPipeline([JsonlReporter(run_id, Path("reports"))])
        await pipeline.start({"run_id": run_id, "total": 3})
        await pipeline.item(result)
        await pipeline.complete(summary)
    """

    def __init__(self, reporters: Iterable[Reporter] = ()):
        self.reporters = list(reporters)
        self._started = False
        self._completed = False

    async def _dispatch(self, event: str, hook: str, arg) -> None:
        outcomes = await asyncio.gather(
            *(getattr(reporter, hook)(arg) for reporter in self.reporters),
            return_exceptions=True,
        )
        for reporter, outcome in zip(self.reporters, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Reporter %s failed on %s event",
                    reporter.name, event,
                    exc_info=(type(outcome), outcome, outcome.__traceback__),
                )

    async def start(self, meta: dict) -> None:
        if self._started:
            logger.warning("Reporter pipeline already started, ignoring start event")
            return
        self._started = True
        await self._dispatch("start", "on_start", meta)

    async def item(self, result: BatchResult) -> None:
        if not self._started:
            raise RuntimeError("Reporter pipeline received an item before start")
        if self._completed:
            logger.warning("Reporter pipeline already completed, ignoring item %d", result.seq)
            return
        await self._dispatch("item", "on_item", result)

    async def complete(self, summary: RunSummary) -> None:
        if self._completed:
            logger.warning("Reporter pipeline already completed, ignoring complete event")
            return
        self._completed = True
        await self._dispatch("complete", "on_complete", summary)


def build_reporters(
    selection: str,
    run_id: str,
    report_dir: Path,
    config: Config,
) -> ReporterPipeline:
    """
    Build the reporter pipeline for a run.

    Args:
        selection: Comma list of "jsonl", "s3", or "both"/"all"
        run_id: Identifier used in artifact names and S3 keys
        report_dir: Directory for local artifacts
        config: S3 bucket, prefix, region and endpoint

    Returns:
        ReporterPipeline; the S3 sink is a NullReporter when no bucket is set
        and skips its uploads when the AWS session finds no credentials
    """
    names = {part.strip().lower() for part in selection.split(",") if part.strip()}
    if names & {"both", "all"}:
        names |= {"jsonl", "s3"}

    reporters: list[Reporter] = []
    if "jsonl" in names:
        reporters.append(JsonlReporter(run_id, report_dir))
    if "s3" in names:
        if config.s3_bucket:
            reporters.append(S3Reporter(
                run_id,
                bucket=config.s3_bucket,
                prefix=config.s3_prefix,
                region=config.s3_region,
                endpoint_url=config.s3_endpoint_url,
            ))
        else:
            logger.info("S3 reporter selected but S3_BUCKET is not set, skipping uploads")
            reporters.append(NullReporter())

    unknown = names - {"jsonl", "s3", "both", "all", "none"}
    if unknown:
        logger.warning("Ignoring unknown reporters: %s", ", ".join(sorted(unknown)))

    return ReporterPipeline(reporters)
