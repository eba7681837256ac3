"""
Screenshot Capture Module

Execution sessions that load a target page and capture it as PNG bytes.
The batch executor only depends on the ExecutionSession protocol; the
Playwright implementation is the one used in production.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .errors import CaptureError
from .models import Config, ScreenshotData, ScreenshotMetadata


logger = logging.getLogger(__name__)

SETTLE_DELAY_MS = 500


class ExecutionSession(Protocol):
    """One exclusively owned browser page (or equivalent)"""

    async def prepare(self, target: str, timeout_ms: int) -> None:
        ...

    async def capture(self) -> ScreenshotData:
        ...

    async def close(self) -> None:
        ...


class PlaywrightSession:
    """
    Headless Chromium page reused across targets.

    Example:
        session = await PlaywrightSession.launch({"width": 1920, "height": 1080})
        try:
            await session.prepare("https://example.com/checkout", 30000)
            screenshot = await session.capture()
        finally:
            await session.close()
    """

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        page: Page,
        viewport: dict,
        output_dir: Optional[Path] = None,
    ):
        self._playwright = playwright
        self._browser = browser
        self.page = page
        self.viewport = viewport
        self.output_dir = output_dir
        self.target: Optional[str] = None

    @classmethod
    async def launch(
        cls,
        viewport: Optional[dict] = None,
        headless: bool = True,
        output_dir: Optional[Path] = None,
    ) -> "PlaywrightSession":
        """
        Start Playwright, launch Chromium and open one page.

        Raises:
            CaptureError: If the browser fails to launch
        """
        viewport = viewport or {"width": 1920, "height": 1080}
        playwright = await async_playwright().start()
        browser: Optional[Browser] = None
        try:
            browser = await playwright.chromium.launch(headless=headless)
            page = await browser.new_page(viewport=viewport)
        except PlaywrightError as e:
            try:
                if browser is not None:
                    await browser.close()
            finally:
                await playwright.stop()
            raise CaptureError(f"Browser launch failed: {e}") from e
        return cls(playwright, browser, page, viewport, output_dir)

    async def prepare(self, target: str, timeout_ms: int) -> None:
        """
        Navigate to `target` and wait for the network to go idle.

        Raises:
            CaptureError: If navigation fails or exceeds timeout_ms
        """
        self.target = target
        try:
            await self.page.goto(target, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeout as e:
            raise CaptureError(f"Timed out after {timeout_ms}ms loading {target}") from e
        except PlaywrightError as e:
            raise CaptureError(f"Navigation to {target} failed: {e}") from e

        # Small delay to ensure rendering completes
        await self.page.wait_for_timeout(SETTLE_DELAY_MS)

    async def capture(self) -> ScreenshotData:
        """
        Capture the full scrollable page as PNG.

        Saves a copy under output_dir when one is configured.
        """
        path = self._generate_path(self.target or "page") if self.output_dir else None
        try:
            data = await self.page.screenshot(
                path=str(path) if path else None,
                full_page=True,
                type="png",
            )
            ratio = await self.page.evaluate("window.devicePixelRatio")
        except PlaywrightError as e:
            raise CaptureError(f"Screenshot capture failed: {e}") from e

        return ScreenshotData(
            data=data,
            metadata=ScreenshotMetadata(
                width=self.viewport["width"],
                height=self.viewport["height"],
                device_pixel_ratio=float(ratio or 1.0),
            ),
            path=str(path) if path else None,
        )

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()

    def _generate_path(self, url: str) -> Path:
        """
        Generate unique screenshot path based on URL.

        Format: screenshot_{timestamp}_{url_fragment}.png
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")

        # Extract filename-safe part from URL
        url_part = url.rstrip("/").split("/")[-1].split(".")[0] if "/" in url else "page"
        url_part = "".join(c for c in url_part if c.isalnum() or c in "-_")[:20] or "page"

        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir / f"screenshot_{timestamp}_{url_part}.png"


class PlaywrightSessionFactory:
    """
    Async callable that opens a new PlaywrightSession per worker.

    Example:
        factory = PlaywrightSessionFactory.from_config(config)
        session = await factory()
    """

    def __init__(
        self,
        viewport: Optional[dict] = None,
        headless: bool = True,
        output_dir: Optional[Path] = None,
    ):
        self.viewport = viewport or {"width": 1920, "height": 1080}
        self.headless = headless
        self.output_dir = output_dir

    @classmethod
    def from_config(
        cls,
        config: Config,
        save_screenshots: bool = False,
    ) -> "PlaywrightSessionFactory":
        return cls(
            viewport={"width": config.viewport_width, "height": config.viewport_height},
            output_dir=config.report_dir / "screenshots" if save_screenshots else None,
        )

    async def __call__(self) -> PlaywrightSession:
        logger.debug("Launching Chromium (viewport %s)", self.viewport)
        return await PlaywrightSession.launch(self.viewport, self.headless, self.output_dir)
