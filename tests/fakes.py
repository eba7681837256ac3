# -*- coding: utf-8 -*-
"""Fakes and sample data shared by the test modules."""

from __future__ import annotations

import base64

from vision_audit.errors import CaptureError
from vision_audit.models import ScreenshotData
from vision_audit.providers.base import VisionProvider
from vision_audit.providers.dialects import DialectHandler, ProviderResponse


PNG_1X1_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMCAO7+fJ8AAAAASUVORK5CYII="
)

CHECKOUT_ANSWER = """**🎯 OVERALL UX SCORE: 6/10**

Usability: 7/10
Accessibility: 4/10

**✅ STRENGTHS:**
- Clear order summary with itemized prices

**🚨 CRITICAL ISSUES:** (Blocks user success)
- The `#place-order` button fails WCAG 1.4.3 contrast. Fix: darken the button background

**⚠️ MAJOR ISSUES:** (Impacts user experience)

**💡 MINOR ISSUES:** (Polish opportunities)

**🧠 CONTEXTUAL INSIGHTS:**
- The flow mostly supports completing the purchase
"""


class FakeProvider(VisionProvider):
    """Provider replaying scripted answers; an Exception entry is raised"""

    def __init__(self, answers, name: str = "fake", model: str = "fake-model"):
        self._answers = list(answers)
        self._name = name
        self.model = model
        self.handler = DialectHandler("openai", model)
        self.prompts: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return True

    async def _complete(self, screenshot, prompt):
        self.prompts.append(prompt)
        answer = self._answers.pop(0) if len(self._answers) > 1 else self._answers[0]
        if isinstance(answer, Exception):
            raise answer
        return ProviderResponse(text=answer, tokens_used=42, model=self.model)

    @property
    def calls(self) -> int:
        return len(self.prompts)


class FakeSession:
    def __init__(self, fail_targets: set[str]):
        self.fail_targets = fail_targets
        self.prepared: list[str] = []
        self.closed = False

    async def prepare(self, target: str, timeout_ms: int) -> None:
        self.prepared.append(target)
        if target in self.fail_targets:
            raise CaptureError(f"Timed out after {timeout_ms}ms loading {target}")

    async def capture(self) -> ScreenshotData:
        return ScreenshotData(data=PNG_1X1_BYTES)

    async def close(self) -> None:
        self.closed = True


class FakeSessionFactory:
    def __init__(self, fail_targets: set[str] | None = None, fail_open: bool = False):
        self.fail_targets = fail_targets or set()
        self.fail_open = fail_open
        self.sessions: list[FakeSession] = []

    async def __call__(self) -> FakeSession:
        if self.fail_open:
            raise CaptureError("Browser launch failed: chromium not installed")
        session = FakeSession(self.fail_targets)
        self.sessions.append(session)
        return session


