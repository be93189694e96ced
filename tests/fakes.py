"""
Test doubles for reasoning backends.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, List, Optional

from clinassist.core.llm.base import BackendResult, ReasoningBackend


@dataclass
class Slow:
    """Script step: wait, then return (or raise) `then`."""
    seconds: float
    then: Any = None


class ScriptedBackend(ReasoningBackend):
    """
    Reasoning backend that plays back a fixed script, one step per call.

    A step is a BackendResult to return, an exception to raise, or a Slow
    wrapper around either.
    """

    def __init__(
        self,
        backend_id: str,
        script: List[Any],
        candidates: Optional[List[str]] = None,
        available: bool = True,
    ):
        self.backend_id = backend_id
        self._script = list(script)
        self._candidates = candidates or [f"{backend_id}-model-{i}" for i in range(len(script))]
        self._available = available
        self.calls: List[str] = []
        self.contexts: List[Any] = []
        self.finished: List[str] = []

    @property
    def candidates(self) -> List[str]:
        return list(self._candidates)

    @property
    def is_available(self) -> bool:
        return self._available

    async def generate(self, case, model, context):
        self.calls.append(model)
        self.contexts.append(context)
        step = self._script.pop(0) if self._script else BackendResult(success=False, error="script exhausted")
        if isinstance(step, Slow):
            await asyncio.sleep(step.seconds)
            self.finished.append(model)
            step = step.then
        if isinstance(step, BaseException):
            raise step
        return step


def ok(text: str = "Clinical reasoning: findings reviewed.", **kwargs) -> BackendResult:
    return BackendResult(success=True, analysis=text, patient_friendly_message="Hello there", **kwargs)

