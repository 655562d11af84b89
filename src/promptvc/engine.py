# Copyright (c) Syntropy Systems
"""Test execution engine: runs a dataset against a prompt template."""
from __future__ import annotations

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from promptvc.errors import ProviderError, ValidationError
from promptvc.metrics import summarize
from promptvc.models.experiment import Dataset, TestCase, TestCaseResult, VersionResult
from promptvc.provider import ChatCompletionRequest, ChatMessage

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from promptvc.pricing import PricingTable
    from promptvc.provider import ChatProvider

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]

_VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")

LATENCY_DECIMALS = 2

# Worker threads per concurrency slot. Threads beyond the slot count let other
# cases proceed while some cases sit in retry backoff.
THREADS_PER_SLOT = 2


def render_template(template: str, inputs: Mapping[str, str]) -> str:
    """Replace every ``{{name}}`` with its input; unknown names become empty."""
    return _VARIABLE_PATTERN.sub(lambda match: inputs.get(match.group(1), ""), template)


@dataclass
class RunnerOptions:
    """Execution settings for a test run."""

    model: str
    concurrency: int = 5
    max_retries: int = 3

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            msg = f"Concurrency must be at least 1 (got {self.concurrency})"
            raise ValidationError(msg)
        if self.max_retries < 0:
            msg = f"Max retries cannot be negative (got {self.max_retries})"
            raise ValidationError(msg)


class TestRunner:
    """Executes test cases against a prompt with bounded concurrency.

    Features:
    - At most ``concurrency`` provider calls in flight (counting semaphore)
    - Retries with exponential backoff (1s, 2s, 4s, ...) that hold no slot
    - Results returned in dataset order regardless of completion order
    - Optional progress callback, invoked once per case in completion order
    """

    __test__ = False

    options: RunnerOptions
    _provider: ChatProvider
    _pricing: PricingTable
    _progress_callback: Optional[ProgressCallback]
    _sleep: Callable[[float], None]
    _clock: Callable[[], float]

    def __init__(
        self,
        provider: ChatProvider,
        pricing: PricingTable,
        options: RunnerOptions,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize a test runner.

        Args:
            provider: Chat completion backend
            pricing: Price lookup used to compute per-case cost
            options: Model, concurrency and retry settings
            sleep: Backoff sleep function (seconds)
            clock: Monotonic clock used for latency (seconds)

        """
        self.options = options
        self._provider = provider
        self._pricing = pricing
        self._progress_callback = None
        self._sleep = sleep
        self._clock = clock

    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a callback receiving ``(completed, total, case_name)``."""
        self._progress_callback = callback

    def run(self, dataset: Dataset | Sequence[TestCase], template: str) -> VersionResult:
        """Execute every test case against ``template``."""
        cases = list(dataset.test_cases if isinstance(dataset, Dataset) else dataset)
        total = len(cases)
        results: list[TestCaseResult | None] = [None] * total
        if total == 0:
            return VersionResult(test_cases=[], summary=summarize([]))

        gate = threading.Semaphore(self.options.concurrency)
        progress_lock = threading.Lock()
        completed = 0

        def run_case(index: int, case: TestCase) -> None:
            nonlocal completed
            result = self.execute_case(case, template, gate)
            results[index] = result
            with progress_lock:
                completed += 1
                if self._progress_callback is not None:
                    try:
                        self._progress_callback(completed, total, case.name)
                    except Exception:
                        logger.warning("Progress callback failed", exc_info=True)

        pool_size = min(total, self.options.concurrency * THREADS_PER_SLOT)
        with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="pvc-case") as pool:
            futures = [pool.submit(run_case, i, case) for i, case in enumerate(cases)]
            for future in futures:
                future.result()

        final = [result for result in results if result is not None]
        return VersionResult(test_cases=final, summary=summarize(final))

    def execute_case(
        self,
        case: TestCase,
        template: str,
        gate: threading.Semaphore | None = None,
    ) -> TestCaseResult:
        """Run one test case, retrying provider failures."""
        prompt = render_template(template, case.inputs)
        request = ChatCompletionRequest(
            model=self.options.model,
            messages=[ChatMessage(role="user", content=prompt)],
        )
        gate = gate or threading.Semaphore(1)

        started_at: float | None = None
        last_error: ProviderError | None = None
        attempts = self.options.max_retries + 1

        for attempt in range(attempts):
            try:
                with gate:
                    if started_at is None:
                        started_at = self._clock()
                    response = self._provider.create_chat_completion(request)
            except ProviderError as e:
                last_error = e
                if attempt < attempts - 1:
                    delay = 2**attempt
                    logger.warning(
                        "Case '%s' attempt %d/%d failed: %s (retrying in %ds)",
                        case.name, attempt + 1, attempts, e, delay,
                    )
                    self._sleep(delay)
                continue

            latency_ms = (self._clock() - started_at) * 1000
            input_tokens = response.usage.prompt_tokens
            output_tokens = response.usage.completion_tokens
            return TestCaseResult(
                name=case.name,
                success=True,
                latency=round(latency_ms, LATENCY_DECIMALS),
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost=self._pricing.cost(self.options.model, input_tokens, output_tokens),
                output=response.text,
            )

        logger.warning("Case '%s' failed after %d attempts: %s", case.name, attempts, last_error)
        return TestCaseResult(
            name=case.name,
            success=False,
            error=str(last_error) if last_error is not None else "Unknown error",
        )
