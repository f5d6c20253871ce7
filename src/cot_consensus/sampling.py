"""Parallel fan-out of independent chain-of-thought samples."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass

from .client import ChatClient
from .errors import InvalidConfiguration, InvalidSampleCount, SampleGenerationFailure
from .prompts import PromptBundle, build_cot_prompt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleOutcome:
    index: int
    text: str
    error: str | None = None
    attempts: int = 1

    @property
    def failed(self) -> bool:
        return self.error is not None


def validate_sample_count(sample_count: int) -> int:
    if isinstance(sample_count, bool) or not isinstance(sample_count, int) or sample_count <= 0:
        raise InvalidSampleCount(sample_count)
    return sample_count


class SampleGenerator:
    """Issue ``sample_count`` independent generations for one problem.

    Every slot gets its own call with the same prompt and no shared state, so
    all slots run concurrently. Results are written by request index; a slot
    whose call fails keeps an empty text and the error message.
    """

    def __init__(
        self,
        client: ChatClient,
        *,
        temperature: float = 0.7,
        max_tokens: int = 500,
        parallel_workers: int = 0,
        sample_retries: int = 0,
        retry_backoff_sec: float = 0.5,
    ) -> None:
        if temperature <= 0:
            raise InvalidConfiguration("temperature must be > 0 so that samples can diverge")
        if max_tokens <= 0:
            raise InvalidConfiguration("max_tokens must be > 0")

        self.client = client
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.parallel_workers = max(0, int(parallel_workers))
        self.sample_retries = max(0, int(sample_retries))
        self.retry_backoff_sec = max(0.0, float(retry_backoff_sec))

    def generate(
        self,
        problem_text: str,
        sample_count: int,
        *,
        deadline_sec: float = 0,
    ) -> list[SampleOutcome]:
        validate_sample_count(sample_count)
        prompt = build_cot_prompt(problem_text)

        workers = min(self.parallel_workers or sample_count, sample_count)
        slots: list[SampleOutcome | None] = [None] * sample_count

        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cot-sample")
        try:
            futures = {pool.submit(self._run_slot, prompt, idx): idx for idx in range(sample_count)}
            done, pending = wait(futures, timeout=deadline_sec if deadline_sec > 0 else None)
        finally:
            # On interruption this drops queued slots; running calls finish unobserved.
            pool.shutdown(wait=False, cancel_futures=True)

        for future in done:
            slots[futures[future]] = future.result()

        for future in pending:
            idx = futures[future]
            logger.warning("sample %d did not finish within %.1fs", idx, deadline_sec)
            slots[idx] = SampleOutcome(index=idx, text="", error="deadline exceeded", attempts=0)

        outcomes = [slot for slot in slots if slot is not None]
        failed = sum(1 for outcome in outcomes if outcome.failed)
        if failed:
            logger.info("%d/%d samples failed", failed, sample_count)
        return outcomes

    def _run_slot(self, prompt: PromptBundle, index: int) -> SampleOutcome:
        last_error = ""
        attempts = 0

        while attempts <= self.sample_retries:
            if attempts:
                time.sleep(self.retry_backoff_sec * attempts)
            attempts += 1
            try:
                text = self.client.generate(
                    system_prompt=prompt.system,
                    user_prompt=prompt.user,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
            except SampleGenerationFailure as exc:
                last_error = str(exc)
                logger.warning("sample %d attempt %d failed: %s", index, attempts, last_error)
                if not exc.transient:
                    break
                continue
            except Exception as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning("sample %d attempt %d failed: %s", index, attempts, last_error)
                continue

            return SampleOutcome(index=index, text=text or "", attempts=attempts)

        return SampleOutcome(index=index, text="", error=last_error, attempts=attempts)
