# model_comparator/automation/completion.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..shared.schemas import EXTRACTION_FAILED_TEXT, CompletionResult
from .context import RunContext

LOG = logging.getLogger("model_comparator.completion")


class CompletionDetector:
    """
    Infers when the remote model has finished answering. The site sends no
    "done" event, so this is a two-phase heuristic chosen once per task:

    1. busy indicator: poll for a visible stop/generating control for
       busy_poll_attempts x busy_poll_interval_s. If one shows up, wait for it
       to hide (bounded by response_timeout_ms).
    2. text stabilization, only when no indicator showed up: sample the latest
       answer text every sample_interval_s until stable_samples consecutive
       samples are identical and non-empty, at most max_samples samples.

    Timeouts are not errors: extraction runs on whatever is rendered and the
    result carries timed_out=True.
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    def await_completion(self) -> CompletionResult:
        LOG.info("Waiting for the answer...")
        selector = self._poll_busy_indicator()
        if selector is not None:
            timed_out = self._wait_busy_gone(selector)
            signal, samples = "busy_indicator", 0
        else:
            LOG.warning("No busy indicator seen; falling back to text stabilization")
            stable, samples = self._wait_text_stable()
            signal = "text_stable" if stable else "none"
            timed_out = not stable

        self.ctx.pause(self.ctx.timings.settle_s)  # let the last tokens render
        text, extracted = self.extract()
        return CompletionResult(
            signal=signal,
            timed_out=timed_out,
            text=text,
            extracted=extracted,
            indicator_selector=selector,
            samples=samples,
        )

    # Phase 1
    def _poll_busy_indicator(self) -> Optional[str]:
        t, driver = self.ctx.timings, self.ctx.driver
        for _ in range(t.busy_poll_attempts):
            for sel in self.ctx.site.busy_indicators:
                try:
                    hit = driver.find_element(sel)
                    if hit.found and driver.is_visible(hit.element):
                        return sel
                except Exception as e:
                    # invalid selector or element detached mid-check
                    LOG.debug("busy indicator probe %s failed: %s", sel, e)
            self.ctx.pause(t.busy_poll_interval_s)
        return None

    def _wait_busy_gone(self, selector: str) -> bool:
        """Returns True when the wait timed out."""
        t = self.ctx.timings
        LOG.info("  busy indicator found (%s); generating...", selector)
        gone = self.ctx.driver.wait_for_state(selector, "hidden", t.response_timeout_ms)
        if gone.found:
            LOG.info("  generation finished")
            return False
        LOG.warning("  busy indicator still visible after %ss; extracting the current answer", t.response_timeout_ms // 1000)
        return True

    # Phase 2
    def _latest_answer_text(self) -> str:
        driver = self.ctx.driver
        answers = driver.find_all(self.ctx.site.answer)
        if not answers:
            return ""
        return driver.read_text(answers[-1]) or ""

    def _wait_text_stable(self) -> Tuple[bool, int]:
        """Returns (stable, samples_taken)."""
        t = self.ctx.timings
        self.ctx.pause(t.fallback_initial_delay_s)
        prev = ""
        run = 0
        for n in range(1, t.max_samples + 1):
            current = self._latest_answer_text()
            if current and current == prev:
                run += 1
            else:
                run = 1 if current else 0
            if run >= t.stable_samples:
                LOG.info("  answer text stable for %d samples", run)
                return True, n
            prev = current
            if n < t.max_samples:
                self.ctx.pause(t.sample_interval_s)
        LOG.warning("  answer text never stabilized (%d samples); extracting anyway", t.max_samples)
        return False, t.max_samples

    # Extraction
    def extract(self) -> Tuple[str, bool]:
        driver = self.ctx.driver
        answers = driver.find_all(self.ctx.site.answer)
        if not answers:
            LOG.error("  no answer element found")
            return EXTRACTION_FAILED_TEXT, False
        # later elements are the most recent turn
        text = (driver.read_text(answers[-1]) or "").strip()
        LOG.info("  answer extracted (%d chars)", len(text))
        return text, True
