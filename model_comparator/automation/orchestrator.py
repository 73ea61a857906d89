# model_comparator/automation/orchestrator.py
from __future__ import annotations

import logging
from typing import List, Optional

from ..services.chat_service import ChatService
from ..shared.errors import AuthenticationError, StepFailedError
from ..shared.schemas import Asset, Task, TaskOutcome, expand_tasks
from .completion import CompletionDetector
from .context import RunContext
from .retry import DEFAULT_MAX_ATTEMPTS, StepRetryController

LOG = logging.getLogger("model_comparator.orchestrator")

RULE = "=" * 50


class TaskOrchestrator:
    """
    Runs every (asset, model) pair, asset-major, and writes one outcome per pair
    to the sink as soon as it is known. A failing task becomes a failure row;
    it never stops the matrix.
    """

    def __init__(
        self,
        ctx: RunContext,
        chat: Optional[ChatService] = None,
        detector: Optional[CompletionDetector] = None,
        retry: Optional[StepRetryController] = None,
        max_attach_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.ctx = ctx
        self.chat = chat or ChatService(ctx)
        self.detector = detector or CompletionDetector(ctx)
        self.retry = retry or StepRetryController(ctx, max_attempts=max_attach_attempts)

    def run(self, assets: List[Asset], models: List[str], prompt: str) -> List[TaskOutcome]:
        tasks = expand_tasks(assets, models)
        total = len(tasks)
        self.ctx.stats.total = total
        LOG.info("Running %d task(s): %d image(s) x %d model(s)", total, len(assets), len(models))

        outcomes: List[TaskOutcome] = []
        for n, task in enumerate(tasks, start=1):
            progress = f"[{n}/{total}]"
            LOG.info(RULE)
            LOG.info("%s image: %s / model: %s", progress, task.asset.name, task.model_name)
            LOG.info(RULE)

            outcome = self.run_task(task, prompt)
            self._emit(outcome)
            outcomes.append(outcome)

            if outcome.status == "ok":
                LOG.info("%s done (%s)", progress, outcome.elapsed_display)
            else:
                LOG.error("%s %s", progress, outcome.result_text)
        return outcomes

    def run_task(self, task: Task, prompt: str) -> TaskOutcome:
        try:
            return self._run_task(task, prompt)
        except AuthenticationError:
            raise
        except StepFailedError as e:
            return self._failed(task, f"[error] {e}")
        except Exception as e:
            LOG.debug("task failed", exc_info=True)
            return self._failed(task, f"[error] {type(e).__name__}: {e}")

    def _run_task(self, task: Task, prompt: str) -> TaskOutcome:
        # 1. fresh chat
        self.chat.open_new_chat()

        # 2. model
        if not self.chat.select_model(task.model_name):
            return TaskOutcome(
                asset=task.asset.name,
                model_name=task.model_name,
                elapsed_seconds=None,
                result_text=f'[skip] model "{task.model_name}" not found',
                status="skipped",
            )

        # 3. image (human-assisted retries)
        LOG.info("Attaching image: %s", task.asset.name)
        self.retry.with_retry(
            lambda: self.chat.try_attach(task.asset.path),
            label="image upload",
            reset=lambda: self._reset_chat(task),
        )

        # 4. prompt
        started = self.ctx.clock()
        self.chat.send_prompt(prompt)

        # 5. answer
        result = self.detector.await_completion()
        elapsed = self.ctx.clock() - started
        LOG.info("  response time: %.1fs (signal=%s, timed_out=%s)", elapsed, result.signal, result.timed_out)

        return TaskOutcome(
            asset=task.asset.name,
            model_name=task.model_name,
            elapsed_seconds=elapsed,
            result_text=result.text,
            status="ok" if result.extracted else "error",
        )

    def _reset_chat(self, task: Task) -> bool:
        # a new chat drops the model choice, so pick it again
        self.chat.open_new_chat()
        return self.chat.select_model(task.model_name)

    def _failed(self, task: Task, message: str) -> TaskOutcome:
        return TaskOutcome(
            asset=task.asset.name,
            model_name=task.model_name,
            elapsed_seconds=None,
            result_text=message,
            status="error",
        )

    def _emit(self, outcome: TaskOutcome) -> None:
        self.ctx.stats.record(outcome)
        if self.ctx.sink is not None:
            self.ctx.sink.append(outcome)

    def log_summary(self, output: Optional[str] = None) -> None:
        s = self.ctx.stats
        LOG.info(RULE)
        LOG.info("All tasks finished")
        LOG.info("  succeeded: %d / %d", s.succeeded, s.total)
        LOG.info("  skipped/errors: %d / %d", s.failed, s.total)
        if output:
            LOG.info("  output: %s", output)
        LOG.info(RULE)
