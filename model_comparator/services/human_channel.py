# model_comparator/services/human_channel.py
from __future__ import annotations

import concurrent.futures
import logging
import queue
import sys
import threading
from typing import Callable, Optional, Protocol, TextIO

LOG = logging.getLogger("model_comparator.human")


class HumanChannel(Protocol):
    def request(self, message: str) -> "concurrent.futures.Future[None]":
        """Ask the operator to act; the future resolves once they confirm."""
        ...


class ConsoleHumanChannel:
    """
    Operator acknowledgment over the console (press Enter to continue).

    NOTE:
    Playwright(sync) must stay on the main thread, so the blocking stdin read
    runs on a single daemon worker thread and the caller gets a Future back.
    The browser stays open while the operator fixes things by hand.
    """

    def __init__(self, stream: Optional[TextIO] = None, reader: Optional[Callable[[], str]] = None):
        self._stream = stream or sys.stdout
        self._reader = reader or sys.stdin.readline
        self._q: "queue.Queue[tuple[str, concurrent.futures.Future]]" = queue.Queue()
        self._boot_lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None

    def _ensure_worker(self) -> None:
        with self._boot_lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(
                target=self._worker_loop,
                name="Comparator-HumanChannel",
                daemon=True,
            )
            self._worker.start()

    def _worker_loop(self) -> None:
        while True:
            message, fut = self._q.get()
            if not fut.set_running_or_notify_cancel():
                continue
            try:
                self._stream.write(f"\n>>> {message} ")
                self._stream.flush()
                line = self._reader()
                if line == "":
                    raise EOFError("stdin closed while waiting for operator")
                _settle(fut)
            except Exception as e:
                # Ensure caller never hangs
                _settle(fut, exc=e)

    def request(self, message: str) -> "concurrent.futures.Future[None]":
        LOG.warning("Waiting for operator: %s", message)
        self._ensure_worker()
        fut: concurrent.futures.Future = concurrent.futures.Future()
        self._q.put((message, fut))
        return fut


def _settle(fut: concurrent.futures.Future, exc: Optional[BaseException] = None) -> None:
    # an expired request keeps its timeout; the late answer is dropped
    if fut.done():
        LOG.info("Dropping operator input for an expired request")
        return
    try:
        if exc is not None:
            fut.set_exception(exc)
        else:
            fut.set_result(None)
    except concurrent.futures.InvalidStateError:
        LOG.info("Dropping operator input for an expired request")


def wait_for_operator(channel: HumanChannel, message: str, timeout_s: Optional[float] = None) -> None:
    """
    Block until the operator confirms.
    timeout_s=None waits forever; otherwise concurrent.futures.TimeoutError propagates
    and the request is expired, so a late Enter can not answer a later request.
    """
    fut = channel.request(message)
    try:
        fut.result(timeout=timeout_s)
    except concurrent.futures.TimeoutError:
        if fut.cancel():
            raise
        try:
            fut.set_exception(concurrent.futures.TimeoutError(f"no operator response within {timeout_s}s"))
        except concurrent.futures.InvalidStateError:
            # answered right at the deadline
            fut.result()
            return
        raise
