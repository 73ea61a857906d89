from __future__ import annotations

import concurrent.futures
import io
import queue
import threading

import pytest

from model_comparator.services.human_channel import ConsoleHumanChannel, wait_for_operator


def test_console_channel_resolves_on_enter() -> None:
    out = io.StringIO()
    channel = ConsoleHumanChannel(stream=out, reader=lambda: "\n")

    fut = channel.request("Press Enter once you are logged in...")

    assert fut.result(timeout=5) is None
    assert ">>> Press Enter once you are logged in..." in out.getvalue()


def test_console_channel_closed_stdin_fails_the_future() -> None:
    channel = ConsoleHumanChannel(stream=io.StringIO(), reader=lambda: "")

    with pytest.raises(EOFError):
        channel.request("continue?").result(timeout=5)


def test_requests_are_served_in_order() -> None:
    answers = iter(["\n", "\n"])
    out = io.StringIO()
    channel = ConsoleHumanChannel(stream=out, reader=lambda: next(answers))

    first = channel.request("first")
    second = channel.request("second")

    concurrent.futures.wait([first, second], timeout=5)
    text = out.getvalue()
    assert text.index("first") < text.index("second")


def test_wait_for_operator_honours_timeout() -> None:
    class NeverAnswers:
        def request(self, message: str):
            return concurrent.futures.Future()

    with pytest.raises(concurrent.futures.TimeoutError):
        wait_for_operator(NeverAnswers(), "hello", timeout_s=0.01)


def test_late_answer_does_not_resolve_the_next_request() -> None:
    lines: "queue.Queue[str]" = queue.Queue()
    reading = threading.Event()

    def reader() -> str:
        reading.set()
        return lines.get()

    out = io.StringIO()
    channel = ConsoleHumanChannel(stream=out, reader=reader)

    class PromptShown:
        def request(self, message: str):
            fut = channel.request(message)
            reading.wait(5)
            return fut

    with pytest.raises(concurrent.futures.TimeoutError):
        wait_for_operator(PromptShown(), "first", timeout_s=0.05)

    reading.clear()
    second = channel.request("second")
    lines.put("\n")  # the operator answers the expired prompt
    assert reading.wait(5)

    assert ">>> second" in out.getvalue()
    assert not second.done()

    lines.put("\n")
    assert second.result(timeout=5) is None


def test_timed_out_request_still_queued_is_cancelled() -> None:
    class Queued:
        def __init__(self) -> None:
            self.fut: concurrent.futures.Future = concurrent.futures.Future()

        def request(self, message: str):
            return self.fut

    channel = Queued()
    with pytest.raises(concurrent.futures.TimeoutError):
        wait_for_operator(channel, "hello", timeout_s=0.01)

    assert channel.fut.cancelled()
