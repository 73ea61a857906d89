# model_comparator/automation/context.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..services.driver import UIDriver
from ..services.human_channel import HumanChannel, wait_for_operator
from ..services.result_sink import CsvResultSink
from ..shared.schemas import RunStats, SiteProfile, Timings


@dataclass
class RunContext:
    """
    Everything a component needs for one run, passed explicitly.
    There is exactly one writer to `driver` at a time (sequential run).
    """
    driver: UIDriver
    human: HumanChannel
    site: SiteProfile = field(default_factory=SiteProfile)
    timings: Timings = field(default_factory=Timings)
    sink: Optional[CsvResultSink] = None
    stats: RunStats = field(default_factory=RunStats)
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic

    def pause(self, seconds: float) -> None:
        if seconds > 0:
            self.sleep(seconds)

    def ask_operator(self, message: str) -> None:
        wait_for_operator(self.human, message, self.timings.human_timeout_s)
