# model_comparator/services/driver.py
from __future__ import annotations

from typing import Any, Callable, List, Protocol

from ..shared.schemas import Lookup

ElementState = str  # "attached" | "detached" | "visible" | "hidden"


class UIDriver(Protocol):
    """
    Atomic UI operations against the single live page.
    Queries answer with a Lookup (found / not_found / timeout) instead of None,
    so each call site has to decide what a miss and a timeout mean for it.
    Elements are opaque handles owned by the driver.
    """

    def navigate(self, url: str, timeout_ms: int) -> None: ...

    def current_url(self) -> str: ...

    def find_element(self, selector: str) -> Lookup: ...

    def find_all(self, selector: str) -> List[Any]: ...

    def is_visible(self, element: Any) -> bool: ...

    def click(self, element: Any) -> None: ...

    def click_at(self, x: float, y: float) -> None: ...

    def fill(self, element: Any, text: str) -> None: ...

    def press_key(self, key: str) -> None: ...

    def read_text(self, element: Any) -> str: ...

    def wait_for_state(self, selector: str, state: ElementState, timeout_ms: int) -> Lookup: ...

    def wait_for_url(self, predicate: Callable[[str], bool], timeout_ms: int) -> Lookup: ...

    def intercept_file_selection(self, trigger: Any, timeout_ms: int) -> Lookup: ...

    def set_files(self, chooser: Any, path: str) -> None: ...
