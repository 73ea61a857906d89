from __future__ import annotations

import concurrent.futures
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from model_comparator.automation.context import RunContext
from model_comparator.shared.schemas import Lookup, SiteProfile, Timings


class FakeElement:
    def __init__(self, name: str = "", text: str = "", visible: bool = True, on_click: Optional[Callable[[], None]] = None):
        self.name = name
        self.text = text
        self.visible = visible
        self.on_click = on_click
        self.clicks = 0

    def click(self) -> None:
        self.clicks += 1
        if self.on_click:
            self.on_click()


class FakeChooser:
    def __init__(self) -> None:
        self.files: List[str] = []


class FakeDriver:
    """
    Scripted stand-in for the Playwright driver.
    - elements: selector -> elements currently on the page
    - waits: (selector, state) -> statuses returned in order, before falling back to page state
    - answer_samples: texts handed out one per find_all(answer) call
    """

    def __init__(self, site: SiteProfile):
        self.site = site
        self.url = "about:blank"
        self.redirects: Dict[str, str] = {}
        self.elements: Dict[str, List[FakeElement]] = {}
        self.waits: Dict[Tuple[str, str], List[str]] = {}
        self.chooser_results: List[str] = []
        self.answer_samples: Optional[List[str]] = None
        self.calls: List[tuple] = []
        self.filled: Dict[str, str] = {}
        self.keys: List[str] = []
        self.files: List[str] = []

    # helpers for tests
    def add(self, selector: str, *elements: FakeElement) -> None:
        self.elements.setdefault(selector, []).extend(elements)

    def _visible(self, selector: str) -> Optional[FakeElement]:
        for el in self.elements.get(selector, []):
            if el.visible:
                return el
        return None

    # UIDriver
    def navigate(self, url: str, timeout_ms: int) -> None:
        self.calls.append(("navigate", url, timeout_ms))
        self.url = self.redirects.get(url, url)

    def current_url(self) -> str:
        return self.url

    def find_element(self, selector: str) -> Lookup:
        els = self.elements.get(selector) or []
        if not els:
            return Lookup.miss(selector)
        return Lookup.hit(els[0], selector)

    def find_all(self, selector: str) -> List[Any]:
        self.calls.append(("find_all", selector))
        if selector == self.site.answer and self.answer_samples is not None:
            text = self.answer_samples.pop(0) if self.answer_samples else ""
            return [FakeElement("answer", text)]
        return list(self.elements.get(selector, []))

    def is_visible(self, element: Any) -> bool:
        return element.visible

    def click(self, element: Any) -> None:
        self.calls.append(("click", element.name))
        element.click()

    def click_at(self, x: float, y: float) -> None:
        self.calls.append(("click_at", x, y))

    def fill(self, element: Any, text: str) -> None:
        self.calls.append(("fill", element.name))
        self.filled[element.name] = text

    def press_key(self, key: str) -> None:
        self.calls.append(("press_key", key))
        self.keys.append(key)

    def read_text(self, element: Any) -> str:
        return element.text

    def wait_for_state(self, selector: str, state: str, timeout_ms: int) -> Lookup:
        self.calls.append(("wait_for_state", selector, state))
        scripted = self.waits.get((selector, state))
        if scripted:
            status = scripted.pop(0)
            el = self._visible(selector) if state == "visible" else None
            return Lookup(status, el, selector)
        el = self._visible(selector)
        if state == "visible":
            return Lookup.hit(el, selector) if el else Lookup.timeout(selector)
        if state in ("hidden", "detached"):
            return Lookup.timeout(selector) if el else Lookup.hit(None, selector)
        return Lookup.hit(el, selector) if self.elements.get(selector) else Lookup.timeout(selector)

    def wait_for_url(self, predicate: Callable[[str], bool], timeout_ms: int) -> Lookup:
        self.calls.append(("wait_for_url",))
        if predicate(self.url):
            return Lookup.hit(self.url)
        return Lookup.timeout()

    def intercept_file_selection(self, trigger: Any, timeout_ms: int) -> Lookup:
        self.calls.append(("intercept_file_selection", trigger.name))
        trigger.click()
        status = self.chooser_results.pop(0) if self.chooser_results else "found"
        if status != "found":
            return Lookup(status)
        return Lookup.hit(FakeChooser())

    def set_files(self, chooser: Any, path: str) -> None:
        chooser.files.append(path)
        self.files.append(path)


class FakeHumanChannel:
    def __init__(self, on_request: Optional[Callable[[str], None]] = None):
        self.messages: List[str] = []
        self.on_request = on_request

    def request(self, message: str) -> "concurrent.futures.Future[None]":
        self.messages.append(message)
        if self.on_request:
            self.on_request(message)
        fut: concurrent.futures.Future = concurrent.futures.Future()
        fut.set_result(None)
        return fut


class FakeClock:
    def __init__(self, step: float = 1.5) -> None:
        self.now = 100.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def site() -> SiteProfile:
    return SiteProfile()


@pytest.fixture
def driver(site: SiteProfile) -> FakeDriver:
    return FakeDriver(site)


@pytest.fixture
def human() -> FakeHumanChannel:
    return FakeHumanChannel()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def ctx(driver: FakeDriver, human: FakeHumanChannel, site: SiteProfile, sleeps: List[float]) -> RunContext:
    return RunContext(
        driver=driver,
        human=human,
        site=site,
        timings=Timings(),
        sleep=sleeps.append,
        clock=FakeClock(),
    )
