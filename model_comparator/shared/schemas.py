# model_comparator/shared/schemas.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Literal
from datetime import datetime

from .errors import ConfigError

# helpers
SCHEMA_VERSION = "1.0.0"

ELAPSED_SENTINEL = "-"
EXTRACTION_FAILED_TEXT = "[error] failed to extract answer text"


def local_stamp(now: Optional[datetime] = None) -> str:
    """File-name friendly local timestamp, e.g. 2025-01-31_154502."""
    d = now or datetime.now()
    return d.strftime("%Y-%m-%d_%H%M%S")


# Base config models: JSON-friendly types loaded from the run config
@dataclass
class WireModel:
    # Keep this out of __init__ to avoid field order issues
    schema_version: str = field(default=SCHEMA_VERSION, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        d = dict(d)
        d.pop("schema_version", None)
        known = {f.name for f in fields(cls) if f.init}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ConfigError(f"{cls.__name__}: unknown keys {unknown}")
        return cls(**d)


BrowserType = Literal[
    "chromium",       # generic chromium engine
    "chrome",
    "msedge",
]


@dataclass
class BrowserConfig(WireModel):
    """# Browser execution settings (e.g., Edge, Chrome)"""
    browser: BrowserType = "chromium"
    channel: Optional[str] = None          # playwright channel name if needed
    user_data_dir: Optional[str] = None    # explicit profile dir override
    headless: bool = False
    locale: Optional[str] = "en-US"
    timezone: Optional[str] = None
    extra_args: List[str] = field(default_factory=list)


@dataclass
class Timings(WireModel):
    """
    Every machine-timed wait in the run.
    *_ms values are Playwright timeouts, *_s values are plain sleeps.
    """
    nav_timeout_ms: int = 30000
    login_timeout_ms: int = 180000      # real-world login incl. MFA / redirects
    response_timeout_ms: int = 180000   # busy indicator disappearance
    action_delay_s: float = 1.5
    probe_settle_s: float = 5.0
    login_page_settle_s: float = 3.0
    new_chat_settle_s: float = 3.0
    element_timeout_ms: int = 10000
    submit_timeout_ms: int = 5000
    model_item_timeout_ms: int = 5000
    file_chooser_timeout_ms: int = 15000
    busy_poll_attempts: int = 20
    busy_poll_interval_s: float = 0.5
    fallback_initial_delay_s: float = 5.0
    sample_interval_s: float = 3.0
    max_samples: int = 60
    stable_samples: int = 3
    settle_s: float = 2.0
    human_timeout_s: Optional[float] = None   # None: wait for the operator forever


@dataclass
class SiteProfile(WireModel):
    """
    URLs and selectors of the target chat application.
    All of these are overridable from the run config when the site markup changes.
    """
    base_url: str = "https://www.genspark.ai"
    login_url: str = "https://www.genspark.ai/login"
    chat_url: str = "https://www.genspark.ai/agents?type=ai_chat"
    login_url_patterns: List[str] = field(default_factory=lambda: ["/login", "/signin", "/auth"])
    upgrade_prompt: str = ".upgrade-prompt"

    email_login_button: str = (
        'button:has-text("Login with email"), button:has-text("login with email"), button:has-text("Email")'
    )
    identity_input: str = "#email"
    secret_input: str = "#password"
    submit_button: str = (
        'button[type="submit"], button:has-text("Log in"), button:has-text("Login"), button:has-text("Sign in")'
    )

    model_button: str = ".model-selection-button"
    model_dropdown: str = ".model-dropdown"
    add_entry_button: str = ".add-entry-btn"
    add_entry_option: str = ".add-entry-option-item"
    attach_option_keywords: List[str] = field(
        default_factory=lambda: ["ローカル", "ファイル", "local", "file", "upload"]
    )
    prompt_inputs: List[str] = field(
        default_factory=lambda: ['textarea, [contenteditable="true"], input[type="text"]', '[role="textbox"]']
    )

    busy_indicators: List[str] = field(
        default_factory=lambda: [
            "button.stop-button",
            'button[aria-label="Stop"]',
            'button[aria-label="stop"]',
            'button:has-text("Stop")',
            'button:has-text("停止")',
            ".stop-generating",
            '[class*="stop"]',
        ]
    )
    answer: str = ".assistant.plain-text"

    def is_login_url(self, url: str) -> bool:
        return any(p in (url or "") for p in self.login_url_patterns)


# Run data model
@dataclass(frozen=True)
class Credential:
    identity: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class Asset:
    name: str       # base name, used in result rows
    path: str

    @classmethod
    def from_path(cls, p: Path) -> "Asset":
        return cls(name=p.name, path=str(p))


@dataclass(frozen=True)
class Task:
    asset: Asset
    model_name: str


def expand_tasks(assets: List[Asset], models: List[str]) -> List[Task]:
    """Asset-major, model-minor, in declared order."""
    return [Task(asset=a, model_name=m) for a in assets for m in models]


OutcomeStatus = Literal["ok", "skipped", "error"]


@dataclass(frozen=True)
class TaskOutcome:
    asset: str
    model_name: str
    elapsed_seconds: Optional[float]   # None -> sentinel
    result_text: str
    status: OutcomeStatus = "ok"

    @property
    def elapsed_display(self) -> str:
        if self.elapsed_seconds is None:
            return ELAPSED_SENTINEL
        return f"{self.elapsed_seconds:.1f}s"

    def to_row(self) -> List[str]:
        return [self.asset, self.model_name, self.elapsed_display, self.result_text]


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass
class RetryAttempt:
    attempt_number: int
    max_attempts: int

    @property
    def exhausted(self) -> bool:
        return self.attempt_number >= self.max_attempts

    def __str__(self) -> str:
        return f"{self.attempt_number}/{self.max_attempts}"


# Driver outcomes
LookupStatus = Literal["found", "not_found", "timeout"]


@dataclass(frozen=True)
class Lookup:
    """
    Three-way result of a driver query.
    Callers branch on `status` instead of testing for None.
    """
    status: LookupStatus
    element: Any = None
    selector: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == "found"

    @classmethod
    def hit(cls, element: Any, selector: Optional[str] = None) -> "Lookup":
        return cls("found", element, selector)

    @classmethod
    def miss(cls, selector: Optional[str] = None) -> "Lookup":
        return cls("not_found", None, selector)

    @classmethod
    def timeout(cls, selector: Optional[str] = None) -> "Lookup":
        return cls("timeout", None, selector)


CompletionSignal = Literal["busy_indicator", "text_stable", "none"]


@dataclass
class CompletionResult:
    """
    What the completion detector saw.
    - signal: which heuristic declared completion ("none" when the fallback ran out of samples)
    - timed_out: a bounded wait expired and extraction ran best-effort
    """
    signal: CompletionSignal
    timed_out: bool
    text: str
    extracted: bool
    indicator_selector: Optional[str] = None
    samples: int = 0


@dataclass
class RunStats:
    total: int = 0
    succeeded: int = 0
    skipped: int = 0
    errored: int = 0

    def record(self, outcome: TaskOutcome) -> None:
        if outcome.status == "ok":
            self.succeeded += 1
        elif outcome.status == "skipped":
            self.skipped += 1
        else:
            self.errored += 1

    @property
    def failed(self) -> int:
        return self.skipped + self.errored
