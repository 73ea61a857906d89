# model_comparator/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

from .shared.errors import ConfigError
from .shared.schemas import Asset, BrowserConfig, Credential, SiteProfile, Timings

CREDENTIALS_FILE = "genspark.txt"
PROMPT_FILE = "prompt.txt"
MODELS_FILE = "models.txt"
IMAGES_DIR = "images"
OUTPUT_DIR = "dest"

ENV_IDENTITY = "COMPARATOR_ID"
ENV_SECRET = "COMPARATOR_PASS"

IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}


def read_json(p: Path) -> Any:
    return json.loads(p.read_text(encoding="utf-8"))


# Input files
def load_credentials(base_dir: Path, env: Optional[Mapping[str, str]] = None) -> Credential:
    """
    Credential file format (two lines):
        id=<email>
        pass=<password>
    COMPARATOR_ID / COMPARATOR_PASS (environment or .env) override the file.
    """
    if env is None:
        load_dotenv(base_dir / ".env")
        env = os.environ

    identity = ""
    secret = ""
    p = base_dir / CREDENTIALS_FILE
    if p.exists():
        for line in p.read_text(encoding="utf-8").splitlines():
            s = line.strip()
            if s.startswith("id="):
                identity = s[3:].strip()
            elif s.startswith("pass="):
                secret = s[5:].strip()

    identity = (env.get(ENV_IDENTITY) or identity).strip()
    secret = (env.get(ENV_SECRET) or secret).strip()
    if not identity or not secret:
        raise ConfigError(
            f"credentials missing: write id= and pass= into {p} "
            f"or set {ENV_IDENTITY} / {ENV_SECRET} (environment or .env)"
        )
    return Credential(identity=identity, secret=secret)


def load_prompt(base_dir: Path) -> str:
    p = base_dir / PROMPT_FILE
    if not p.exists():
        raise ConfigError(f"{p} not found")
    prompt = p.read_text(encoding="utf-8").strip()
    if not prompt:
        raise ConfigError(f"{p} is empty")
    return prompt


def load_models(base_dir: Path) -> List[str]:
    p = base_dir / MODELS_FILE
    if not p.exists():
        raise ConfigError(f"{p} not found")
    models = [line.strip() for line in p.read_text(encoding="utf-8").splitlines()]
    models = [m for m in models if m]
    if not models:
        raise ConfigError(f"{p} has no model names")
    return models


def load_assets(base_dir: Path) -> List[Asset]:
    d = base_dir / IMAGES_DIR
    if not d.is_dir():
        raise ConfigError(f"{d}/ directory not found")
    files = sorted(
        (f for f in d.iterdir() if f.is_file() and f.suffix.lower() in IMAGE_EXTS),
        key=lambda f: f.name,
    )
    if not files:
        raise ConfigError(f"{d}/ has no image files ({', '.join(sorted(IMAGE_EXTS))})")
    return [Asset.from_path(f) for f in files]


# Run config (optional JSON)
@dataclass
class RunConfig:
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    timings: Timings = field(default_factory=Timings)
    site: SiteProfile = field(default_factory=SiteProfile)
    max_attach_attempts: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RunConfig":
        if not isinstance(d, dict):
            raise ConfigError("run config must be a JSON object")
        d = dict(d)
        known = {"browser", "timings", "site", "max_attach_attempts"}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ConfigError(f"run config: unknown keys {unknown}")
        try:
            attempts = int(d.get("max_attach_attempts", 3))
        except (TypeError, ValueError):
            raise ConfigError("run config: max_attach_attempts must be an integer")
        if attempts < 1:
            raise ConfigError("run config: max_attach_attempts must be >= 1")
        return cls(
            browser=BrowserConfig.from_dict(d.get("browser") or {}),
            timings=Timings.from_dict(d.get("timings") or {}),
            site=SiteProfile.from_dict(d.get("site") or {}),
            max_attach_attempts=attempts,
        )


def load_run_config(path: Optional[Path]) -> RunConfig:
    if path is None:
        return RunConfig()
    if not path.exists():
        raise ConfigError(f"config not found: {path}")
    try:
        data = read_json(path)
    except json.JSONDecodeError as e:
        raise ConfigError(f"config is not valid JSON ({path}): {e}")
    return RunConfig.from_dict(data)
