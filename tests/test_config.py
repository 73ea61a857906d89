from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from model_comparator import config
from model_comparator.shared.errors import ConfigError


def test_credentials_from_file(tmp_path: Path) -> None:
    (tmp_path / "genspark.txt").write_text("id= me@example.com \npass=s3cret\n", encoding="utf-8")
    cred = config.load_credentials(tmp_path, env={})
    assert cred.identity == "me@example.com"
    assert cred.secret == "s3cret"


def test_environment_overrides_file(tmp_path: Path) -> None:
    (tmp_path / "genspark.txt").write_text("id=file@example.com\npass=file\n", encoding="utf-8")
    cred = config.load_credentials(tmp_path, env={"COMPARATOR_ID": "env@example.com"})
    assert cred.identity == "env@example.com"
    assert cred.secret == "file"


def test_dotenv_is_loaded(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("COMPARATOR_ID", raising=False)
    monkeypatch.delenv("COMPARATOR_PASS", raising=False)
    (tmp_path / ".env").write_text("COMPARATOR_ID=dot@example.com\nCOMPARATOR_PASS=dotpass\n", encoding="utf-8")

    try:
        cred = config.load_credentials(tmp_path)
    finally:
        # load_dotenv writes straight into os.environ
        os.environ.pop("COMPARATOR_ID", None)
        os.environ.pop("COMPARATOR_PASS", None)

    assert cred.identity == "dot@example.com"
    assert cred.secret == "dotpass"


def test_missing_credentials(tmp_path: Path) -> None:
    (tmp_path / "genspark.txt").write_text("id=me@example.com\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="credentials missing"):
        config.load_credentials(tmp_path, env={})


def test_prompt_and_models(tmp_path: Path) -> None:
    (tmp_path / "prompt.txt").write_text("\n  What is shown?  \n", encoding="utf-8")
    (tmp_path / "models.txt").write_text("GPT-4o\n\n  Claude  \n\n", encoding="utf-8")
    assert config.load_prompt(tmp_path) == "What is shown?"
    assert config.load_models(tmp_path) == ["GPT-4o", "Claude"]


def test_missing_prompt(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        config.load_prompt(tmp_path)


def test_assets_filtered_and_sorted(tmp_path: Path) -> None:
    images = tmp_path / "images"
    images.mkdir()
    for name in ["b.JPG", "a.png", "notes.txt", "c.webp"]:
        (images / name).write_bytes(b"x")
    (images / "sub.png").mkdir()

    assets = config.load_assets(tmp_path)

    assert [a.name for a in assets] == ["a.png", "b.JPG", "c.webp"]
    assert Path(assets[0].path) == images / "a.png"


def test_no_images(tmp_path: Path) -> None:
    (tmp_path / "images").mkdir()
    with pytest.raises(ConfigError, match="no image files"):
        config.load_assets(tmp_path)


def test_run_config_defaults() -> None:
    rc = config.load_run_config(None)
    assert rc.browser.headless is False
    assert rc.timings.response_timeout_ms == 180000
    assert rc.max_attach_attempts == 3


def test_run_config_overrides(tmp_path: Path) -> None:
    p = tmp_path / "run.json"
    p.write_text(json.dumps({
        "browser": {"channel": "msedge", "headless": True},
        "timings": {"sample_interval_s": 1.0},
        "site": {"answer": ".answer"},
        "max_attach_attempts": 5,
    }), encoding="utf-8")

    rc = config.load_run_config(p)

    assert rc.browser.channel == "msedge"
    assert rc.browser.headless is True
    assert rc.timings.sample_interval_s == 1.0
    assert rc.timings.stable_samples == 3
    assert rc.site.answer == ".answer"
    assert rc.max_attach_attempts == 5


def test_run_config_unknown_key(tmp_path: Path) -> None:
    p = tmp_path / "run.json"
    p.write_text(json.dumps({"timings": {"sample_every": 1}}), encoding="utf-8")
    with pytest.raises(ConfigError, match="unknown keys"):
        config.load_run_config(p)
