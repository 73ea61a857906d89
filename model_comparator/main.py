# model_comparator/main.py
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config as cfg_mod
from .automation.authenticator import SessionAuthenticator
from .automation.context import RunContext
from .automation.orchestrator import TaskOrchestrator
from .services.browser_service import BrowserService
from .services.human_channel import ConsoleHumanChannel
from .services.result_sink import CsvResultSink
from .shared.errors import AuthenticationError, ConfigError
from .shared.schemas import local_stamp

LOG = logging.getLogger("model_comparator.main")


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="model-comparator",
        description="Send every image with the same prompt to every model and record the answers as CSV.",
    )
    ap.add_argument("--base-dir", default=".", help="folder with genspark.txt, prompt.txt, models.txt, images/")
    ap.add_argument("--config", default=None, help="optional run config JSON (browser / timings / site)")
    ap.add_argument("--output", default=None, help="CSV path (default: <base-dir>/dest/<timestamp>.csv)")
    ap.add_argument("--headless", action="store_true", help="run the browser headless (manual login impossible)")
    ap.add_argument("--verbose", action="store_true")
    return ap


def _preview(text: str, n: int = 50) -> str:
    return text[:n] + ("..." if len(text) > n else "")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    base_dir = Path(args.base_dir).resolve()
    try:
        run_cfg = cfg_mod.load_run_config(Path(args.config) if args.config else None)
        prompt = cfg_mod.load_prompt(base_dir)
        models = cfg_mod.load_models(base_dir)
        assets = cfg_mod.load_assets(base_dir)
        credential = cfg_mod.load_credentials(base_dir)
    except ConfigError as e:
        LOG.error("Configuration error: %s", e)
        return 1

    if args.headless:
        run_cfg.browser.headless = True

    LOG.info("=== Model Comparator ===")
    LOG.info("Prompt: %s", _preview(prompt))
    LOG.info("Models: %d (%s)", len(models), ", ".join(models))
    LOG.info("Images: %d (%s)", len(assets), ", ".join(a.name for a in assets))
    LOG.info("Total runs: %d", len(models) * len(assets))
    LOG.info("Credentials loaded (id: %s)", credential.identity)

    output = Path(args.output) if args.output else base_dir / cfg_mod.OUTPUT_DIR / f"{local_stamp()}.csv"
    LOG.info("Output: %s", output)

    browser = BrowserService(run_cfg.browser, profile_root=str(base_dir / "profile"))
    try:
        with browser:
            ctx = RunContext(
                driver=browser.driver(),
                human=ConsoleHumanChannel(),
                site=run_cfg.site,
                timings=run_cfg.timings,
            )
            SessionAuthenticator(ctx, credential).ensure_authenticated()

            # the output file only exists once there is a session to fill it
            with CsvResultSink(output) as sink:
                ctx.sink = sink
                orchestrator = TaskOrchestrator(ctx, max_attach_attempts=run_cfg.max_attach_attempts)
                orchestrator.run(assets, models, prompt)
            orchestrator.log_summary(str(output))
    except AuthenticationError as e:
        LOG.error("Fatal: %s", e)
        return 1
    except KeyboardInterrupt:
        LOG.warning("Interrupted by user (Ctrl+C); finished rows are in %s", output)
        return 130
    except Exception as e:
        LOG.exception("Fatal error: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
