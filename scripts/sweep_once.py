"""Run a single presence sweep against the configured database and exit.

Useful from cron or after restoring a backup, when no app process is running.
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.presence_system.presence_system.container import build_container


def main() -> int:
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        sweep_batch_size=int(getattr(settings, "PRESENCE_SWEEP_BATCH_SIZE", 500)),
    )
    result = container.presence_sweeper.run_once()
    print(
        f"checked={result.checked} corrected={result.corrected} failed={result.failed}"
        + (f" error={result.error}" if result.error else "")
    )
    return 0 if result.error is None else 1


if __name__ == "__main__":
    raise SystemExit(main())
