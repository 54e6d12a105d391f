"""Loguru logging for the export pipeline.

Every record carries the run it belongs to and the export type being
processed.  The runner binds them with ``logger.contextualize`` (``run_id``,
``trigger``, ``export_type``); records logged outside a run show ``-``.

Output is the text format below, or one JSON object per line when
``json_output`` is set.  With a ``log_dir`` the same stream goes to a
rotating ``commerce-export.log`` and failure alerts (records bound with
``alert=True``) are also kept in ``alerts.log``.
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

RUN_CONTEXT_DEFAULTS: dict[str, Any] = {"run_id": "-", "trigger": "-", "export_type": "-"}

_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | "
    "run={extra[run_id]} {extra[trigger]} type={extra[export_type]} | "
    "{name}:{function}:{line} | {message}"
)


def _is_alert(record: dict[str, Any]) -> bool:
    return bool(record["extra"].get("alert", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None, json_output: bool = False) -> None:
    """Configure Loguru sinks for the export pipeline.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            file sink is added (rotated every 24 hours, retained 7 days)
            plus ``alerts.log`` for failure alerts (retained 90 days).
        json_output: Serialize records as JSON lines instead of text.
    """
    level = log_level.upper()
    logger.remove()
    logger.configure(extra=RUN_CONTEXT_DEFAULTS)
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, serialize=json_output)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "commerce-export.log",
            level=level,
            format=_LOG_FORMAT,
            serialize=json_output,
            rotation="24h",
            retention="7 days",
        )
        logger.add(
            log_path / "alerts.log",
            level="ERROR",
            format=_LOG_FORMAT,
            filter=_is_alert,
            retention="90 days",
        )
