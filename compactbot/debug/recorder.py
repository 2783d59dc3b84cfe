"""Compaction diagnostics: one JSON record per compaction attempt."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger


def get_compactions_dir() -> Path:
    """Return the directory diagnostics are written to."""
    return Path.home() / ".compactbot" / "compactions"


class CompactionRecorder:
    """Write-only sink for postmortem inspection. Does nothing when disabled.

    Records are never read back by compactbot itself.
    """

    def __init__(self, enabled: bool, directory: Path | None = None):
        self.enabled = enabled
        self.directory = directory or get_compactions_dir()
        self._sink_id: int | None = None

    def enable_debug_log(self) -> None:
        """Mirror debug-level logs into ``debug.log`` next to the records."""
        if not self.enabled or self._sink_id is not None:
            return
        self.directory.mkdir(parents=True, exist_ok=True)
        self._sink_id = logger.add(
            self.directory / "debug.log",
            level="DEBUG",
            filter="compactbot",
            enqueue=False,
        )

    def disable_debug_log(self) -> None:
        if self._sink_id is not None:
            logger.remove(self._sink_id)
            self._sink_id = None

    def record(self, session_id: str, data: dict[str, Any]) -> Path | None:
        """Persist *data* for *session_id*; returns the file written, if any."""
        if not self.enabled:
            return None

        now = datetime.now(timezone.utc)
        stamp = now.isoformat().replace(":", "-").replace(".", "-")
        entry = {
            "session_id": session_id,
            "timestamp": now.isoformat(),
            **data,
        }

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self.directory / f"{stamp}_{session_id[:8]}.json"
            path.write_text(
                json.dumps(entry, indent=2, ensure_ascii=False, default=str),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"Failed to write compaction diagnostics: {e}")
            return None

        logger.debug(f"Compaction diagnostics written to {path}")
        return path
