"""JSON-backed map of symbol to the close time of its last evaluated candle."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from ema_scanner.core.time_utils import ensure_utc

ScanState = dict[str, datetime | None]

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        return None


class ScanStateStore:
    """Whole-file loader and writer for the scan state.

    The file is a single JSON object ``{"BTCUSDT": "2024-05-01T23:59:59.999000+00:00", ...}``
    where ``null`` means the symbol was never evaluated. Writes overwrite the file in
    place and are best-effort.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)

    def load(self) -> ScanState:
        """Return the stored state; a missing or unreadable file yields an empty map."""

        if not self.path.exists():
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as file_obj:
                raw = json.load(file_obj)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "scan_state_load_failed",
                extra={"path": str(self.path), "error": str(exc)},
            )
            return {}

        if not isinstance(raw, dict):
            logger.warning("scan_state_not_an_object", extra={"path": str(self.path)})
            return {}

        state: ScanState = {}
        for symbol, value in raw.items():
            if not isinstance(symbol, str) or not symbol:
                continue
            state[symbol] = _parse_timestamp(value)
        return state

    def save(self, state: ScanState) -> bool:
        """Overwrite the file with the given state; failures are logged, not raised."""

        payload = {
            symbol: value.isoformat() if value is not None else None
            for symbol, value in sorted(state.items())
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as file_obj:
                json.dump(payload, file_obj, ensure_ascii=True, separators=(",", ":"))
        except OSError as exc:
            logger.warning(
                "scan_state_save_failed",
                extra={"path": str(self.path), "error": str(exc)},
            )
            return False
        return True
