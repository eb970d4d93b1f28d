"""
WorkLedger Result Renderer
==========================
Formats invocation responses for the terminal.

Payload shapes:
  - JSON array of {"Key", "Record"}    → one row per record, Key first
  - JSON array of history entries      → one row per version
  - JSON object (a single record)      → one row
  - anything else                      → printed as a message
  - no payload                         → "OK"

Modes: table, vertical, raw, json.
Errors print as "<Kind>: <message>".
"""

import json
import sys
from typing import Any, Dict, List, Optional, TextIO

from contract.response import Response

MODES = ("table", "vertical", "raw", "json")


class Renderer:

    def __init__(self, output: TextIO = None):
        self.output = output or sys.stdout
        self.mode: str = "table"
        self.show_headers: bool = True
        self.display_limit: Optional[int] = None  # None = no limit
        self.max_col_width: int = 50

    # ─── Public API ─────────────────────────────────────────────────

    def render_response(self, resp: Response) -> None:
        if not resp.ok:
            self._print(f"{resp.kind or 'Error'}: {resp.message}")
            return
        if resp.payload is None:
            self._print("OK")
            return

        text = resp.text()
        try:
            data = json.loads(text)
        except ValueError:
            self._print(text)
            return

        if self.mode == "json":
            self._print(json.dumps(data, indent=2, ensure_ascii=False))
            return

        rows = self._to_rows(data)
        if rows is None:
            self._print(text)
            return
        count = self.render_rows(rows)
        self._print(f"\n{count} row(s) returned")

    def render_rows(self, rows: List[Dict[str, Any]]) -> int:
        """Render rows in the current mode. Returns number of rows rendered."""
        if self.display_limit is not None and len(rows) > self.display_limit:
            shown = rows[:self.display_limit]
        else:
            shown = rows
        if self.mode == "raw":
            self._render_raw(shown)
        elif self.mode == "vertical":
            self._render_vertical(shown)
        else:
            self._render_table(shown)
        if len(shown) < len(rows):
            self._print(f"... (display limit {self.display_limit} reached)")
        return len(shown)

    def render_error(self, error: Exception):
        """Render an exception raised outside the dispatcher."""
        kind = getattr(error, "kind", None)
        if kind is not None:
            prefix = kind.value
        else:
            prefix = self._classify_error(type(error).__name__)
        message = getattr(error, "message", None) or str(error)
        self._print(f"{prefix}: {message}")

    # ─── Table Mode ─────────────────────────────────────────────────

    def _render_table(self, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        headers = _headers(rows)
        widths = self._calculate_widths(headers, rows)

        if self.show_headers:
            self._print_table_separator(widths, headers)
            self._print_table_row(widths, headers, {h: h for h in headers})
            self._print_table_separator(widths, headers)
        for vals in rows:
            self._print_table_row(widths, headers, vals)
        if self.show_headers:
            self._print_table_separator(widths, headers)

    def _calculate_widths(self, headers: List[str], rows: List[Dict]) -> Dict[str, int]:
        widths = {h: min(len(h), self.max_col_width) for h in headers}
        for row in rows:
            for h in headers:
                val = self._format_value(row.get(h))
                widths[h] = max(widths[h], min(len(val), self.max_col_width))
        return widths

    def _print_table_separator(self, widths: Dict[str, int], headers: List[str]):
        self._print("+" + "".join("-" * (widths[h] + 2) + "+" for h in headers))

    def _print_table_row(self, widths: Dict[str, int], headers: List[str], vals: Dict):
        parts = ["|"]
        for h in headers:
            val_str = self._format_value(vals.get(h))
            if len(val_str) > self.max_col_width:
                val_str = val_str[:self.max_col_width - 3] + "..."
            w = widths[h]
            raw_val = vals.get(h)
            # Right-align numbers
            if isinstance(raw_val, (int, float)) and not isinstance(raw_val, bool):
                parts.append(f" {val_str:>{w}} |")
            else:
                parts.append(f" {val_str:<{w}} |")
        self._print("".join(parts))

    # ─── Vertical Mode ──────────────────────────────────────────────

    def _render_vertical(self, rows: List[Dict[str, Any]]) -> None:
        headers = _headers(rows)
        max_key_len = max((len(h) for h in headers), default=0)
        for n, vals in enumerate(rows, 1):
            self._print(f"*** Row {n} ***")
            for h in headers:
                self._print(f"  {h:>{max_key_len}}: {self._format_value(vals.get(h))}")

    # ─── Raw Mode ───────────────────────────────────────────────────

    def _render_raw(self, rows: List[Dict[str, Any]]) -> None:
        headers = _headers(rows)
        if self.show_headers and headers:
            self._print("|".join(headers))
        for vals in rows:
            self._print("|".join(self._format_value(vals.get(h)) for h in headers))

    # ─── Helpers ────────────────────────────────────────────────────

    def _to_rows(self, data: Any) -> Optional[List[Dict[str, Any]]]:
        """Flatten a decoded payload into display rows; None if it has no row shape."""
        if isinstance(data, dict):
            return [data]
        if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
            return None
        rows = []
        for item in data:
            if "Key" in item and isinstance(item.get("Record"), dict):
                row = {"Key": item["Key"]}
                row.update(item["Record"])
                rows.append(row)
            else:
                rows.append(item)
        return rows

    def _format_value(self, value) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list)):
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        return str(value)

    def _classify_error(self, error_type: str) -> str:
        """Map error class name to user-friendly prefix."""
        mapping = {
            "SessionError": "TransactionError",
            "ValueError": "ConfigError",
            "KeyboardInterrupt": "Interrupted",
        }
        return mapping.get(error_type, f"Error[{error_type}]")

    def _print(self, text: str):
        print(text, file=self.output)


def _headers(rows: List[Dict[str, Any]]) -> List[str]:
    """Union of row keys, in first-seen order."""
    headers: List[str] = []
    for row in rows:
        for k in row:
            if k not in headers:
                headers.append(k)
    return headers
