"""
WorkLedger Interactive REPL
===========================
Interactive shell with a ledger> prompt.

Features:
  - One invocation per line: <command> <arg> <arg> ...
    Arguments are split shell-style, so quote JSON query strings:
      ledger> queryWorks '{"selector":{"workexperience":"tom"}}'
  - Meta-commands (dot-prefixed)
  - Ctrl+C cancels the current line, Ctrl+D exits
  - Persistent readline history (~/.workledger_history)
"""

import os
import shlex
import sys
from typing import Optional

from cli.renderer import MODES, Renderer
from cli.session import Session, SessionError
from config import LedgerConfig
from ledger.errors import LedgerError


# ─── History ────────────────────────────────────────────────────────
HISTORY_FILE = os.path.expanduser("~/.workledger_history")
HISTORY_MAX = 1000

try:
    import readline
    _HAS_READLINE = True
except ImportError:
    _HAS_READLINE = False


def _load_history():
    if _HAS_READLINE and os.path.exists(HISTORY_FILE):
        try:
            readline.read_history_file(HISTORY_FILE)
        except OSError:
            pass


def _save_history():
    if _HAS_READLINE:
        try:
            readline.set_history_length(HISTORY_MAX)
            readline.write_history_file(HISTORY_FILE)
        except OSError:
            pass


# ─── REPL ───────────────────────────────────────────────────────────

class REPL:
    """
    Interactive WorkLedger shell.

    Usage:
        repl = REPL(LedgerConfig.from_env())
        repl.run()
    """

    PROMPT = "ledger> "

    def __init__(self, config: LedgerConfig, renderer: Optional[Renderer] = None):
        self.config = config
        self.session: Optional[Session] = None
        self.renderer = renderer or Renderer()
        self._running = False

    def open(self) -> bool:
        try:
            self.session = Session(
                self.config.db_path, schema=self.config.schema,
                caller=self.config.caller, rich_query=self.config.rich_query,
                rekey_index=self.config.rekey_index, atomic=self.config.atomic)
        except (LedgerError, ValueError) as e:
            print(f"Error: failed to open ledger at '{self.config.db_path}': {e}",
                  file=sys.stderr)
            return False
        return True

    def run(self):
        if self.session is None and not self.open():
            return

        _load_history()
        self._running = True

        print("WorkLedger")
        print(f"Ledger: {self.session.db_path} ({self.session.schema.doc_type}, "
              f"{len(self.session.ledger)} keys)")
        print('Type ".help" for usage hints.')
        print()

        try:
            while self._running:
                prompt = "ledger[txn]> " if self.session.explicit_txn else self.PROMPT
                try:
                    line = input(prompt)
                except KeyboardInterrupt:
                    print()
                    continue
                except EOFError:
                    print()
                    break
                self.handle_line(line)
        finally:
            _save_history()
            self._shutdown()

    def handle_line(self, line: str) -> None:
        """Execute one input line (meta-command or invocation)."""
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            return
        if stripped.startswith("."):
            self._handle_meta_command(stripped)
            return
        try:
            parts = shlex.split(stripped)
        except ValueError as e:
            print(f"SyntaxError: {e}")
            return
        self._invoke(parts[0], parts[1:])

    def _invoke(self, command: str, args):
        try:
            resp = self.session.execute(command, args)
        except (LedgerError, SessionError) as e:
            self.renderer.render_error(e)
            return
        self.renderer.render_response(resp)

    # ─── Meta-Commands ──────────────────────────────────────────────

    def _handle_meta_command(self, line: str):
        parts = line.split(None, 1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd in (".quit", ".exit", ".q"):
            self._running = False
        elif cmd == ".help":
            self._cmd_help()
        elif cmd == ".commands":
            for name in self.session.commands:
                print(f"  {name}")
        elif cmd == ".schema":
            self._cmd_schema()
        elif cmd == ".mode":
            self._cmd_mode(arg)
        elif cmd == ".headers":
            self._cmd_headers(arg)
        elif cmd == ".limit":
            self._cmd_limit(arg)
        elif cmd == ".stats":
            self._cmd_stats()
        elif cmd in (".begin", ".commit", ".rollback"):
            try:
                print(getattr(self.session, cmd[1:])())
            except (LedgerError, SessionError) as e:
                self.renderer.render_error(e)
        else:
            print(f"Unknown command: {cmd}. Type .help for available commands.")

    def _cmd_help(self):
        print("""WorkLedger Commands:
  .help                Show this help
  .commands            List invocable commands
  .schema              Show the record schema and its index
  .mode table|vertical|raw|json  Set output mode (default: table)
  .headers on|off      Toggle column headers
  .limit N|off         Set display row limit
  .stats               Show session statistics
  .begin               Start an explicit transaction
  .commit              Commit it
  .rollback            Roll it back
  .quit                Exit (aliases: .exit, .q)

Tips:
  - One command per line: initWork w1 blue 35 tom
  - Quote arguments containing spaces or JSON
  - getWorksByRange '' '' scans every record
  - Ctrl+D exits the shell""")

    def _cmd_schema(self):
        schema = self.session.schema
        print(f"Schema: {schema.doc_type}")
        print(f"  {schema.key_field.name:<20} {schema.key_field.data_type.name:<8} KEY")
        for f in schema.fields:
            notes = []
            if f.length is not None:
                notes.append(f"LENGTH {f.length}")
            if f.lowercase:
                notes.append("LOWERCASE")
            if f.auto:
                notes.append(f"AUTO({f.auto})")
            print(f"  {f.name:<20} {f.data_type.name:<8} {' '.join(notes)}".rstrip())
        print(f"  Index: {schema.index_name}")
        print(f"  Transfer field: {schema.transfer_field}")

    def _cmd_mode(self, arg: str):
        if arg.lower() in MODES:
            self.renderer.mode = arg.lower()
            print(f"Output mode: {arg.lower()}")
        else:
            print(f"Usage: .mode {{{' | '.join(MODES)}}}")
            print(f"Current: {self.renderer.mode}")

    def _cmd_headers(self, arg: str):
        if arg.lower() in ("on", "1", "true"):
            self.renderer.show_headers = True
            print("Headers ON")
        elif arg.lower() in ("off", "0", "false"):
            self.renderer.show_headers = False
            print("Headers OFF")
        else:
            print(f"Headers are {'ON' if self.renderer.show_headers else 'OFF'}")

    def _cmd_limit(self, arg: str):
        if arg.lower() in ("off", "none", "0"):
            self.renderer.display_limit = None
            print("Display limit OFF")
        elif arg.isdigit() and int(arg) > 0:
            self.renderer.display_limit = int(arg)
            print(f"Display limit: {arg} rows")
        else:
            print("Usage: .limit N | .limit off")
            print(f"Current: {self.renderer.display_limit or 'OFF'}")

    def _cmd_stats(self):
        s = self.session.stats
        print("Session Statistics:")
        print(f"  Invocations:            {s['invocations']}")
        print(f"  Failed invocations:     {s['failures']}")
        print(f"  Transactions committed: {s['transactions_committed']}")
        print(f"  Transactions aborted:   {s['transactions_aborted']}")
        print(f"  Keys in ledger:         {len(self.session.ledger)}")
        print(f"  Atomic invocations:     {'ON' if self.session.atomic else 'OFF'}")
        if self.session.explicit_txn:
            print(f"  Active transaction:     {self.session.ledger.get_tx_id()}")

    def _shutdown(self):
        if self.session is not None:
            warning = self.session.close()
            if warning:
                print(warning, file=sys.stderr)
            print("Goodbye.")
