"""
WorkLedger: Work-Record Store on an Ordered Key-Value Ledger
============================================================
Entry point.

Usage:
    python main.py [options]                        Interactive REPL
    python main.py [options] COMMAND [ARG ...]      Invoke one command
    python main.py [options] --file script.txt      Run a command script

Options (each overrides the matching WORKLEDGER_* variable):
    --db PATH           Ledger directory (default: ./ledger_data)
    --schema NAME       Record schema: work | workrecord
    --caller IDENTITY   Caller identity, e.g. User1@org1.example.com
    --no-rich-query     Disable predicate queries
    --rekey-index       Move index entries when the indexed field changes
    --non-atomic        Keep partial effects of failed invocations
    --mode MODE         Output mode: table | vertical | raw | json
    -v, --verbose       Log engine activity to stderr (repeat for debug)
"""

import argparse
import logging
import os
import shlex
import sys
from typing import List, Optional

from config import LedgerConfig

logger = logging.getLogger("workledger")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="workledger",
        description="Work-record store on an ordered key-value ledger.")
    p.add_argument("--db", dest="db_path", help="ledger directory")
    p.add_argument("--schema", help="record schema (work, workrecord)")
    p.add_argument("--caller", help="caller identity")
    p.add_argument("--no-rich-query", dest="rich_query", action="store_false",
                   default=None, help="disable predicate queries")
    p.add_argument("--rekey-index", dest="rekey_index", action="store_true",
                   default=None, help="re-key the index on indexed-field updates")
    p.add_argument("--non-atomic", dest="atomic", action="store_false",
                   default=None, help="keep partial effects of failed invocations")
    p.add_argument("--mode", choices=("table", "vertical", "raw", "json"),
                   default="table", help="output mode")
    p.add_argument("--file", dest="script", help="execute commands from a script file")
    p.add_argument("-v", "--verbose", action="count", default=0,
                   help="log to stderr (-v info, -vv debug)")
    p.add_argument("command", nargs="?", help="command to invoke")
    p.add_argument("args", nargs=argparse.REMAINDER, help="command arguments")
    return p


def configure_logging(config: LedgerConfig, verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, config.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level, stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def open_session(config: LedgerConfig):
    from cli.session import Session
    return Session(config.db_path, schema=config.schema, caller=config.caller,
                   rich_query=config.rich_query, rekey_index=config.rekey_index,
                   atomic=config.atomic)


def execute_single(config: LedgerConfig, command: str, args: List[str],
                   mode: str = "table") -> int:
    """Invoke one command, render the result. Returns the exit status."""
    from cli.renderer import Renderer

    renderer = Renderer()
    renderer.mode = mode
    with open_session(config) as session:
        resp = session.execute(command, args)
        renderer.render_response(resp)
        return 0 if resp.ok else 1


def execute_script(config: LedgerConfig, script_path: str, mode: str = "table") -> int:
    """
    Execute a command script and exit.

    One invocation per line, arguments split shell-style. Blank lines and
    lines starting with # are skipped. Each invocation commits on its
    own; the first failure stops the script.
    """
    from cli.renderer import Renderer

    if not os.path.isfile(script_path):
        print(f"Error: script file not found: {script_path}", file=sys.stderr)
        return 1

    with open(script_path, "r", encoding="utf-8") as f:
        lines = f.readlines()

    renderer = Renderer()
    renderer.mode = mode

    with open_session(config) as session:
        for lineno, line in enumerate(lines, 1):
            text = line.strip()
            if not text or text.startswith("#"):
                continue
            if text.startswith("."):
                print(f"# meta-command not supported in script mode: {text}",
                      file=sys.stderr)
                continue
            try:
                parts = shlex.split(text)
            except ValueError as e:
                print(f"SyntaxError: line {lineno}: {e}", file=sys.stderr)
                return 1
            resp = session.execute(parts[0], parts[1:])
            renderer.render_response(resp)
            if not resp.ok:
                print(f"Error at line {lineno}: {text[:80]}", file=sys.stderr)
                return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parse CLI arguments and dispatch."""
    from ledger.errors import LedgerError

    opts = build_parser().parse_args(argv)
    try:
        config = LedgerConfig.from_env().override(
            db_path=opts.db_path, schema=opts.schema, caller=opts.caller,
            rich_query=opts.rich_query, rekey_index=opts.rekey_index,
            atomic=opts.atomic)
    except ValueError as e:
        print(f"ConfigError: {e}", file=sys.stderr)
        return 2
    configure_logging(config, opts.verbose)
    logger.debug("config: %s", config)

    try:
        if opts.command:
            return execute_single(config, opts.command, opts.args, opts.mode)
        if opts.script:
            return execute_script(config, opts.script, opts.mode)
    except (LedgerError, ValueError) as e:
        from cli.renderer import Renderer
        Renderer(sys.stderr).render_error(e)
        return 1

    from cli.repl import REPL
    from cli.renderer import Renderer
    renderer = Renderer()
    renderer.mode = opts.mode
    REPL(config, renderer).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
