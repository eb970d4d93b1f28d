"""
WorkLedger Configuration
========================
Run-time settings for the CLI, resolved in three layers:

  1. defaults (below)
  2. WORKLEDGER_* environment variables
  3. command-line flags (applied by main.py through `override`)

  WORKLEDGER_DB           ledger directory               (./ledger_data)
  WORKLEDGER_SCHEMA       record schema: work|workrecord (work)
  WORKLEDGER_CALLER       caller identity                (User1@org1.example.com)
  WORKLEDGER_RICH_QUERY   enable predicate queries       (1)
  WORKLEDGER_REKEY_INDEX  move index entries on update   (0)
  WORKLEDGER_ATOMIC       roll back failed invocations   (1)
  WORKLEDGER_LOG_LEVEL    logging level                  (WARNING)
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

ENV_PREFIX = "WORKLEDGER_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class LedgerConfig:
    db_path: str = "./ledger_data"
    schema: str = "work"
    caller: str = "User1@org1.example.com"
    rich_query: bool = True
    rekey_index: bool = False
    atomic: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LedgerConfig":
        """Defaults overlaid with WORKLEDGER_* variables."""
        env = os.environ if environ is None else environ
        cfg = cls()
        values = {}
        for name, value in (("db_path", env.get(ENV_PREFIX + "DB")),
                            ("schema", env.get(ENV_PREFIX + "SCHEMA")),
                            ("caller", env.get(ENV_PREFIX + "CALLER")),
                            ("log_level", env.get(ENV_PREFIX + "LOG_LEVEL"))):
            if value is not None:
                values[name] = value
        for name in ("rich_query", "rekey_index", "atomic"):
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is not None:
                values[name] = parse_bool(raw, ENV_PREFIX + name.upper())
        return replace(cfg, **values)

    def override(self, **values: Any) -> "LedgerConfig":
        """Copy with every non-None value applied."""
        return replace(self, **{k: v for k, v in values.items() if v is not None})


def parse_bool(raw: str, name: str = "value") -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (1/0, true/false), got {raw!r}")
