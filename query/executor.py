"""
WorkLedger Query Executor
=========================
Ad hoc predicate queries, passed verbatim to the substrate's rich-query
capability.

Phantom reads:
  Unlike range and prefix scans, the host does NOT re-execute predicate
  queries at commit time. The result set may differ between the moment
  it is computed and the moment the transaction commits. Do not drive
  state changes from these results unless the caller tolerates that
  drift; use RangeScanner for anything that writes.

The expression is not validated locally: syntax errors come back from
the substrate as QuerySyntaxError. A substrate without rich-query
support fails with QueryUnsupported.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from ledger.context import InvocationContext
from ledger.errors import ErrorKind, LedgerError
from storage.schema import DOC_TYPE_FIELD, RecordSchema
from storage.serializer import decode_document

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """One query hit. `record` is the decoded document, possibly projected."""
    key: str
    record: Dict[str, Any]

    def to_dict(self) -> dict:
        return {"Key": self.key, "Record": self.record}


class QueryExecutor:
    """Point-in-time predicate queries over one record schema."""

    def __init__(self, schema: RecordSchema):
        self.schema = schema

    def query(self, ctx: InvocationContext, expression: str) -> List[QueryResult]:
        """Run a query expression and collect the results."""
        substrate = ctx.substrate
        if not getattr(substrate, "supports_rich_query", False):
            raise LedgerError(ErrorKind.QUERY_UNSUPPORTED,
                              "Rich queries are not supported by this ledger")

        logger.debug("query: %s", expression)
        results = [QueryResult(kv.key, decode_document(kv.value))
                   for kv in substrate.get_query_result(expression)]
        logger.debug("query returned %d result(s)", len(results))
        return results

    def query_by_field(self, ctx: InvocationContext, field_name: str,
                       value: Any) -> List[QueryResult]:
        """
        Parameterized query: records of this schema whose field equals
        value (normalized the way the field is stored).
        """
        f = self.schema.get_field(field_name)
        selector = {DOC_TYPE_FIELD: self.schema.doc_type, f.name: f.normalize(value)}
        return self.query(ctx, json.dumps({"selector": selector}))
