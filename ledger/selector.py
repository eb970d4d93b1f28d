"""
WorkLedger Selector Engine
==========================
Evaluates CouchDB-style JSON query documents against stored records.
Used by MemoryLedger to provide the predicate-query capability.

Query document:
  {"selector": {...},            required
   "fields":   ["a", "b"],       optional projection (top-level names)
   "sort":     ["a", {"b": "desc"}],
   "limit":    n, "skip": n,
   "use_index": ...}             accepted, ignored

Selector rules:
  - {"field": value}             implicit $eq
  - {"field": {"$op": operand}}  $eq $ne $gt $gte $lt $lte $in $nin
                                 $exists $regex $not
  - {"a": {"b": 1}}              nested field, same as {"a.b": 1}
  - {"$and"|"$or"|"$nor": [...]}, {"$not": {...}}
  - A missing field satisfies only {"$exists": false}.
  - Ordering comparisons between incompatible types are false.

Any structural problem raises LedgerError(QuerySyntaxError).
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ledger.errors import ErrorKind, LedgerError


Predicate = Callable[[Dict[str, Any]], bool]

_MISSING = object()

_QUERY_KEYS = {"selector", "fields", "sort", "limit", "skip",
               "use_index", "bookmark", "execution_stats"}


def _syntax_error(message: str) -> LedgerError:
    return LedgerError(ErrorKind.QUERY_SYNTAX_ERROR, message)


@dataclass
class QuerySpec:
    """A parsed query document."""
    predicate: Predicate
    fields: Optional[List[str]] = None
    sort: List[Tuple[str, bool]] = field(default_factory=list)  # (path, descending)
    limit: Optional[int] = None
    skip: int = 0


# ─── Parsing ────────────────────────────────────────────────────────────────

def parse_query(query: str) -> QuerySpec:
    """Parse and compile a JSON query string."""
    try:
        doc = json.loads(query)
    except (TypeError, ValueError) as e:
        raise _syntax_error(f"Query is not valid JSON: {e}")
    if not isinstance(doc, dict):
        raise _syntax_error("Query must be a JSON object")
    if "selector" not in doc:
        raise _syntax_error("Query must contain a 'selector'")

    unknown = set(doc) - _QUERY_KEYS
    if unknown:
        raise _syntax_error(f"Unknown query parameters: {sorted(unknown)}")

    spec = QuerySpec(predicate=compile_selector(doc["selector"]))

    if "fields" in doc:
        fields = doc["fields"]
        if not isinstance(fields, list) or not all(isinstance(f, str) for f in fields):
            raise _syntax_error("'fields' must be a list of field names")
        spec.fields = fields

    if "sort" in doc:
        spec.sort = _parse_sort(doc["sort"])

    if "limit" in doc:
        spec.limit = _parse_count(doc["limit"], "limit")
    if "skip" in doc:
        spec.skip = _parse_count(doc["skip"], "skip")

    return spec


def _parse_count(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _syntax_error(f"'{name}' must be a non-negative integer")
    return value


def _parse_sort(sort: Any) -> List[Tuple[str, bool]]:
    if not isinstance(sort, list):
        raise _syntax_error("'sort' must be a list")
    result = []
    for item in sort:
        if isinstance(item, str):
            result.append((item, False))
        elif isinstance(item, dict) and len(item) == 1:
            path, direction = next(iter(item.items()))
            if direction not in ("asc", "desc"):
                raise _syntax_error(f"Sort direction must be 'asc' or 'desc', got {direction!r}")
            result.append((path, direction == "desc"))
        else:
            raise _syntax_error(f"Invalid sort entry: {item!r}")
    return result


# ─── Compilation ────────────────────────────────────────────────────────────

def compile_selector(selector: Any, base: str = "") -> Predicate:
    """Compile a selector object into a predicate over documents."""
    if not isinstance(selector, dict):
        raise _syntax_error("Selector must be a JSON object")

    preds: List[Predicate] = []
    for key, cond in selector.items():
        if key in ("$and", "$or", "$nor"):
            if not isinstance(cond, list) or not cond:
                raise _syntax_error(f"{key} requires a non-empty list of selectors")
            subs = [compile_selector(c, base) for c in cond]
            preds.append(_combine(key, subs))
        elif key == "$not":
            inner = compile_selector(cond, base)
            preds.append(lambda doc, inner=inner: not inner(doc))
        elif key.startswith("$"):
            raise _syntax_error(f"Unknown selector operator: {key}")
        else:
            path = f"{base}.{key}" if base else key
            preds.append(_compile_field(path, cond))

    return lambda doc: all(p(doc) for p in preds)


def _combine(op: str, subs: List[Predicate]) -> Predicate:
    if op == "$and":
        return lambda doc: all(s(doc) for s in subs)
    if op == "$or":
        return lambda doc: any(s(doc) for s in subs)
    return lambda doc: not any(s(doc) for s in subs)


def _compile_field(path: str, cond: Any) -> Predicate:
    if not isinstance(cond, dict):
        return _compile_operator(path, "$eq", cond)
    if not cond:
        return _compile_operator(path, "$eq", cond)

    op_keys = [k for k in cond if k.startswith("$")]
    if op_keys and len(op_keys) != len(cond):
        raise _syntax_error(f"Cannot mix operators and field names for '{path}'")
    if not op_keys:
        # Nested selector on a sub-object
        return compile_selector(cond, path)

    preds = [_compile_operator(path, op, operand) for op, operand in cond.items()]
    return lambda doc: all(p(doc) for p in preds)


def _compile_operator(path: str, op: str, operand: Any) -> Predicate:
    if op == "$eq":
        return lambda doc: _equal(resolve(doc, path), operand)
    if op == "$ne":
        def ne(doc):
            val = resolve(doc, path)
            return val is not _MISSING and not _equal(val, operand)
        return ne
    if op in ("$gt", "$gte", "$lt", "$lte"):
        return lambda doc: _ordered(op, resolve(doc, path), operand)
    if op in ("$in", "$nin"):
        if not isinstance(operand, list):
            raise _syntax_error(f"{op} requires a list for '{path}'")
        if op == "$in":
            return lambda doc: _member(resolve(doc, path), operand)

        def nin(doc):
            val = resolve(doc, path)
            return val is not _MISSING and not _member(val, operand)
        return nin
    if op == "$exists":
        if not isinstance(operand, bool):
            raise _syntax_error(f"$exists requires a boolean for '{path}'")
        return lambda doc: (resolve(doc, path) is not _MISSING) == operand
    if op == "$regex":
        if not isinstance(operand, str):
            raise _syntax_error(f"$regex requires a string for '{path}'")
        try:
            pattern = re.compile(operand)
        except re.error as e:
            raise _syntax_error(f"Invalid $regex for '{path}': {e}")

        def regex(doc):
            val = resolve(doc, path)
            return isinstance(val, str) and pattern.search(val) is not None
        return regex
    if op == "$not":
        inner = _compile_field(path, operand)
        return lambda doc: resolve(doc, path) is not _MISSING and not inner(doc)
    raise _syntax_error(f"Unknown field operator: {op}")


# ─── Value semantics ────────────────────────────────────────────────────────

def resolve(doc: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted field path; returns _MISSING if absent."""
    cur: Any = doc
    for part in path.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur[part]
        else:
            return _MISSING
    return cur


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _equal(left: Any, right: Any) -> bool:
    if left is _MISSING:
        return False
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _member(val: Any, options: list) -> bool:
    return val is not _MISSING and any(_equal(val, o) for o in options)


def _ordered(op: str, left: Any, right: Any) -> bool:
    if left is _MISSING:
        return False
    if _is_number(left) and _is_number(right):
        pass
    elif isinstance(left, str) and isinstance(right, str):
        pass
    else:
        return False

    if op == "$gt":
        return left > right
    if op == "$gte":
        return left >= right
    if op == "$lt":
        return left < right
    return left <= right


def _collation_key(v: Any) -> tuple:
    """null < false < true < numbers < strings < arrays < objects."""
    if v is _MISSING or v is None:
        return (0,)
    if isinstance(v, bool):
        return (1, v)
    if _is_number(v):
        return (2, v)
    if isinstance(v, str):
        return (3, v)
    if isinstance(v, list):
        return (4, json.dumps(v, sort_keys=True))
    return (5, json.dumps(v, sort_keys=True))


# ─── Execution ──────────────────────────────────────────────────────────────

def execute(spec: QuerySpec,
            docs: Iterable[Tuple[str, Dict[str, Any]]]) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Filter, sort, page and project (key, document) pairs.
    Input is expected in ascending key order; that order is kept unless
    the query sorts.
    """
    matched = [(k, d) for k, d in docs if spec.predicate(d)]

    # Stable multi-key sort: apply the least significant key first
    for path, descending in reversed(spec.sort):
        matched.sort(key=lambda kd: _collation_key(resolve(kd[1], path)),
                     reverse=descending)

    end = None if spec.limit is None else spec.skip + spec.limit
    matched = matched[spec.skip:end]

    if spec.fields is not None:
        matched = [(k, {f: d[f] for f in spec.fields if f in d}) for k, d in matched]
    return matched
