"""
WorkLedger Record Serializer
============================
Schema-aware serialization of records to/from the JSON bytes stored
under a primary key.

Document layout (keys in schema order):
  {"docType": ..., "<key field>": ..., "<field 1>": ..., ...}

Serialization is compact and deterministic so the same record always
produces the same bytes.
"""

import json
from typing import Any, Dict

from ledger.errors import ErrorKind, LedgerError
from storage.schema import DOC_TYPE_FIELD, Record, RecordSchema
from storage.types import validate


def serialize_record(record: Record) -> bytes:
    """Serialize a record document to compact JSON bytes."""
    return serialize_document(record.values)


def serialize_document(doc: Dict[str, Any]) -> bytes:
    try:
        return json.dumps(doc, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise LedgerError(ErrorKind.SERIALIZATION_ERROR,
                          f"Failed to encode record as JSON: {e}")


def decode_document(data: bytes) -> Dict[str, Any]:
    """
    Decode stored bytes into a JSON object without schema checks.
    Raises LedgerError(SerializationError) if the bytes are not a JSON object.
    """
    try:
        doc = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise LedgerError(ErrorKind.SERIALIZATION_ERROR,
                          f"Failed to decode JSON: {e}")
    if not isinstance(doc, dict):
        raise LedgerError(ErrorKind.SERIALIZATION_ERROR,
                          f"Expected a JSON object, got {type(doc).__name__}")
    return doc


def deserialize_record(data: bytes, schema: RecordSchema) -> Record:
    """
    Deserialize stored bytes into a Record of the given schema.

    Every schema field must be present with the right type; automatic
    fields may be null. Extra keys are kept as-is.
    """
    doc = decode_document(data)

    if doc.get(DOC_TYPE_FIELD) != schema.doc_type:
        raise LedgerError(
            ErrorKind.SERIALIZATION_ERROR,
            f"Expected docType {schema.doc_type!r}, got {doc.get(DOC_TYPE_FIELD)!r}")

    for f in [schema.key_field] + schema.fields:
        if f.name not in doc:
            raise LedgerError(ErrorKind.SERIALIZATION_ERROR,
                              f"Record is missing field '{f.name}'")
        val = doc[f.name]
        if val is None and f.auto:
            continue
        if not validate(val, f.data_type):
            raise LedgerError(
                ErrorKind.SERIALIZATION_ERROR,
                f"Field '{f.name}' has wrong type: expected {f.data_type.value}, "
                f"got {type(val).__name__}")

    return Record(schema, doc)
