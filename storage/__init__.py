"""
WorkLedger Storage Layer
========================
Public API for field types, record schemas and the record serializer.

Usage:
    from storage import DataType, Field, RecordSchema, Record
    from storage import serialize_record, deserialize_record
"""

from storage.types import DataType, coerce, validate, type_from_string
from storage.schema import Field, Record, RecordSchema, DOC_TYPE_FIELD
from storage.serializer import (
    serialize_record, serialize_document, deserialize_record, decode_document,
)

__all__ = [
    "DataType", "coerce", "validate", "type_from_string",
    "Field", "Record", "RecordSchema", "DOC_TYPE_FIELD",
    "serialize_record", "serialize_document", "deserialize_record", "decode_document",
]
