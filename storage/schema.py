"""
WorkLedger Record Schema
========================
Defines record schemas: the object-type discriminator, the primary key
field, the ordered domain fields, and which field feeds the secondary
index.

One generic RecordStore serves every entity; what differs between
entities (field names, lengths, lower-casing, the indexed field) lives
here as data.

Field order is significant: it is the order of the initWork arguments
and the key order of the stored JSON document.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ledger.errors import invalid_argument
from storage.types import DataType, coerce, type_from_string


DOC_TYPE_FIELD = "docType"

# Values for Field.auto: filled by the store, never taken from arguments.
AUTO_CALLER = "caller"
AUTO_TIMESTAMP = "timestamp"


@dataclass
class Field:
    """Definition of a single record field."""
    name: str
    data_type: DataType = DataType.STRING
    length: Optional[int] = None      # exact length, checked on input
    lowercase: bool = False
    auto: Optional[str] = None        # AUTO_CALLER / AUTO_TIMESTAMP

    def normalize(self, value: Any) -> Any:
        """Coerce and normalize an input value for this field."""
        val = coerce(value, self.data_type, self.name)
        if self.data_type == DataType.STRING:
            if self.length is not None and len(val) != self.length:
                raise invalid_argument(
                    f"Parameter {self.name} length error, {self.length} is right "
                    f"(got {len(val)})")
            if self.lowercase:
                val = val.lower()
        return val

    def to_dict(self) -> dict:
        d: dict = {"name": self.name, "type": self.data_type.value}
        if self.length is not None:
            d["length"] = self.length
        if self.lowercase:
            d["lowercase"] = True
        if self.auto:
            d["auto"] = self.auto
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Field":
        return cls(
            name=d["name"],
            data_type=type_from_string(d.get("type", "STRING")),
            length=d.get("length"),
            lowercase=d.get("lowercase", False),
            auto=d.get("auto"),
        )


@dataclass
class RecordSchema:
    """
    Entity definition: docType, key field, domain fields, and the
    secondary index built over `indexed_field`.
    """
    doc_type: str
    key_field: Field
    fields: List[Field] = field(default_factory=list)
    indexed_field: str = ""
    transfer_field: str = ""

    def __post_init__(self):
        names = self.field_names()
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate field names in schema '{self.doc_type}'")
        if self.indexed_field not in names:
            raise ValueError(
                f"Indexed field '{self.indexed_field}' not in schema '{self.doc_type}'")
        if self.transfer_field and self.transfer_field not in names:
            raise ValueError(
                f"Transfer field '{self.transfer_field}' not in schema '{self.doc_type}'")

    @property
    def index_name(self) -> str:
        return f"{self.indexed_field}~{self.key_field.name}"

    def field_names(self) -> List[str]:
        return [self.key_field.name] + [f.name for f in self.fields]

    def arg_fields(self) -> List[Field]:
        """Fields supplied as initWork arguments, in argument order."""
        return [self.key_field] + [f for f in self.fields if not f.auto]

    def get_field(self, name: str) -> Field:
        """Get a field definition by name. Raises InvalidArgument if unknown."""
        if name == self.key_field.name:
            return self.key_field
        for f in self.fields:
            if f.name == name:
                return f
        raise invalid_argument(f"Field '{name}' not found in schema '{self.doc_type}'. "
                               f"Available: {self.field_names()}")

    def build(self, record_id: str, values: Dict[str, Any],
              auto_values: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Build a normalized record document from input values.
        Automatic fields are taken from `auto_values`, keyed by Field.auto.
        """
        auto_values = auto_values or {}
        doc: Dict[str, Any] = {
            DOC_TYPE_FIELD: self.doc_type,
            self.key_field.name: self.key_field.normalize(record_id),
        }
        for f in self.fields:
            if f.auto:
                doc[f.name] = auto_values.get(f.auto)
                continue
            if f.name not in values:
                raise invalid_argument(f"Missing value for field '{f.name}'")
            doc[f.name] = f.normalize(values[f.name])
        unknown = set(values) - set(self.field_names())
        if unknown:
            raise invalid_argument(f"Unknown fields for '{self.doc_type}': {sorted(unknown)}")
        return doc

    # ─── Serialization ──────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "docType": self.doc_type,
            "key": self.key_field.to_dict(),
            "fields": [f.to_dict() for f in self.fields],
            "indexedField": self.indexed_field,
            "transferField": self.transfer_field,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RecordSchema":
        return cls(
            doc_type=d["docType"],
            key_field=Field.from_dict(d["key"]),
            fields=[Field.from_dict(fd) for fd in d["fields"]],
            indexed_field=d["indexedField"],
            transfer_field=d.get("transferField", ""),
        )


@dataclass
class Record:
    """A deserialized record: its schema plus the full JSON document."""
    schema: RecordSchema = field(repr=False, compare=False)
    values: Dict[str, Any] = field(default_factory=dict)

    @property
    def record_id(self) -> str:
        return self.values[self.schema.key_field.name]

    @property
    def doc_type(self) -> str:
        return self.values[DOC_TYPE_FIELD]

    @property
    def indexed_value(self) -> Any:
        return self.values[self.schema.indexed_field]

    def get(self, name: str) -> Any:
        return self.values.get(name)

    def with_value(self, name: str, value: Any) -> "Record":
        values = dict(self.values)
        values[name] = value
        return Record(self.schema, values)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)
