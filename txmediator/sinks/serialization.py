"""Shared serialization utilities for sinks."""

import json
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any

from txmediator.models.transaction import Transaction


def to_dict(obj: Any) -> dict:
    """Convert a shipped record to a JSON-ready dictionary."""
    if isinstance(obj, Transaction):
        return transaction_to_dict(obj)
    elif is_dataclass(obj):
        return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}
    elif isinstance(obj, dict):
        return obj
    else:
        return {"value": str(obj)}


def transaction_to_dict(transaction: Transaction) -> dict:
    """Convert a transaction to its wire record.

    Ids become ``{"idType", "values"}`` pairs and metadata becomes
    ``{"name", "value"}`` pairs, both in insertion order. Absent fields
    are omitted.
    """
    record = {
        "flowId": transaction.flow_id,
        "operation": transaction.operation_key,
        "status": serialize_value(transaction.status),
        "from": transaction.from_key,
        "to": transaction.to_key,
        "payloadType": transaction.payload_type_key,
        "message": transaction.message,
        "timestamp": transaction.timestamp,
        "ids": [{"idType": id_type, "values": values} for id_type, values in transaction.ids.items()],
        "metadata": [{"name": name, "value": value} for name, value in transaction.metadata.items()],
    }
    return {key: value for key, value in record.items() if value is not None}


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Enum):
        return value.value
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def to_json(obj: Any, pretty: bool = False) -> str:
    """Serialize a record to a JSON string."""
    return json.dumps(to_dict(obj), indent=2 if pretty else None, ensure_ascii=False, default=str)
