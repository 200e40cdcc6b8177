"""
Pydantic Ledger Transaction Model

Normalized view of one inbound transaction reported by the ledger API.
Every field is optional: the feed is untrusted and incomplete entries are
skipped by the matcher rather than rejected at parse time.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel


def _as_str(value: Any) -> Optional[str]:
    """Ledger APIs return numeric fields as either JSON numbers or strings."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int)):
        return str(value)
    return None


def _get(mapping: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(mapping, dict):
            return None
        mapping = mapping.get(key)
    return mapping


class TransactionRecord(BaseModel):
    """
    Inbound transaction as seen on the recipient account.

    Memo sources, in priority order:
    - text_comment: decoded "text_comment" body provided by the API
    - raw_payload: base64 message body, decoded and cleaned by the matcher
    """
    tx_hash: Optional[str] = None
    lt: Optional[str] = None  # logical time, opaque sequence position
    utime: Optional[int] = None  # unix seconds
    sender: Optional[str] = None
    value: Optional[str] = None  # nanotons
    text_comment: Optional[str] = None
    raw_payload: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_tonapi(cls, tx: Dict[str, Any]) -> "TransactionRecord":
        """
        Build a record from a tonapi.io /blockchain/accounts/{id}/transactions entry.

        Fields of the wrong type are dropped instead of raising.
        """
        in_msg = tx.get("in_msg")
        if not isinstance(in_msg, dict):
            in_msg = {}

        text_comment = None
        if in_msg.get("decoded_op_name") == "text_comment":
            text = _get(in_msg, "decoded_body", "text")
            if isinstance(text, str):
                text_comment = text

        raw_payload = _get(in_msg, "message_content", "data")
        if not isinstance(raw_payload, str):
            raw_payload = None

        utime = tx.get("utime")
        if isinstance(utime, bool) or not isinstance(utime, int):
            utime = None

        sender = _get(in_msg, "source", "address")

        return cls(
            tx_hash=tx.get("hash") if isinstance(tx.get("hash"), str) else None,
            lt=_as_str(tx.get("lt")),
            utime=utime,
            sender=sender if isinstance(sender, str) else None,
            value=_as_str(in_msg.get("value")),
            text_comment=text_comment,
            raw_payload=raw_payload,
        )
