"""
Reconciliation Matcher

Finds the ledger transaction that pays a given order. Pure functions; no
I/O and no state.

A transaction pays an order when its memo equals the order memo exactly
and its value is at least the expected amount. Overpayment is accepted,
underpayment is not. The window is scanned most-recent-first and the
first match wins.
"""
import base64
import binascii
import logging
import re
from typing import Iterable, Optional

from ..models.transactions import TransactionRecord

logger = logging.getLogger(__name__)

# POSIX [[:cntrl:]] over bytes
_CONTROL_CHARS = re.compile(rb"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"[ \t\r\n\f\v]")


def decode_payload_memo(payload: str) -> Optional[str]:
    """
    Decode a base64 message body into a memo.

    Whitespace inside the payload is ignored and missing "=" padding is
    tolerated. Control characters are removed from the decoded bytes and
    surrounding whitespace trimmed. Returns None when the payload is not
    valid base64 or UTF-8.

    Example:
        base64 of b"\\x00 MEMO123 \\x01" -> "MEMO123"
    """
    payload = _WHITESPACE.sub("", payload)
    if len(payload) % 4 == 1:
        return None
    payload += "=" * (-len(payload) % 4)
    try:
        decoded = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None

    cleaned = _CONTROL_CHARS.sub(b"", decoded).strip()
    try:
        return cleaned.decode("utf-8")
    except UnicodeDecodeError:
        return None


def extract_memo(tx: TransactionRecord) -> Optional[str]:
    """Memo carried by a transaction, preferring the decoded text comment."""
    if tx.text_comment is not None:
        return tx.text_comment
    if tx.raw_payload is not None:
        return decode_payload_memo(tx.raw_payload)
    return None


def _value_nano(tx: TransactionRecord) -> Optional[int]:
    if tx.value is None or not (tx.value.isascii() and tx.value.isdigit()):
        return None
    return int(tx.value)


def find_matching_transaction(
    expected_amount_nano: int,
    expected_memo: str,
    window: Iterable[TransactionRecord]
) -> Optional[TransactionRecord]:
    """
    Return the first transaction in the window that pays the order.

    Args:
        expected_amount_nano: Order amount in nanotons
        expected_memo: Order memo, compared exactly
        window: Recent inbound transactions, most recent first

    Returns:
        Matching transaction, or None if nothing in the window matches

    Transactions without a hash, logical time, sender or non-zero value
    are skipped.
    """
    for tx in window:
        value = _value_nano(tx)
        if not value or not tx.sender or not tx.tx_hash or not tx.lt:
            logger.debug(f"Skipping incomplete transaction {tx.tx_hash}")
            continue

        memo = extract_memo(tx)
        if memo is None or memo != expected_memo:
            continue

        if value >= expected_amount_nano:
            return tx

        logger.debug(
            f"Underpaid transaction {tx.tx_hash} for memo {expected_memo}: "
            f"{value} < {expected_amount_nano}"
        )

    return None
