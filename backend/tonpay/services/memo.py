"""
Memo Generation

A memo is the comment a payer attaches to the transfer; it is the only
link between an order and a ledger transaction. Uniqueness is enforced
by the store; the 64 random bits here make collisions rare, not impossible.
"""
import secrets
from typing import Optional

MEMO_ENTROPY_BYTES = 8


def generate_memo(user_id: Optional[str], network: str) -> str:
    """
    Build a memo of the form <user_id><network>_<16 hex chars>.

    Example:
        generate_memo("42", "testnet") -> "42testnet_9f86d081884c7d65"
    """
    prefix = str(user_id) if user_id is not None else ""
    return f"{prefix}{network}_{secrets.token_hex(MEMO_ENTROPY_BYTES)}"
