"""
TonPay Exception Hierarchy

Error codes returned to API clients. All codes use the tonpay: prefix.
"""
from typing import Optional, Dict, Any


class TonPayError(Exception):
    """
    Base exception for all payment backend errors.

    Carries a stable error code alongside the human-readable message so
    the HTTP layer can render a uniform error body.
    """

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API error response format."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ConfigurationError(TonPayError):
    """
    Startup configuration is unusable.

    Examples:
    - Missing TONAPI_API_KEY or recipient wallet address
    - TON_NETWORK not one of mainnet/testnet
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("tonpay:config:invalid", message, details)


class ConversionError(TonPayError):
    """
    Amount is not a well-formed non-negative decimal.

    Examples:
    - "-1", "abc", "1e5", NaN
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("tonpay:amount:invalid", message, details)


class OrderCreationError(TonPayError):
    """Order could not be persisted."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("tonpay:order:create_failed", message, details)


class StorageError(TonPayError):
    """Persistence failure other than a uniqueness violation."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "tonpay:storage:failure"
    ):
        super().__init__(error_code, message, details)


class UniqueConstraintError(StorageError):
    """
    Insert collided with an existing unique value.

    Example:
    - Generated memo already belongs to another order
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, error_code="tonpay:storage:unique_violation")


class LedgerQueryError(TonPayError):
    """
    Ledger API call failed.

    Examples:
    - Network error or timeout
    - Non-2xx HTTP status
    - Response body is not JSON or lacks a transactions list
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("tonpay:ledger:query_failed", message, details)
