"""
Pydantic Order Models

Request and response shapes for order creation, lookup and payment checks.
Monetary amounts travel as strings so no value ever passes through a float.
"""
from typing import Literal, Optional, Union
from pydantic import BaseModel, Field, model_validator


OrderStatus = Literal["pending", "paid", "expired", "error"]

CheckStatus = Literal[
    "not_found", "pending", "paid", "expired", "error", "api_error", "db_error"
]


class Order(BaseModel):
    """Stored order row."""
    id: int
    user_id: Optional[str] = None
    amount_ton: str
    amount_nanoton: str
    memo: str
    status: OrderStatus
    item: str
    created_at: int
    paid_at: Optional[int] = None
    tx_hash: Optional[str] = None
    tx_lt: Optional[str] = None
    tx_sender: Optional[str] = None

    model_config = {"from_attributes": True}


class CreateOrderRequest(BaseModel):
    """Body of POST /api/orders."""
    amount: Union[str, int, float] = Field(description="Amount in TON, e.g. \"0.5\"")
    user_id: Optional[str] = None
    item: str = Field(default="donate", min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"amount": "0.5", "user_id": "42", "item": "donate"}
        }
    }


class CreatedOrder(BaseModel):
    """Payment instruction returned after creating an order."""
    id: int
    memo: str
    amount_ton: str
    recipient_address: str
    network: Literal["mainnet", "testnet"]
    payment_uri: str
    status: Literal["pending"] = "pending"


class OrderView(BaseModel):
    """Point-in-time order lookup; never triggers a ledger query."""
    id: int
    amount_nanoton: str
    memo: str
    item: str
    status: OrderStatus
    recipient_address: str
    payment_uri: str


class TxDetails(BaseModel):
    """Ledger transaction that settled an order."""
    tx_hash: str
    lt: Optional[str] = None
    sender: Optional[str] = None
    timestamp: int


class PaymentCheck(BaseModel):
    """
    Outcome of a payment check.

    api_error and db_error are transient; the caller may poll again.
    """
    status: CheckStatus
    item: Optional[str] = None
    tx_details: Optional[TxDetails] = None

    @model_validator(mode='after')
    def details_only_when_paid(self):
        if self.tx_details is not None and self.status != "paid":
            raise ValueError(f"tx_details present for status {self.status}")
        return self
