"""
SQLAlchemy ORM Models for TonPay

Defines the orders table. The memo column is the correlation key between
an order and a ledger transaction and is unique across all orders.
"""
from sqlalchemy import Column, String, Integer, Text, CheckConstraint, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class OrderModel(Base):
    """
    ORM model for orders table.

    paid_at, tx_hash, tx_lt and tx_sender are written together, once, by
    the pending -> paid transition.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=True)
    amount_ton = Column(Text, nullable=False)
    amount_nanoton = Column(Text, nullable=False)  # integer string, no float
    memo = Column(Text, nullable=False, unique=True)
    status = Column(String, nullable=False, default="pending", server_default="pending")
    item = Column(Text, nullable=False, default="donate", server_default="donate")
    created_at = Column(Integer, nullable=False)  # unix seconds
    paid_at = Column(Integer, nullable=True)
    tx_hash = Column(Text, nullable=True)
    tx_lt = Column(Text, nullable=True)
    tx_sender = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'paid', 'expired', 'error')",
            name="order_status_check"
        ),
        Index("idx_orders_memo", "memo"),
        Index("idx_orders_status_id", "status", "id"),
    )
