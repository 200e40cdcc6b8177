"""
Database package for TonPay.

Exports engine construction, schema initialization, the ORM model and
the order store.
"""
from .init_db import create_engine, create_session_factory, initialize_database
from .models import Base, OrderModel
from .order_store import OrderStore

__all__ = [
    "create_engine",
    "create_session_factory",
    "initialize_database",
    "Base",
    "OrderModel",
    "OrderStore",
]
