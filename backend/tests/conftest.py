import base64
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from tonpay.config import load_settings
from tonpay.db.init_db import create_engine, create_session_factory, initialize_database
from tonpay.db.order_store import OrderStore
from tonpay.models.transactions import TransactionRecord
from tonpay.services.payment_service import PaymentService

RECIPIENT = "EQ_TEST_RECIPIENT"
NOW = 1_700_000_000


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "db: mark test as database-backed"
    )


@pytest.fixture
def settings(tmp_path):
    return load_settings(
        ton_network="testnet",
        recipient_wallet_address_mainnet="EQ_MAIN_RECIPIENT",
        recipient_wallet_address_testnet=RECIPIENT,
        tonapi_api_key="test-api-key",
        database_path=str(tmp_path / "orders.db"),
    )


@pytest.fixture
async def engine(settings):
    engine = create_engine(settings.resolved_database_path)
    await initialize_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return OrderStore(create_session_factory(engine))


@pytest.fixture
def ledger():
    """Ledger client returning an empty window unless a test says otherwise."""
    client = AsyncMock()
    client.get_account_transactions.return_value = []
    return client


@pytest.fixture
def service(store, ledger):
    return PaymentService(
        store,
        ledger,
        recipient_address=RECIPIENT,
        network="testnet",
        clock=lambda: NOW,
    )


@pytest.fixture
def make_tx():
    """Build a TransactionRecord; pass payload_bytes to use the base64 path."""
    counter = iter(range(1, 10_000))

    def _make(
        memo: Optional[str] = None,
        value="500000000",
        *,
        payload_bytes: Optional[bytes] = None,
        tx_hash: Optional[str] = "auto",
        lt: Optional[str] = "auto",
        sender: Optional[str] = "EQ_SENDER",
        utime: Optional[int] = NOW - 60
    ) -> TransactionRecord:
        n = next(counter)
        return TransactionRecord(
            tx_hash=f"hash_{n}" if tx_hash == "auto" else tx_hash,
            lt=str(40_000_000 + n) if lt == "auto" else lt,
            utime=utime,
            sender=sender,
            value=None if value is None else str(value),
            text_comment=memo,
            raw_payload=(
                base64.b64encode(payload_bytes).decode() if payload_bytes is not None else None
            ),
        )

    return _make
