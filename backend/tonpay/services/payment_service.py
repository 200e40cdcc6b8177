"""
Payment Service

Creates orders, answers order lookups and confirms payments against the
ledger.

check_payment flow:
1. Load the order; resolved orders are reported from the store without
   querying the ledger
2. Fetch the recent transaction window (no database transaction is open)
3. Match by exact memo and amount >= expected
4. Confirm with a single conditional UPDATE; the caller whose UPDATE
   changed the row wins, everyone else re-reads and reports the stored result

check_payment never raises. Failures are mapped onto its status set.
"""
import logging
import time
from typing import Callable, Optional
from urllib.parse import quote_plus

from ..config import Settings
from ..db.order_store import OrderStore
from ..exceptions import (
    ConversionError,
    LedgerQueryError,
    OrderCreationError,
    StorageError,
    UniqueConstraintError,
)
from ..models.orders import CreatedOrder, Order, OrderView, PaymentCheck, TxDetails
from .amounts import Amount, normalize_amount, to_nanotons
from .ledger_client import LedgerQueryClient
from .matcher import find_matching_transaction
from .memo import generate_memo

logger = logging.getLogger(__name__)


def _urlencode(value: str) -> str:
    # form encoding with "~" escaped as well
    return quote_plus(value, safe="").replace("~", "%7E")


def build_payment_uri(recipient_address: str, amount_nanoton: str, memo: str) -> str:
    """ton://transfer/<address>?amount=<nanotons>&text=<urlencoded memo>"""
    return f"ton://transfer/{recipient_address}?amount={amount_nanoton}&text={_urlencode(memo)}"


class PaymentService:
    """
    Order lifecycle for one recipient wallet on one network.

    Construct one per application and pass it to callers explicitly.
    """

    def __init__(
        self,
        store: OrderStore,
        ledger: LedgerQueryClient,
        *,
        recipient_address: str,
        network: str,
        transaction_window: int = 35,
        memo_retry_attempts: int = 3,
        clock: Callable[[], float] = time.time
    ):
        self.store = store
        self.ledger = ledger
        self.recipient_address = recipient_address
        self.network = network
        self.transaction_window = transaction_window
        self.memo_retry_attempts = memo_retry_attempts
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: OrderStore,
        ledger: LedgerQueryClient
    ) -> "PaymentService":
        return cls(
            store,
            ledger,
            recipient_address=settings.recipient_address,
            network=settings.ton_network,
            transaction_window=settings.transaction_window,
            memo_retry_attempts=settings.memo_retry_attempts,
        )

    def _now(self) -> int:
        return int(self._clock())

    # ========================================================================
    # Order Creation and Lookup
    # ========================================================================

    async def create_order(
        self,
        amount_ton: Amount,
        user_id: Optional[str] = None,
        item: str = "donate"
    ) -> CreatedOrder:
        """
        Create a pending order and return its payment instruction.

        A memo collision is retried with a fresh memo up to
        memo_retry_attempts times.

        Raises:
            OrderCreationError: amount invalid (details.reason "invalid_amount"),
                memos kept colliding ("memo_collision") or the insert
                failed ("storage")
        """
        try:
            amount_text = normalize_amount(amount_ton)
            amount_nano = to_nanotons(amount_text)
        except ConversionError as e:
            raise OrderCreationError(
                f"Cannot create order: {e.message}",
                details={"reason": "invalid_amount", **e.details}
            ) from e

        for attempt in range(1, self.memo_retry_attempts + 1):
            memo = generate_memo(user_id, self.network)
            try:
                order_id = await self.store.insert(
                    user_id=user_id,
                    amount_ton=amount_text,
                    amount_nanoton=amount_nano,
                    memo=memo,
                    item=item,
                    created_at=self._now(),
                )
            except UniqueConstraintError:
                logger.warning(
                    f"Memo collision on attempt {attempt}/{self.memo_retry_attempts}"
                )
                continue
            except StorageError as e:
                raise OrderCreationError(
                    f"Database error creating order: {e.message}",
                    details={"reason": "storage"}
                ) from e

            logger.info(
                f"Created order {order_id}: user={user_id}, item={item}, "
                f"amount={amount_text} TON ({amount_nano} nano)"
            )
            return CreatedOrder(
                id=order_id,
                memo=memo,
                amount_ton=amount_text,
                recipient_address=self.recipient_address,
                network=self.network,
                payment_uri=build_payment_uri(self.recipient_address, amount_nano, memo),
            )

        raise OrderCreationError(
            f"Could not allocate a unique memo after {self.memo_retry_attempts} attempts",
            details={"reason": "memo_collision"}
        )

    async def get(
        self,
        order_id: Optional[int] = None,
        user_id: Optional[str] = None,
        item: Optional[str] = None
    ) -> Optional[OrderView]:
        """
        Look up an order by item (when given) or by id, scoped to user_id.

        Does not query the ledger.
        """
        if item is not None:
            order = await self.store.find_by_item_and_user(item, user_id)
        elif order_id is not None:
            order = await self.store.find_by_id_and_user(order_id, user_id)
        else:
            raise ValueError("Either order_id or item is required")

        if not order:
            return None

        return OrderView(
            id=order.id,
            amount_nanoton=order.amount_nanoton,
            memo=order.memo,
            item=order.item,
            status=order.status,
            recipient_address=self.recipient_address,
            payment_uri=build_payment_uri(
                self.recipient_address, order.amount_nanoton, order.memo
            ),
        )

    # ========================================================================
    # Payment Check
    # ========================================================================

    async def check_payment(self, order_id: int, user_id: Optional[str]) -> PaymentCheck:
        """
        Decide whether an order is paid.

        Returns:
            PaymentCheck with status one of not_found, pending, paid,
            expired, error, api_error, db_error. tx_details is set only
            for paid.
        """
        try:
            return await self._check_payment(order_id, user_id)
        except LedgerQueryError as e:
            logger.warning(f"Ledger query failed for order {order_id}: {e.message}")
            return PaymentCheck(status="api_error")
        except StorageError as e:
            logger.warning(f"Storage failure checking order {order_id}: {e.message}")
            return PaymentCheck(status="db_error")
        except Exception:
            logger.exception(f"Unexpected error checking order {order_id}")
            return PaymentCheck(status="error")

    async def _check_payment(self, order_id: int, user_id: Optional[str]) -> PaymentCheck:
        order = await self.store.find_by_id_and_user(order_id, user_id)
        if not order:
            return PaymentCheck(status="not_found")

        if order.status != "pending":
            logger.debug(f"Order {order_id} already {order.status}, skipping ledger query")
            return self._report(order)

        window = await self.ledger.get_account_transactions(
            self.recipient_address, self.transaction_window
        )
        tx = find_matching_transaction(int(order.amount_nanoton), order.memo, window)
        if tx is None:
            return PaymentCheck(status="pending", item=order.item)

        details = TxDetails(
            tx_hash=tx.tx_hash,
            lt=tx.lt,
            sender=tx.sender,
            timestamp=tx.utime if tx.utime is not None else self._now(),
        )
        return await self._confirm(order, details)

    async def _confirm(self, order: Order, details: TxDetails) -> PaymentCheck:
        won = await self.store.try_transition_to_paid(
            order.id,
            tx_hash=details.tx_hash,
            paid_at=details.timestamp,
            tx_lt=details.lt,
            tx_sender=details.sender,
        )
        if won:
            logger.info(
                f"Order {order.id} paid by {details.tx_hash} from {details.sender}"
            )
            return PaymentCheck(status="paid", item=order.item, tx_details=details)

        # Another caller resolved the order first
        current = await self.store.find_by_id_and_user(order.id, order.user_id)
        if not current:
            return PaymentCheck(status="error")
        logger.debug(f"Order {order.id} already resolved as {current.status}")
        return self._report(current)

    @staticmethod
    def _report(order: Order) -> PaymentCheck:
        """Result for an order that is no longer pending, from stored fields only."""
        if order.status == "paid" and order.tx_hash:
            return PaymentCheck(
                status="paid",
                item=order.item,
                tx_details=TxDetails(
                    tx_hash=order.tx_hash,
                    lt=order.tx_lt,
                    sender=order.tx_sender,
                    timestamp=order.paid_at if order.paid_at is not None else order.created_at,
                ),
            )
        return PaymentCheck(status=order.status, item=order.item)
