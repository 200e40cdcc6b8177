"""
Order Store

Persistence for orders. Every public method opens its own short session,
so no database transaction is ever held across a ledger query.

The pending -> paid transition is a single conditional UPDATE guarded by
status = 'pending'; its affected-row count decides which concurrent
caller confirmed the order.
"""
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..exceptions import StorageError, UniqueConstraintError
from ..models.orders import Order
from .models import OrderModel

logger = logging.getLogger(__name__)


class OrderStore:
    """Async repository over the orders table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ========================================================================
    # Writes
    # ========================================================================

    async def insert(
        self,
        *,
        user_id: Optional[str],
        amount_ton: str,
        amount_nanoton: str,
        memo: str,
        item: str,
        created_at: int
    ) -> int:
        """
        Insert a new pending order.

        Returns:
            Store-assigned order id

        Raises:
            UniqueConstraintError: memo already used by another order
            StorageError: any other database failure
        """
        async with self._session_factory() as session:
            db_order = OrderModel(
                user_id=user_id,
                amount_ton=amount_ton,
                amount_nanoton=amount_nanoton,
                memo=memo,
                status="pending",
                item=item,
                created_at=created_at,
            )
            session.add(db_order)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if "memo" in str(e.orig):
                    raise UniqueConstraintError(
                        "Memo already in use",
                        details={"memo": memo}
                    ) from e
                raise StorageError(f"Integrity error inserting order: {e.orig}") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(f"Database error inserting order: {e}") from e

            logger.debug(f"Inserted order {db_order.id} with memo {memo}")
            return db_order.id

    async def try_transition_to_paid(
        self,
        order_id: int,
        tx_hash: str,
        paid_at: int,
        tx_lt: Optional[str] = None,
        tx_sender: Optional[str] = None
    ) -> bool:
        """
        Mark a pending order as paid.

        Returns:
            True if this call changed the row, False if the order was no
            longer pending (another caller already resolved it)

        Raises:
            StorageError: the update failed; nothing was committed
        """
        stmt = (
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == "pending")
            .values(
                status="paid",
                paid_at=paid_at,
                tx_hash=tx_hash,
                tx_lt=tx_lt,
                tx_sender=tx_sender,
            )
            .execution_options(synchronize_session=False)
        )

        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                if result.rowcount > 0:
                    await session.commit()
                    return True
                await session.rollback()
                return False
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(
                    f"Database error confirming order {order_id}: {e}",
                    details={"order_id": order_id}
                ) from e

    # ========================================================================
    # Reads
    # ========================================================================

    async def find_by_id_and_user(
        self,
        order_id: int,
        user_id: Optional[str]
    ) -> Optional[Order]:
        """Order with this id owned by user_id, or None."""
        return await self._fetch_one(
            select(OrderModel).where(
                OrderModel.id == order_id,
                OrderModel.user_id == user_id,
            )
        )

    async def find_by_item_and_user(
        self,
        item: str,
        user_id: Optional[str]
    ) -> Optional[Order]:
        """Most recently created order for this item and user, or None."""
        return await self._fetch_one(
            select(OrderModel)
            .where(OrderModel.item == item, OrderModel.user_id == user_id)
            .order_by(OrderModel.id.desc())
            .limit(1)
        )

    async def _fetch_one(self, stmt) -> Optional[Order]:
        async with self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                db_order = result.scalar_one_or_none()
            except SQLAlchemyError as e:
                raise StorageError(f"Database error reading order: {e}") from e

            if not db_order:
                return None
            return Order.model_validate(db_order)
