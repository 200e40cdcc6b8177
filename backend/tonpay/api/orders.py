"""
Orders API Endpoints

Thin HTTP wrapper over PaymentService: order creation, lookup and
payment checks.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional
import logging

from ..models.orders import CreateOrderRequest, CreatedOrder, OrderView, PaymentCheck
from ..services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_payment_service(request: Request) -> PaymentService:
    """The application's PaymentService, built during startup."""
    return request.app.state.payment_service


def _not_found(message: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "error_code": "order_not_found",
            "message": message
        }
    )


@router.post("", status_code=201, response_model=CreatedOrder)
async def create_order_endpoint(
    body: CreateOrderRequest,
    service: PaymentService = Depends(get_payment_service)
) -> CreatedOrder:
    """
    Create a pending order and return its payment instruction.

    Example:
        POST /api/orders {"amount": "0.5", "user_id": "42", "item": "donate"}

    Returns:
        {id, memo, amount_ton, recipient_address, network, payment_uri, status}
    """
    return await service.create_order(body.amount, body.user_id, body.item)


@router.get("", response_model=OrderView)
async def get_order_by_item_endpoint(
    item: str = Query(..., min_length=1, description="Item label"),
    user_id: Optional[str] = Query(None, description="User identifier"),
    service: PaymentService = Depends(get_payment_service)
) -> OrderView:
    """
    Latest order for an item and user. Does not query the ledger.

    Example:
        GET /api/orders?item=donate&user_id=42
    """
    order = await service.get(user_id=user_id, item=item)
    if not order:
        raise _not_found(f"No order for item {item}")
    return order


@router.get("/{order_id}", response_model=OrderView)
async def get_order_endpoint(
    order_id: int,
    user_id: Optional[str] = Query(None, description="User identifier"),
    service: PaymentService = Depends(get_payment_service)
) -> OrderView:
    """
    Order details with payment URI. Does not query the ledger.

    Example:
        GET /api/orders/17?user_id=42
    """
    order = await service.get(order_id=order_id, user_id=user_id)
    if not order:
        raise _not_found(f"No order found with ID: {order_id}")
    return order


@router.post(
    "/{order_id}/check",
    response_model=PaymentCheck,
    response_model_exclude_none=True
)
async def check_payment_endpoint(
    order_id: int,
    user_id: Optional[str] = Query(None, description="User identifier"),
    service: PaymentService = Depends(get_payment_service)
) -> PaymentCheck:
    """
    Check the ledger for this order's payment.

    Always 200; the outcome is in "status". api_error and db_error are
    transient, poll again later. Resolved orders are answered without a
    ledger query.

    Example:
        POST /api/orders/17/check?user_id=42
    """
    result = await service.check_payment(order_id, user_id)
    logger.debug(f"Payment check for order {order_id}: {result.status}")
    return result
