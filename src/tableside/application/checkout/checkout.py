from __future__ import annotations

import logging
from dataclasses import dataclass

from tableside.application.checkout.cart import Cart
from tableside.application.dto.requests import CreateOrderItemRequest, CreateOrderRequest
from tableside.application.ports.submitter import OrderSubmitter
from tableside.application.use_cases.create_order import EmptyOrderError, InvalidTableNumberError

logger = logging.getLogger(__name__)


class CheckoutFailedError(Exception):
    def __init__(self, message: str, order_id: str | None = None) -> None:
        super().__init__(message)
        self.order_id = order_id


@dataclass(frozen=True)
class CheckoutConfirmation:
    order_id: str
    table_number: int
    message: str


class CheckoutFlow:
    def __init__(self, cart: Cart, submitter: OrderSubmitter) -> None:
        self._cart = cart
        self._submitter = submitter

    def place_order(
        self,
        table_number: int,
        customer_name: str | None = None,
        notes: str | None = None,
    ) -> CheckoutConfirmation:
        if table_number < 1:
            raise InvalidTableNumberError(
                f"table number must be a positive integer, got {table_number}"
            )
        if self._cart.is_empty:
            raise EmptyOrderError("cart is empty")

        request_dto = CreateOrderRequest(
            table_number=table_number,
            customer_name=customer_name,
            notes=notes,
            items=[
                CreateOrderItemRequest(
                    menu_item_id=str(line.item.item_id),
                    name=line.item.name,
                    price=line.item.price.amount,
                    quantity=line.quantity,
                )
                for line in self._cart.lines
            ],
        )

        try:
            order_id = self._submitter.submit(request_dto)
        except Exception as exc:
            logger.warning(
                "checkout_failed",
                extra={"table_number": table_number},
                exc_info=True,
            )
            raise CheckoutFailedError(
                f"order for table {table_number} could not be placed",
                order_id=getattr(exc, "order_id", None),
            ) from exc

        self._cart.clear()
        logger.info(
            "checkout_completed",
            extra={"order_id": order_id, "table_number": table_number},
        )
        return CheckoutConfirmation(
            order_id=order_id,
            table_number=table_number,
            message=f"Order for table {table_number} has been sent.",
        )
