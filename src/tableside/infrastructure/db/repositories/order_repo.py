from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session, joinedload

from tableside.application.ports.repositories import (
    OrderRepository,
    OrderRowNotFoundError,
    StaleOrderStatusError,
)
from tableside.domain.common.ids import MenuItemId, OrderId, OrderItemId
from tableside.domain.common.money import Money
from tableside.domain.order.entities import Order, OrderItem
from tableside.domain.order.lifecycle import OrderStatus
from tableside.infrastructure.db.models.order import OrderItemModel, OrderModel
from tableside.infrastructure.db.session import get_engine


class SqlAlchemyOrderRepository(OrderRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add_order(self, order: Order) -> None:
        """Insert the order row only; items are written by ``add_items``."""
        with Session(self._engine) as session:
            session.add(self._to_model(order))
            session.commit()

    def add_items(self, items: list[OrderItem]) -> None:
        with Session(self._engine) as session:
            session.add_all([self._item_to_model(item) for item in items])
            session.commit()

    def get(self, order_id: OrderId) -> Order | None:
        statement = (
            select(OrderModel)
            .options(joinedload(OrderModel.items))
            .where(OrderModel.id == str(order_id))
            .limit(1)
        )
        with Session(self._engine) as session:
            model = session.execute(statement).unique().scalar_one_or_none()

        if model is None:
            return None

        return self._to_domain(model)

    def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        statement = select(OrderModel).options(joinedload(OrderModel.items))
        if status is not None:
            statement = statement.where(OrderModel.status == status.value)
        statement = statement.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())

        with Session(self._engine) as session:
            models = list(session.execute(statement).unique().scalars().all())

        return [self._to_domain(model) for model in models]

    def update_status(
        self,
        order_id: OrderId,
        new_status: OrderStatus,
        expected_status: OrderStatus | None = None,
    ) -> Order:
        statement = update(OrderModel).where(OrderModel.id == str(order_id))
        if expected_status is not None:
            statement = statement.where(OrderModel.status == expected_status.value)
        statement = statement.values(
            status=new_status.value,
            updated_at=datetime.now(timezone.utc),
        )

        with Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                if session.get(OrderModel, str(order_id)) is None:
                    raise OrderRowNotFoundError(f"order {order_id} not found")
                raise StaleOrderStatusError(
                    f"order {order_id} is no longer in status={expected_status.value}"
                    if expected_status is not None
                    else f"order {order_id} status update conflict"
                )
            session.commit()

        updated = self.get(order_id)
        if updated is None:
            raise OrderRowNotFoundError(f"order {order_id} not found after status update")
        return updated

    def mark_read(self, order_id: OrderId) -> Order:
        statement = update(OrderModel).where(OrderModel.id == str(order_id)).values(is_read=True)
        with Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                raise OrderRowNotFoundError(f"order {order_id} not found")
            session.commit()

        updated = self.get(order_id)
        if updated is None:
            raise OrderRowNotFoundError(f"order {order_id} not found after read update")
        return updated

    def delete(self, order_id: OrderId) -> bool:
        with Session(self._engine) as session:
            model = session.get(OrderModel, str(order_id))
            if model is None:
                return False
            session.delete(model)
            session.commit()
        return True

    def _to_model(self, order: Order) -> OrderModel:
        return OrderModel(
            id=str(order.order_id),
            table_number=order.table_number,
            customer_name=order.customer_name,
            status=order.status.value,
            total_amount=order.total_amount.amount,
            currency=order.total_amount.currency,
            notes=order.notes,
            is_read=order.is_read,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )

    def _item_to_model(self, item: OrderItem) -> OrderItemModel:
        return OrderItemModel(
            id=str(item.item_id),
            order_id=str(item.order_id),
            menu_item_id=str(item.menu_item_id) if item.menu_item_id is not None else None,
            item_name=item.item_name,
            price_at_order=item.price_at_order.amount,
            currency=item.price_at_order.currency,
            quantity=item.quantity,
            created_at=item.created_at,
        )

    def _to_domain(self, model: OrderModel) -> Order:
        items = [
            OrderItem(
                item_id=OrderItemId(item.id),
                order_id=OrderId(item.order_id),
                menu_item_id=MenuItemId(item.menu_item_id) if item.menu_item_id else None,
                item_name=item.item_name,
                price_at_order=Money(amount=item.price_at_order, currency=item.currency),
                quantity=item.quantity,
                created_at=_as_utc(item.created_at),
            )
            for item in model.items
        ]
        return Order(
            order_id=OrderId(model.id),
            table_number=model.table_number,
            customer_name=model.customer_name,
            status=OrderStatus(model.status),
            total_amount=Money(amount=model.total_amount, currency=model.currency),
            notes=model.notes,
            is_read=model.is_read,
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
            items=items,
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
