# marketplace/repos/order_repo.py
from decimal import Decimal

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from marketplace.data.models import OrderItemModel, OrderModel, OrderStatus, ProductModel
from marketplace.domain.pricing import PricedLine


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, user_id: int, total_amount: Decimal) -> OrderModel:
        order = OrderModel(user_id=user_id, total_amount=total_amount, status=OrderStatus.PENDING.value)
        self.db.add(order)
        # flush to get the generated id without leaving the transaction
        self.db.flush()
        return order

    def add_order_items(self, order_id: int, lines: list[PricedLine]) -> None:
        self.db.execute(
            insert(OrderItemModel),
            [
                {
                    "order_id": order_id,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "price_at_time_of_order": line.price_at_time_of_order,
                    "supplier_item_status": OrderStatus.PENDING.value,
                }
                for line in lines
            ],
        )

    def list_orders(self, user_id: int) -> list[OrderModel]:
        stmt = (
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.order_date.desc(), OrderModel.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_order_items(self, order_ids: list[int]):
        if not order_ids:
            return []
        stmt = (
            select(
                OrderItemModel.order_id,
                OrderItemModel.product_id,
                OrderItemModel.quantity,
                OrderItemModel.price_at_time_of_order,
                ProductModel.name.label("product_name"),
                ProductModel.image_url.label("product_image_url"),
            )
            .join(ProductModel, OrderItemModel.product_id == ProductModel.id)
            .where(OrderItemModel.order_id.in_(order_ids))
            .order_by(OrderItemModel.id)
        )
        return self.db.execute(stmt).mappings().all()
