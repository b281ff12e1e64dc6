# marketplace/services/order_service.py
from collections import defaultdict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace.domain.schemas import OrderCreated, OrderItemOut, OrderOut
from marketplace.domain.pricing import snapshot_cart
from marketplace.errors import ConflictError, EmptyCartError, MarketplaceError, OrderCreationFailed
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.utils.logging import get_logger
from marketplace.utils.settings import ORDER_TX_TIMEOUT_MS

logger = get_logger(__name__)


class OrderService:
    """
    Turns a user's cart into a priced, immutable order.

    Everything from reading the cart to clearing it happens in a single
    transaction, so callers observe either a complete order with an empty
    cart or no change at all.
    """

    def __init__(self, db: Session, tx_timeout_ms: int = ORDER_TX_TIMEOUT_MS):
        self.db = db
        self.cart_repo = CartRepo(db)
        self.repo = OrderRepo(db)
        self.tx_timeout_ms = tx_timeout_ms

    def _apply_timeouts(self) -> None:
        if self.db.get_bind().dialect.name != "postgresql" or not self.tx_timeout_ms:
            return
        timeout = str(self.tx_timeout_ms)
        # is_local=true: reverts when the transaction ends
        self.db.execute(select(func.set_config("statement_timeout", timeout, True)))
        self.db.execute(select(func.set_config("lock_timeout", timeout, True)))

    def finalize_order(self, user_id: int) -> OrderCreated:
        """
        Use case: checkout.

        1. open the transaction (+ statement/lock timeouts)
        2. read and lock the user's cart rows with current catalog prices
        3. refuse an empty cart (items of inactive suppliers are not priced)
        4. freeze unit prices and total them
        5. insert the order
        6. insert one order item per cart line
        7. clear the cart
        8. commit

        Concurrent checkouts for the same user serialize on the cart row
        lock (BEGIN IMMEDIATE on SQLite); the second one finds an empty cart.
        If clearing the cart removes fewer rows than were read, another
        checkout got there first and the transaction is rolled back.
        """
        logger.info(f"[ORDER_CREATE] Transaction BEGIN for user {user_id}")
        try:
            with self.db.begin():
                self._apply_timeouts()

                lines = self.cart_repo.read_cart(user_id, lock=True)
                priced_lines = [line for line in lines if line.supplier_is_active]
                if not priced_lines:
                    raise EmptyCartError()

                snapshot = snapshot_cart(priced_lines)
                order = self.repo.add_order(user_id, snapshot.total_amount)
                self.repo.add_order_items(order.id, list(snapshot.lines))
                cleared = self.cart_repo.clear_cart(user_id)
                if cleared < len(lines):
                    # rows read above were consumed by another checkout
                    raise ConflictError("Cart changed during checkout, try again")
                order_id = order.id

        except EmptyCartError:
            logger.info(f"[ORDER_CREATE] No orderable items in cart for user {user_id}, rolled back")
            raise
        except ConflictError as e:
            logger.warning(f"[ORDER_CREATE] Transaction ROLLBACK for user {user_id}: {e.message}")
            raise
        except MarketplaceError:
            raise
        except Exception as e:
            logger.exception(f"[ORDER_CREATE] Transaction ROLLBACK for user {user_id}: {e}")
            raise OrderCreationFailed() from e

        logger.info(
            f"[ORDER_CREATE] Transaction COMMIT for user {user_id}, order {order_id}, "
            f"total={snapshot.total_amount}, items={len(snapshot.lines)}, cart rows cleared={cleared}"
        )
        return OrderCreated(order_id=order_id, total_amount=snapshot.total_amount)

    def list_orders(self, user_id: int) -> list[OrderOut]:
        """
        Use case: order history, newest first, with items.
        """
        orders = self.repo.list_orders(user_id)
        items_by_order = defaultdict(list)
        for item in self.repo.list_order_items([o.id for o in orders]):
            items_by_order[item["order_id"]].append(
                OrderItemOut(
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    price_at_time_of_order=item["price_at_time_of_order"],
                    product_name=item["product_name"],
                    product_image_url=item["product_image_url"],
                )
            )

        return [
            OrderOut(
                id=o.id,
                user_id=o.user_id,
                total_amount=o.total_amount,
                status=o.status,
                order_date=o.order_date,
                items=items_by_order[o.id],
            )
            for o in orders
        ]
