# marketplace/services/cart_service.py
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models import CartItemModel
from marketplace.domain.pricing import effective_price
from marketplace.domain.schemas import CartItemOut, CartLineOut
from marketplace.errors import ConflictError, NotFoundError
from marketplace.repos.cart_repo import CartRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Simple cart store: get / put / delete per user.
    Checkout lives in OrderService.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CartRepo(db)

    # query
    def get_cart(self, user_id: int) -> list[CartLineOut]:
        rows = self.repo.read_cart_view(user_id)
        lines = [
            CartLineOut(
                product_id=row["product_id"],
                quantity=row["quantity"],
                name=row["name"],
                image_url=row["image_url"],
                effective_selling_price=effective_price(
                    row["price"], row["discount_price"], row["is_on_sale"], row["price_adjustment"]
                ),
                supplier_base_price=row["price"],
                supplier_discount_price=row["discount_price"],
                supplier_is_on_sale=row["is_on_sale"],
            )
            for row in rows
        ]
        logger.info(f"[CART] Fetched {len(lines)} cart items for user {user_id}")
        return lines

    # commands
    def add_product(self, user_id: int, product_id: int, quantity: int) -> CartItemOut:
        """Adds to the existing quantity when the product is already in the cart."""
        try:
            with self.db.begin():
                if not self.repo.product_exists(product_id):
                    raise NotFoundError(f"Product {product_id} not found")

                item = self.repo.get_cart_item(user_id, product_id, lock=True)
                if item:
                    item.quantity += quantity
                    self.db.flush()
                else:
                    item = self.repo.add_cart_item(
                        CartItemModel(user_id=user_id, product_id=product_id, quantity=quantity)
                    )
                result = CartItemOut.model_validate(item)
        except IntegrityError as e:
            logger.warning(f"[CART] Constraint violation adding product {product_id} for user {user_id}: {e}")
            raise ConflictError("Cart was modified concurrently, try again") from e

        logger.info(f"[CART] Product {product_id} x{quantity} added for user {user_id}")
        return result

    def remove_product(self, user_id: int, product_id: int) -> None:
        with self.db.begin():
            removed = self.repo.delete_cart_item(user_id, product_id)
        if not removed:
            raise NotFoundError("Item not found in cart for this user")
        logger.info(f"[CART] Product {product_id} removed for user {user_id}")
