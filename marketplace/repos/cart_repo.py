# marketplace/repos/cart_repo.py
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from marketplace.data.models import CartItemModel, MasterProductModel, ProductModel, SupplierModel
from marketplace.domain.pricing import CartLine


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def _lines_select(self, user_id: int, *extra_columns):
        return (
            select(
                CartItemModel.product_id,
                CartItemModel.quantity,
                ProductModel.price,
                ProductModel.discount_price,
                ProductModel.is_on_sale,
                func.coalesce(MasterProductModel.current_price_adjustment_percentage, 0).label("price_adjustment"),
                SupplierModel.is_active.label("supplier_is_active"),
                *extra_columns,
            )
            .select_from(CartItemModel)
            .join(ProductModel, CartItemModel.product_id == ProductModel.id)
            .join(SupplierModel, ProductModel.supplier_id == SupplierModel.id)
            .outerjoin(MasterProductModel, ProductModel.master_product_id == MasterProductModel.id)
            .where(CartItemModel.user_id == user_id)
        )

    def cart_statement(self, user_id: int, lock: bool = False):
        stmt = self._lines_select(user_id).order_by(CartItemModel.id)
        if lock:
            stmt = stmt.with_for_update(of=CartItemModel)
        return stmt

    def read_cart(self, user_id: int, lock: bool = False) -> list[CartLine]:
        """
        Cart lines with the catalog price fields. With ``lock`` the user's
        cart rows stay locked (SELECT ... FOR UPDATE OF cart_items) until the
        surrounding transaction ends.
        """
        rows = self.db.execute(self.cart_statement(user_id, lock)).mappings().all()
        return [CartLine(**row) for row in rows]

    def read_cart_view(self, user_id: int):
        stmt = self._lines_select(
            user_id,
            func.coalesce(MasterProductModel.display_name, ProductModel.name).label("name"),
            func.coalesce(MasterProductModel.image_url, ProductModel.image_url).label("image_url"),
        ).where(SupplierModel.is_active.is_(True)).order_by(CartItemModel.added_at.desc(), CartItemModel.id.desc())
        return self.db.execute(stmt).mappings().all()

    def clear_cart(self, user_id: int) -> int:
        result = self.db.execute(delete(CartItemModel).where(CartItemModel.user_id == user_id))
        return result.rowcount

    def get_cart_item(self, user_id: int, product_id: int, lock: bool = False) -> CartItemModel | None:
        stmt = select(CartItemModel).where(
            CartItemModel.user_id == user_id,
            CartItemModel.product_id == product_id,
        )
        if lock:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, user_id: int, product_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.user_id == user_id,
                CartItemModel.product_id == product_id,
            )
        )
        return result.rowcount

    def product_exists(self, product_id: int) -> bool:
        return self.db.get(ProductModel, product_id) is not None
