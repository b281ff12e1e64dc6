# import all models so SQLAlchemy registers them on Base.metadata

from marketplace.data.models.supplier import SupplierModel, SupplierCityModel
from marketplace.data.models.master_product import MasterProductModel
from marketplace.data.models.product import ProductModel
from marketplace.data.models.deal import DealModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.order import OrderModel, OrderItemModel, OrderStatus

__all__ = [
    "SupplierModel",
    "SupplierCityModel",
    "MasterProductModel",
    "ProductModel",
    "DealModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatus",
]
