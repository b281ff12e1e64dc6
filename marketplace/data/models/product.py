from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from marketplace.data.database import Base
from marketplace.data.models.search_vector import search_vector, trigram_index


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True)
    master_product_id = Column(Integer, ForeignKey("master_products.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    image_url = Column(String, nullable=True)

    price = Column(Numeric(12, 2), nullable=False)
    discount_price = Column(Numeric(12, 2), nullable=True)
    is_on_sale = Column(Boolean, nullable=False, default=False)
    stock_level = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    tsv = search_vector("name", "description", "category")

    __table_args__ = (Index("ix_products_tsv", "tsv", postgresql_using="gin"),)


trigram_index(ProductModel.__table__, "name")
