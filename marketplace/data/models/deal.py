from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from marketplace.data.database import Base
from marketplace.data.models.search_vector import search_vector, trigram_index


class DealModel(Base):
    __tablename__ = "deals"

    id = Column(Integer, primary_key=True)
    # NULL supplier = platform deal
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    image_url = Column(String, nullable=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    tsv = search_vector("title", "description")

    __table_args__ = (Index("ix_deals_tsv", "tsv", postgresql_using="gin"),)


trigram_index(DealModel.__table__, "title")
