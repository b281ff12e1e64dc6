from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from marketplace.data.database import Base
from marketplace.data.models.search_vector import search_vector, trigram_index


class SupplierModel(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    rating = Column(Numeric(3, 2), nullable=True)
    image_url = Column(String, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    tsv = search_vector("name", "category", "description")

    __table_args__ = (Index("ix_suppliers_tsv", "tsv", postgresql_using="gin"),)


trigram_index(SupplierModel.__table__, "name")


class SupplierCityModel(Base):
    __tablename__ = "supplier_cities"

    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="CASCADE"), primary_key=True)
    city_id = Column(Integer, primary_key=True)
