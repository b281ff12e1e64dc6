from sqlalchemy import Column, Integer, Numeric, String

from marketplace.data.database import Base
from marketplace.data.models.search_vector import trigram_index


class MasterProductModel(Base):
    """Canonical product shared by several supplier listings."""

    __tablename__ = "master_products"

    id = Column(Integer, primary_key=True)
    display_name = Column(String(255), nullable=False)
    image_url = Column(String, nullable=True)

    # platform markup/markdown applied on top of the supplier price, e.g. 0.05 = +5%
    current_price_adjustment_percentage = Column(Numeric(6, 4), nullable=False, default=0)


trigram_index(MasterProductModel.__table__, "display_name")
