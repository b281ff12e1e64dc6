# marketplace/domain/schemas.py
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from marketplace.utils.settings import SEARCH_DEFAULT_PAGE_SIZE, SEARCH_MAX_PAGE_SIZE


class CamelModel(BaseModel):
    """Base for payloads exchanged with the app frontend (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# =====================================================
# ORDERS
# =====================================================
class OrderCreate(CamelModel):
    """Body of POST /api/orders."""

    user_id: int = Field(..., gt=0, alias="userId", description="Telegram user ID")


class OrderCreated(CamelModel):
    message: str = "Order created successfully"
    order_id: int = Field(..., alias="orderId")
    total_amount: Decimal = Field(..., alias="totalAmount")


class OrderItemOut(BaseModel):
    product_id: int
    quantity: int
    price_at_time_of_order: Decimal
    product_name: str | None = None
    product_image_url: str | None = None


class OrderOut(BaseModel):
    id: int
    user_id: int
    total_amount: Decimal
    status: str
    order_date: datetime
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# CART
# =====================================================
class CartItemIn(CamelModel):
    """Adds ``quantity`` units of a product to the user's cart."""

    user_id: int = Field(..., gt=0, alias="userId")
    product_id: int = Field(..., gt=0, alias="productId")
    quantity: int = Field(1, gt=0)


class CartItemOut(BaseModel):
    user_id: int
    product_id: int
    quantity: int
    added_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CartLineOut(BaseModel):
    product_id: int
    quantity: int
    name: str
    image_url: str | None = None
    effective_selling_price: Decimal
    supplier_base_price: Decimal
    supplier_discount_price: Decimal | None = None
    supplier_is_on_sale: bool


# =====================================================
# SEARCH
# =====================================================
class SearchSort(str, Enum):
    RELEVANCE = "relevance"
    NEWEST = "newest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"


class SearchFilters(BaseModel):
    category: str | None = None
    supplier_id: int | None = Field(None, gt=0)
    min_price: Decimal | None = Field(None, ge=0)
    max_price: Decimal | None = Field(None, ge=0)
    city_id: int | None = Field(None, gt=0)

    @model_validator(mode="after")
    def _check_price_range(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("minPrice must not be greater than maxPrice")
        return self

    def is_set(self) -> bool:
        return any(
            value is not None and value != ""
            for value in (self.category, self.supplier_id, self.min_price, self.max_price, self.city_id)
        )


class SearchQuery(BaseModel):
    """A request-scoped search over products, deals and suppliers."""

    term: str = Field("", max_length=200)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    sort: SearchSort = SearchSort.RELEVANCE
    page: int = Field(1, ge=1)
    limit: int = Field(SEARCH_DEFAULT_PAGE_SIZE, ge=1, le=SEARCH_MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class RankedResult(BaseModel):
    # exact full-text hit = 0, similarity-only hit = 1; None when searching without a term
    match_tier: int | None = None
    rank_score: float | None = None
    similarity_score: float | None = None


class RankedProduct(RankedResult):
    id: int
    name: str
    description: str | None = None
    category: str | None = None
    image_url: str | None = None
    supplier_id: int
    supplier_name: str
    effective_selling_price: Decimal
    is_on_sale: bool
    discount_price: Decimal | None = None
    created_at: datetime | None = None


class RankedDeal(RankedResult):
    id: int
    title: str
    description: str | None = None
    discount_percentage: Decimal | None = None
    image_url: str | None = None
    product_id: int | None = None
    supplier_id: int | None = None
    supplier_name: str | None = None
    end_date: date | None = None
    created_at: datetime | None = None


class RankedSupplier(RankedResult):
    id: int
    name: str
    category: str | None = None
    location: str | None = None
    rating: Decimal | None = None
    image_url: str | None = None
    created_at: datetime | None = None


class ProductPage(CamelModel):
    items: List[RankedProduct] = []
    current_page: int = Field(1, alias="currentPage")
    total_pages: int = Field(0, alias="totalPages")
    total_items: int = Field(0, alias="totalItems")
    limit: int = SEARCH_DEFAULT_PAGE_SIZE


class SearchResults(BaseModel):
    products: ProductPage = Field(default_factory=ProductPage)
    deals: List[RankedDeal] = []
    suppliers: List[RankedSupplier] = []


class SearchResponse(CamelModel):
    search_term: str = Field(..., alias="searchTerm")
    results: SearchResults
