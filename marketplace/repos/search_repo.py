"""
Query composition for the combined search.

Each searchable entity kind has one :class:`EntitySearch` subclass that
knows its joins, eligibility rules, filter predicates, relevance expressions
and how to hydrate a result row. The data query and the count query of an
entity are always built from the same predicate object, so pagination
metadata cannot drift from the page contents.
"""
from datetime import date
from enum import Enum

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.orm import Session

from marketplace.data.models import (
    DealModel,
    MasterProductModel,
    ProductModel,
    SupplierCityModel,
    SupplierModel,
)
from marketplace.data.text_search import TextSearchBackend
from marketplace.domain.pricing import effective_price
from marketplace.domain.schemas import (
    RankedDeal,
    RankedProduct,
    RankedSupplier,
    SearchFilters,
    SearchSort,
)
from marketplace.utils.settings import SEARCH_TRIGRAM_THRESHOLD

EXACT_TIER = 0
FUZZY_TIER = 1


class EntityKind(str, Enum):
    PRODUCT = "product"
    DEAL = "deal"
    SUPPLIER = "supplier"


def _serves_city(supplier_id_column, city_id: int):
    return (
        select(SupplierCityModel.supplier_id)
        .where(
            SupplierCityModel.supplier_id == supplier_id_column,
            SupplierCityModel.city_id == city_id,
        )
        .exists()
    )


class EntitySearch:
    kind: EntityKind
    model = None

    def __init__(self, text_search: TextSearchBackend, threshold: float = SEARCH_TRIGRAM_THRESHOLD):
        self.text_search = text_search
        self.threshold = threshold

    def vector(self):
        return self.model.tsv

    # --- per-kind hooks -------------------------------------------------
    def name(self):
        raise NotImplementedError

    def columns(self) -> list:
        raise NotImplementedError

    def joined(self, stmt):
        return stmt.select_from(self.model)

    def eligibility(self, filters: SearchFilters, today: date) -> list:
        raise NotImplementedError

    def hydrate(self, row):
        raise NotImplementedError

    # --- composition ----------------------------------------------------
    def fulltext_match(self, term: str):
        return self.text_search.fulltext_match(self.vector(), term)

    def term_condition(self, term: str):
        return or_(
            self.fulltext_match(term),
            self.text_search.similarity(self.name(), term) > self.threshold,
        )

    def predicate(self, filters: SearchFilters, term: str | None, today: date):
        conditions = self.eligibility(filters, today)
        if term:
            conditions.append(self.term_condition(term))
        return and_(*conditions)

    def relevance(self, term: str) -> list:
        return [
            case((self.fulltext_match(term), EXACT_TIER), else_=FUZZY_TIER).label("match_tier"),
            self.text_search.fulltext_rank(self.vector(), term).label("rank_score"),
            self.text_search.similarity(self.name(), term).label("similarity_score"),
        ]

    def ordering(self, term: str | None, sort: SearchSort, relevance: list) -> list:
        recency = [self.model.created_at.desc(), self.model.id.desc()]
        if term and sort == SearchSort.RELEVANCE:
            tier, rank, sim = relevance
            return [tier.asc(), rank.desc(), sim.desc(), *recency]
        return recency

    def statement(
        self,
        predicate,
        term: str | None,
        limit: int,
        offset: int = 0,
        sort: SearchSort = SearchSort.RELEVANCE,
    ):
        relevance = self.relevance(term) if term else []
        stmt = self.joined(select(*self.columns(), *relevance)).where(predicate)
        return stmt.order_by(*self.ordering(term, sort, relevance)).limit(limit).offset(offset)

    def count_statement(self, predicate):
        return self.joined(select(func.count(self.model.id))).where(predicate)

    def fetch(self, db: Session, predicate, term: str | None, limit: int, offset: int = 0, sort=SearchSort.RELEVANCE):
        rows = db.execute(self.statement(predicate, term, limit, offset, sort)).mappings().all()
        return [self.hydrate(row) for row in rows]

    def count(self, db: Session, predicate) -> int:
        return db.execute(self.count_statement(predicate)).scalar_one()

    @staticmethod
    def _ranking(row) -> dict:
        return {
            "match_tier": row.get("match_tier"),
            "rank_score": row.get("rank_score"),
            "similarity_score": row.get("similarity_score"),
        }


class ProductSearch(EntitySearch):
    kind = EntityKind.PRODUCT
    model = ProductModel

    def display_name(self):
        return func.coalesce(MasterProductModel.display_name, ProductModel.name)

    def name(self):
        return self.display_name()

    def effective_price(self):
        base = case(
            (and_(ProductModel.is_on_sale.is_(True), ProductModel.discount_price.is_not(None)), ProductModel.discount_price),
            else_=ProductModel.price,
        )
        return base * (1 + func.coalesce(MasterProductModel.current_price_adjustment_percentage, 0))

    def columns(self) -> list:
        return [
            ProductModel.id,
            self.display_name().label("name"),
            ProductModel.description,
            ProductModel.category,
            func.coalesce(MasterProductModel.image_url, ProductModel.image_url).label("image_url"),
            ProductModel.supplier_id,
            SupplierModel.name.label("supplier_name"),
            ProductModel.price,
            ProductModel.discount_price,
            ProductModel.is_on_sale,
            func.coalesce(MasterProductModel.current_price_adjustment_percentage, 0).label("price_adjustment"),
            ProductModel.created_at,
        ]

    def joined(self, stmt):
        return (
            stmt.select_from(ProductModel)
            .join(SupplierModel, ProductModel.supplier_id == SupplierModel.id)
            .outerjoin(MasterProductModel, ProductModel.master_product_id == MasterProductModel.id)
        )

    def eligibility(self, filters: SearchFilters, today: date) -> list:
        conditions = [SupplierModel.is_active.is_(True)]
        if filters.city_id is not None:
            conditions.append(_serves_city(ProductModel.supplier_id, filters.city_id))
        if filters.category:
            conditions.append(ProductModel.category == filters.category)
        if filters.supplier_id is not None:
            conditions.append(ProductModel.supplier_id == filters.supplier_id)
        if filters.min_price is not None:
            conditions.append(self.effective_price() >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(self.effective_price() <= filters.max_price)
        return conditions

    def ordering(self, term: str | None, sort: SearchSort, relevance: list) -> list:
        recency = [ProductModel.created_at.desc(), ProductModel.id.desc()]
        if sort == SearchSort.PRICE_ASC:
            return [self.effective_price().asc(), *recency]
        if sort == SearchSort.PRICE_DESC:
            return [self.effective_price().desc(), *recency]
        return super().ordering(term, sort, relevance)

    def hydrate(self, row) -> RankedProduct:
        return RankedProduct(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            category=row["category"],
            image_url=row["image_url"],
            supplier_id=row["supplier_id"],
            supplier_name=row["supplier_name"],
            effective_selling_price=effective_price(
                row["price"], row["discount_price"], row["is_on_sale"], row["price_adjustment"]
            ),
            is_on_sale=row["is_on_sale"],
            discount_price=row["discount_price"],
            created_at=row["created_at"],
            **self._ranking(row),
        )


class DealSearch(EntitySearch):
    kind = EntityKind.DEAL
    model = DealModel

    def name(self):
        return DealModel.title

    def columns(self) -> list:
        return [
            DealModel.id,
            DealModel.title,
            DealModel.description,
            DealModel.discount_percentage,
            DealModel.image_url,
            DealModel.product_id,
            DealModel.supplier_id,
            SupplierModel.name.label("supplier_name"),
            DealModel.end_date,
            DealModel.created_at,
        ]

    def joined(self, stmt):
        return (
            stmt.select_from(DealModel)
            .outerjoin(SupplierModel, DealModel.supplier_id == SupplierModel.id)
            .outerjoin(ProductModel, DealModel.product_id == ProductModel.id)
        )

    def eligibility(self, filters: SearchFilters, today: date) -> list:
        supplier_ok = [SupplierModel.is_active.is_(True)]
        if filters.city_id is not None:
            supplier_ok.append(_serves_city(DealModel.supplier_id, filters.city_id))

        conditions = [
            DealModel.is_active.is_(True),
            or_(DealModel.end_date.is_(None), DealModel.end_date >= today),
            or_(DealModel.supplier_id.is_(None), and_(*supplier_ok)),
        ]
        if filters.supplier_id is not None:
            conditions.append(DealModel.supplier_id == filters.supplier_id)
        if filters.category:
            conditions.append(ProductModel.category == filters.category)
        return conditions

    def hydrate(self, row) -> RankedDeal:
        return RankedDeal(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            discount_percentage=row["discount_percentage"],
            image_url=row["image_url"],
            product_id=row["product_id"],
            supplier_id=row["supplier_id"],
            supplier_name=row["supplier_name"],
            end_date=row["end_date"],
            created_at=row["created_at"],
            **self._ranking(row),
        )


class SupplierSearch(EntitySearch):
    kind = EntityKind.SUPPLIER
    model = SupplierModel

    def name(self):
        return SupplierModel.name

    def columns(self) -> list:
        return [
            SupplierModel.id,
            SupplierModel.name,
            SupplierModel.category,
            SupplierModel.location,
            SupplierModel.rating,
            SupplierModel.image_url,
            SupplierModel.created_at,
        ]

    def eligibility(self, filters: SearchFilters, today: date) -> list:
        conditions = [SupplierModel.is_active.is_(True)]
        if filters.city_id is not None:
            conditions.append(_serves_city(SupplierModel.id, filters.city_id))
        if filters.category:
            conditions.append(SupplierModel.category == filters.category)
        if filters.supplier_id is not None:
            conditions.append(SupplierModel.id == filters.supplier_id)
        return conditions

    def hydrate(self, row) -> RankedSupplier:
        return RankedSupplier(
            id=row["id"],
            name=row["name"],
            category=row["category"],
            location=row["location"],
            rating=row["rating"],
            image_url=row["image_url"],
            created_at=row["created_at"],
            **self._ranking(row),
        )


ENTITY_SEARCHES = {
    EntityKind.PRODUCT: ProductSearch,
    EntityKind.DEAL: DealSearch,
    EntityKind.SUPPLIER: SupplierSearch,
}
