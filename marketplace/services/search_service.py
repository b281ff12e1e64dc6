# marketplace/services/search_service.py
import math
from datetime import date

from sqlalchemy.orm import Session

from marketplace.data.text_search import TextSearchBackend
from marketplace.domain.schemas import ProductPage, SearchQuery, SearchResults
from marketplace.repos.search_repo import ENTITY_SEARCHES, EntityKind
from marketplace.utils.logging import get_logger
from marketplace.utils.settings import (
    SEARCH_MIN_TERM_LENGTH,
    SEARCH_PREVIEW_LIMIT,
    SEARCH_TRIGRAM_THRESHOLD,
)

logger = get_logger(__name__)


class SearchService:
    """
    Combined search over products, deals and suppliers.

    Products come back as a page with total counts; deals and suppliers are
    short previews capped at ``preview_limit`` rows.
    """

    def __init__(
        self,
        db: Session,
        text_search: TextSearchBackend,
        threshold: float = SEARCH_TRIGRAM_THRESHOLD,
        preview_limit: int = SEARCH_PREVIEW_LIMIT,
        min_term_length: int = SEARCH_MIN_TERM_LENGTH,
    ):
        self.db = db
        self.searches = {kind: search(text_search, threshold) for kind, search in ENTITY_SEARCHES.items()}
        self.preview_limit = preview_limit
        self.min_term_length = min_term_length

    def effective_term(self, query: SearchQuery) -> str | None:
        term = query.term.strip()
        return term if len(term) >= self.min_term_length else None

    def search(self, query: SearchQuery, today: date | None = None) -> SearchResults:
        term = self.effective_term(query)

        # trivial input without filters would scan whole tables
        if term is None and not query.filters.is_set():
            logger.info(f"Search short-circuited for term {query.term!r}")
            return SearchResults(products=ProductPage(current_page=1, limit=query.limit))

        today = today or date.today()
        results = SearchResults(
            products=self._product_page(query, term, today),
            deals=self._preview(EntityKind.DEAL, query, term, today),
            suppliers=self._preview(EntityKind.SUPPLIER, query, term, today),
        )
        logger.info(
            f"Search {term!r} filters={query.filters.model_dump(exclude_none=True)}: "
            f"{results.products.total_items} products, {len(results.deals)} deals, "
            f"{len(results.suppliers)} suppliers"
        )
        return results

    def _product_page(self, query: SearchQuery, term: str | None, today: date) -> ProductPage:
        products = self.searches[EntityKind.PRODUCT]
        predicate = products.predicate(query.filters, term, today)
        total = products.count(self.db, predicate)
        items = []
        if total:
            items = products.fetch(self.db, predicate, term, query.limit, query.offset, query.sort)
        return ProductPage(
            items=items,
            current_page=query.page,
            total_pages=math.ceil(total / query.limit),
            total_items=total,
            limit=query.limit,
        )

    def _preview(self, kind: EntityKind, query: SearchQuery, term: str | None, today: date) -> list:
        entity_search = self.searches[kind]
        predicate = entity_search.predicate(query.filters, term, today)
        rows = entity_search.fetch(self.db, predicate, term, self.preview_limit)
        logger.debug(f"{entity_search.kind.value} preview: {len(rows)} rows")
        return rows
