# marketplace/api/routers/search.py
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.database import Database, get_database, get_db
from marketplace.domain.schemas import SearchFilters, SearchQuery, SearchResponse
from marketplace.services.search_service import SearchService
from marketplace.utils.logging import get_logger
from marketplace.utils.settings import SEARCH_DEFAULT_PAGE_SIZE

logger = get_logger(__name__)

router = APIRouter(prefix="/api/search", tags=["search"])


def get_service(db: Session, database: Database):
    return SearchService(db, database.text_search)


@router.get("", response_model=SearchResponse)
def search(
    search_term: str = Query("", alias="searchTerm"),
    category: str | None = Query(None),
    supplier_id: int | None = Query(None, alias="supplierId"),
    min_price: Decimal | None = Query(None, alias="minPrice"),
    max_price: Decimal | None = Query(None, alias="maxPrice"),
    city_id: int | None = Query(None, alias="cityId"),
    sort: str = Query("relevance"),
    page: int = Query(1),
    limit: int = Query(SEARCH_DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
    database: Database = Depends(get_database),
):
    """
    Combined search: paginated products plus deal and supplier previews.
    """
    try:
        query = SearchQuery(
            term=search_term,
            filters=SearchFilters(
                category=category or None,
                supplier_id=supplier_id,
                min_price=min_price,
                max_price=max_price,
                city_id=city_id,
            ),
            sort=sort,
            page=page,
            limit=limit,
        )
    except PydanticValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False, include_input=False))

    svc = get_service(db, database)
    try:
        results = svc.search(query)
    except SQLAlchemyError as e:
        logger.exception(f"Error during search for term {search_term!r}: {e}")
        raise HTTPException(status_code=500, detail="Failed to perform search")

    return SearchResponse(search_term=search_term, results=results)
