"""
Hybrid search: eligibility, exact-before-fuzzy ranking, pagination and previews.
"""
import math
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest
from sqlalchemy import select

from marketplace.data.models import ProductModel
from marketplace.data.text_search import SqliteTextSearch
from marketplace.domain.schemas import SearchFilters, SearchQuery
from marketplace.repos.search_repo import ENTITY_SEARCHES, EntityKind
from marketplace.services.search_service import SearchService


def _search(client, **params):
    resp = client.get("/api/search", params=params)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _product_names(body):
    return [p["name"] for p in body["results"]["products"]["items"]]


class TestShortCircuit:
    @pytest.mark.parametrize("term", ["", "ab", "   ab   ", "x"])
    def test_short_term_without_filters_returns_empty_bundle(self, client, seed, term):
        supplier = seed.supplier()
        seed.product(supplier, "ab ab ab")

        body = _search(client, searchTerm=term)

        assert body["searchTerm"] == term
        assert body["results"] == {
            "products": {"items": [], "currentPage": 1, "totalPages": 0, "totalItems": 0, "limit": 10},
            "deals": [],
            "suppliers": [],
        }

    def test_short_circuit_never_touches_the_store(self):
        db = Mock()
        svc = SearchService(db, SqliteTextSearch())

        results = svc.search(SearchQuery(term="ab"))

        db.execute.assert_not_called()
        assert results.products.items == []
        assert results.deals == []
        assert results.suppliers == []

    def test_short_term_with_filter_is_ignored_not_short_circuited(self, client, seed):
        supplier = seed.supplier()
        seed.product(supplier, "Laptop", category="Electronics")

        body = _search(client, searchTerm="zz", category="Electronics")

        assert _product_names(body) == ["Laptop"]
        assert body["results"]["products"]["items"][0]["match_tier"] is None


class TestProductRanking:
    def test_fulltext_hit_ranks_before_fuzzy_hit(self, client, seed):
        supplier = seed.supplier("Sound Shop")
        seed.product(supplier, "Wireless Headphones", description="Noise cancelling", category="Audio")
        # newer, but only a similarity match
        seed.product(supplier, "Headfones Pro", description="Studio monitors", category="Audio")
        seed.product(supplier, "Garden Hose", description="Twenty metres", category="Garden")

        body = _search(client, searchTerm="headphones")

        items = body["results"]["products"]["items"]
        assert [i["name"] for i in items] == ["Wireless Headphones", "Headfones Pro"]
        assert [i["match_tier"] for i in items] == [0, 1]
        assert items[1]["similarity_score"] > 0.1

    def test_higher_fulltext_rank_wins_within_exact_tier(self, client, seed):
        supplier = seed.supplier()
        dense = seed.product(supplier, "Coffee Coffee", description="coffee")
        sparse = seed.product(supplier, "Coffee", description="beans grinder kettle filter paper cups")

        body = _search(client, searchTerm="coffee")

        ids = [i["id"] for i in body["results"]["products"]["items"]]
        assert ids == [dense.id, sparse.id]

    def test_recency_breaks_ties(self, client, seed):
        supplier = seed.supplier()
        older = seed.product(supplier, "Blue Mug")
        newer = seed.product(supplier, "Blue Mug")

        body = _search(client, searchTerm="blue mug")

        assert [i["id"] for i in body["results"]["products"]["items"]] == [newer.id, older.id]

    def test_inactive_supplier_products_are_never_returned(self, client, seed):
        closed = seed.supplier("Closed", is_active=False)
        seed.product(closed, "Headphones Deluxe")

        body = _search(client, searchTerm="headphones")

        assert body["results"]["products"]["totalItems"] == 0

    def test_master_product_name_is_searched_and_displayed(self, client, seed):
        supplier = seed.supplier()
        master = seed.master_product("Espresso Machine", adjustment="0.10")
        seed.product(supplier, "EM-200 unit", price="100.00", master_product_id=master.id)

        body = _search(client, searchTerm="espresso")

        item = body["results"]["products"]["items"][0]
        assert item["name"] == "Espresso Machine"
        # the stored vector covers the listing itself, the master name matches by similarity
        assert item["match_tier"] == 1
        assert Decimal(item["effective_selling_price"]) == Decimal("110.00")


class TestFilters:
    def test_empty_term_with_category_returns_active_supplier_products_by_recency(self, client, seed):
        active = seed.supplier("Open")
        closed = seed.supplier("Closed", is_active=False)
        first = seed.product(active, "TV", category="Electronics")
        seed.product(active, "Sofa", category="Furniture")
        seed.product(closed, "Radio", category="Electronics")
        second = seed.product(active, "Phone", category="Electronics")

        body = _search(client, searchTerm="", category="Electronics")

        items = body["results"]["products"]["items"]
        assert [i["id"] for i in items] == [second.id, first.id]
        assert all(i["match_tier"] is None for i in items)

    def test_price_range_uses_effective_price(self, client, seed):
        supplier = seed.supplier()
        seed.product(supplier, "Cheap Lamp", price="50.00", discount_price="9.00", is_on_sale=True)
        seed.product(supplier, "Mid Lamp", price="20.00")
        seed.product(supplier, "Posh Lamp", price="80.00")

        body = _search(client, searchTerm="lamp", minPrice="10", maxPrice="60")

        assert _product_names(body) == ["Mid Lamp"]

    def test_min_price_above_max_price_is_rejected(self, client):
        resp = client.get("/api/search", params={"searchTerm": "lamp", "minPrice": "10", "maxPrice": "5"})

        assert resp.status_code == 400

    def test_supplier_filter(self, client, seed):
        one = seed.supplier("Red Shop One")
        two = seed.supplier("Red Shop Two")
        seed.product(one, "Red Chair")
        seed.product(two, "Red Table")

        body = _search(client, searchTerm="red", supplierId=two.id)

        assert _product_names(body) == ["Red Table"]
        assert [s["id"] for s in body["results"]["suppliers"]] == [two.id]

    def test_city_filter_limits_to_suppliers_serving_the_city(self, client, seed):
        local = seed.supplier("Local", cities=[1])
        remote = seed.supplier("Remote", cities=[2])
        seed.product(local, "Green Tea")
        seed.product(remote, "Green Tea Deluxe")

        body = _search(client, searchTerm="green tea", cityId=1)

        assert _product_names(body) == ["Green Tea"]

    def test_price_sort(self, client, seed):
        supplier = seed.supplier()
        seed.product(supplier, "Pen Blue", price="3.00")
        seed.product(supplier, "Pen Gold", price="30.00")
        seed.product(supplier, "Pen Red", price="12.00", discount_price="1.00", is_on_sale=True)

        asc = _search(client, searchTerm="pen", sort="price_asc")
        desc = _search(client, searchTerm="pen", sort="price_desc")

        assert _product_names(asc) == ["Pen Red", "Pen Blue", "Pen Gold"]
        assert _product_names(desc) == ["Pen Gold", "Pen Blue", "Pen Red"]

    @pytest.mark.parametrize(
        "params",
        [
            {"searchTerm": "lamp", "page": 0},
            {"searchTerm": "lamp", "limit": 0},
            {"searchTerm": "lamp", "limit": 1000},
            {"searchTerm": "lamp", "sort": "random"},
            {"searchTerm": "lamp", "supplierId": "abc"},
        ],
    )
    def test_out_of_range_parameters_are_rejected(self, client, params):
        assert client.get("/api/search", params=params).status_code == 400


class TestPagination:
    def test_counts_and_pages_match_filtered_rows(self, client, seed):
        supplier = seed.supplier()
        for i in range(5):
            seed.product(supplier, f"Camera {i}", category="Photo")
        seed.product(supplier, "Camera strap", category="Accessories")

        pages = [_search(client, category="Photo", page=p, limit=2) for p in (1, 2, 3)]

        meta = pages[0]["results"]["products"]
        assert meta["totalItems"] == 5
        assert meta["totalPages"] == math.ceil(5 / 2)
        assert [len(p["results"]["products"]["items"]) for p in pages] == [2, 2, 1]
        seen = [i["id"] for p in pages for i in p["results"]["products"]["items"]]
        assert len(set(seen)) == 5
        assert pages[2]["results"]["products"]["currentPage"] == 3

    def test_page_past_the_end_is_empty_with_metadata(self, client, seed):
        supplier = seed.supplier()
        seed.product(supplier, "Drone", category="Photo")

        products = _search(client, category="Photo", page=4, limit=2)["results"]["products"]

        assert products["items"] == []
        assert products["totalItems"] == 1
        assert products["totalPages"] == 1


class TestDealsAndSuppliers:
    def test_deal_eligibility(self, client, seed):
        open_shop = seed.supplier("Open")
        closed_shop = seed.supplier("Closed", is_active=False)
        today = date.today()
        platform = seed.deal("Summer Sale Platform")
        own = seed.deal("Summer Sale Open", supplier=open_shop, end_date=today)
        seed.deal("Summer Sale Closed", supplier=closed_shop)
        seed.deal("Summer Sale Expired", supplier=open_shop, end_date=today - timedelta(days=1))
        seed.deal("Summer Sale Disabled", is_active=False)

        deals = _search(client, searchTerm="summer sale")["results"]["deals"]

        assert sorted(d["id"] for d in deals) == sorted([platform.id, own.id])

    def test_platform_deals_pass_city_filter(self, client, seed):
        local = seed.supplier("Local", cities=[1])
        remote = seed.supplier("Remote", cities=[2])
        platform = seed.deal("Flash Deal")
        local_deal = seed.deal("Flash Deal Local", supplier=local)
        seed.deal("Flash Deal Remote", supplier=remote)

        deals = _search(client, searchTerm="flash deal", cityId=1)["results"]["deals"]

        assert sorted(d["id"] for d in deals) == sorted([platform.id, local_deal.id])

    def test_previews_are_capped_at_ten(self, client, seed):
        for i in range(12):
            supplier = seed.supplier(f"Bakery {i}")
            seed.deal(f"Bakery bread deal {i}", supplier=supplier)
            seed.product(supplier, f"Bakery loaf {i}")

        results = _search(client, searchTerm="bakery", limit=20)["results"]

        assert len(results["suppliers"]) == 10
        assert len(results["deals"]) == 10
        assert results["products"]["totalItems"] == 12
        assert len(results["products"]["items"]) == 12

    def test_inactive_suppliers_are_hidden(self, client, seed):
        seed.supplier("Fresh Flowers")
        seed.supplier("Fresh Fish", is_active=False)

        suppliers = _search(client, searchTerm="fresh")["results"]["suppliers"]

        assert [s["name"] for s in suppliers] == ["Fresh Flowers"]

    def test_suppliers_match_fuzzily(self, client, seed):
        seed.supplier("Bookworm Corner")

        suppliers = _search(client, searchTerm="bookwrm")["results"]["suppliers"]

        assert [s["name"] for s in suppliers] == ["Bookworm Corner"]
        assert suppliers[0]["match_tier"] == 1


class TestSearchService:
    def test_term_is_trimmed(self, session, database, seed):
        supplier = seed.supplier()
        seed.product(supplier, "Walnut Desk")

        svc = SearchService(session, database.text_search)
        results = svc.search(SearchQuery(term="   walnut   "))

        assert [p.name for p in results.products.items] == ["Walnut Desk"]

    def test_search_vector_is_generated_on_insert(self, session, seed):
        product = seed.product(seed.supplier(), "Wireless Headphones", description="Noise-cancelling", category="Audio")

        tsv = session.execute(select(ProductModel.tsv).where(ProductModel.id == product.id)).scalar_one()

        assert tsv == "wireless headphones noise cancelling audio"

    def test_one_entity_search_per_kind(self):
        svc = SearchService(Mock(), SqliteTextSearch(), threshold=0.3)

        assert set(svc.searches) == set(EntityKind)
        for kind, entity_search in svc.searches.items():
            assert type(entity_search) is ENTITY_SEARCHES[kind]
            assert entity_search.kind is kind
            assert entity_search.threshold == 0.3

    def test_filters_is_set(self):
        assert not SearchFilters().is_set()
        assert not SearchFilters(category="").is_set()
        assert SearchFilters(category="Books").is_set()
        assert SearchFilters(min_price=Decimal("0")).is_set()
