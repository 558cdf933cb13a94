from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import NotFound
from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.services.catalog_service import CatalogService, category_label, page_range


@pytest.fixture
def catalog():
    return CatalogService(ProductRepository(), OrderRepository())


def _db_down(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def _sell(session, product, quantity, owner_id="buyer"):
    order = Order(
        owner_id=owner_id,
        subtotal=product.price * quantity,
        shipping_fee=Decimal("0"),
        total_amount=product.price * quantity,
    )
    session.add(order)
    session.flush()
    session.add(
        OrderItem(
            order_id=order.id,
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            price=product.price,
        )
    )
    session.commit()


def test_page_range_is_inclusive():
    assert page_range(1, 12) == (0, 11)
    assert page_range(2, 12) == (12, 23)


def test_list_products_requests_second_page_window(catalog, session, monkeypatch):
    seen = {}

    def fake_list_page(session, **kwargs):
        seen.update(kwargs)
        return []

    monkeypatch.setattr(catalog.product_repo, "list_page", fake_list_page)
    catalog.list_products(session, page=2, page_size=12)

    assert seen["offset"] == 12
    assert seen["offset"] + seen["limit"] - 1 == 23


def test_list_products_unknown_sort_falls_back_to_newest(catalog, session, monkeypatch):
    seen = {}

    def fake_list_page(session, **kwargs):
        seen.update(kwargs)
        return []

    monkeypatch.setattr(catalog.product_repo, "list_page", fake_list_page)
    catalog.list_products(session, sort_by="stock_quantity", sort_order="asc")

    assert seen["sort_by"] == "created_at"
    assert seen["descending"] is True


def test_list_products_pages_and_counts(catalog, session, make_product):
    for i in range(15):
        make_product(name=f"Item {i:02d}", price=Decimal(1000 + i))
    make_product(name="Hidden", status="hidden", is_active=False)

    page = catalog.list_products(session, sort_by="price", sort_order="asc", page=2, page_size=12)

    assert page.total_count == 15
    assert page.total_pages == 2
    assert [p.name for p in page.items] == ["Item 12", "Item 13", "Item 14"]


def test_list_categories_empty_table(catalog, session):
    assert catalog.list_categories(session) == []


def test_list_categories_counts_active_products(catalog, session, make_product):
    make_product(category="clothing")
    make_product(category="clothing")
    make_product(category="books")
    make_product(category="books", status="hidden", is_active=False)
    make_product(category=None)

    result = catalog.list_categories(session)

    assert [(c.category, c.count) for c in result] == [("clothing", 2), ("books", 1)]
    assert result[0].label == "의류"


def test_category_label_fallbacks():
    assert category_label(None) == "기타"
    assert category_label("vinyl") == "vinyl"


def test_read_paths_degrade_to_empty_on_db_error(catalog, session, monkeypatch):
    for name in (
        "list_page",
        "list_active_categories",
        "list_promotional",
        "list_latest",
        "list_collaboration",
    ):
        monkeypatch.setattr(catalog.product_repo, name, _db_down)
    monkeypatch.setattr(catalog.order_repo, "recent_sales", _db_down)

    page = catalog.list_products(session)
    assert page.items == [] and page.total_count == 0
    assert catalog.list_categories(session) == []
    assert catalog.popular_products(session) == []
    assert catalog.promotional_products(session) == []
    assert catalog.latest_products(session) == []
    assert catalog.collaboration_products(session) == []


def test_popular_products_without_sales_is_empty(catalog, session, make_product):
    make_product()
    assert catalog.popular_products(session) == []


def test_popular_products_ranked_by_sold_quantity(catalog, session, make_product):
    a = make_product(name="A")
    b = make_product(name="B")
    c = make_product(name="C")
    _sell(session, a, 1)
    _sell(session, b, 4)
    _sell(session, c, 2)
    _sell(session, a, 2)

    result = catalog.popular_products(session, limit=2)

    assert [p.name for p in result] == ["B", "A"]


def test_popular_products_skips_inactive(catalog, session, make_product):
    a = make_product(name="A")
    b = make_product(name="B", status="hidden", is_active=False)
    _sell(session, b, 10)
    _sell(session, a, 1)

    assert [p.name for p in catalog.popular_products(session)] == ["A"]


def test_promotional_and_latest(catalog, session, make_product):
    make_product(name="Old")
    make_product(name="Sale", is_promotional=True)
    make_product(name="Gone", is_promotional=True, status="hidden", is_active=False)

    assert [p.name for p in catalog.promotional_products(session)] == ["Sale"]
    assert {p.name for p in catalog.latest_products(session)} == {"Old", "Sale"}


def test_collaboration_matches_category_or_keyword(catalog, session, make_product):
    make_product(name="Artist Tote", category="collaboration")
    make_product(name="Studio COLLABORATION cap")
    make_product(name="Mug", description="작가 디자인 머그")
    make_product(name="Plain socks")

    names = {p.name for p in catalog.collaboration_products(session)}

    assert names == {"Artist Tote", "Studio COLLABORATION cap", "Mug"}


def test_get_product_hides_inactive(catalog, session, make_product):
    visible = make_product()
    hidden = make_product(status="hidden", is_active=False)

    assert catalog.get_product(session, visible.id).id == visible.id
    with pytest.raises(NotFound):
        catalog.get_product(session, hidden.id)


def test_record_view_increments_and_never_raises(catalog, session, make_product, monkeypatch):
    product = make_product()
    catalog.record_view(session, product.id)
    catalog.record_view(session, product.id)
    session.refresh(product)
    assert product.view_count == 2

    monkeypatch.setattr(catalog.product_repo, "increment_view_count", _db_down)
    catalog.record_view(session, product.id)
