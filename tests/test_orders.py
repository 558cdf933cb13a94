import uuid
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.core.errors import (
    CartMismatch,
    InsufficientStock,
    InvalidStatusTransition,
    NotFound,
    OrderNotCancellable,
    OrderNotPayable,
    ProductUnavailable,
    StockDecrementFailed,
    Unauthenticated,
)
from app.models.cart import CartItem
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import OrderCreate, OrderStatusUpdate
from app.schemas.payment import SettlementInfo
from app.services.order_service import OrderService, calculate_shipping_fee
from app.services.payment_service import PaymentService

from conftest import OTHER_USER_ID, USER_ID


@pytest.fixture
def orders():
    return OrderService(OrderRepository(), CartRepository(), ProductRepository())


def _payload(ids, shipping_address, note=None):
    return OrderCreate(cart_item_ids=ids, shipping_address=shipping_address, order_note=note)


def _count(session, model):
    session.expire_all()
    return len(session.exec(select(model)).all())


def _stock(session, product_id):
    session.expire_all()
    return session.get(Product, product_id).stock_quantity


def test_end_to_end_order(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product(stock_quantity=5, price=Decimal("20000"))
    entry = make_cart_item(product, quantity=2, options={"size": "M"})

    order_id = orders.create_order(session, USER_ID, _payload([entry.id], shipping_address))

    order = orders.get_order(session, USER_ID, order_id)
    assert order.subtotal == 40000
    assert order.shipping_fee == 3000
    assert order.total_amount == 43000
    assert order.status == "pending"
    assert order.payment_status == "pending"
    assert order.shipping_address["recipientName"] == "Kim Minji"

    [line] = order.items
    assert line.product_name == "Linen Shirt"
    assert line.price == 20000
    assert line.quantity == 2
    assert line.options == {"size": "M"}

    assert _stock(session, product.id) == 3
    assert _count(session, CartItem) == 0


def test_total_is_lines_plus_shipping(orders, session, make_product, make_cart_item, shipping_address):
    a = make_product(name="A", price=Decimal("12500"))
    b = make_product(name="B", price=Decimal("9900"), stock_quantity=10)
    ids = [make_cart_item(a, quantity=1).id, make_cart_item(b, quantity=4).id]

    order = orders.get_order(
        session, USER_ID, orders.create_order(session, USER_ID, _payload(ids, shipping_address))
    )

    lines_total = sum(it.price * it.quantity for it in order.items)
    assert order.subtotal == lines_total
    assert order.total_amount == lines_total + calculate_shipping_fee(lines_total)
    assert order.shipping_fee == 0


def test_only_selected_entries_are_consumed(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product(stock_quantity=10)
    chosen = make_cart_item(product, quantity=1, options={"size": "S"})
    kept = make_cart_item(product, quantity=1, options={"size": "L"})

    orders.create_order(session, USER_ID, _payload([chosen.id], shipping_address))

    session.expire_all()
    remaining = session.exec(select(CartItem)).all()
    assert [row.id for row in remaining] == [kept.id]


def test_foreign_cart_entry_is_a_mismatch(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product()
    mine = make_cart_item(product)
    theirs = make_cart_item(product, owner_id=OTHER_USER_ID)

    with pytest.raises(CartMismatch):
        orders.create_order(session, USER_ID, _payload([mine.id, theirs.id], shipping_address))

    assert _count(session, Order) == 0
    assert _count(session, OrderItem) == 0
    assert _count(session, CartItem) == 2
    assert _stock(session, product.id) == 5


def test_unknown_or_duplicate_ids_are_a_mismatch(orders, session, make_product, make_cart_item, shipping_address):
    entry = make_cart_item(make_product())

    with pytest.raises(CartMismatch):
        orders.create_order(session, USER_ID, _payload([entry.id, uuid.uuid4()], shipping_address))
    with pytest.raises(CartMismatch):
        orders.create_order(session, USER_ID, _payload([entry.id, entry.id], shipping_address))
    with pytest.raises(CartMismatch):
        orders.create_order(session, USER_ID, _payload([], shipping_address))


def test_guest_cannot_order(orders, session, make_product, make_cart_item, shipping_address):
    entry = make_cart_item(make_product())
    with pytest.raises(Unauthenticated):
        orders.create_order(session, None, _payload([entry.id], shipping_address))


def test_zero_stock_leaves_every_entry_untouched(orders, session, make_product, make_cart_item, shipping_address):
    in_stock = make_product(name="In stock", stock_quantity=5)
    empty = make_product(name="Empty", stock_quantity=1)
    ids = [make_cart_item(in_stock, quantity=1).id, make_cart_item(empty, quantity=1).id]
    empty.stock_quantity = 0
    empty.status = "out_of_stock"
    session.add(empty)
    session.commit()

    with pytest.raises(InsufficientStock):
        orders.create_order(session, USER_ID, _payload(ids, shipping_address))

    session.expire_all()
    assert {row.id for row in session.exec(select(CartItem)).all()} == set(ids)
    assert _count(session, Order) == 0
    assert _stock(session, in_stock.id) == 5


def test_hidden_product_in_cart_is_unavailable(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product()
    entry = make_cart_item(product)
    product.status = "hidden"
    product.is_active = False
    session.add(product)
    session.commit()

    with pytest.raises(ProductUnavailable):
        orders.create_order(session, USER_ID, _payload([entry.id], shipping_address))


def test_failed_decrement_rolls_back_everything(
    orders, session, make_product, make_cart_item, shipping_address, monkeypatch
):
    first = make_product(name="First", stock_quantity=5)
    second = make_product(name="Second", stock_quantity=5)
    ids = [make_cart_item(first, quantity=1).id, make_cart_item(second, quantity=1).id]

    real_decrement = orders.product_repo.decrement_stock

    def lose_race(session, product_id, quantity):
        if product_id == second.id:
            return False
        return real_decrement(session, product_id, quantity)

    monkeypatch.setattr(orders.product_repo, "decrement_stock", lose_race)

    with pytest.raises(StockDecrementFailed):
        orders.create_order(session, USER_ID, _payload(ids, shipping_address))

    assert _count(session, Order) == 0
    assert _count(session, OrderItem) == 0
    assert _count(session, CartItem) == 2
    assert _stock(session, first.id) == 5
    assert _stock(session, second.id) == 5


def test_conditional_decrement_never_goes_negative(session, make_product):
    repo = ProductRepository()
    product = make_product(stock_quantity=1)

    assert repo.decrement_stock(session, product.id, 1) is True
    assert repo.decrement_stock(session, product.id, 1) is False
    session.commit()
    assert _stock(session, product.id) == 0


def test_cart_cleanup_failure_keeps_order(
    orders, session, make_product, make_cart_item, shipping_address, monkeypatch
):
    product = make_product(stock_quantity=5)
    entry = make_cart_item(product, quantity=1)

    def broken_delete(*args, **kwargs):
        raise OperationalError("DELETE FROM cart_items", {}, Exception("timeout"))

    monkeypatch.setattr(orders.cart_repo, "delete_ids", broken_delete)

    order_id = orders.create_order(session, USER_ID, _payload([entry.id], shipping_address))

    assert orders.get_order(session, USER_ID, order_id).total_amount == 23000
    assert _stock(session, product.id) == 4
    assert _count(session, CartItem) == 1


def test_get_orders_scoped_to_owner(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product(stock_quantity=10)
    first = orders.create_order(
        session, USER_ID, _payload([make_cart_item(product).id], shipping_address)
    )
    second = orders.create_order(
        session, USER_ID, _payload([make_cart_item(product).id], shipping_address)
    )
    other = orders.create_order(
        session,
        OTHER_USER_ID,
        _payload([make_cart_item(product, owner_id=OTHER_USER_ID).id], shipping_address),
    )

    assert [o.id for o in orders.get_orders(session, USER_ID)] == [second, first]
    assert orders.get_orders(session, None) == []
    with pytest.raises(NotFound):
        orders.get_order(session, USER_ID, other)
    with pytest.raises(NotFound):
        orders.get_order(session, None, first)


def test_cancel_restores_stock(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product(stock_quantity=5)
    order_id = orders.create_order(
        session, USER_ID, _payload([make_cart_item(product, quantity=2).id], shipping_address)
    )
    assert _stock(session, product.id) == 3

    cancelled = orders.cancel_order(session, USER_ID, order_id)

    assert cancelled.status == "cancelled"
    assert cancelled.payment_status == "cancelled"
    assert _stock(session, product.id) == 5

    with pytest.raises(OrderNotCancellable):
        orders.cancel_order(session, USER_ID, order_id)


def test_cancelled_order_cannot_be_paid(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product(stock_quantity=5, price=Decimal("20000"))
    order_id = orders.create_order(
        session, USER_ID, _payload([make_cart_item(product, quantity=2).id], shipping_address)
    )
    orders.cancel_order(session, USER_ID, order_id)
    settlement = SettlementInfo(
        payment_key="pk_late",
        order_id=str(order_id),
        status="DONE",
        method="카드",
        payment_data={"paymentKey": "pk_late", "totalAmount": 43000},
    )

    with pytest.raises(OrderNotPayable):
        PaymentService(OrderRepository()).update_order_payment(session, USER_ID, order_id, settlement)

    order = orders.get_order(session, USER_ID, order_id)
    assert order.status == "cancelled"
    assert order.payment_status == "cancelled"
    assert order.payment_id is None
    assert _stock(session, product.id) == 5


def test_cancel_foreign_or_shipped_order(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product(stock_quantity=5)
    order_id = orders.create_order(
        session, USER_ID, _payload([make_cart_item(product).id], shipping_address)
    )

    with pytest.raises(NotFound):
        orders.cancel_order(session, OTHER_USER_ID, order_id)

    orders.update_status(session, order_id, OrderStatusUpdate(status="confirmed"))
    orders.update_status(session, order_id, OrderStatusUpdate(status="shipped"))
    with pytest.raises(OrderNotCancellable):
        orders.cancel_order(session, USER_ID, order_id)


def test_admin_status_machine(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product(stock_quantity=5)
    order_id = orders.create_order(
        session, USER_ID, _payload([make_cart_item(product).id], shipping_address)
    )

    with pytest.raises(InvalidStatusTransition):
        orders.update_status(session, order_id, OrderStatusUpdate(status="shipped"))

    for step in ("confirmed", "confirmed", "shipped", "delivered"):
        assert orders.update_status(session, order_id, OrderStatusUpdate(status=step)).status == step

    with pytest.raises(InvalidStatusTransition):
        orders.update_status(session, order_id, OrderStatusUpdate(status="cancelled"))
    with pytest.raises(NotFound):
        orders.update_status(session, uuid.uuid4(), OrderStatusUpdate(status="confirmed"))


def test_admin_cancel_restores_stock(orders, session, make_product, make_cart_item, shipping_address):
    product = make_product(stock_quantity=5)
    order_id = orders.create_order(
        session, USER_ID, _payload([make_cart_item(product, quantity=3).id], shipping_address)
    )

    orders.update_status(session, order_id, OrderStatusUpdate(status="cancelled"))

    assert _stock(session, product.id) == 5
    assert orders.get_order_admin(session, order_id).status == "cancelled"
    assert len(orders.list_all_orders(session)) == 1
