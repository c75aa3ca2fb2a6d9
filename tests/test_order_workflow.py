import re
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import OperationalError

from storefront_admin.inventory import InventoryLedger
from storefront_admin.models import Order, Product
from storefront_admin.order_workflow import OrderWorkflow
from storefront_admin.results import ErrorKind


@pytest.fixture
def workflow(db_session, clock):
    return OrderWorkflow(db_session, clock=clock)


@pytest.fixture
def user(make_user):
    return make_user()


def stock_of(db_session, product_id):
    return InventoryLedger(db_session).get_stock_level(product_id)


def place(workflow, user, product, quantity, **extra):
    payload = {"user_id": user.id, "product_id": product.id, "quantity": quantity}
    payload.update(extra)
    result = workflow.create_order(payload)
    assert result.ok, result.error
    return result.value


class TestCreateOrder:
    def test_snapshots_prices_and_takes_stock(self, workflow, db_session, user, make_product):
        product = make_product(stock=5, price=Decimal("20.00"))

        order = place(workflow, user, product, 3, notes="gift wrap")

        assert order.unit_price == Decimal("20.00")
        assert order.total_price == Decimal("60.00")
        assert order.status == "pending"
        assert order.notes == "gift wrap"
        assert order.ordered_at == datetime(2026, 1, 15, 9, 30)
        assert order.processed_at is None
        assert re.fullmatch(r"ORD-[A-Z0-9]{6}-20260115", order.order_number)
        assert order.user.id == user.id
        assert order.product.id == product.id
        assert stock_of(db_session, product.id) == 2

    def test_quantity_above_stock_is_rejected(self, workflow, db_session, user, make_product):
        product = make_product(stock=5)

        result = workflow.create_order({"user_id": user.id, "product_id": product.id, "quantity": 10})

        assert result.error.kind == ErrorKind.INSUFFICIENT_STOCK
        assert stock_of(db_session, product.id) == 5
        assert db_session.query(Order).count() == 0

    def test_unknown_product(self, workflow, user):
        result = workflow.create_order({"user_id": user.id, "product_id": 404, "quantity": 1})

        assert result.error.kind == ErrorKind.NOT_FOUND

    def test_unknown_user(self, workflow, db_session, make_product):
        product = make_product(stock=5)

        result = workflow.create_order({"user_id": 404, "product_id": product.id, "quantity": 1})

        assert result.error.kind == ErrorKind.NOT_FOUND
        assert stock_of(db_session, product.id) == 5

    def test_non_positive_quantity(self, workflow, user, make_product):
        product = make_product(stock=5)

        result = workflow.create_order({"user_id": user.id, "product_id": product.id, "quantity": 0})

        assert result.error.kind == ErrorKind.VALIDATION

    def test_failed_insert_rolls_back_stock(self, workflow, db_session, user, make_product, monkeypatch):
        product = make_product(stock=5)

        def broken_insert(**fields):
            raise OperationalError("INSERT INTO orders", {}, Exception("disk I/O error"))

        monkeypatch.setattr(workflow.orders, "create_order", broken_insert)

        result = workflow.create_order({"user_id": user.id, "product_id": product.id, "quantity": 2})

        assert result.error.kind == ErrorKind.PERSISTENCE
        assert stock_of(db_session, product.id) == 5

    def test_unexpected_error_rolls_back_and_propagates(self, workflow, db_session, user, make_product, monkeypatch):
        product = make_product(stock=5)

        def broken_insert(**fields):
            raise RuntimeError("boom")

        monkeypatch.setattr(workflow.orders, "create_order", broken_insert)

        with pytest.raises(RuntimeError):
            workflow.create_order({"user_id": user.id, "product_id": product.id, "quantity": 2})

        assert stock_of(db_session, product.id) == 5

    def test_order_numbers_are_distinct(self, workflow, user, make_product):
        product = make_product(stock=50)

        numbers = {place(workflow, user, product, 1).order_number for _ in range(25)}

        assert len(numbers) == 25

    def test_order_number_clash_on_insert_is_retried(self, db_session, clock, user, make_product):
        product = make_product(stock=5)
        first = OrderWorkflow(db_session, clock=clock, token_source=lambda length: "AAAAAA")
        place(first, user, product, 1)

        tokens = iter(["AAAAAA", "BBBBBB"])
        racing = OrderWorkflow(db_session, clock=clock, token_source=lambda length: next(tokens))
        # the existence check misses a number a concurrent order already claimed
        racing.order_numbers.exists = lambda candidate: False

        order = place(racing, user, product, 2)

        assert order.order_number == "ORD-BBBBBB-20260115"
        assert stock_of(db_session, product.id) == 2
        assert db_session.query(Order).count() == 2

    def test_later_price_change_does_not_touch_snapshot(self, workflow, db_session, user, make_product):
        product = make_product(stock=5, price=Decimal("20.00"))
        order = place(workflow, user, product, 2)

        product.price = Decimal("99.00")
        db_session.commit()

        reloaded = workflow.get_order(order.id).value
        assert reloaded.unit_price == Decimal("20.00")
        assert reloaded.total_price == Decimal("40.00")


class TestUpdateOrder:
    def test_quantity_change_applies_net_difference_and_reprices(self, workflow, db_session, user, make_product):
        product = make_product(stock=10, price=Decimal("20.00"))
        order = place(workflow, user, product, 3)
        assert stock_of(db_session, product.id) == 7

        product.price = Decimal("25.00")
        db_session.commit()

        result = workflow.update_order(order.id, {"quantity": 5})

        assert result.ok
        assert stock_of(db_session, product.id) == 5
        assert result.value.unit_price == Decimal("25.00")
        assert result.value.total_price == Decimal("125.00")

        result = workflow.update_order(order.id, {"quantity": 2})

        assert result.ok
        assert stock_of(db_session, product.id) == 8
        assert result.value.total_price == Decimal("50.00")

    def test_increase_beyond_stock_is_rejected(self, workflow, db_session, user, make_product):
        product = make_product(stock=5)
        order = place(workflow, user, product, 3)

        result = workflow.update_order(order.id, {"quantity": 6, "notes": "more please"})

        assert result.error.kind == ErrorKind.INSUFFICIENT_STOCK
        assert stock_of(db_session, product.id) == 2
        reloaded = workflow.get_order(order.id).value
        assert reloaded.quantity == 3
        assert reloaded.notes is None

    def test_product_change_moves_units(self, workflow, db_session, user, make_product):
        first = make_product(stock=5, price=Decimal("20.00"))
        second = make_product(stock=8, price=Decimal("7.50"))
        order = place(workflow, user, first, 3)

        result = workflow.update_order(order.id, {"product_id": second.id, "quantity": 4})

        assert result.ok
        assert stock_of(db_session, first.id) == 5
        assert stock_of(db_session, second.id) == 4
        assert result.value.product_id == second.id
        assert result.value.unit_price == Decimal("7.50")
        assert result.value.total_price == Decimal("30.00")

    def test_unchanged_quantity_keeps_snapshot(self, workflow, db_session, user, make_product):
        product = make_product(stock=5, price=Decimal("20.00"))
        order = place(workflow, user, product, 2)
        product.price = Decimal("30.00")
        db_session.commit()

        result = workflow.update_order(order.id, {"quantity": 2, "notes": "call first"})

        assert result.value.unit_price == Decimal("20.00")
        assert result.value.notes == "call first"
        assert stock_of(db_session, product.id) == 3

    def test_completing_stamps_processed_at_once(self, workflow, clock, user, make_product):
        product = make_product(stock=5)
        order = place(workflow, user, product, 1)

        clock.now = datetime(2026, 1, 16, 12, 0)
        result = workflow.update_order(order.id, {"status": "completed"})
        assert result.value.processed_at == datetime(2026, 1, 16, 12, 0)

        clock.now = datetime(2026, 1, 17, 12, 0)
        result = workflow.update_order(order.id, {"status": "completed", "notes": "signed"})
        assert result.value.processed_at == datetime(2026, 1, 16, 12, 0)

    def test_null_values_are_ignored(self, workflow, db_session, user, make_product):
        product = make_product(stock=5)
        order = place(workflow, user, product, 2, notes="leave at door")

        result = workflow.update_order(order.id, {"quantity": None, "product_id": None, "notes": None})

        assert result.ok
        assert result.value.quantity == 2
        assert result.value.notes is None
        assert stock_of(db_session, product.id) == 3

    def test_unknown_status(self, workflow, user, make_product):
        order = place(workflow, user, make_product(stock=5), 1)

        result = workflow.update_order(order.id, {"status": "shipped"})

        assert result.error.kind == ErrorKind.VALIDATION

    def test_unknown_order_and_product(self, workflow, user, make_product):
        order = place(workflow, user, make_product(stock=5), 1)

        assert workflow.update_order(404, {"quantity": 1}).error.kind == ErrorKind.NOT_FOUND
        assert workflow.update_order(order.id, {"product_id": 404}).error.kind == ErrorKind.NOT_FOUND


class TestDeleteOrder:
    def test_pending_order_restores_stock(self, workflow, db_session, user, make_product):
        product = make_product(stock=5, price=Decimal("20.00"))
        order = place(workflow, user, product, 3)
        assert order.total_price == Decimal("60.00")
        assert stock_of(db_session, product.id) == 2

        result = workflow.delete_order(order.id)

        assert result.ok
        assert result.value is True
        assert stock_of(db_session, product.id) == 5
        assert db_session.get(Order, order.id) is None

    def test_completed_order_keeps_stock(self, workflow, db_session, user, make_product):
        product = make_product(stock=5)
        order = place(workflow, user, product, 3)
        workflow.update_order_status(order.id, "completed")

        assert workflow.delete_order(order.id).ok
        assert stock_of(db_session, product.id) == 2

    def test_missing_product_is_skipped(self, workflow, db_session, user, make_product):
        product = make_product(stock=5)
        order = place(workflow, user, product, 3)
        db_session.execute(delete(Product).where(Product.id == product.id))
        db_session.commit()

        result = workflow.delete_order(order.id)

        assert result.ok
        assert db_session.query(Order).count() == 0

    def test_unknown_order(self, workflow):
        assert workflow.delete_order(404).error.kind == ErrorKind.NOT_FOUND


class TestUpdateOrderStatus:
    def test_cancelling_leaves_stock_alone(self, workflow, db_session, user, make_product):
        product = make_product(stock=5)
        order = place(workflow, user, product, 3)

        result = workflow.update_order_status(order.id, "cancelled")

        assert result.value.status == "cancelled"
        assert result.value.processed_at is None
        assert stock_of(db_session, product.id) == 2

    def test_any_transition_is_allowed(self, workflow, clock, user, make_product):
        order = place(workflow, user, make_product(stock=5), 1)

        assert workflow.update_order_status(order.id, "completed").value.processed_at == clock.now
        assert workflow.update_order_status(order.id, "pending").value.status == "pending"

    def test_unknown_status_and_order(self, workflow, user, make_product):
        order = place(workflow, user, make_product(stock=5), 1)

        assert workflow.update_order_status(order.id, "lost").error.kind == ErrorKind.VALIDATION
        assert workflow.update_order_status(404, "pending").error.kind == ErrorKind.NOT_FOUND


def test_statistics(workflow, user, make_product):
    product = make_product(stock=100, price=Decimal("20.00"))
    orders = [place(workflow, user, product, 5) for _ in range(5)]
    for order, status in zip(orders, ["pending", "pending", "completed", "completed", "cancelled"]):
        workflow.update_order_status(order.id, status)

    stats = workflow.get_order_statistics()

    assert stats == {
        "total": 5,
        "pending": 2,
        "processing": 0,
        "completed": 2,
        "cancelled": 1,
        "total_revenue": Decimal("200.00"),
    }


def test_statistics_with_no_orders(workflow):
    stats = workflow.get_order_statistics()

    assert stats["total"] == 0
    assert stats["total_revenue"] == Decimal("0")


def test_list_orders_filters(workflow, make_user, make_product):
    alice = make_user(name="Alice")
    bob = make_user(name="Bob")
    product = make_product(stock=20)
    first = place(workflow, alice, product, 1)
    place(workflow, bob, product, 1)
    third = place(workflow, alice, product, 1)
    workflow.update_order_status(third.id, "processing")

    assert workflow.list_orders({"user_id": alice.id}).total == 2
    assert [o.id for o in workflow.list_orders({"status": "processing"}).items] == [third.id]
    assert [o.id for o in workflow.list_orders({"search": first.order_number}).items] == [first.id]

    page = workflow.list_orders({}, page=2, per_page=2)
    assert page.total == 3
    assert page.last_page == 2
    assert len(page.items) == 1
