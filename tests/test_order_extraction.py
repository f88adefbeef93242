from decimal import Decimal
from types import SimpleNamespace

from omnichat.models.order import Order
from omnichat.models.product import Product
from omnichat.services import conversation_store
from omnichat.services.catalog_store import decrement_stock
from omnichat.services.intent import classify
from omnichat.services.order_extraction import (
    REASON_INSUFFICIENT_STOCK,
    REASON_INTENT_NOT_ORDER,
    REASON_NO_CONFIRMATION,
    REASON_NO_PRODUCT,
    evaluate_order,
    extract_customer_name,
    extract_customer_phone,
    extract_quantity,
    find_mentioned_product,
    maybe_extract_order,
)
from tests.factories import build_session_factory, seed_shop
from tests.fixtures_data import ORDER_CONFIRMATION_REPLY, ORDER_MESSAGE


def _product(name, *, price="10.00", cost="4.00", stock=5, active=True, product_id=1):
    return SimpleNamespace(
        id=product_id,
        name=name,
        price=Decimal(price),
        cost=Decimal(cost),
        stock=stock,
        active=active,
    )


def _conversation(**overrides):
    data = {"id": 1, "customer_id": "15551234567", "customer_name": None, "channel": "whatsapp"}
    data.update(overrides)
    return SimpleNamespace(**data)


def test_extract_quantity_variants():
    assert extract_quantity("send me 4 units please") == 4
    assert extract_quantity("I want 3 widgets", "Widget") == 3
    assert extract_quantity("I want 2 boxes", "Box") == 2
    assert extract_quantity("I want a widget", "Widget") == 1
    assert extract_quantity(None) == 1


def test_extract_customer_details():
    assert extract_customer_name(ORDER_MESSAGE) == "Sara"
    assert extract_customer_name("I am John Smith and my phone is 123") == "John Smith"
    assert extract_customer_name("no name here") is None
    assert extract_customer_phone(ORDER_MESSAGE) == "555-1234"
    assert extract_customer_phone("contact +201001234567") == "+201001234567"
    assert extract_customer_phone("call me maybe") is None


def test_find_mentioned_product_prefers_longest_name():
    products = [_product("Widget", product_id=1), _product("Widget Pro", product_id=2)]

    assert find_mentioned_product(products, "one widget pro please").id == 2
    assert find_mentioned_product(products, "one widget please").id == 1
    assert find_mentioned_product([_product("Widget", active=False)], "widget") is None


def test_evaluate_order_builds_candidate_with_totals():
    extraction = evaluate_order(
        conversation=_conversation(),
        products=[_product("Widget")],
        ai_reply=ORDER_CONFIRMATION_REPLY,
        intent=classify(ORDER_MESSAGE),
        recent_text=ORDER_MESSAGE,
    )

    assert extraction.accepted
    candidate = extraction.candidate
    assert candidate.quantity == 3
    assert candidate.revenue == Decimal("30.00")
    assert candidate.profit == Decimal("18.00")
    assert candidate.customer_name == "Sara"
    assert candidate.customer_phone == "555-1234"
    assert candidate.channel == "whatsapp"


def test_evaluate_order_falls_back_to_conversation_identity():
    extraction = evaluate_order(
        conversation=_conversation(customer_name="Layla"),
        products=[_product("Widget")],
        ai_reply="Your order is confirmed",
        intent=classify("I want to buy a widget"),
        recent_text="I want to buy a widget",
    )

    assert extraction.candidate.customer_name == "Layla"
    assert extraction.candidate.customer_phone == "15551234567"
    assert extraction.candidate.quantity == 1


def test_evaluate_order_collects_every_rejection_reason():
    extraction = evaluate_order(
        conversation=_conversation(),
        products=[_product("Widget")],
        ai_reply="Sure, what else?",
        intent=classify("hello there"),
        recent_text="hello there",
    )

    assert not extraction.accepted
    assert extraction.reasons == [REASON_INTENT_NOT_ORDER, REASON_NO_CONFIRMATION, REASON_NO_PRODUCT]


def test_evaluate_order_rejects_quantity_above_stock():
    text = "I want to order 10 widgets"
    extraction = evaluate_order(
        conversation=_conversation(),
        products=[_product("Widget", stock=5)],
        ai_reply="Your order is processing",
        intent=classify(text),
        recent_text=text,
    )

    assert extraction.reasons == [REASON_INSUFFICIENT_STOCK]


def _seeded_session():
    SessionLocal = build_session_factory()
    db = SessionLocal()
    seed_shop(db)
    conversation = conversation_store.create_conversation(
        db, tenant_id=1, customer_id="15551234567", channel="whatsapp"
    )
    return db, conversation


def test_maybe_extract_order_persists_order_and_decrements_stock():
    db, conversation = _seeded_session()
    try:
        products = db.query(Product).filter(Product.tenant_id == 1).all()
        order = maybe_extract_order(
            db,
            tenant_id=1,
            conversation=conversation,
            products=products,
            ai_reply=ORDER_CONFIRMATION_REPLY,
            intent=classify(ORDER_MESSAGE),
            recent_text=ORDER_MESSAGE,
        )

        assert order is not None
        assert order.status == "pending"
        assert order.quantity == 3
        assert order.product_name == "Widget"
        assert Decimal(order.revenue) == Decimal("30")
        assert Decimal(order.profit) == Decimal("18")
        assert order.customer_name == "Sara"
        assert order.customer_phone == "555-1234"

        product = db.get(Product, 10)
        db.refresh(product)
        assert product.stock == 2
        db.refresh(conversation)
        assert conversation.customer_name == "Sara"
    finally:
        db.close()


def test_maybe_extract_order_without_confirmation_changes_nothing():
    db, conversation = _seeded_session()
    try:
        products = db.query(Product).all()
        order = maybe_extract_order(
            db,
            tenant_id=1,
            conversation=conversation,
            products=products,
            ai_reply="How many would you like?",
            intent=classify(ORDER_MESSAGE),
            recent_text=ORDER_MESSAGE,
        )

        assert order is None
        assert db.query(Order).count() == 0
        assert db.get(Product, 10).stock == 5
    finally:
        db.close()


def test_maybe_extract_order_with_insufficient_stock_changes_nothing():
    db, conversation = _seeded_session()
    try:
        text = "I want to order 10 widgets"
        order = maybe_extract_order(
            db,
            tenant_id=1,
            conversation=conversation,
            products=db.query(Product).all(),
            ai_reply="Your order is processing",
            intent=classify(text),
            recent_text=text,
        )

        assert order is None
        assert db.query(Order).count() == 0
        assert db.get(Product, 10).stock == 5
    finally:
        db.close()


def test_decrement_stock_refuses_to_go_negative():
    db, _ = _seeded_session()
    try:
        assert decrement_stock(db, 1, 10, 6) is False
        assert decrement_stock(db, 2, 10, 1) is False
        assert decrement_stock(db, 1, 10, 5) is True
        db.commit()
        db.expire_all()
        assert db.get(Product, 10).stock == 0
    finally:
        db.close()
