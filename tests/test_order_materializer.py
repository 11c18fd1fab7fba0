from dataclasses import replace
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from qrorder.core.exceptions import AmountMismatchError, DuplicateOrderNumberError, InvalidCartError
from qrorder.models import ORDER_NUMBER_CONSTRAINT, PAYMENT_ORDER_LINK_CONSTRAINT, Order, Payment
from qrorder.services import OrderMaterializer, PaymentLedger
from qrorder.services.order_materializer import is_payment_link_conflict


@pytest.fixture
def confirmed_payment(workflow, gateway, ledger, make_cart):
    """A payment the gateway approved but that has no order yet."""

    def _confirmed_payment(payment_key="pk_materialize"):
        handle = workflow.prepare(make_cart())
        payment = ledger.find_by_merchant_order_id(handle.merchant_order_id)
        result = gateway.confirm(payment_key, handle.merchant_order_id, Decimal("9000"))
        assert ledger.apply_confirmation(payment, result)
        return payment, result

    return _confirmed_payment


def test_materialize_links_order_to_payment(db, dispatcher, confirmed_payment):
    payment, result = confirmed_payment()
    materializer = OrderMaterializer(db, dispatcher)

    order = materializer.materialize(payment, result)

    assert payment.order_id == order.id
    assert order.total_amount == payment.total_amount


def test_materialize_is_idempotent(db, dispatcher, channel, confirmed_payment):
    payment, result = confirmed_payment()
    materializer = OrderMaterializer(db, dispatcher)

    first = materializer.materialize(payment, result)
    second = materializer.materialize(payment, result)

    assert first.id == second.id
    assert db.query(Order).count() == 1
    assert len(channel.messages) == 2


def test_materialize_rejects_amount_mismatch(db, dispatcher, confirmed_payment):
    payment, result = confirmed_payment()
    tampered = replace(result, total_amount=Decimal("9500"))

    with pytest.raises(AmountMismatchError):
        OrderMaterializer(db, dispatcher).materialize(payment, tampered)

    assert db.query(Order).count() == 0


def test_materialize_regenerates_colliding_order_number(
    db, dispatcher, confirmed_payment, mocker
):
    first_payment, first_result = confirmed_payment("pk_first")
    existing = OrderMaterializer(db, dispatcher).materialize(first_payment, first_result)

    second_payment, second_result = confirmed_payment("pk_second")
    generator = mocker.Mock(side_effect=[existing.order_number, "20240305-001-FRESH001"])
    materializer = OrderMaterializer(db, dispatcher, number_generator=generator)

    order = materializer.materialize(second_payment, second_result)

    assert order.order_number == "20240305-001-FRESH001"
    assert generator.call_count == 2
    assert len(order.items) == 2
    assert db.query(Order).count() == 2


def test_materialize_gives_up_after_three_collisions(db, dispatcher, confirmed_payment, mocker):
    first_payment, first_result = confirmed_payment("pk_first")
    existing = OrderMaterializer(db, dispatcher).materialize(first_payment, first_result)

    second_payment, second_result = confirmed_payment("pk_second")
    generator = mocker.Mock(return_value=existing.order_number)
    materializer = OrderMaterializer(db, dispatcher, number_generator=generator)

    with pytest.raises(DuplicateOrderNumberError) as exc_info:
        materializer.materialize(second_payment, second_result)

    assert exc_info.value.retryable is True
    assert generator.call_count == 3
    assert db.query(Order).count() == 1
    db.refresh(second_payment)
    assert second_payment.order_id is None


def test_materialize_rejects_unreadable_cart(db, dispatcher, confirmed_payment):
    payment, result = confirmed_payment()
    db.query(Payment).filter(Payment.id == payment.id).update(
        {Payment.cart_metadata: {"items": "not a list"}}, synchronize_session=False
    )
    db.commit()
    db.refresh(payment)

    with pytest.raises(InvalidCartError):
        OrderMaterializer(db, dispatcher).materialize(payment, result)


def test_lost_race_returns_winning_order(session_factory, catalog, dispatcher, confirmed_payment):
    payment, result = confirmed_payment()

    with session_factory() as session_a, session_factory() as session_b:
        payment_a = PaymentLedger(session_a).find_by_merchant_order_id(payment.merchant_order_id)
        payment_b = PaymentLedger(session_b).find_by_merchant_order_id(payment.merchant_order_id)

        winner = OrderMaterializer(session_a, dispatcher).materialize(payment_a, result)
        loser = OrderMaterializer(session_b, dispatcher).materialize(payment_b, result)

        assert winner.id == loser.id
        assert session_b.query(Order).count() == 1


def test_link_conflict_is_matched_by_constraint_name(mocker):
    def integrity_error(constraint_name):
        orig = mocker.Mock(diag=mocker.Mock(constraint_name=constraint_name))
        return IntegrityError("UPDATE payments SET order_id=?", {}, orig)

    assert is_payment_link_conflict(integrity_error(PAYMENT_ORDER_LINK_CONSTRAINT))
    assert not is_payment_link_conflict(integrity_error(ORDER_NUMBER_CONSTRAINT))


def test_link_conflict_falls_back_to_sqlite_column_message():
    link = IntegrityError("UPDATE", {}, Exception("UNIQUE constraint failed: payments.order_id"))
    number = IntegrityError(
        "INSERT", {}, Exception("UNIQUE constraint failed: orders.order_number")
    )

    assert is_payment_link_conflict(link)
    assert not is_payment_link_conflict(number)
