import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYMENT_SANDBOX_MODE"] = "false"
os.environ["REALTIME_PUSH_URL"] = ""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from qrorder.core.database import Base
from qrorder.core.exceptions import GatewayRejectedError
from qrorder.models import GatewayPaymentStatus, Menu, Seat, Store
from qrorder.schemas import CartItem, CartPaymentRequest
from qrorder.services import NotificationDispatcher, OrderMaterializer, PaymentLedger, PaymentWorkflow
from qrorder.services.gateway_client import GatewayResult, PaymentMethod, split_vat

STORE_ID = 1
SEAT_ID = 10
INACTIVE_SEAT_ID = 11
OTHER_STORE_ID = 2

AMERICANO_ID = 1
LATTE_ID = 2
CAKE_ID = 3
SEASONAL_ID = 4
OTHER_STORE_MENU_ID = 5


class RecordingChannel:
    def __init__(self):
        self.messages = []
        self.fail = False

    def push(self, destination, message):
        if self.fail:
            raise RuntimeError("real-time relay down")
        self.messages.append((destination, message))

    @property
    def destinations(self):
        return [destination for destination, _ in self.messages]


class FakeGateway:
    """In-memory stand-in for :class:`GatewayClient`."""

    def __init__(self):
        self.confirm_calls = []
        self.cancel_calls = []
        self.lookup_calls = []
        self.confirm_amount = None
        self.confirm_status = GatewayPaymentStatus.DONE
        self.confirm_error = None
        self.cancel_error = None
        self.approved = {}

    def approve(self, payment_key, merchant_order_id, amount):
        """Record an approval on the provider side without answering the caller."""
        total = Decimal(self.confirm_amount) if self.confirm_amount is not None else Decimal(amount)
        supplied, vat = split_vat(total)
        result = GatewayResult(
            payment_key=payment_key,
            merchant_order_id=merchant_order_id,
            order_name="",
            status=self.confirm_status,
            method=PaymentMethod.CARD,
            total_amount=total,
            balance_amount=total,
            supplied_amount=supplied,
            vat=vat,
            approved_at=datetime.now(timezone.utc),
        )
        self.approved[payment_key] = result
        return result

    def confirm(self, payment_key, merchant_order_id, amount):
        self.confirm_calls.append((payment_key, merchant_order_id, Decimal(amount)))
        if self.confirm_error is not None:
            raise self.confirm_error
        return self.approve(payment_key, merchant_order_id, amount)

    def lookup(self, payment_key):
        self.lookup_calls.append(payment_key)
        if payment_key not in self.approved:
            raise GatewayRejectedError(
                "Payment not found", provider_code="NOT_FOUND_PAYMENT", http_status=404
            )
        return self.approved[payment_key]

    def cancel(self, payment_key, cancel_amount, reason):
        self.cancel_calls.append((payment_key, Decimal(cancel_amount), reason))
        if self.cancel_error is not None:
            raise self.cancel_error
        total = Decimal(cancel_amount)
        supplied, vat = split_vat(total)
        return GatewayResult(
            payment_key=payment_key,
            merchant_order_id="",
            order_name="",
            status=GatewayPaymentStatus.CANCELED,
            method=PaymentMethod.CARD,
            total_amount=total,
            balance_amount=Decimal("0"),
            supplied_amount=supplied,
            vat=vat,
        )

    def close(self):
        pass


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'qrorder.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def catalog(session_factory):
    with session_factory() as session:
        session.add_all(
            [
                Store(id=STORE_ID, name="Hansol Coffee", is_active=True),
                Store(id=OTHER_STORE_ID, name="Other Coffee", is_active=True),
                Seat(id=SEAT_ID, store_id=STORE_ID, seat_number="A1", is_active=True),
                Seat(id=INACTIVE_SEAT_ID, store_id=STORE_ID, seat_number="A2", is_active=False),
                Menu(id=AMERICANO_ID, store_id=STORE_ID, name="Americano", price=Decimal("4500")),
                Menu(id=LATTE_ID, store_id=STORE_ID, name="Cafe Latte", price=Decimal("4500")),
                Menu(id=CAKE_ID, store_id=STORE_ID, name="Cheesecake", price=Decimal("5000")),
                Menu(
                    id=SEASONAL_ID,
                    store_id=STORE_ID,
                    name="Seasonal Ade",
                    price=Decimal("6000"),
                    is_available=False,
                ),
                Menu(
                    id=OTHER_STORE_MENU_ID,
                    store_id=OTHER_STORE_ID,
                    name="Green Tea",
                    price=Decimal("4000"),
                ),
            ]
        )
        session.commit()


@pytest.fixture
def db(session_factory, catalog):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def dispatcher(session_factory, channel):
    return NotificationDispatcher(session_factory, channel)


@pytest.fixture
def ledger(db):
    return PaymentLedger(db)


@pytest.fixture
def materializer(db, dispatcher):
    return OrderMaterializer(db, dispatcher)


@pytest.fixture
def workflow(db, gateway, dispatcher):
    return PaymentWorkflow(db, gateway, dispatcher)


@pytest.fixture
def make_cart():
    def _make_cart(items=None, total_amount=Decimal("9000"), **overrides):
        if items is None:
            items = [
                CartItem(menu_id=AMERICANO_ID, quantity=1),
                CartItem(menu_id=LATTE_ID, quantity=1, options=["extra shot"]),
            ]
        data = {
            "store_id": STORE_ID,
            "seat_id": SEAT_ID,
            "order_items": items,
            "total_amount": Decimal(total_amount),
            "order_name": "Americano and 1 more",
            "customer_name": "Kim",
            "customer_request": "Less ice",
        }
        data.update(overrides)
        return CartPaymentRequest(**data)

    return _make_cart


@pytest.fixture
def confirmed_order(workflow, make_cart):
    handle = workflow.prepare(make_cart())
    return workflow.confirm("pk_confirmed", handle.merchant_order_id, Decimal("9000"))


@pytest.fixture
def client(session_factory, catalog, gateway, channel):
    from qrorder import dependencies
    from qrorder.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[dependencies.get_db] = override_get_db
    app.dependency_overrides[dependencies.get_session_factory] = lambda: session_factory
    app.dependency_overrides[dependencies.get_gateway_client] = lambda: gateway
    app.dependency_overrides[dependencies.get_realtime_channel] = lambda: channel
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
