import threading
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from core.db import Base, create_db_engine
from core.errors import AppError
from models.order import Order
from models.payment import Payment
from models.payment_type import PaymentType
from models.user import User
from services.reconciler import reconcile_payment


@pytest.fixture
def file_sessions(tmp_path):
    """Sessions on a file-backed database so each thread gets its own connection."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'orders.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def seeded(file_sessions):
    with file_sessions() as db:
        user = User(name="Racer", email="racer@example.com")
        payment_type = PaymentType(name="Card", slug="card")
        db.add_all([user, payment_type])
        db.flush()
        orders = [
            Order(user_id=user.id, subtotal=Decimal(total), total=Decimal(total))
            for total in ("30.00", "45.50", "12.00")
        ]
        db.add_all(orders)
        db.commit()
        return user.id, payment_type.id, [order.id for order in orders]


def _race(file_sessions, attempts):
    """Run each (order_id, payer_id, payment_type_id) attempt in its own thread."""
    barrier = threading.Barrier(len(attempts))
    outcomes = [None] * len(attempts)

    def _attempt(index, order_id, payer_id, payment_type_id):
        db = file_sessions()
        try:
            barrier.wait()
            payment = reconcile_payment(db, order_id, payer_id, payment_type_id)
            outcomes[index] = ("ok", payment.amount)
        except AppError as exc:
            outcomes[index] = (exc.code, None)
        finally:
            db.close()

    threads = [
        threading.Thread(target=_attempt, args=(index, *attempt))
        for index, attempt in enumerate(attempts)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


def _payments_for(file_sessions, order_id):
    with file_sessions() as db:
        return db.query(Payment).filter(Payment.order_id == order_id).all()


def _is_paid(file_sessions, order_id):
    with file_sessions() as db:
        return db.get(Order, order_id).is_paid


class TestConcurrentSettlement:
    """Racing attempts on one order are serialized by the order lock"""

    def test_two_threads_one_order(self, file_sessions, seeded):
        user_id, payment_type_id, (order_id, _, _) = seeded

        outcomes = _race(file_sessions, [(order_id, user_id, payment_type_id)] * 2)

        winners = [outcome for outcome in outcomes if outcome[0] == "ok"]
        losers = [outcome[0] for outcome in outcomes if outcome[0] != "ok"]
        assert winners == [("ok", Decimal("30.00"))]
        assert losers[0] in {"already_settled", "no_remaining_balance"}

        payments = _payments_for(file_sessions, order_id)
        assert len(payments) == 1
        assert payments[0].amount == Decimal("30.00")
        assert _is_paid(file_sessions, order_id) is True

    def test_many_threads_exactly_one_succeeds(self, file_sessions, seeded):
        user_id, payment_type_id, (_, order_id, _) = seeded
        attempts = 8

        outcomes = _race(file_sessions, [(order_id, user_id, payment_type_id)] * attempts)

        codes = [outcome[0] for outcome in outcomes]
        assert codes.count("ok") == 1
        assert all(code in {"ok", "already_settled", "no_remaining_balance"} for code in codes)

        payments = _payments_for(file_sessions, order_id)
        assert len(payments) == 1
        assert sum(payment.amount for payment in payments) == Decimal("45.50")
        assert _is_paid(file_sessions, order_id) is True

    def test_attempts_on_different_orders_all_succeed(self, file_sessions, seeded):
        user_id, payment_type_id, order_ids = seeded

        outcomes = _race(file_sessions, [(order_id, user_id, payment_type_id) for order_id in order_ids])

        assert [outcome[0] for outcome in outcomes] == ["ok", "ok", "ok"]
        for order_id in order_ids:
            assert len(_payments_for(file_sessions, order_id)) == 1
            assert _is_paid(file_sessions, order_id) is True
