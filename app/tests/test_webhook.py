import asyncio
import json
from unittest.mock import patch

import pytest
import stripe

from app.models.entitlement import Entitlement
from app.services.payment_service import PaymentOutcome


def _checkout_event(email="buyer@example.com", session_id="cs_test_1"):
    return {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {"object": {"id": session_id, "customer_email": email, "metadata": {"email": email}}},
    }


@pytest.fixture
def signature_ok():
    with patch("app.api.webhook_routes.stripe.WebhookSignature.verify_header", return_value=True) as verify:
        yield verify


@pytest.fixture
def confirmation_email():
    with patch("app.api.webhook_routes.send_purchase_confirmation_email") as send:
        yield send


def _post(client, event):
    return client.post(
        "/webhook/stripe",
        content=json.dumps(event),
        headers={"stripe-signature": "t=1,v1=abc", "content-type": "application/json"},
    )


def test_checkout_completed_grants_entitlement(client, db, signature_ok, confirmation_email):
    response = _post(client, _checkout_event())

    assert response.status_code == 200
    assert response.json()["status"] == "granted"
    assert db.query(Entitlement).filter_by(email="buyer@example.com").one().source_reference == "cs_test_1"
    confirmation_email.assert_called_once_with("buyer@example.com")


def test_duplicate_delivery_yields_one_entitlement(client, db, signature_ok, confirmation_email):
    first = _post(client, _checkout_event())
    second = _post(client, _checkout_event())

    assert first.status_code == second.status_code == 200
    assert db.query(Entitlement).count() == 1
    confirmation_email.assert_called_once()


def test_invalid_email_is_acknowledged_with_warning(client, db, signature_ok, confirmation_email):
    response = _post(client, _checkout_event(email="no-at-sign"))

    assert response.status_code == 200
    assert response.json()["warning"] == "Invalid email"
    assert db.query(Entitlement).count() == 0


def test_storage_failure_asks_for_redelivery(client, signature_ok, confirmation_email):
    from sqlalchemy.exc import OperationalError

    error = OperationalError("INSERT", {}, Exception("database is locked"))
    with patch("app.services.payment_service.grant_entitlement", side_effect=error):
        response = _post(client, _checkout_event())

    assert response.status_code == 500
    confirmation_email.assert_not_called()


def test_bad_signature_is_rejected(client, db):
    error = stripe.SignatureVerificationError("No signatures found", "t=1,v1=abc")
    with patch("app.api.webhook_routes.stripe.WebhookSignature.verify_header", side_effect=error):
        response = _post(client, _checkout_event())

    assert response.status_code == 400
    assert db.query(Entitlement).count() == 0


def test_missing_webhook_secret(client):
    with patch("app.api.webhook_routes.config.STRIPE_WEBHOOK_SECRET", None):
        response = _post(client, _checkout_event())

    assert response.status_code == 500


def test_other_events_are_acknowledged(client, db, signature_ok):
    response = _post(client, {"id": "evt_2", "type": "charge.refunded", "data": {"object": {"id": "ch_1"}}})

    assert response.status_code == 200
    assert response.json()["event_type"] == "charge.refunded"
    assert db.query(Entitlement).count() == 0


def test_payment_handler_runs_off_the_event_loop(client, signature_ok, confirmation_email):
    loop_threads = []

    def fake_handle(db, confirmation, notify=None):
        try:
            asyncio.get_running_loop()
            loop_threads.append(True)
        except RuntimeError:
            loop_threads.append(False)
        return PaymentOutcome.granted()

    with patch("app.api.webhook_routes.handle_payment_confirmation", side_effect=fake_handle):
        response = _post(client, _checkout_event())

    assert response.status_code == 200
    assert loop_threads == [False]
