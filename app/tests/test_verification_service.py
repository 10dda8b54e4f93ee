from datetime import timedelta

import pytest

from app.core.identity import InvalidIdentityError
from app.models.verified_email import VerifiedEmail
from app.services.verification_service import is_email_verified, mark_email_verified


def test_not_verified_without_marker(db, clock):
    assert is_email_verified(db, "a@b.com") is False


def test_verified_within_thirty_minutes(db, clock):
    mark_email_verified(db, "A@b.com")
    clock.advance(minutes=29, seconds=59)

    assert is_email_verified(db, "a@B.com") is True


def test_expired_marker_is_removed(db, clock):
    mark_email_verified(db, "a@b.com")
    clock.advance(minutes=30)

    assert is_email_verified(db, "a@b.com") is False
    db.expire_all()
    assert db.get(VerifiedEmail, "a@b.com") is None


def test_marking_again_extends_window(db, clock):
    mark_email_verified(db, "a@b.com")
    clock.advance(minutes=20)
    mark_email_verified(db, "a@b.com")
    clock.advance(minutes=20)

    assert is_email_verified(db, "a@b.com") is True
    assert db.query(VerifiedEmail).count() == 1


def test_marker_does_not_grant_entitlement(db, clock):
    from app.services.entitlement_service import is_entitled

    mark_email_verified(db, "a@b.com")

    assert is_entitled(db, "a@b.com") is False


def test_rejects_malformed_identity(db, clock):
    with pytest.raises(InvalidIdentityError):
        mark_email_verified(db, "nope")
