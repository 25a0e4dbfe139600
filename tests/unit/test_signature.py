"""Unit tests for webhook signature checks."""

import base64
import hashlib
import hmac

from predictearn.orders.signature import sign, verify_signature

BODY = b'{"id": 1}'


def test_sign_matches_woocommerce_format():
    expected = base64.b64encode(hmac.new(b"secret", BODY, hashlib.sha256).digest()).decode()
    assert sign(BODY, "secret") == expected


def test_valid_signature_accepted():
    assert verify_signature(BODY, sign(BODY, "secret"), "secret")


def test_wrong_signature_rejected():
    assert not verify_signature(BODY, sign(BODY, "other"), "secret")
    assert not verify_signature(BODY + b" ", sign(BODY, "secret"), "secret")


def test_missing_signature_rejected_when_secret_set():
    assert not verify_signature(BODY, None, "secret")


def test_no_secret_disables_check():
    assert verify_signature(BODY, None, "")
