"""Unit tests for secret redaction and presentation rules."""

from types import SimpleNamespace

from predictearn.auth.dependencies import Identity
from predictearn.middleware.logging import redact_secrets
from predictearn.predictions.access import REDACTED_ANSWER, access_for, present_prediction
from predictearn.predictions.secret_store import SecretStore


def test_redact_secrets_masks_answer_fields():
    event = {"event": "x", "answer": "Paris", "ciphertext": "ab:cd", "guess": "Rome", "user_id": 3}
    out = redact_secrets(None, "info", event)
    assert out["answer"] == "***"
    assert out["ciphertext"] == "***"
    assert out["guess"] == "***"
    assert out["user_id"] == 3


def _prediction(store: SecretStore, author_id: int = 1):
    return SimpleNamespace(
        id=9,
        title="t",
        description="d",
        image_url=None,
        answer=store.encrypt("Paris"),
        points_cost=10,
        reward_points=15,
        status="active",
        author_id=author_id,
        author=SimpleNamespace(name="Author"),
        winner_id=None,
        winner=None,
        created_at=None,
    )


class TestPresentPrediction:

    def test_author_sees_plaintext(self):
        store = SecretStore("k")
        view = present_prediction(access_for(_prediction(store), Identity(1, "staff")), store)
        assert view["answer"] == "Paris"
        assert view["is_author"] is True

    def test_other_admin_sees_placeholder(self):
        store = SecretStore("k")
        view = present_prediction(access_for(_prediction(store), Identity(2, "admin")), store)
        assert view["answer"] == REDACTED_ANSWER
        assert view["correct_answer"] == REDACTED_ANSWER

    def test_anonymous_sees_placeholder(self):
        store = SecretStore("k")
        view = present_prediction(access_for(_prediction(store), None), store)
        assert view["answer"] == REDACTED_ANSWER
