"""Unit tests for answer encryption."""

import pytest

from predictearn.errors import DecryptionError
from predictearn.predictions.secret_store import SecretStore


class TestSecretStore:
    """Encrypt/decrypt behaviour."""

    def test_round_trip(self):
        store = SecretStore("passphrase")
        assert store.decrypt(store.encrypt("Paris")) == "Paris"

    def test_empty_and_unicode(self):
        store = SecretStore("passphrase")
        assert store.decrypt(store.encrypt("")) == ""
        assert store.decrypt(store.encrypt("Ελλάδα 🇬🇷")) == "Ελλάδα 🇬🇷"

    def test_fresh_nonce_per_call(self):
        store = SecretStore("passphrase")
        assert store.encrypt("same") != store.encrypt("same")

    def test_output_shape(self):
        value = SecretStore("k").encrypt("x")
        nonce, sealed = value.split(":")
        assert len(nonce) == 24
        assert SecretStore.is_encrypted(value)
        assert len(sealed) >= 32

    def test_wrong_key_fails(self):
        sealed = SecretStore("right").encrypt("answer")
        with pytest.raises(DecryptionError):
            SecretStore("wrong").decrypt(sealed)

    def test_tampered_ciphertext_fails(self):
        store = SecretStore("k")
        nonce, sealed = store.encrypt("answer").split(":")
        flipped = ("0" if sealed[-1] != "0" else "1")
        with pytest.raises(DecryptionError):
            store.decrypt(f"{nonce}:{sealed[:-1]}{flipped}")

    def test_malformed_input_fails(self):
        with pytest.raises(DecryptionError):
            SecretStore("k").decrypt("not-a-ciphertext")

    def test_error_message_is_generic(self):
        sealed = SecretStore("right").encrypt("top secret")
        with pytest.raises(DecryptionError) as exc_info:
            SecretStore("wrong").decrypt(sealed)
        assert "top secret" not in str(exc_info.value)
        assert sealed not in str(exc_info.value)

    def test_reveal_passes_legacy_plaintext(self):
        store = SecretStore("k")
        assert store.reveal("plain answer") == "plain answer"
        assert store.reveal(store.encrypt("hidden")) == "hidden"

    def test_is_encrypted_heuristic(self):
        assert not SecretStore.is_encrypted("hello")
        assert not SecretStore.is_encrypted("abc:def")
        assert not SecretStore.is_encrypted("A" * 24 + ":" + "b" * 32)
