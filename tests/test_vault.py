import json

import pytest

from totp_core.config import KEY_STORAGE
from totp_core.exceptions import CryptoFailure
from totp_core.vault import EncryptedBlob, VaultCrypto, from_base64, to_base64
from totp_database import MemoryStorage


@pytest.fixture
def vault(storage):
    return VaultCrypto(storage)


@pytest.mark.parametrize("plaintext", ["", "xin chào", "x" * 5000, json.dumps([{"id": "1"}] * 200)])
def test_round_trip(vault, plaintext):
    assert vault.decrypt(vault.encrypt(plaintext)) == plaintext
    assert vault.decrypt_string(vault.encrypt_string(plaintext)) == plaintext


def test_key_is_created_once_and_persisted(storage, vault):
    assert storage.get_item(KEY_STORAGE) is None
    blob = vault.encrypt("secret list")
    stored_key = storage.get_item(KEY_STORAGE)
    assert len(from_base64(stored_key)) == 32

    vault.encrypt("again")
    assert storage.get_item(KEY_STORAGE) == stored_key

    # a fresh instance on the same storage reads the persisted key
    assert VaultCrypto(storage).decrypt(blob) == "secret list"


def test_nonce_is_fresh_per_encryption(vault):
    first = vault.encrypt("same")
    second = vault.encrypt("same")
    assert len(first.iv) == 12
    assert first.iv != second.iv
    assert first.ciphertext != second.ciphertext


def test_flipped_bit_fails_authentication(vault):
    blob = vault.encrypt("do not touch")
    tampered = bytearray(blob.ciphertext)
    tampered[0] ^= 0x01
    with pytest.raises(CryptoFailure):
        vault.decrypt(EncryptedBlob(blob.iv, bytes(tampered)))


def test_truncated_ciphertext_fails(vault):
    blob = vault.encrypt("do not touch")
    with pytest.raises(CryptoFailure):
        vault.decrypt(EncryptedBlob(blob.iv, blob.ciphertext[:-1]))


def test_wrong_key_fails(vault):
    blob = vault.encrypt("mine")
    with pytest.raises(CryptoFailure):
        VaultCrypto(MemoryStorage()).decrypt(blob)


def test_bad_nonce_length_fails(vault):
    blob = vault.encrypt("mine")
    with pytest.raises(CryptoFailure):
        vault.decrypt(EncryptedBlob(blob.iv[:8], blob.ciphertext))


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[]",
        json.dumps({"iv": "AAAAAAAAAAAAAAAA"}),
        json.dumps({"data": "AAAA"}),
        json.dumps({"iv": 1, "data": 2}),
        json.dumps({"iv": "***", "data": "AAAA"}),
    ],
)
def test_malformed_envelope(vault, payload):
    with pytest.raises(CryptoFailure):
        vault.decrypt_string(payload)


def test_envelope_shape(vault):
    parsed = json.loads(vault.encrypt_string("hello"))
    assert set(parsed) == {"iv", "data"}
    assert len(from_base64(parsed["iv"])) == 12


def test_stored_key_with_wrong_length_is_rejected(storage):
    storage.set_item(KEY_STORAGE, to_base64(b"short"))
    with pytest.raises(CryptoFailure):
        VaultCrypto(storage).encrypt("x")
