import pytest

from encryption import MASK, EncryptionError, decrypt, derive_key, encrypt, mask_token


SECRET = "0f" * 32


def test_encrypted_token_round_trips_with_random_nonce() -> None:
    first = encrypt("gsk_live_token_value", secret=SECRET)
    second = encrypt("gsk_live_token_value", secret=SECRET)

    nonce, ciphertext, tag = first.split(":")
    assert len(nonce) == 24
    assert len(tag) == 32
    assert "gsk_live" not in first
    assert first != second
    assert decrypt(first, secret=SECRET) == "gsk_live_token_value"


def test_tampered_ciphertext_is_rejected() -> None:
    nonce, ciphertext, tag = encrypt("hf_abcdefghijklmnop", secret=SECRET).split(":")
    flipped = format(int(ciphertext[:2], 16) ^ 0x01, "02x") + ciphertext[2:]

    with pytest.raises(EncryptionError):
        decrypt(f"{nonce}:{flipped}:{tag}", secret=SECRET)


def test_wrong_key_is_rejected() -> None:
    payload = encrypt("hf_abcdefghijklmnop", secret=SECRET)

    with pytest.raises(EncryptionError):
        decrypt(payload, secret="a different passphrase")


@pytest.mark.parametrize("payload", ["", "abc", "zz:zz:zz", "00:00:00"])
def test_malformed_payloads_raise(payload) -> None:
    with pytest.raises(EncryptionError):
        decrypt(payload, secret=SECRET)


def test_passphrase_is_stretched_to_aes_key() -> None:
    assert len(derive_key("correct horse battery staple")) == 32
    assert derive_key(SECRET) == bytes.fromhex(SECRET)


def test_mask_token_shows_only_edges() -> None:
    assert mask_token("gsk_1234567890abcdef") == "gsk_1234...cdef"
    assert mask_token("short-token") == MASK
    assert mask_token(None) == MASK
