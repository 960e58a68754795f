from qbot.app.core.security import (
    generate_api_key,
    generate_password,
    hash_api_key,
    hash_password,
    verify_password,
)


def test_generate_api_key_is_random_and_urlsafe():
    first = generate_api_key()
    second = generate_api_key()

    assert first != second
    assert len(first) >= 43
    assert all(c.isalnum() or c in "-_" for c in first)


def test_hash_api_key_is_stable_sha256():
    assert hash_api_key("token") == hash_api_key("token")
    assert len(hash_api_key("token")) == 64
    assert hash_api_key("token") != hash_api_key("token2")


def test_password_roundtrip_with_salt():
    salt, hashed = hash_password("pw-1234")

    assert verify_password("pw-1234", salt, hashed)
    assert not verify_password("pw-12345", salt, hashed)
    assert hash_password("pw-1234")[0] != salt


def test_generated_password_avoids_ambiguous_characters():
    password = generate_password(32)

    assert len(password) == 32
    assert not set(password) & set("01lo")
