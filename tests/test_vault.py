from datetime import date
import pytest

from app.services import vault
from app.services.exceptions import DecryptionError, ValidationError

KEY = vault.generate_encryption_key()
VISA_16 = "4111111111111111"


@pytest.mark.parametrize("plaintext", ["", "4111111111111111", "Zoë Ñúñez 北京 ✓", "x" * 1000])
def test_encrypt_decrypt_round_trip(plaintext):
    token = vault.encrypt(plaintext, key=KEY)
    iv_hex, cipher_hex = token.split(":")
    assert len(iv_hex) == 32
    assert len(cipher_hex) % 32 == 0
    assert vault.decrypt(token, key=KEY) == plaintext


def test_fresh_iv_per_call():
    assert vault.encrypt("same", key=KEY) != vault.encrypt("same", key=KEY)


def test_corrupted_ciphertext_fails():
    # 16 bytes of plaintext leave a full padding block; flipping a nibble in the
    # block before it always breaks the padding.
    iv_hex, cipher_hex = vault.encrypt(VISA_16, key=KEY).split(":")
    pos = 31
    flipped = "0" if cipher_hex[pos] != "0" else "1"
    tampered = f"{iv_hex}:{cipher_hex[:pos]}{flipped}{cipher_hex[pos + 1:]}"
    with pytest.raises(DecryptionError):
        vault.decrypt(tampered, key=KEY)


@pytest.mark.parametrize("token", ["", "nocolon", "a:b:c", "zz:00", "00" * 16 + ":", "00" * 8 + ":" + "00" * 16])
def test_malformed_payload_fails(token):
    with pytest.raises(DecryptionError):
        vault.decrypt(token, key=KEY)


def test_wrong_key_never_returns_plaintext():
    token = vault.encrypt(VISA_16, key=KEY)
    other = vault.generate_encryption_key()
    try:
        result = vault.decrypt(token, key=other)
    except DecryptionError:
        return
    assert result != VISA_16


def test_key_validation():
    assert vault.is_valid_encryption_key(KEY)
    assert len(KEY) == 64
    assert not vault.is_valid_encryption_key("abc")
    assert not vault.is_valid_encryption_key("g" * 64)
    assert not vault.is_valid_encryption_key(None)
    with pytest.raises(RuntimeError):
        vault.encrypt("x", key="short")


def test_init_vault_rejects_missing_or_bad_key():
    from flask import Flask
    app = Flask(__name__)
    with pytest.raises(RuntimeError):
        vault.init_vault(app)
    app.config["BANK_ENCRYPTION_KEY"] = "1234"
    with pytest.raises(RuntimeError):
        vault.init_vault(app)
    app.config["BANK_ENCRYPTION_KEY"] = KEY
    vault.init_vault(app)


def test_luhn_validation():
    assert vault.validate_card_number("4539 1488 0343 6467", production=True)
    assert vault.validate_card_number("4539-1488-0343-6467", production=True)
    assert not vault.validate_card_number("4539148803436468", production=True)
    assert not vault.validate_card_number("1234", production=True)
    assert not vault.validate_card_number("abcd1234abcd1234", production=True)


def test_test_card_bypass_only_outside_production():
    # fails Luhn, but is listed as a test number
    fake_test_card = "4000000000000001"
    assert not vault.luhn_valid(fake_test_card)
    assert vault.validate_card_number(fake_test_card, production=False, test_numbers=[fake_test_card])
    assert not vault.validate_card_number(fake_test_card, production=True, test_numbers=[fake_test_card])


def test_production_config_disables_test_cards(app):
    app.config.update(IS_PRODUCTION=True)
    try:
        assert not vault.validate_card_number("4000000000000001", test_numbers=["4000000000000001"])
    finally:
        app.config.update(IS_PRODUCTION=False)
    assert vault.validate_card_number("4000000000000001", test_numbers=["4000000000000001"])


def test_expiry_validation():
    today = date(2026, 6, 15)
    assert vault.validate_expiry_date("6", "2026", today=today)
    assert vault.validate_expiry_date("01", "27", today=today)
    assert not vault.validate_expiry_date("5", "2026", today=today)
    assert not vault.validate_expiry_date("13", "2030", today=today)
    assert not vault.validate_expiry_date("0", "2030", today=today)
    assert not vault.validate_expiry_date("ab", "2030", today=today)


def test_cvv_validation():
    assert vault.validate_cvv("123")
    assert vault.validate_cvv("1234")
    assert not vault.validate_cvv("12")
    assert not vault.validate_cvv("12a")


def test_masking():
    assert vault.mask_sensitive_data("4111111111111111", "card") == "**** **** **** 1111"
    assert vault.mask_sensitive_data("123", "card") == "****"
    assert vault.mask_sensitive_data("123", "cvv") == "***"
    assert vault.mask_sensitive_data("1229", "expiry") == "12/29"
    assert vault.mask_sensitive_data("1", "expiry") == "**/**"


def test_require_valid_card_reports_first_bad_field():
    year = str(date.today().year + 2)
    with pytest.raises(ValidationError, match="card number"):
        vault.require_valid_card("1234", "12", year, "123")
    with pytest.raises(ValidationError, match="expir"):
        vault.require_valid_card(VISA_16, "12", "2000", "123")
    with pytest.raises(ValidationError, match="CVV"):
        vault.require_valid_card(VISA_16, "12", year, "1")


def test_test_card_list():
    cards = vault.get_test_card_numbers()
    assert "4111111111111111" in cards
    assert all(vault.luhn_valid(c) for c in cards)


@pytest.mark.parametrize("number", [
    "４１１１１１１１１１１１１１１１",
    "٤١١١١١١١١١١١١١١١",
    "4111１１１１11111111",
])
@pytest.mark.parametrize("production", [True, False])
def test_card_number_requires_ascii_digits(number, production):
    assert not vault.validate_card_number(number, production=production)


@pytest.mark.parametrize("cvv", ["１２３", "١٢٣", "12３"])
def test_cvv_requires_ascii_digits(cvv):
    assert not vault.validate_cvv(cvv)


def test_expiry_requires_ascii_digits():
    today = date(2026, 6, 15)
    assert not vault.validate_expiry_date("１２", "2030", today=today)
    assert not vault.validate_expiry_date("12", "٢٠٣٠", today=today)


def test_require_valid_card_rejects_non_ascii_digits():
    year = str(date.today().year + 2)
    with pytest.raises(ValidationError, match="card number"):
        vault.require_valid_card("４１１１１１１１１１１１１１１１", "12", year, "123")
    with pytest.raises(ValidationError, match="CVV"):
        vault.require_valid_card(VISA_16, "12", year, "١٢٣")
