"""Encryption and validation helpers for payout credentials.

Card fields are stored as ``<iv hex>:<ciphertext hex>`` produced by AES-256-CBC
with a fresh 16-byte IV per call. The 32-byte key comes from the
``BANK_ENCRYPTION_KEY`` setting as 64 hex characters.
"""
import logging
import os
import re
import secrets
from datetime import date
from typing import Iterable, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from flask import current_app, has_app_context

from app.services.exceptions import DecryptionError, ValidationError

logger = logging.getLogger(__name__)

IV_LENGTH = 16
KEY_HEX_RE = re.compile(r"^[0-9a-fA-F]{64}$")
# ASCII only: int() would also accept fullwidth or Arabic-Indic digits
CARD_DIGITS_RE = re.compile(r"[0-9]{13,19}")
CVV_RE = re.compile(r"[0-9]{3,4}")
EXPIRY_PART_RE = re.compile(r"[0-9]{1,4}")

TEST_CARD_NUMBERS = (
    "4111111111111111",  # Visa
    "4242424242424242",  # Visa
    "4000056655665556",  # Visa debit
    "5555555555554444",  # Mastercard
    "2223003122003222",  # Mastercard 2-series
    "5200828282828210",  # Mastercard debit
    "5105105105105100",  # Mastercard prepaid
    "378282246310005",   # Amex
    "371449635398431",   # Amex
    "6011111111111117",  # Discover
    "6011000990139424",  # Discover
    "3056930009020004",  # Diners
    "3566002020360505",  # JCB
    "6200000000000005",  # UnionPay
)


def generate_encryption_key() -> str:
    return secrets.token_hex(32)


def is_valid_encryption_key(key) -> bool:
    return isinstance(key, str) and bool(KEY_HEX_RE.match(key))


def get_test_card_numbers():
    return list(TEST_CARD_NUMBERS)


def init_vault(app):
    """Fail startup when the configured key is missing or malformed."""
    key = app.config.get("BANK_ENCRYPTION_KEY")
    if not key:
        raise RuntimeError("BANK_ENCRYPTION_KEY is not set")
    if not is_valid_encryption_key(key):
        raise RuntimeError("BANK_ENCRYPTION_KEY must be exactly 64 hex characters")
    app.logger.info("Sensitive data vault initialised")


def _key_bytes(key: Optional[str] = None) -> bytes:
    if key is None:
        if has_app_context():
            key = current_app.config.get("BANK_ENCRYPTION_KEY")
        else:
            key = os.getenv("BANK_ENCRYPTION_KEY")
    if not is_valid_encryption_key(key):
        raise RuntimeError("BANK_ENCRYPTION_KEY must be exactly 64 hex characters")
    return bytes.fromhex(key)


def _is_production() -> bool:
    if has_app_context():
        cfg = current_app.config
        return bool(cfg.get("IS_PRODUCTION")) or not cfg.get("ALLOW_TEST_CARDS", True)
    return os.getenv("APP_ENV", "development").lower() == "production"


def encrypt(plaintext: str, key: Optional[str] = None) -> str:
    iv = os.urandom(IV_LENGTH)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    data = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(_key_bytes(key)), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(data) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"


def decrypt(token: str, key: Optional[str] = None) -> str:
    if not isinstance(token, str) or token.count(":") != 1:
        raise DecryptionError("Failed to decrypt data: malformed payload")
    iv_hex, cipher_hex = token.split(":")
    try:
        iv = bytes.fromhex(iv_hex)
        ciphertext = bytes.fromhex(cipher_hex)
    except ValueError:
        raise DecryptionError("Failed to decrypt data: malformed payload")
    if len(iv) != IV_LENGTH or not ciphertext or len(ciphertext) % IV_LENGTH:
        raise DecryptionError("Failed to decrypt data: malformed payload")

    decryptor = Cipher(algorithms.AES(_key_bytes(key)), modes.CBC(iv)).decryptor()
    try:
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        data = unpadder.update(padded) + unpadder.finalize()
        return data.decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        logger.warning("Vault decryption failed")
        raise DecryptionError("Failed to decrypt data")


def normalize_card_number(card_number) -> str:
    return re.sub(r"[\s-]", "", str(card_number or ""))


def luhn_valid(digits: str) -> bool:
    total = 0
    for idx, ch in enumerate(reversed(digits)):
        n = int(ch)
        if idx % 2 == 1:
            n *= 2
            if n > 9:
                n -= 9
        total += n
    return total % 10 == 0


def validate_card_number(card_number, *, production: Optional[bool] = None,
                         test_numbers: Optional[Iterable[str]] = None) -> bool:
    cleaned = normalize_card_number(card_number)
    if not CARD_DIGITS_RE.fullmatch(cleaned):
        return False
    if production is None:
        production = _is_production()
    if not production:
        allowed = TEST_CARD_NUMBERS if test_numbers is None else tuple(test_numbers)
        if cleaned in allowed:
            return True
    return luhn_valid(cleaned)


def validate_expiry_date(month, year, today: Optional[date] = None) -> bool:
    if not (EXPIRY_PART_RE.fullmatch(str(month).strip()) and EXPIRY_PART_RE.fullmatch(str(year).strip())):
        return False
    try:
        exp_month = int(month)
        exp_year = int(year)
    except (TypeError, ValueError):
        return False
    if exp_year < 100:
        exp_year += 2000
    if exp_month < 1 or exp_month > 12:
        return False
    today = today or date.today()
    if exp_year < today.year:
        return False
    if exp_year == today.year and exp_month < today.month:
        return False
    return True


def validate_cvv(cvv) -> bool:
    return bool(CVV_RE.fullmatch(str(cvv or "")))


def mask_sensitive_data(value, kind: str) -> str:
    value = str(value or "")
    if kind == "card":
        if len(value) <= 4:
            return "****"
        return "**** **** **** " + value[-4:]
    if kind == "cvv":
        return "***"
    if kind == "expiry":
        if len(value) < 4:
            return "**/**"
        return value[:2] + "/" + value[-2:]
    return value


def require_valid_card(card_number, month, year, cvv):
    """Raise ValidationError for the first invalid credential field."""
    if not validate_card_number(card_number):
        raise ValidationError("Invalid card number")
    if not validate_expiry_date(month, year):
        raise ValidationError("Card has expired or expiry date is invalid")
    if not validate_cvv(cvv):
        raise ValidationError("Invalid CVV")
