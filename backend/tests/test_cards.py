"""
Card and funding-source validation tests.

Verifies:
- Luhn checksum over 13-19 digit numbers
- Brand detection per prefix/length range
- "invalid" vs "unsupported" messages stay distinct
- Funding source tagged union parsing
"""

import pytest

from securebank.cards import (
    INVALID_CARD_MESSAGE,
    UNSUPPORTED_CARD_MESSAGE,
    BankFundingSource,
    CardFundingSource,
    check_card,
    detect_card_brand,
    parse_funding_source,
    passes_luhn,
    validate_card_number,
)
from securebank.validation import ValidationError


# =============================================================================
# LUHN
# =============================================================================


class TestLuhn:

    @pytest.mark.parametrize(
        "number",
        ["4242424242424242", "4242 4242 4242 4242", "378282246310005", "4222222222222", "9000000000000001"],
    )
    def test_valid(self, number):
        assert passes_luhn(number)

    @pytest.mark.parametrize(
        "number",
        ["1234567890123456", "4242424242424241", "424242424242", "42424242424242424242", "4242-4242-4242-4242"],
    )
    def test_invalid(self, number):
        assert not passes_luhn(number)


# =============================================================================
# BRANDS
# =============================================================================


class TestBrandDetection:

    @pytest.mark.parametrize(
        "number,brand",
        [
            ("4242424242424242", "visa"),
            ("4222222222222", "visa"),
            ("4111111111111111111", "visa"),
            ("5555555555554444", "mastercard"),
            ("2223003122003222", "mastercard"),
            ("2720990000000007", "mastercard"),
            ("378282246310005", "amex"),
            ("371449635398431", "amex"),
            ("6011111111111117", "discover"),
            ("6500000000000002", "discover"),
            ("6440000000000000", "discover"),
            ("3530111333300000", "jcb"),
            ("3589000000000000", "jcb"),
        ],
    )
    def test_known_brands(self, number, brand):
        assert detect_card_brand(number) == brand

    @pytest.mark.parametrize(
        "number",
        [
            "9000000000000001",   # no such prefix
            "2220990000000000",   # just below the 2-series mastercard range
            "2721000000000000",   # just above it
            "6430000000000000",   # between 6011 and 644
            "3527000000000000",   # just below JCB
            "42424242424242",     # visa prefix, 14 digits
            "34000000000000",     # amex prefix, 14 digits
        ],
    )
    def test_unrecognized(self, number):
        assert detect_card_brand(number) is None


# =============================================================================
# VALIDATE CARD
# =============================================================================


class TestValidateCard:

    def test_returns_brand(self):
        assert validate_card_number("4242424242424242") == "visa"

    def test_luhn_failure_is_invalid(self):
        with pytest.raises(ValidationError) as exc:
            validate_card_number("1234567890123456")
        assert str(exc.value) == INVALID_CARD_MESSAGE

    def test_unknown_brand_is_unsupported(self):
        with pytest.raises(ValidationError) as exc:
            validate_card_number("9000000000000001")
        assert str(exc.value) == UNSUPPORTED_CARD_MESSAGE

    def test_check_card_does_not_raise(self):
        assert check_card("4242424242424242") == {"valid": True, "brand": "visa", "error": None}
        result = check_card("1234567890123456")
        assert result["valid"] is False
        assert "invalid" in result["error"]


# =============================================================================
# FUNDING SOURCES
# =============================================================================


class TestFundingSource:

    def test_card(self):
        source = parse_funding_source({"type": "card", "accountNumber": "4242 4242 4242 4242"})
        assert isinstance(source, CardFundingSource)
        assert source.account_number == "4242424242424242"
        assert source.brand == "visa"

    def test_card_ignores_routing_number(self):
        source = parse_funding_source({"type": "card", "accountNumber": "4242424242424242", "routingNumber": None})
        assert source.type == "card"

    def test_bank(self):
        source = parse_funding_source({"type": "bank", "accountNumber": "12345678", "routingNumber": "021000021"})
        assert isinstance(source, BankFundingSource)
        assert source.routing_number == "021000021"

    def test_bank_requires_nine_digit_routing(self):
        with pytest.raises(ValidationError) as exc:
            parse_funding_source({"type": "bank", "accountNumber": "12345678", "routingNumber": "12345"})
        assert "Routing number" in str(exc.value)

    def test_bank_requires_routing(self):
        with pytest.raises(ValidationError):
            parse_funding_source({"type": "bank", "accountNumber": "12345678"})

    def test_bank_requires_account_number(self):
        with pytest.raises(ValidationError):
            parse_funding_source({"type": "bank", "accountNumber": " ", "routingNumber": "021000021"})

    @pytest.mark.parametrize("payload", [None, {}, {"type": "crypto", "accountNumber": "x"}, "card"])
    def test_unknown_type(self, payload):
        with pytest.raises(ValidationError):
            parse_funding_source(payload)
