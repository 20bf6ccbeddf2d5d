"""
Unit tests for fiscal code, VAT number and province validation.
"""

import pytest

from collaboranexio.core.exceptions import ValidationError
from collaboranexio.core.validators import (
    is_valid_fiscal_code,
    is_valid_vat,
    validate_fiscal_code,
    validate_province,
    validate_vat_number,
    vat_checksum,
)
from tests.factories import fake_vat_number


@pytest.mark.unit
class TestVatNumber:
    """Partita IVA: 11 digits, mod-10 checksum."""

    def test_valid_checksum_accepted(self):
        assert vat_checksum("12345678903") == 0
        assert is_valid_vat("12345678903") is True
        assert validate_vat_number("12345678903") == "12345678903"

    def test_invalid_checksum_rejected(self):
        assert is_valid_vat("12345678901") is False

        with pytest.raises(ValidationError) as exc_info:
            validate_vat_number("12345678901")
        assert exc_info.value.field == "partita_iva"
        assert "checksum" in exc_info.value.message

    @pytest.mark.parametrize("value", ["1234567890", "123456789012", "1234567890A", ""])
    def test_wrong_format_rejected(self, value):
        assert is_valid_vat(value) is False

        with pytest.raises(ValidationError) as exc_info:
            validate_vat_number(value)
        assert exc_info.value.field == "partita_iva"

    def test_all_zeros_is_valid(self):
        assert is_valid_vat("00000000000") is True

    def test_doubling_subtracts_nine(self):
        # second digit 9 -> 18 -> 9; 0 + 9 + 1 = 10
        assert vat_checksum("09100000000") == 0

    def test_single_digit_change_breaks_checksum(self):
        for _ in range(20):
            value = fake_vat_number()
            assert is_valid_vat(value)
            last = (int(value[-1]) + 1) % 10
            assert not is_valid_vat(value[:-1] + str(last))

    def test_whitespace_stripped(self):
        assert validate_vat_number(" 12345678903 ") == "12345678903"


@pytest.mark.unit
class TestFiscalCode:
    """Codice fiscale: 16 alphanumerics, stored upper-case."""

    def test_accepts_sixteen_alphanumerics(self):
        assert validate_fiscal_code("ABCDEFGHIJKLMNOP") == "ABCDEFGHIJKLMNOP"

    def test_normalizes_to_upper_case(self):
        assert validate_fiscal_code("rssmra80a01f205x") == "RSSMRA80A01F205X"
        assert is_valid_fiscal_code("rssmra80a01f205x") is True

    @pytest.mark.parametrize("value", ["ABCDEFGHIJKLMNO", "ABCDEFGHIJKLMNOPQ", "ABCDEFGHIJKLMN-P"])
    def test_rejects_bad_format(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_fiscal_code(value)
        assert exc_info.value.field == "codice_fiscale"


@pytest.mark.unit
class TestProvince:

    def test_upper_cases_two_letters(self):
        assert validate_province("mi") == "MI"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_means_unset(self, value):
        assert validate_province(value) is None

    @pytest.mark.parametrize("value", ["M", "MIL", "M1"])
    def test_rejects_bad_codes(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_province(value)
        assert exc_info.value.field == "sede_legale_provincia"
