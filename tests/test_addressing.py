import pytest

from virtmem.errors import MalformedAddressError, RangeError
from virtmem.virtualsim import AddressCodec, parse_address


class TestParseAddress:
    """Tokens from the address source become non-negative integers."""

    def test_plain_integer(self) -> None:
        assert parse_address("16916") == 16916

    def test_surrounding_whitespace_and_plus(self) -> None:
        assert parse_address("  +42\n") == 42

    def test_minus_zero_is_zero(self) -> None:
        assert parse_address("-0") == 0

    def test_int_passthrough(self) -> None:
        assert parse_address(7) == 7

    @pytest.mark.parametrize("token", ["abc", "", "12abc", "1.5", "0x10", "1_000", "--1", "\udcff\udcfe", None])
    def test_malformed(self, token) -> None:
        with pytest.raises(MalformedAddressError):
            parse_address(token)

    @pytest.mark.parametrize("token", ["-1", -5])
    def test_negative_is_malformed(self, token) -> None:
        with pytest.raises(MalformedAddressError, match="negative"):
            parse_address(token)

    def test_error_keeps_token(self) -> None:
        with pytest.raises(MalformedAddressError) as info:
            parse_address("abc")
        assert info.value.token == "abc"


class TestAddressCodec:
    """Addresses split into page number and offset."""

    def test_decode_splits_bits(self) -> None:
        codec = AddressCodec(page_size=256, page_count=4)
        assert codec.decode(0) == (0, 0)
        assert codec.decode(255) == (0, 255)
        assert codec.decode(256) == (1, 0)
        assert codec.decode(3 * 256 + 17) == (3, 17)

    def test_default_sizes(self) -> None:
        codec = AddressCodec(page_size=1024, page_count=1024)
        assert codec.offset_bits == 10
        assert codec.decode(16916) == (16, 532)

    def test_page_out_of_range(self) -> None:
        codec = AddressCodec(page_size=256, page_count=4)
        with pytest.raises(RangeError):
            codec.decode(4 * 256)

    def test_negative_address(self) -> None:
        codec = AddressCodec(page_size=256, page_count=4)
        with pytest.raises(RangeError):
            codec.decode(-1)

    def test_encode(self) -> None:
        codec = AddressCodec(page_size=256, page_count=4)
        assert codec.encode(2, 5) == 517
