"""Tests for the VLQ / zig-zag byte codec."""

import pytest

from primitives.vlq import DecodeError, SigmaByteReader, SigmaByteWriter, decode_zigzag, encode_zigzag


def _written(fn) -> bytes:
    w = SigmaByteWriter()
    fn(w)
    return w.to_bytes()


class TestZigZag:
    """Tests for signed-to-unsigned mapping."""

    def test_small_values(self) -> None:
        """Small magnitudes interleave: 0, -1, 1, -2 map to 0, 1, 2, 3."""
        assert [encode_zigzag(n) for n in (0, -1, 1, -2, 2)] == [0, 1, 2, 3, 4]

    def test_inverse(self) -> None:
        """decode_zigzag undoes encode_zigzag at the 64-bit extremes."""
        for n in (-(2**63), 2**63 - 1, -12345, 98765):
            assert decode_zigzag(encode_zigzag(n)) == n


class TestVlq:
    """Tests for unsigned VLQ encoding."""

    def test_single_byte(self) -> None:
        """Values below 128 take one byte."""
        assert _written(lambda w: w.put_u64(0)) == b"\x00"
        assert _written(lambda w: w.put_u64(127)) == b"\x7f"

    def test_multi_byte(self) -> None:
        """Low 7-bit group comes first with the continuation bit set."""
        assert _written(lambda w: w.put_u64(128)) == b"\x80\x01"
        assert _written(lambda w: w.put_u64(300)) == b"\xac\x02"

    def test_u64_max(self) -> None:
        """The largest u64 takes ten bytes and reads back."""
        data = _written(lambda w: w.put_u64(2**64 - 1))
        assert len(data) == 10
        assert SigmaByteReader(data).get_u64() == 2**64 - 1

    def test_signed_int(self) -> None:
        """Signed ints are zig-zag encoded before VLQ."""
        assert _written(lambda w: w.put_i32(-1)) == b"\x01"
        assert SigmaByteReader(b"\x03").get_i32() == -2

    def test_u16_out_of_range(self) -> None:
        """A VLQ above the declared width is rejected."""
        data = _written(lambda w: w.put_u32(70000))
        with pytest.raises(DecodeError):
            SigmaByteReader(data).get_u16()

    def test_too_long(self) -> None:
        """More than ten continuation bytes is malformed."""
        with pytest.raises(DecodeError):
            SigmaByteReader(b"\xff" * 11).get_u64()


class TestReader:
    """Tests for bounds checking and fixed-width reads."""

    def test_truncated_byte(self) -> None:
        """Reading past the end raises DecodeError."""
        with pytest.raises(DecodeError):
            SigmaByteReader(b"").get_u8()

    def test_truncated_bytes(self) -> None:
        """get_bytes refuses to return a short slice."""
        r = SigmaByteReader(b"\x01\x02")
        with pytest.raises(DecodeError):
            r.get_bytes(3)

    def test_truncated_vlq(self) -> None:
        """A VLQ cut after a continuation byte is truncated input."""
        with pytest.raises(DecodeError):
            SigmaByteReader(b"\x80").get_u64()

    def test_bits(self) -> None:
        """Booleans are packed least significant bit first."""
        bits = [True, False, True, True, False, False, False, False, True]
        data = _written(lambda w: w.put_bits(bits))
        assert data == b"\x0d\x01"
        assert SigmaByteReader(data).get_bits(len(bits)) == bits

    def test_i16_be(self) -> None:
        """Fixed big-endian short used by the Fiat-Shamir tree bytes."""
        assert _written(lambda w: w.put_i16_be(300)) == b"\x01\x2c"
        assert SigmaByteReader(b"\xff\xfe").get_i16_be() == -2

    def test_position_and_remaining(self) -> None:
        """Position advances as bytes are consumed."""
        r = SigmaByteReader(b"\x01\x02\x03")
        r.get_u8()
        assert r.position == 1
        assert r.remaining() == 2
        assert not r.is_empty()
