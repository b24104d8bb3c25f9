"""Unit tests for volume parsing."""

import pytest

from obs_do.errors import InvalidNumberError, ParseError
from obs_do.volume import (
    InputVolume,
    VolumeSpec,
    VolumeUnit,
    parse_duration,
    parse_volume,
)


class TestParseVolume:
    """Test parsing of volume arguments."""

    def test_decibel(self) -> None:
        """A trailing dB gives an absolute volume in decibel."""
        assert parse_volume("-6dB") == VolumeSpec(VolumeUnit.DECIBEL, -6.0)

    @pytest.mark.parametrize("raw", ["-6db", "-6DB", "-6Db", " -6dB "])
    def test_decibel_case_insensitive(self, raw: str) -> None:
        """The dB suffix is case insensitive."""
        assert parse_volume(raw) == VolumeSpec(VolumeUnit.DECIBEL, -6.0)

    def test_percentage(self) -> None:
        """A trailing % gives a multiplier."""
        assert parse_volume("50%") == VolumeSpec(VolumeUnit.MULTIPLIER, 0.5)

    def test_no_unit_is_percentage(self) -> None:
        """Without unit, the value is a percentage."""
        assert parse_volume("150") == VolumeSpec(VolumeUnit.MULTIPLIER, 1.5)

    def test_fractional(self) -> None:
        """Fractional values are allowed."""
        assert parse_volume("2.5dB") == VolumeSpec(VolumeUnit.DECIBEL, 2.5)
        assert parse_volume("12.5%").value == pytest.approx(0.125)

    @pytest.mark.parametrize(
        "raw", ["abcdB", "", "dB", "%", "--5", "5%%", "ten", "nan", "infdB", "1e999"]
    )
    def test_invalid(self, raw: str) -> None:
        """Anything that isn't a finite number is rejected."""
        with pytest.raises(InvalidNumberError) as exc_info:
            parse_volume(raw)
        assert exc_info.value.raw == raw

    @pytest.mark.parametrize("raw", ["-50%", "-1", "-0.5%"])
    def test_negative_percentage(self, raw: str) -> None:
        """Multipliers can't be negative."""
        with pytest.raises(InvalidNumberError):
            parse_volume(raw)

    def test_negative_zero_percentage(self) -> None:
        """-0% is still silence."""
        assert parse_volume("-0%").value == 0.0

    @pytest.mark.parametrize(
        "raw", ["1_000", "1_0dB", "\u0665\u0660%", "\uff15\uff10", "5 %", "0x10"]
    )
    def test_strict_number_syntax(self, raw: str) -> None:
        """Digit separators and non-ASCII digits are rejected."""
        with pytest.raises(InvalidNumberError):
            parse_volume(raw)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("+3dB", 3.0), (".5dB", 0.5), ("1e1%", 0.1), ("5.%", 0.05)],
    )
    def test_number_notation(self, raw: str, expected: float) -> None:
        """Signs, leading dots and exponents are accepted."""
        assert parse_volume(raw).value == pytest.approx(expected)

    def test_invalid_is_parse_error(self) -> None:
        """InvalidNumberError is a ParseError."""
        with pytest.raises(ParseError):
            parse_volume("loud")


class TestParseDuration:
    """Test parsing of fade durations."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("5", 5.0), ("5s", 5.0), ("2.5S", 2.5), (" 0.5 ", 0.5), ("-1", -1.0)],
    )
    def test_valid(self, raw: str, expected: float) -> None:
        """Seconds, with or without trailing s."""
        assert parse_duration(raw) == expected

    @pytest.mark.parametrize("raw", ["", "s", "five", "5ms", "inf", "nan", "1_0", "\u0665s"])
    def test_invalid(self, raw: str) -> None:
        """Non-numeric durations are rejected."""
        with pytest.raises(InvalidNumberError):
            parse_duration(raw)


class TestVolumeTypes:
    """Test VolumeSpec and InputVolume helpers."""

    def test_in_unit(self) -> None:
        """InputVolume selects the value in the requested scale."""
        volume = InputVolume(db=-6.0, mul=0.5)
        assert volume.in_unit(VolumeUnit.DECIBEL) == -6.0
        assert volume.in_unit(VolumeUnit.MULTIPLIER) == 0.5

    def test_str(self) -> None:
        """VolumeSpec renders in its own unit."""
        assert str(VolumeSpec(VolumeUnit.DECIBEL, -6.0)) == "-6.0 dB"
        assert str(VolumeSpec(VolumeUnit.MULTIPLIER, 0.5)) == "50%"
