"""Tests for npm-style version arithmetic on top of packaging."""

import pytest

from dephealth.services import versioning
from dephealth.services.versioning import InvalidVersionRange, VersionRange


class TestParse:
    def test_full_versions(self):
        parsed = versioning.parse("1.2.3")
        assert (parsed.major, parsed.minor, parsed.micro) == (1, 2, 3)

    def test_leading_v_and_equals(self):
        assert versioning.valid("v1.2.3") == "1.2.3"
        assert versioning.valid("=1.2.3") == "1.2.3"

    def test_prerelease_round_trip(self):
        assert versioning.valid("1.0.0-beta.1") == "1.0.0-beta.1"
        assert versioning.parse("1.0.0-beta.1") < versioning.parse("1.0.0")

    @pytest.mark.parametrize("value", ["1.2", "latest", "", None, "^1.2.3", "not-installed"])
    def test_invalid(self, value):
        assert versioning.parse(value) is None
        assert versioning.valid(value) is None

    def test_compare_rejects_invalid(self):
        with pytest.raises(ValueError):
            versioning.compare("1.0.0", "removed")


class TestArithmetic:
    def test_compare(self):
        assert versioning.compare("1.10.0", "1.9.0") == 1
        assert versioning.lt("1.0.0", "1.0.1")
        assert versioning.gt("2.0.0", "1.99.99")
        assert versioning.compare("1.0.0", "1.0.0") == 0

    def test_deltas(self):
        assert versioning.deltas("1.2.3", "2.0.1") == (1, -2, -2)

    def test_crosses_major(self):
        assert versioning.crosses_major("16.14.0", "17.0.0")
        assert not versioning.crosses_major("1.0.0", "1.9.0")
        assert not versioning.crosses_major("1.0.0", "removed")

    @pytest.mark.parametrize(
        "version,release,expected",
        [
            ("1.2.3", "patch", "1.2.4"),
            ("1.2.3", "minor", "1.3.0"),
            ("1.2.3", "major", "2.0.0"),
            ("1.0.0-rc.1", "patch", "1.0.0"),
        ],
    )
    def test_inc(self, version, release, expected):
        assert versioning.inc(version, release) == expected

    def test_inc_invalid_version(self):
        assert versioning.inc("banana", "patch") is None

    def test_inc_unknown_release(self):
        with pytest.raises(ValueError):
            versioning.inc("1.0.0", "epoch")

    def test_sort_desc_drops_invalid_and_duplicates(self):
        assert versioning.sort_desc(["1.0.0", "2.0.0", "bad", "1.10.0", "2.0.0"]) == [
            "2.0.0",
            "1.10.0",
            "1.0.0",
        ]


class TestRanges:
    @pytest.mark.parametrize(
        "version,range_,expected",
        [
            ("1.5.0", "^1.2.3", True),
            ("2.0.0", "^1.2.3", False),
            ("1.2.2", "^1.2.3", False),
            ("0.2.5", "^0.2.3", True),
            ("0.3.0", "^0.2.3", False),
            ("0.0.4", "^0.0.3", False),
            ("1.2.9", "~1.2.3", True),
            ("1.3.0", "~1.2.3", False),
            ("1.9.9", "1.x", True),
            ("2.0.0", "1.x", False),
            ("1.2.7", "1.2.*", True),
            ("1.4.0", "1.2", False),
            ("1.5.0", "1.2.3 - 1.6.0", True),
            ("1.6.1", "1.2.3 - 1.6.0", False),
            ("16.14.0", "^16.0.0 || ^17.0.0", True),
            ("18.0.0", "^16.0.0 || ^17.0.0", False),
            ("3.1.4", "*", True),
            ("1.5.0", ">=1.0.0 <2.0.0", True),
            ("2.0.0", ">=1.0.0 <2.0.0", False),
            ("1.0.1", ">1.0.0", True),
            ("1.0.0", ">1.0.0", False),
            ("1.2.3", "1.2.3", True),
            ("1.2.4", "=1.2.3", False),
            ("1.0.0", ">= 1.0.0", True),
        ],
    )
    def test_satisfies(self, version, range_, expected):
        assert versioning.satisfies(version, range_) is expected

    def test_satisfies_with_invalid_inputs(self):
        assert versioning.satisfies("banana", "^1.0.0") is False
        assert versioning.satisfies("1.0.0", "github:user/repo") is False

    def test_invalid_range_raises(self):
        with pytest.raises(InvalidVersionRange):
            VersionRange("file:../local")
        assert versioning.valid_range("file:../local") is None
        assert versioning.valid_range(None) is None

    def test_invalid_range_is_value_error(self):
        assert issubclass(InvalidVersionRange, ValueError)

    @pytest.mark.parametrize(
        "range_,expected",
        [
            ("^1.2.3", "1.2.3"),
            ("~2.1", "2.1.0"),
            (">1.2.3", "1.2.4"),
            (">=3.0.0 <4.0.0", "3.0.0"),
            ("^16.0.0 || ^17.0.0", "16.0.0"),
            ("*", "0.0.0"),
            ("1.x", "1.0.0"),
            ("<2.0.0", "0.0.0"),
        ],
    )
    def test_min_version(self, range_, expected):
        assert versioning.min_version(range_) == expected

    def test_min_version_of_invalid_range(self):
        assert versioning.min_version("workspace:*") is None
