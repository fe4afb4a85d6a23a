"""Tests for version comparison."""

import itertools
import pytest

from pluginhub.marketplace.versions import compare_versions


class TestCompareVersions:
    """Tests for compare_versions()."""

    def test_missing_components_are_zero(self):
        assert compare_versions("1.2.0", "1.2") == 0

    def test_prerelease_suffix_ignored(self):
        assert compare_versions("1.0.0-beta", "1.0.0") == 0

    def test_major_wins(self):
        assert compare_versions("2.0", "1.9.9") == 1

    def test_numeric_not_lexicographic(self):
        assert compare_versions("1.2.0", "1.10.0") == -1

    def test_unparsable_parts_are_zero(self):
        assert compare_versions("1.x.3", "1.0.3") == 0
        assert compare_versions("", "0.0.0") == 0

    def test_leading_digits_used(self):
        assert compare_versions("1.2rc1", "1.2") == 0
        assert compare_versions("1.3b", "1.2.9") == 1

    def test_never_raises_on_garbage(self):
        assert compare_versions("abc", "def") == 0
        assert compare_versions(None, "1.0") == -1

    VERSIONS = ["0.9", "1.0", "1.0.1", "1.2", "1.10.0", "2.0.0-beta", "2.0.1", "10.0"]

    def test_antisymmetric(self):
        for a, b in itertools.product(self.VERSIONS, repeat=2):
            assert compare_versions(a, b) == -compare_versions(b, a)

    def test_transitive(self):
        for a, b, c in itertools.product(self.VERSIONS, repeat=3):
            if compare_versions(a, b) <= 0 and compare_versions(b, c) <= 0:
                assert compare_versions(a, c) <= 0

    @pytest.mark.parametrize(
        "current,latest,expected",
        [
            ("1.0.0", "1.0.1", -1),
            ("1.4.16", "1.4.16", 0),
            ("0.15.2", "0.9.9", 1),
        ],
    )
    def test_known_pairs(self, current, latest, expected):
        assert compare_versions(current, latest) == expected
