"""
Tests for version ordering and latest-version selection.
"""

import pytest


def _v(version, deprecated=False):
    from plugins.manifest_schema import PluginVersion
    return PluginVersion(version=version, deprecated=deprecated)


class TestParseVersion:
    """Test version string parsing."""

    def test_numeric_segments(self):
        from plugins.versions import parse_version
        assert parse_version("1.10.3") == (1, 10, 3)

    def test_trailing_zeros_ignored(self):
        """1.2 and 1.2.0 are the same version."""
        from plugins.versions import parse_version
        assert parse_version("1.2") == parse_version("1.2.0") == parse_version("1.2.0.0")

    @pytest.mark.parametrize("text", ["", "1..0", "1.x.0", "v1.0.0", "1.0.0-beta", "-1.0", "1.²", "١.0"])
    def test_invalid_versions_rejected(self, text):
        from plugins.errors import InvalidVersionFormat
        from plugins.versions import parse_version
        with pytest.raises(InvalidVersionFormat):
            parse_version(text)


class TestCompareVersions:
    """Test pairwise comparison."""

    def test_numeric_not_lexical(self):
        from plugins.versions import compare_versions
        assert compare_versions("1.10.0", "1.9.9") == 1
        assert compare_versions("1.9.9", "1.10.0") == -1

    def test_missing_segments_count_as_zero(self):
        from plugins.versions import compare_versions
        assert compare_versions("2", "2.0.0") == 0
        assert compare_versions("2.0.1", "2") == 1


class TestSelectLatest:
    """Test selection of the highest installable version."""

    def test_highest_numeric_version_wins(self):
        from plugins.versions import select_latest
        latest = select_latest([_v("1.2.0"), _v("1.10.0"), _v("1.9.9")])
        assert latest.version == "1.10.0"

    def test_deprecated_versions_excluded(self):
        from plugins.versions import select_latest
        latest = select_latest([_v("1.0.0"), _v("2.0.0", deprecated=True)])
        assert latest.version == "1.0.0"

    def test_empty_list_returns_none(self):
        from plugins.versions import select_latest
        assert select_latest([]) is None

    def test_all_deprecated_returns_none(self):
        from plugins.versions import select_latest
        assert select_latest([_v("1.0.0", True), _v("2.0.0", True)]) is None

    def test_single_candidate_returned_without_parsing(self):
        """A lone installable entry is returned even if its version is odd."""
        from plugins.versions import select_latest
        latest = select_latest([_v("nightly"), _v("2.0.0", deprecated=True)])
        assert latest.version == "nightly"

    def test_invalid_segment_raises(self):
        from plugins.errors import InvalidVersionFormat
        from plugins.versions import select_latest
        with pytest.raises(InvalidVersionFormat):
            select_latest([_v("1.0.0"), _v("1.x")])
