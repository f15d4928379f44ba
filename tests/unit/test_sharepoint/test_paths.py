"""Tests for SharePoint path helpers."""

import pytest

from spstorage.core.sharepoint.exceptions import InvalidSiteUrlError
from spstorage.core.sharepoint.paths import (
    DEFAULT_LIBRARY_NAME,
    build_drive_path,
    encode_drive_path,
    normalize_virtual_path,
    parse_site_url,
    split_library_path,
    strip_mount_root,
)


class TestBuildDrivePath:
    """Tests for build_drive_path."""

    def test_joins_root_and_relative(self):
        """Root and relative path are joined with one separator."""
        assert build_drive_path("Archive", "2024/q1.xlsx") == "Archive/2024/q1.xlsx"

    def test_trims_redundant_separators(self):
        """Leading, trailing and doubled slashes collapse."""
        assert build_drive_path("/Archive/", "//2024//q1.xlsx/") == "Archive/2024/q1.xlsx"

    def test_empty_relative_returns_root(self):
        """Root plus empty relative path is the root."""
        assert build_drive_path("Archive/Old", "") == "Archive/Old"

    def test_empty_root_returns_relative(self):
        """Empty root leaves the relative path unchanged."""
        assert build_drive_path("", "Reports/q1.xlsx") == "Reports/q1.xlsx"

    def test_both_empty(self):
        """Both empty gives the drive root."""
        assert build_drive_path("", "") == ""

    def test_dot_means_root(self):
        """A "." relative path is the mount root."""
        assert build_drive_path("Archive", ".") == "Archive"

    @pytest.mark.parametrize(
        "root,relative",
        [
            ("Archive", "Reports/q1.xlsx"),
            ("A/B/C", "d"),
            ("", "x/y"),
            ("Root", ""),
        ],
    )
    def test_strip_mount_root_inverts_build(self, root, relative):
        """Stripping the root from a built path gives back the relative path."""
        assert strip_mount_root(root, build_drive_path(root, relative)) == relative

    def test_strip_mount_root_rejects_foreign_path(self):
        """Paths outside the root are rejected."""
        with pytest.raises(ValueError):
            strip_mount_root("Archive", "Other/file.txt")


class TestNormalizeVirtualPath:
    """Tests for normalize_virtual_path."""

    def test_strips_host_prefix(self):
        """identity/files/mount prefixes are removed."""
        assert normalize_virtual_path("alice/files/MyMount/Reports/q1.xlsx") == "Reports/q1.xlsx"

    def test_plain_path_unchanged(self):
        """A mount-relative path is a no-op."""
        assert normalize_virtual_path("Reports/q1.xlsx") == "Reports/q1.xlsx"

    def test_mount_root_prefix_only(self):
        """A bare prefix maps to the mount root."""
        assert normalize_virtual_path("alice/files/MyMount") == ""

    def test_second_segment_must_be_marker(self):
        """Only the literal "files" marker triggers stripping."""
        assert normalize_virtual_path("alice/docs/MyMount/a.txt") == "alice/docs/MyMount/a.txt"

    def test_too_few_segments_unchanged(self):
        """Two segments never match the prefix shape."""
        assert normalize_virtual_path("alice/files") == "alice/files"

    @pytest.mark.parametrize("path", ["", "/", ".", "/./"])
    def test_root_forms(self, path):
        """Empty, slash and dot all mean the root."""
        assert normalize_virtual_path(path) == ""

    def test_surrounding_slashes_removed(self):
        """Surrounding slashes do not survive."""
        assert normalize_virtual_path("/Reports/") == "Reports"


class TestSplitLibraryPath:
    """Tests for split_library_path."""

    def test_library_with_sub_path(self):
        """First segment is the library, the rest the sub path."""
        assert split_library_path("Documents/Archive/2024") == ("Documents", "Archive/2024")

    def test_library_only(self):
        """A bare library has an empty sub path."""
        assert split_library_path("Shared Documents") == ("Shared Documents", "")

    def test_empty_defaults_to_documents(self):
        """Empty library path selects the default library."""
        assert split_library_path("") == (DEFAULT_LIBRARY_NAME, "")
        assert split_library_path("/") == ("Documents", "")


class TestEncodeDrivePath:
    """Tests for encode_drive_path."""

    def test_encodes_each_segment(self):
        """Spaces and reserved characters are escaped per segment."""
        assert encode_drive_path("My Docs/Q1 #1.xlsx") == "My%20Docs/Q1%20%231.xlsx"

    def test_keeps_separators(self):
        """Segment separators stay literal."""
        assert encode_drive_path("a/b/c") == "a/b/c"


class TestParseSiteUrl:
    """Tests for parse_site_url."""

    def test_splits_host_and_path(self):
        """Host and server-relative path are returned."""
        assert parse_site_url("https://contoso.sharepoint.com/sites/Eng") == (
            "contoso.sharepoint.com",
            "/sites/Eng",
        )

    def test_trailing_slash_trimmed(self):
        """A trailing slash is not part of the site path."""
        assert parse_site_url("https://contoso.sharepoint.com/sites/Eng/")[1] == "/sites/Eng"

    @pytest.mark.parametrize(
        "url",
        [
            "https://contoso.sharepoint.com",
            "https://contoso.sharepoint.com/",
            "/sites/Eng",
            "",
        ],
    )
    def test_missing_host_or_path_raises(self, url):
        """URLs without host or path are invalid."""
        with pytest.raises(InvalidSiteUrlError):
            parse_site_url(url)
