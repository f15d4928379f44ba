"""Tests for Graph driveItem decoding."""

from datetime import UTC, datetime

from spstorage.core.sharepoint.models import (
    DEFAULT_MIME_TYPE,
    ROOT_FOLDER,
    DriveBinding,
    DriveContext,
    RemoteFile,
    RemoteFolder,
    decode_item,
    parse_graph_datetime,
)


class TestDecodeItem:
    """Tests for decode_item."""

    def test_folder_facet_gives_folder(self):
        """Presence of the folder facet marks a folder."""
        item = decode_item(
            {
                "id": "f1",
                "name": "Reports",
                "folder": {"childCount": 4},
                "lastModifiedDateTime": "2025-01-10T08:30:00Z",
                "eTag": '"{ABC},1"',
            }
        )

        assert isinstance(item, RemoteFolder)
        assert item.is_folder
        assert item.name == "Reports"
        assert item.etag == '"{ABC},1"'
        assert item.last_modified == datetime(2025, 1, 10, 8, 30, tzinfo=UTC)

    def test_file_fields(self):
        """Files carry size and mime type."""
        item = decode_item(
            {
                "id": "i1",
                "name": "q1.xlsx",
                "size": 2048,
                "file": {"mimeType": "application/vnd.ms-excel"},
            }
        )

        assert isinstance(item, RemoteFile)
        assert not item.is_folder
        assert item.size == 2048
        assert item.mime_type == "application/vnd.ms-excel"

    def test_file_defaults(self):
        """Missing optional fields fall back to documented defaults."""
        item = decode_item({"id": "i1", "name": "blob"})

        assert isinstance(item, RemoteFile)
        assert item.size == 0
        assert item.mime_type == DEFAULT_MIME_TYPE
        assert item.last_modified is None
        assert item.etag is None

    def test_missing_id_returns_none(self):
        """Payloads without an id are not items."""
        assert decode_item({"name": "ghost"}) is None

    def test_invalid_size_is_zero(self):
        """Unparseable sizes decode as 0."""
        assert decode_item({"id": "i1", "name": "x", "size": "big"}).size == 0


class TestParseGraphDatetime:
    """Tests for parse_graph_datetime."""

    def test_parses_zulu(self):
        """Z suffix is UTC."""
        assert parse_graph_datetime("2024-03-01T10:15:00Z") == datetime(
            2024, 3, 1, 10, 15, tzinfo=UTC
        )

    def test_invalid_values(self):
        """Garbage and non-strings decode to None."""
        assert parse_graph_datetime("yesterday") is None
        assert parse_graph_datetime(None) is None
        assert parse_graph_datetime(12345) is None


class TestDriveContext:
    """Tests for DriveContext accessors."""

    def test_exposes_binding_fields(self):
        """drive_id and mount_root_path come from the binding."""
        binding = DriveBinding(
            site_url="https://contoso.sharepoint.com/sites/Eng",
            library_path="Documents/Archive",
            site_id="site-1",
            drive_id="drive-1",
            mount_root_path="Archive",
        )
        ctx = DriveContext(binding=binding, access_token="token")

        assert ctx.drive_id == "drive-1"
        assert ctx.mount_root_path == "Archive"

    def test_root_folder_is_synthetic(self):
        """The root descriptor is a folder with no name."""
        assert ROOT_FOLDER.is_folder
        assert ROOT_FOLDER.name == ""
