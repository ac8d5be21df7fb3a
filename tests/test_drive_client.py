"""
Tests for the Drive REST client using httpx.MockTransport (no network).
"""

import httpx
import pytest

from drivesearch.core.errors import ConfigurationError, RetrievalError
from drivesearch.services.drive_client import DriveClient, FileCandidate, to_candidates

FOLDER = "application/vnd.google-apps.folder"


def _client(handler) -> DriveClient:
    return DriveClient(
        access_token="tok",
        base_url="https://drive.test/v3",
        transport=httpx.MockTransport(handler),
    )


class TestDriveClient:
    """Request shape and error mapping."""

    def test_requires_credentials(self) -> None:
        with pytest.raises(ConfigurationError):
            DriveClient(access_token="", api_key="")

    def test_query_sends_all_drives_flags_and_bearer(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"files": [{"id": "f1", "name": "A", "mimeType": "application/pdf"}]})

        files = _client(handler).query("trashed = false", 15, order_by="modifiedTime desc")

        assert files[0]["id"] == "f1"
        assert seen["auth"] == "Bearer tok"
        assert seen["params"]["supportsAllDrives"] == "true"
        assert seen["params"]["includeItemsFromAllDrives"] == "true"
        assert seen["params"]["pageSize"] == "15"
        assert seen["params"]["orderBy"] == "modifiedTime desc"

    def test_list_children_returns_next_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert "'root' in parents" in request.url.params["q"]
            assert request.url.params["pageToken"] == "p1"
            return httpx.Response(200, json={"files": [{"id": "x", "mimeType": FOLDER}], "nextPageToken": "p2"})

        files, token = _client(handler).list_children("root", page_token="p1")
        assert [f["id"] for f in files] == ["x"]
        assert token == "p2"

    def test_api_key_used_when_no_token(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.url.params.get("key")
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"files": []})

        client = DriveClient(
            access_token="", api_key="k123", base_url="https://drive.test/v3",
            transport=httpx.MockTransport(handler),
        )
        client.query("trashed = false", 5)
        assert seen == {"key": "k123", "auth": None}

    def test_non_200_raises_retrieval_error_with_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": {"message": "File not found"}})

        with pytest.raises(RetrievalError) as exc:
            _client(handler).get_metadata("missing")
        assert exc.value.status_code == 404

    def test_transport_error_raises_retrieval_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(RetrievalError):
            _client(handler).query("trashed = false", 5)


class TestFileCandidate:
    """Mapping of Drive resources."""

    def test_folders_and_incomplete_entries_are_dropped(self) -> None:
        items = [
            {"id": "f1", "name": "Report", "mimeType": "application/pdf", "webViewLink": "L"},
            {"id": "d1", "name": "Sub", "mimeType": FOLDER},
            {"id": "", "name": "no id", "mimeType": "text/plain"},
            {"id": "f2", "name": "no mime"},
        ]
        out = to_candidates(items)
        assert out == [FileCandidate(id="f1", title="Report", mime_type="application/pdf", link="L")]

    def test_prompt_item_uses_camel_case(self) -> None:
        c = FileCandidate(id="f1", title="T", mime_type="text/plain", modified_time="2024-01-01T00:00:00Z")
        assert c.to_prompt_item() == {
            "id": "f1",
            "title": "T",
            "mimeType": "text/plain",
            "modifiedTime": "2024-01-01T00:00:00Z",
            "link": None,
        }


def test_file_id_is_encoded_in_path() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.raw_path
        return httpx.Response(200, json={"id": "x"})

    _client(handler).get_metadata("../about?x=1")
    assert seen["path"].startswith(b"/v3/files/..%2Fabout%3Fx%3D1?")
