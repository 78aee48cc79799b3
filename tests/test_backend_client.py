"""Tests for the backend client contract and error extraction."""

import json

import httpx
import pytest

from core.entities import UploadSource
from service.backend_client import BackendClient, error_message_from
from util.errors import ApiError


@pytest.mark.parametrize(
    "data,expected",
    [
        ({"detail": "File too large"}, "File too large"),
        ({"message": "Slow down"}, "Slow down"),
        ({"detail": [{"loc": ["body"], "msg": "bad"}], "message": "Invalid body"}, "Invalid body"),
        ("  upstream exploded \n", "upstream exploded"),
        ({"ok": False}, "Request failed (502)"),
        ("", "Request failed (502)"),
        (None, "Request failed (502)"),
    ],
)
def test_error_message_from(data, expected: str) -> None:
    assert error_message_from(data, 502) == expected


@pytest.mark.asyncio
async def test_list_uploads_sends_identity(backend: BackendClient, server) -> None:
    server.on("GET", "uploads", httpx.Response(200, json={"files": [{"slug": "a", "fileName": "a.pdf"}]}))

    res = await backend.list_uploads("user-1")

    assert [f.slug for f in res.files] == ["a"]
    assert server.calls("GET", "uploads")[0].url.params["identity"] == "user-1"


@pytest.mark.asyncio
async def test_json_error_detail_is_raised(backend: BackendClient, server) -> None:
    server.on("GET", "uploads", httpx.Response(400, json={"detail": "Unknown identity"}))

    with pytest.raises(ApiError) as exc:
        await backend.list_uploads("user-1")

    assert exc.value.message == "Unknown identity"
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_plain_text_error_is_raised(backend: BackendClient, server) -> None:
    server.on("GET", "uploads", httpx.Response(500, text="Internal Server Error"))

    with pytest.raises(ApiError, match="Internal Server Error"):
        await backend.list_uploads("user-1")


@pytest.mark.asyncio
async def test_transport_failure_is_an_api_error(backend: BackendClient, server) -> None:
    server.on("GET", "uploads", httpx.ConnectError("refused"))

    with pytest.raises(ApiError) as exc:
        await backend.list_uploads("user-1")

    assert exc.value.status_code is None
    assert exc.value.message


@pytest.mark.asyncio
async def test_timeout_is_an_api_error(backend: BackendClient, server) -> None:
    server.on("GET", "uploads", httpx.ReadTimeout("slow"))

    with pytest.raises(ApiError, match="timed out"):
        await backend.list_uploads("user-1")


@pytest.mark.asyncio
async def test_unexpected_success_shape_is_an_api_error(backend: BackendClient, server) -> None:
    server.on("POST", "form-fill", httpx.Response(200, text="ok"))

    with pytest.raises(ApiError, match="Unexpected response"):
        await backend.create_fill_job("user-1", "https://forms.example.com/a.pdf")


@pytest.mark.asyncio
async def test_upload_is_multipart_with_optional_link(backend: BackendClient, server) -> None:
    server.on("POST", "uploads", httpx.Response(200, json={"status": "uploaded", "slug": "s", "size": 3}))
    source = UploadSource(name="a.pdf", data=b"abc", content_type="application/pdf")

    await backend.upload_file("user-1", source, "https://forms.example.com/f.pdf")
    await backend.upload_file("user-1", source)

    with_link, without_link = server.calls("POST", "uploads")
    assert with_link.headers["content-type"].startswith("multipart/form-data")
    assert b'name="identity"' in with_link.content
    assert b'name="targetLink"' in with_link.content
    assert b'filename="a.pdf"' in with_link.content
    assert b'name="targetLink"' not in without_link.content


@pytest.mark.asyncio
async def test_delete_and_poll_paths(backend: BackendClient, server) -> None:
    server.on("DELETE", "uploads/my slug", httpx.Response(204))
    server.on("GET", "form-fill/J1", httpx.Response(200, json={"status": "filling"}))

    await backend.delete_upload("user-1", "my slug")
    res = await backend.get_fill_job("user-1", "J1", "https://forms.example.com/f.pdf")

    assert res.status == "filling"
    poll = server.calls("GET", "form-fill/J1")[0]
    assert poll.url.params["formUrl"] == "https://forms.example.com/f.pdf"
    assert poll.url.params["identity"] == "user-1"


@pytest.mark.asyncio
async def test_create_fill_job_body(backend: BackendClient, server) -> None:
    server.on("POST", "form-fill", httpx.Response(200, json={"jobId": "J1", "status": "queued"}))

    res = await backend.create_fill_job("user-1", "https://forms.example.com/f.pdf")

    assert res.jobId == "J1"
    body = json.loads(server.calls("POST", "form-fill")[0].content)
    assert body == {"identity": "user-1", "targetLink": "https://forms.example.com/f.pdf"}
