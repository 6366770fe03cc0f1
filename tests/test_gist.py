"""Tests for the GitHub Gist client."""

import asyncio
import json

import httpx
import pytest

from terrenospy.remote.base import (
    NetworkUnavailable,
    RemoteAuthFailure,
    RemoteMalformedResponse,
    RemoteNotFound,
)
from terrenospy.remote.gist import GistClient, decode_document, encode_document

from .conftest import GIST_ID, GIST_TOKEN, make_record

FILENAME = "terrenos-py.json"
GIST_URL = f"https://api.github.com/gists/{GIST_ID}"


def gist_payload(content: str, **entry) -> dict:
    return {"id": GIST_ID, "files": {FILENAME: {"filename": FILENAME, "content": content, **entry}}}


def make_client(handler) -> GistClient:
    transport = httpx.MockTransport(handler)
    return GistClient(
        gist_id=GIST_ID,
        token=GIST_TOKEN,
        filename=FILENAME,
        client=httpx.AsyncClient(transport=transport),
    )


def run(coro):
    return asyncio.run(coro)


class TestDocumentCodec:
    """Test the JSON document stored inside the gist file."""

    def test_encode_document(self):
        content = encode_document([make_record("t1", title="Lote A")])
        document = json.loads(content)
        assert document["terrenos"][0]["titulo"] == "Lote A"
        assert document["ultimaActualizacion"].endswith("Z")

    def test_decode_skips_invalid_and_duplicate(self):
        good = make_record("t1").to_wire()
        content = json.dumps({"terrenos": [good, good, {"titulo": "sin id"}]})

        snapshot = decode_document(content)

        assert [r.id for r in snapshot.properties] == ["t1"]
        assert snapshot.skipped == 2

    def test_decode_missing_list_is_empty(self):
        assert decode_document("{}").properties == []

    def test_decode_non_json(self):
        with pytest.raises(RemoteMalformedResponse):
            decode_document("<html>")

    def test_decode_wrong_shape(self):
        with pytest.raises(RemoteMalformedResponse):
            decode_document(json.dumps({"terrenos": {"id": "t1"}}))


class TestFetch:
    """Test reading the gist."""

    def test_fetch_properties(self):
        content = encode_document([make_record("t1", title="Lote A")])
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["url"] = str(request.url)
            return httpx.Response(200, json=gist_payload(content))

        snapshot = run(make_client(handler).fetch())

        assert [r.title for r in snapshot.properties] == ["Lote A"]
        assert snapshot.last_updated is not None
        assert seen["auth"] == f"Bearer {GIST_TOKEN}"
        assert seen["url"] == GIST_URL

    def test_truncated_file_uses_raw_url(self):
        raw_url = "https://gist.githubusercontent.com/raw/terrenos-py.json"
        content = encode_document([make_record("t1", title="Lote grande")])

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == raw_url:
                return httpx.Response(200, text=content)
            return httpx.Response(
                200, json=gist_payload(content[:10], truncated=True, raw_url=raw_url)
            )

        snapshot = run(make_client(handler).fetch())

        assert [r.title for r in snapshot.properties] == ["Lote grande"]

    def test_missing_file(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"files": {"other.json": {"content": "{}"}}})

        with pytest.raises(RemoteMalformedResponse):
            run(make_client(handler).fetch())

    def test_non_json_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(RemoteMalformedResponse):
            run(make_client(handler).fetch())


class TestErrorMapping:
    """Test HTTP and transport failures map to the error taxonomy."""

    @pytest.mark.parametrize(
        "status, error",
        [
            (401, RemoteAuthFailure),
            (404, RemoteNotFound),
            (500, NetworkUnavailable),
            (422, NetworkUnavailable),
        ],
    )
    def test_status_codes(self, status, error):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"message": "nope"})

        with pytest.raises(error):
            run(make_client(handler).fetch())

    def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NetworkUnavailable):
            run(make_client(handler).fetch())

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        with pytest.raises(NetworkUnavailable):
            run(make_client(handler).push([]))


class TestPush:
    """Test writing the document back."""

    @staticmethod
    def gist_handler(content: str, patches: list):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "PATCH":
                body = json.loads(request.content)
                patches.append(json.loads(body["files"][FILENAME]["content"]))
                return httpx.Response(200, json={})
            return httpx.Response(200, json=gist_payload(content))

        return handler

    def test_push_replaces_whole_document(self):
        patches = []
        client = make_client(self.gist_handler(encode_document([make_record("old")]), patches))

        records = [make_record("t1", title="Lote A"), make_record("t2", title="Lote B")]
        run(client.push(records))

        assert [p["id"] for p in patches[0]["terrenos"]] == ["t1", "t2"]

    def test_invalid_remote_records_kept(self):
        """Records the client cannot validate survive a push untouched."""
        legacy = {"id": "legacy", "titulo": "Lote viejo", "ubicacion": "Luque", "tamaño": 450.5}
        content = json.dumps({"terrenos": [make_record("a").to_wire(), legacy]})
        patches = []
        client = make_client(self.gist_handler(content, patches))

        async def scenario():
            snapshot = await client.fetch()
            await client.push(snapshot.properties + [make_record("new")])
            return snapshot

        snapshot = run(scenario())

        assert snapshot.skipped == 1
        assert [p["id"] for p in patches[0]["terrenos"]] == ["a", "new", "legacy"]
        assert patches[0]["terrenos"][-1] == legacy

    def test_push_without_fetch_reads_first(self):
        legacy = {"id": "legacy", "titulo": "Lote viejo", "ubicacion": "Luque", "tamaño": 450.5}
        patches = []
        client = make_client(self.gist_handler(json.dumps({"terrenos": [legacy]}), patches))

        run(client.push([make_record("t1")]))

        assert [p["id"] for p in patches[0]["terrenos"]] == ["t1", "legacy"]

    def test_push_to_gist_without_file(self):
        """A new gist has no file yet; the first push creates it."""
        patches = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "PATCH":
                patches.append(json.loads(request.content))
                return httpx.Response(200, json={})
            return httpx.Response(200, json={"files": {}})

        run(make_client(handler).push([make_record("t1")]))

        assert len(patches) == 1

    def test_replaced_id_not_duplicated(self):
        raw = [{"id": "t1", "titulo": "Lote"}]
        document = json.loads(encode_document([make_record("t1")], unparsed=raw))
        assert [p["id"] for p in document["terrenos"]] == ["t1"]

class TestIsConfigured:
    """Test the superficial credential check."""

    def test_real_looking_credentials(self):
        client = GistClient(GIST_ID, GIST_TOKEN, FILENAME)
        assert client.is_configured() is True

    def test_placeholder_gist_id(self):
        client = GistClient("TU_GIST_ID_AQUI", GIST_TOKEN, FILENAME)
        assert client.is_configured() is False

    def test_placeholder_token(self):
        client = GistClient(GIST_ID, "ghp_xxxxxxxxxxxxxxxxxxxxxxxx", FILENAME)
        assert client.is_configured() is False

    def test_short_token(self):
        client = GistClient(GIST_ID, "ghp_short", FILENAME)
        assert client.is_configured() is False

    def test_empty(self):
        assert GistClient("", "", FILENAME).is_configured() is False
