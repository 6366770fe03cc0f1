"""GitHub Gist client used as a free remote JSON store.

The whole property list lives in one file of one Gist. The file content is
itself JSON:

    {"terrenos": [...], "ultimaActualizacion": "2024-05-01T12:00:00.000Z"}

Reads GET the Gist and decode that file; writes PATCH the Gist with the
full, re-serialised document.

API reference: https://docs.github.com/en/rest/gists/gists
"""

import json
import logging
from datetime import datetime
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models.property import PropertyRecord, isoformat_z, utcnow
from .base import (
    NetworkUnavailable,
    RemoteAuthFailure,
    RemoteMalformedResponse,
    RemoteNotFound,
    RemoteSnapshot,
    RemoteStore,
)

logger = logging.getLogger(__name__)

# Values shipped in the site's config template, never real credentials
PLACEHOLDER_MARKERS = ("TU_GIST_ID_AQUI", "TU_TOKEN_AQUI", "xxxxxxxx")
MIN_TOKEN_LENGTH = 20
MIN_GIST_ID_LENGTH = 8


def decode_document(content: str, source: str = "gist") -> RemoteSnapshot:
    """Decode the JSON document stored in the Gist file.

    Records failing validation and repeated ids are skipped with a warning.
    The raw form of records failing validation is kept in ``unparsed`` so a
    later push can write them back untouched.

    Raises:
        RemoteMalformedResponse: If the content is not the expected document
    """
    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise RemoteMalformedResponse(source, f"File content is not JSON: {e}") from e

    if not isinstance(document, dict):
        raise RemoteMalformedResponse(source, "Document root is not an object")

    raw_properties = document.get("terrenos") or []
    if not isinstance(raw_properties, list):
        raise RemoteMalformedResponse(source, "'terrenos' is not a list")

    properties: list[PropertyRecord] = []
    seen: set[str] = set()
    unparsed: list[dict] = []
    skipped = 0
    for raw in raw_properties:
        try:
            record = PropertyRecord.from_wire(raw)
        except ValidationError as e:
            skipped += 1
            if isinstance(raw, dict):
                unparsed.append(raw)
            logger.warning(f"Skipping invalid remote property: {e.error_count()} errors")
            continue
        if record.id in seen:
            skipped += 1
            logger.warning(f"Skipping duplicate remote property id {record.id}")
            continue
        seen.add(record.id)
        properties.append(record)

    return RemoteSnapshot(
        properties=properties,
        last_updated=_parse_timestamp(document.get("ultimaActualizacion")),
        skipped=skipped,
        unparsed=unparsed,
    )


def encode_document(
    records: Sequence[PropertyRecord],
    now: Optional[datetime] = None,
    unparsed: Sequence[dict] = (),
) -> str:
    """Serialise records into the Gist file document.

    ``unparsed`` raw records are appended after the validated ones, except
    those whose id is now used by a validated record.
    """
    ids = {record.id for record in records}
    kept = [raw for raw in unparsed if raw.get("id") not in ids]
    document = {
        "terrenos": [record.to_wire() for record in records] + kept,
        "ultimaActualizacion": isoformat_z(now or utcnow()),
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def _parse_timestamp(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class GistClient(RemoteStore):
    """Client for one JSON file inside a GitHub Gist.

    Example:
        client = GistClient.from_settings(settings)
        snapshot = await client.fetch()
        await client.push(snapshot.properties)
        await client.close()
    """

    name = "gist"

    def __init__(
        self,
        gist_id: str,
        token: str,
        filename: str,
        api_url: str = "https://api.github.com/gists",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the Gist client.

        Args:
            gist_id: Gist identifier
            token: GitHub token with gist scope
            filename: File inside the Gist holding the document
            api_url: Base URL of the Gist API
            timeout: Seconds before a request is abandoned
            client: Pre-built httpx client (tests pass one with a mock transport)
        """
        self.gist_id = gist_id.strip()
        self.token = token.strip()
        self.filename = filename
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        # Raw records of the last fetched document that failed validation
        self._unparsed: list[dict] = []
        self._fetched = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "GistClient":
        return cls(
            gist_id=settings.gist_id,
            token=settings.gist_token,
            filename=settings.gist_filename,
            api_url=settings.gist_api_url,
            timeout=settings.http_timeout,
        )

    @property
    def url(self) -> str:
        return f"{self.api_url}/{self.gist_id}"

    def is_configured(self) -> bool:
        for value in (self.gist_id, self.token):
            if any(marker in value for marker in PLACEHOLDER_MARKERS):
                return False
        return (
            len(self.gist_id) >= MIN_GIST_ID_LENGTH
            and len(self.token) >= MIN_TOKEN_LENGTH
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "TerrenosPY/1.0",
        }

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request and map failures to RemoteStoreError subclasses."""
        client = await self._get_client()
        try:
            resp = await client.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            raise NetworkUnavailable(self.name, f"Timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise NetworkUnavailable(self.name, f"Request failed: {e}") from e

        if resp.status_code == 401:
            raise RemoteAuthFailure(self.name)
        if resp.status_code == 404:
            raise RemoteNotFound(self.name, f"Gist {self.gist_id} not found")
        if not resp.is_success:
            raise NetworkUnavailable(self.name, f"Unexpected HTTP {resp.status_code}")
        return resp

    async def fetch(self) -> RemoteSnapshot:
        logger.debug(f"Fetching gist {self.gist_id}")
        resp = await self._request("GET", self.url)

        try:
            payload = resp.json()
        except ValueError as e:
            raise RemoteMalformedResponse(self.name, "Gist response is not JSON") from e

        files = payload.get("files") if isinstance(payload, dict) else None
        if not isinstance(files, dict) or not isinstance(files.get(self.filename), dict):
            raise RemoteMalformedResponse(
                self.name, f"File {self.filename!r} missing from gist"
            )

        entry = files[self.filename]
        content = entry.get("content")
        # GitHub truncates file content over 1 MB in the gist payload
        if entry.get("truncated") and entry.get("raw_url"):
            logger.debug(f"Gist file truncated, fetching {entry['raw_url']}")
            raw = await self._request("GET", entry["raw_url"])
            content = raw.text

        if not isinstance(content, str):
            raise RemoteMalformedResponse(self.name, "Gist file has no content")

        snapshot = decode_document(content, self.name)
        self._unparsed = snapshot.unparsed
        self._fetched = True
        if snapshot.unparsed:
            logger.warning(
                f"{len(snapshot.unparsed)} invalid gist records will be kept as-is on push"
            )
        logger.info(f"{len(snapshot.properties)} properties fetched from gist")
        return snapshot

    async def push(self, records: Sequence[PropertyRecord]) -> None:
        """Replace the document with ``records``.

        Records the last fetch could not validate are written back unchanged.
        Without a prior fetch the document is read first to find them.
        """
        if not self._fetched:
            try:
                await self.fetch()
            except RemoteMalformedResponse as e:
                # Nothing readable to keep; the push writes a fresh document
                logger.warning(f"{e}; overwriting gist file")
                self._fetched = True
        content = encode_document(records, unparsed=self._unparsed)
        body = {"files": {self.filename: {"content": content}}}
        await self._request("PATCH", self.url, json=body)
        logger.info(f"{len(records)} properties saved to gist")
