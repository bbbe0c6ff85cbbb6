import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

import httpx

from focusforge.domain.cards.calendar import utc_now
from focusforge.domain.cards.errors import NotFound, PersistenceError
from focusforge.domain.cards.models import Card, NewCard
from focusforge.domain.cards.ports import CardStore
from focusforge.domain.constants import (
    DEFAULT_TIMEZONE,
    FIRESTORE_PAGE_SIZE,
    FIRESTORE_URL,
    FLASHCARDS_COLLECTION,
    REQUEST_TIMEOUT,
)
from focusforge.infrastructure.records import card_from_record, card_to_record, encode_update


class FirestoreCardStore(CardStore):
    """Adapter for the hosted Firestore document store (REST API v1)."""

    def __init__(
        self,
        project: str,
        user_id: str,
        app_id: str = "default-app-id",
        url: str = FIRESTORE_URL,
        api_key: str | None = None,
        token: str | None = None,
        timeout: float = REQUEST_TIMEOUT,
        timezone: str = DEFAULT_TIMEZONE,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize for one user's flashcard collection."""
        super().__init__()
        if not project:
            raise ValueError("Firestore backend requires a project id")
        if not user_id:
            raise ValueError("Firestore backend requires a user id")

        self.logger = logging.getLogger(__name__)
        self.api_key = api_key
        self.token = token
        self.timeout = timeout
        self.timezone = timezone
        self._client = client
        self.documents_root = f"projects/{project}/databases/(default)/documents"
        self.collection_path = f"artifacts/{app_id}/users/{user_id}/{FLASHCARDS_COLLECTION}"
        self.collection_url = f"{url.rstrip('/')}/{self.documents_root}/{self.collection_path}"
        self.logger.debug(f"FirestoreCardStore initialized for {self.collection_url}")

    async def create(self, new_card: NewCard, today: date) -> str:
        # The id is assigned by Firestore; a placeholder is never written
        card = Card.new("", new_card, today=today, created_at=utc_now())
        body = {"fields": encode_fields(card_to_record(card, self.timezone))}

        data = await self._request("POST", self.collection_url, json=body)
        card_id = document_id(data)
        self.logger.info(f"Created card {card_id}")
        self._notify()
        return card_id

    async def read_all(self) -> list[Card]:
        cards: list[Card] = []
        page_token: str | None = None

        while True:
            params: list[tuple[str, str]] = [("pageSize", str(FIRESTORE_PAGE_SIZE))]
            if page_token:
                params.append(("pageToken", page_token))

            data = await self._request("GET", self.collection_url, params=params)
            for doc in data.get("documents", []):
                fields = decode_fields(doc.get("fields", {}))
                cards.append(card_from_record(document_id(doc), fields, self.timezone))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        return cards

    async def update(self, card_id: str, fields: Mapping[str, Any]) -> None:
        record = encode_update(fields, self.timezone)
        params = [("updateMask.fieldPaths", name) for name in record]
        params.append(("currentDocument.exists", "true"))

        await self._request(
            "PATCH",
            f"{self.collection_url}/{card_id}",
            card_id=card_id,
            params=params,
            json={"fields": encode_fields(record)},
        )
        self.logger.debug(f"Updated card {card_id}: {sorted(fields)}")
        self._notify()

    async def delete(self, card_id: str) -> None:
        await self._request(
            "DELETE",
            f"{self.collection_url}/{card_id}",
            card_id=card_id,
            params=[("currentDocument.exists", "true")],
        )
        self.logger.info(f"Deleted card {card_id}")
        self._notify()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        url: str,
        card_id: str | None = None,
        params: list[tuple[str, str]] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        params = list(params or [])
        if self.api_key:
            params.append(("key", self.api_key))
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        try:
            resp = await self._client.request(
                method, url, params=params, json=json, headers=headers
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404 and card_id is not None:
                raise NotFound(card_id) from e
            self.logger.error(f"Firestore {method} failed: {e.response.status_code} {e.response.text}")
            raise PersistenceError(
                f"Firestore {method} returned {e.response.status_code}: {_error_message(e.response)}"
            ) from e
        except httpx.HTTPError as e:
            self.logger.error(f"Firestore {method} failed: {e}")
            raise PersistenceError(f"Firestore {method} failed: {e}") from e

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise PersistenceError(f"Firestore returned a non-JSON body: {e}") from e


# ---------------------------------------------------------------------------
# Firestore typed-value codec
# ---------------------------------------------------------------------------


def encode_value(value: Any) -> dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        # int64 travels as a string
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    raise TypeError(f"Unsupported Firestore value: {value!r}")


def decode_value(value: Mapping[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    raise PersistenceError(f"Unsupported Firestore value: {dict(value)!r}")


def encode_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    return {name: encode_value(value) for name, value in record.items()}


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {name: decode_value(value) for name, value in fields.items()}


def document_id(doc: Mapping[str, Any]) -> str:
    name = doc.get("name")
    if not name:
        raise PersistenceError("Firestore document has no name")
    return str(name).rsplit("/", 1)[-1]


def _error_message(resp: httpx.Response) -> str:
    try:
        return resp.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return resp.text
