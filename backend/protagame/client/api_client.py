# journal api client — the entry store surface over http
# used by editor sessions running outside the api process

import logging
from typing import Optional

import httpx

from protagame.config import settings
from protagame.models.journal import JournalEntry, JournalEntryCreate, JournalStats

logger = logging.getLogger(__name__)

# entry fields POST /api/journal does not accept
UNSUPPORTED_SAVE_FIELDS = ("audioUrl", "audioFormat", "audioGenerated")


class JournalApiError(Exception):
    """non-2xx response from the journal api"""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class JournalApiClient:
    """async client mirroring the EntryStore operations.

    Example::

        async with JournalApiClient("http://localhost:8000") as client:
            entry = await client.save_entry(JournalEntryCreate(date="2024-03-01", content="Hello"))
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "JournalApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = await self._client.request(method, path, **kwargs)
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise JournalApiError(response.status_code, str(detail))
        return response

    async def save_entry(self, partial: JournalEntryCreate) -> JournalEntry:
        """POST /api/journal.

        narrower than EntryStore.save_entry: the route needs non-blank content
        (or a story for the journey entry) and does not accept audio fields,
        which are only written by /api/text-to-speech. audio fields raise
        ValueError here; a content-less daily partial comes back as a 400
        JournalApiError.
        """
        fields = partial.update_fields()
        audio = sorted(k for k in UNSUPPORTED_SAVE_FIELDS if k in fields)
        if audio:
            raise ValueError(f"Audio fields cannot be saved through the journal api: {', '.join(audio)}")
        response = await self._request("POST", "/api/journal", json=fields)
        return JournalEntry.model_validate(response.json()["entry"])

    async def get_entry_by_date(self, date: str) -> Optional[JournalEntry]:
        response = await self._request("GET", "/api/journal", params={"date": date})
        entry = response.json().get("entry")
        return JournalEntry.model_validate(entry) if entry else None

    async def _list(self, params: dict) -> list[JournalEntry]:
        response = await self._request("GET", "/api/journal/list", params=params)
        return [JournalEntry.model_validate(e) for e in response.json().get("entries", [])]

    async def get_all_entries(self) -> list[JournalEntry]:
        return await self._list({})

    async def get_entries_in_range(self, start: str, end: str) -> list[JournalEntry]:
        return await self._list({"start": start, "end": end})

    async def search_entries(self, term: str) -> list[JournalEntry]:
        return await self._list({"search": term})

    async def delete_entry(self, date: str) -> bool:
        try:
            await self._request("DELETE", "/api/journal", params={"date": date})
        except JournalApiError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def get_stats(self) -> JournalStats:
        response = await self._request("GET", "/api/journal/stats")
        return JournalStats.model_validate(response.json()["stats"])
