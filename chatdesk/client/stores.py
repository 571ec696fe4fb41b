"""How the client cache reaches the conversation repository.

:class:`HttpConversationStore` talks to the sidecar over HTTP;
:class:`LocalConversationStore` calls a repository in-process. Both raise
only :class:`~chatdesk.errors.StorageError` subclasses.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..conversation import Conversation, ConversationRepository
from ..errors import NotFoundError, StorageIOError

logger = logging.getLogger(__name__)


class ConversationStore(ABC):
    @abstractmethod
    async def list_filenames(self) -> list[str]:
        ...

    @abstractmethod
    async def get(self, filename: str) -> Conversation:
        ...

    @abstractmethod
    async def save(self, filename: str, conversation: Conversation) -> None:
        ...

    @abstractmethod
    async def delete(self, filename: str) -> None:
        ...

    @abstractmethod
    async def clear_all(self) -> None:
        ...


class HttpConversationStore(ConversationStore):
    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}/conversations{path}"
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StorageIOError(f"{method} {url} failed: {e}") from e
        if resp.status_code == 404:
            raise NotFoundError(f"{method} {url}: not found")
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StorageIOError(f"{method} {url} failed: {resp.status_code} {resp.text}") from e
        return resp

    async def list_filenames(self) -> list[str]:
        resp = await self._request("GET", "/index")
        data = resp.json()
        if not isinstance(data, list):
            raise StorageIOError("Conversation index response is not a list")
        return data

    async def get(self, filename: str) -> Conversation:
        resp = await self._request("GET", f"/{filename}")
        try:
            return Conversation.model_validate(resp.json()["content"])
        except (ValueError, KeyError, TypeError) as e:
            raise StorageIOError(f"Malformed conversation {filename}: {e}") from e

    async def save(self, filename: str, conversation: Conversation) -> None:
        await self._request("POST", f"/{filename}", json={"content": conversation.to_json()})

    async def delete(self, filename: str) -> None:
        await self._request("DELETE", f"/{filename}")

    async def clear_all(self) -> None:
        await self._request("DELETE", "")


class LocalConversationStore(ConversationStore):
    """Runs repository calls on the default executor."""

    def __init__(self, repository: ConversationRepository):
        self.repository = repository

    async def _run(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def list_filenames(self) -> list[str]:
        return await self._run(self.repository.list_filenames)

    async def get(self, filename: str) -> Conversation:
        return await self._run(self.repository.get, filename)

    async def save(self, filename: str, conversation: Conversation) -> None:
        await self._run(self.repository.save, filename, conversation)

    async def delete(self, filename: str) -> None:
        await self._run(self.repository.delete, filename)

    async def clear_all(self) -> None:
        await self._run(self.repository.clear_all)
