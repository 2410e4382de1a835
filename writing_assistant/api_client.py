# -*- coding: utf-8 -*-
"""
ABOUTME: Async HTTP client for persisting article sections through the writing backend API
ABOUTME: Provides the section update call and an adapter to the autosave coordinator's save contract
"""
import json
import logging
from typing import Any, Callable, Awaitable, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from writing_assistant.config.settings import settings
from writing_assistant.services.autosave_types import DEFAULT_SAVE_ERROR, SaveResult

logger = logging.getLogger(__name__)


class ArticleSection(BaseModel):
    """Section record returned by the backend after an update."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    section_number: Optional[int] = Field(default=None, alias="sectionNumber")
    title: Optional[str] = None
    description: Optional[str] = None
    content: str = ""
    word_count: int = Field(default=0, alias="wordCount")
    is_completed: bool = Field(default=False, alias="isCompleted")


def _get_api_url(endpoint: str, base_url: str) -> str:
    """Constructs the full API URL."""
    return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"


def _handle_response(response: httpx.Response) -> Dict[str, Any]:
    """Checks the response status and parses the JSON body."""
    if response.status_code >= 400:
        try:
            error_data = response.json()
            error_message = error_data.get("error") or error_data.get("detail", "Unknown API error")
        except json.JSONDecodeError:
            error_message = f"API Error ({response.status_code}): {response.text}"
        logger.error(f"API Error ({response.status_code}): {error_message} - URL: {response.url}")
        raise httpx.HTTPStatusError(message=error_message, request=response.request, response=response)
    try:
        return response.json()
    except json.JSONDecodeError as e:
        logger.error(f"Failed to decode JSON response from {response.url}: {e}")
        raise ValueError(f"Invalid JSON response received from API: {response.text}")


class SectionAPIClient:
    """Async HTTP client for the article section endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the API client.

        Args:
            base_url: Backend API base URL (defaults to config setting)
            access_token: Bearer token of the signed-in user
            timeout: Request timeout in seconds (defaults to config setting)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url or settings.api_base_url
        self.access_token = access_token
        self.timeout = timeout or settings.api_timeout_seconds
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry - creates HTTP client."""
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit - closes HTTP client."""
        await self.close()

    async def open(self):
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self):
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def update_section(
        self,
        article_id: str,
        section_id: str,
        content: Optional[str] = None,
        is_completed: Optional[bool] = None
    ) -> ArticleSection:
        """
        Update the content and/or completion flag of a section.

        Args:
            article_id: Article UUID
            section_id: Section UUID
            content: New section content, omitted when None
            is_completed: New completion flag, omitted when None

        Returns:
            The updated section as stored by the backend

        Raises:
            httpx.HTTPStatusError: The backend rejected the update
            ConnectionError: The backend could not be reached
        """
        if self.client is None:
            raise RuntimeError("SectionAPIClient must be opened before use")

        api_url = _get_api_url(f"/api/articles/{article_id}/sections/{section_id}", self.base_url)
        payload: Dict[str, Any] = {}
        if content is not None:
            payload["content"] = content
        if is_completed is not None:
            payload["isCompleted"] = is_completed

        try:
            logger.debug(f"Updating section {section_id} of article {article_id}")
            response = await self.client.put(api_url, json=payload, headers=self._headers())
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed during section update: {e}")
            raise ConnectionError(f"Failed to connect to API for section update: {e}")

        data = _handle_response(response)
        return ArticleSection.model_validate(data.get("section", {}))


def make_section_saver(
    client: SectionAPIClient,
    article_id: str,
    section_id: str
) -> Callable[[str, bool], Awaitable[SaveResult]]:
    """
    Bind a client to one (article, section) pair as an autosave save function.

    Rejected updates become unsuccessful SaveResults carrying the server message.
    Connection errors propagate; the coordinator treats both the same way.
    """
    async def save(content: str, is_completed: bool) -> SaveResult:
        try:
            await client.update_section(article_id, section_id, content=content, is_completed=is_completed)
        except httpx.HTTPStatusError as e:
            return SaveResult(success=False, error=str(e) or DEFAULT_SAVE_ERROR)
        return SaveResult(success=True)

    return save
