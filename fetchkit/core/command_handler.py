"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the work
to the API client and the content service, reporting results and failures
through the UserInterface. Every handler returns True on success so the
entry point can choose the exit code.
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

import httpx

from fetchkit.core.services.content_service import ContentService
from fetchkit.domain.interfaces.user_interface import UserInterface
from fetchkit.domain.models.errors import ApiError, NoDataFoundError
from fetchkit.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)

QueryPairs = Sequence[Tuple[str, str]]


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        api_client: ApiClient,
        content_service: ContentService,
        ui: UserInterface,
    ):
        """Initializes the CommandHandler with required services."""
        self.api_client = api_client
        self.content_service = content_service
        self.ui = ui

    def _report_failure(self, command: str, error: Exception) -> None:
        if isinstance(error, NoDataFoundError):
            self.ui.display_warning(f"{command}: no data found in response")
        elif isinstance(error, ApiError):
            self.ui.display_error(f"{command} failed with HTTP {error.status_code}: {error.message}")
        elif isinstance(error, httpx.HTTPError):
            self.ui.display_error(f"{command} failed: network error: {error}")
        else:
            logger.error(f"Unexpected error in '{command}': {error}", exc_info=True)
            self.ui.display_error(f"{command} failed: {error}")

    async def handle_get(self, endpoint: str, query: Optional[QueryPairs] = None, retries: int = 1) -> bool:
        """Handles the 'get' command: typed GET with retry, printed as JSON."""
        logger.info(f"Handling 'get' for {endpoint} (retries={retries})")
        try:
            value = await self.api_client.get(endpoint, query=query, retries=retries)
        except Exception as e:
            self._report_failure("GET", e)
            return False
        if value is None:
            self.ui.display_info("Empty response body.")
        else:
            self.ui.display_json(value)
        return True

    async def handle_paged(self, endpoint: str, query: Optional[QueryPairs] = None) -> bool:
        """Handles the 'paged' command: paged discovery rendered as a table."""
        logger.info(f"Handling 'paged' for {endpoint}")
        try:
            page = await self.api_client.get_paged(endpoint, query=query)
        except Exception as e:
            self._report_failure("Paged GET", e)
            return False
        self.ui.display_page(page, title=endpoint)
        return True

    async def handle_write(self, method: str, endpoint: str, body: Any) -> bool:
        """Handles the 'post' and 'put' commands."""
        method = method.upper()
        logger.info(f"Handling '{method.lower()}' for {endpoint}")
        try:
            if method == "POST":
                value = await self.api_client.post(endpoint, body)
            elif method == "PUT":
                value = await self.api_client.put(endpoint, body)
            else:
                raise ValueError(f"Unsupported write method: {method}")
        except Exception as e:
            self._report_failure(method, e)
            return False
        if value is None:
            self.ui.display_info(f"{method} {endpoint} succeeded (no content).")
        else:
            self.ui.display_json(value)
        return True

    async def handle_delete(self, endpoint: str, query: Optional[QueryPairs] = None) -> bool:
        """Handles the 'delete' command."""
        logger.info(f"Handling 'delete' for {endpoint}")
        try:
            await self.api_client.delete(endpoint, query=query)
        except Exception as e:
            self._report_failure("DELETE", e)
            return False
        self.ui.display_info(f"DELETE {endpoint} succeeded.")
        return True

    async def handle_content(self, names: Sequence[str]) -> bool:
        """Handles the 'content' command: first available name wins."""
        logger.info(f"Handling 'content' for {list(names)}")
        resolved = await self.content_service.resolve(names)
        if resolved is None:
            self.ui.display_error(f"No content available for: {', '.join(names)}")
            return False
        name, value = resolved
        self.ui.display_json(value, title=name)
        return True

    async def handle_preload(self, names: Sequence[str]) -> bool:
        """Handles the 'preload' command and reports which names were cached."""
        logger.info(f"Handling 'preload' for {list(names)}")
        report = await self.content_service.loader.preload(names)
        loaded: List[str] = [name for name, ok in report.items() if ok]
        missing: List[str] = [name for name, ok in report.items() if not ok]
        self.ui.display_preload_report(loaded, missing)
        return not missing
