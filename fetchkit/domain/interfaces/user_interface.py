"""Interface for presenting results to the user.

Defines the contract for displaying JSON values, paged tables, errors,
warnings and info messages, allowing different UI implementations.
"""

import abc
from typing import Any, Sequence

from fetchkit.domain.models.paging import PagedResult


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_json(self, value: Any, **kwargs: Any) -> None:
        """Displays a JSON-compatible value to the user.

        Args:
            value: Parsed JSON tree (or any JSON-serializable object).
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_page(self, page: PagedResult, **kwargs: Any) -> None:
        """Displays a page of items along with the total count.

        Args:
            page: The paged result to render.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    def display_preload_report(self, loaded: Sequence[str], missing: Sequence[str]) -> None:
        """Summarizes a preload run. Optional for implementations."""
        pass
