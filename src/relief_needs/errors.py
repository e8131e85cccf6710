"""Exception types raised across the extraction and review pipeline."""

from __future__ import annotations


class ReliefNeedsError(Exception):
    """Base class for package errors."""


class ReviewItemNotFoundError(ReliefNeedsError, KeyError):
    def __init__(self, item_id: str) -> None:
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Review item not found: {self.item_id}"


class ReviewTransitionError(ReliefNeedsError):
    """Raised when a decision targets an item that is no longer pending."""

    def __init__(self, item_id: str, current_status: str) -> None:
        super().__init__(f"Review item {item_id} is already {current_status}")
        self.item_id = item_id
        self.current_status = current_status


class LLMProviderError(ReliefNeedsError):
    """Transport or HTTP failure talking to an LLM backend."""


class StoreError(ReliefNeedsError):
    """Raised by persistence backends when a read or write fails."""
