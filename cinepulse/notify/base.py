"""Notification sink interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..records import ContentRecord


class NotificationSink(ABC):
    @abstractmethod
    def notify(self, records: Sequence[ContentRecord], sources: Sequence[str]) -> None:
        """Deliver a digest of *records* saved from *sources*.

        Raises:
            NotifyError: delivery failed.
        """
        raise NotImplementedError
