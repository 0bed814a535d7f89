from __future__ import annotations

from abc import ABC, abstractmethod

from lockerbay.core.entities.event import Event


class EventPublisher(ABC):
    @abstractmethod
    def publish(self, event: Event) -> None:
        """Fire-and-forget hand-off of a locker status event to the notification transport."""
        raise NotImplementedError
