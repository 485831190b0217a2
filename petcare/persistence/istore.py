from abc import ABC, abstractmethod

from petcare.helpers.monitoring import start_as_current_span
from petcare.models.readiness import ReadinessEnum


class IStore(ABC):
    """
    Key-value document store.

    Values are JSON documents, read and replaced wholesale. Implementations raise `StorageUnavailableError` when the backend fails.
    """

    @abstractmethod
    @start_as_current_span("store_readiness")
    async def readiness(self) -> ReadinessEnum:
        pass

    @abstractmethod
    @start_as_current_span("store_get")
    async def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    @start_as_current_span("store_set")
    async def set(self, key: str, value: str) -> None:
        pass
