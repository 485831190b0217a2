from petcare.models.readiness import ReadinessEnum
from petcare.persistence.istore import IStore


class MemoryStore(IStore):
    """
    A simple in-memory store.

    Data is lost when the process exits. Useful for tests and local demos.
    """

    _documents: dict[str, str]

    def __init__(self):
        self._documents = {}

    async def readiness(self) -> ReadinessEnum:
        """
        Check the readiness of the memory store.
        """
        return ReadinessEnum.OK  # Always ready, it's memory :)

    async def get(self, key: str) -> str | None:
        """
        Get a document from the store.

        If the key does not exist, return `None`.
        """
        return self._documents.get(key, None)

    async def set(self, key: str, value: str) -> None:
        """
        Replace a document in the store.
        """
        self._documents[key] = value
