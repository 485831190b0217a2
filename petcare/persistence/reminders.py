from typing import Any

from pydantic import TypeAdapter, ValidationError

from petcare.helpers.config_models.reminders import RemindersModel
from petcare.helpers.logging import logger
from petcare.helpers.monitoring import start_as_current_span, suppress
from petcare.models.error import StorageUnavailableError
from petcare.models.pet import AdoptedPetModel
from petcare.models.readiness import ReadinessEnum
from petcare.models.reminder import ReminderModel
from petcare.persistence.istore import IStore

_collection_adapter = TypeAdapter(list[Any])


class ReminderRepository:
    """
    Reminders collection, stored as a single JSON array in the key-value store.

    Every operation reads the whole collection and, for writes, replaces it whole. Concurrent writers are not arbitrated, the last write wins.

    Records failing validation are skipped on reads and kept as-is on writes, so a partially malformed collection is never truncated.
    """

    _config: RemindersModel
    _store: IStore

    def __init__(self, store: IStore, config: RemindersModel):
        self._config = config
        self._store = store

    async def readiness(self) -> ReadinessEnum:
        return await self._store.readiness()

    @start_as_current_span("repository_reminder_list")
    async def reminder_list(self, user_id: str | None = None) -> list[ReminderModel]:
        """
        List reminders, sorted by due date.

        If `user_id` is set, only the reminders owned by this user are returned. Ties keep the storage order.
        """
        reminders: list[ReminderModel] = []
        for record in await self._load(self._config.collection_key):
            try:
                reminder = ReminderModel.model_validate(record)
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed reminder %s: %s", _record_id(record), e.errors()
                )
                continue
            if user_id is None or reminder.user_id == user_id:
                reminders.append(reminder)
        return sorted(reminders, key=lambda reminder: reminder.due_date)

    @start_as_current_span("repository_reminder_get")
    async def reminder_get(self, reminder_id: str) -> ReminderModel | None:
        for record in await self._load(self._config.collection_key):
            if _record_id(record) != reminder_id:
                continue
            with suppress(ValidationError):
                return ReminderModel.model_validate(record)
            logger.warning("Malformed reminder %s, ignored", reminder_id)
            return None
        return None

    @start_as_current_span("repository_reminder_put")
    async def reminder_put(self, *reminders: ReminderModel) -> None:
        """
        Insert or replace reminders by ID, in a single write.
        """
        records = await self._load(self._config.collection_key)
        positions = {_record_id(record): i for i, record in enumerate(records)}
        for reminder in reminders:
            position = positions.get(reminder.id, None)
            if position is None:
                positions[reminder.id] = len(records)
                records.append(reminder.dump())
            else:
                records[position] = reminder.dump()
        await self._save(self._config.collection_key, records)

    @start_as_current_span("repository_reminder_delete")
    async def reminder_delete(self, reminder_id: str) -> bool:
        """
        Delete a reminder by ID.

        Returns `False` if the reminder does not exist, in which case nothing is written.
        """
        records = await self._load(self._config.collection_key)
        remaining = [record for record in records if _record_id(record) != reminder_id]
        if len(remaining) == len(records):
            return False
        await self._save(self._config.collection_key, remaining)
        return True

    @start_as_current_span("repository_adopted_pet_list")
    async def adopted_pet_list(self, user_id: str) -> list[AdoptedPetModel]:
        """
        List the pets adopted by a user.

        If the adoption records do not exist yet, they are initialized with the configured default pets.
        """
        pets: list[AdoptedPetModel] = []
        for record in await self._load_adopted_pets():
            try:
                pet = AdoptedPetModel.model_validate(record)
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed pet %s: %s", _record_id(record), e.errors()
                )
                continue
            if pet.adopter_id == user_id:
                pets.append(pet)
        return pets

    async def _load_adopted_pets(self) -> list[Any]:
        key = self._config.adopted_pets_key
        if not self._config.default_adopted_pets or await self._store.get(key) is not None:
            return await self._load(key)

        records = [
            pet.model_dump(by_alias=True, exclude_none=True, mode="json")
            for pet in self._config.default_adopted_pets
        ]
        logger.info("No adoption records, initializing %i default pets", len(records))
        await self._save(key, records)
        return records

    async def _load(self, key: str) -> list[Any]:
        """
        Read a whole collection.

        A missing document is an empty collection. A document which is not a JSON array raises `StorageUnavailableError`, it must not be overwritten.
        """
        raw = await self._store.get(key)
        if raw is None:
            return []
        try:
            return _collection_adapter.validate_json(raw)
        except ValidationError as e:
            logger.error("Collection %s is not a JSON array: %s", key, e.errors())
            raise StorageUnavailableError(f"Cannot decode {key}") from e

    async def _save(self, key: str, records: list[Any]) -> None:
        await self._store.set(key, _collection_adapter.dump_json(records).decode())


def _record_id(record: Any) -> Any:
    return record.get("id", None) if isinstance(record, dict) else None
