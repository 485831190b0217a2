import json
import random
import string
from collections.abc import Awaitable, Callable
from datetime import date
from os import environ

# Tests always run against the memory store
environ["CONFIG_JSON"] = json.dumps({"database": {"mode": "memory"}})

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from petcare.helpers.config_models.reminders import RemindersModel  # noqa: E402
from petcare.models.reminder import (  # noqa: E402
    RecurringIntervalEnum,
    ReminderModel,
    ReminderTypeEnum,
)
from petcare.persistence.istore import IStore  # noqa: E402
from petcare.persistence.memory import MemoryStore  # noqa: E402
from petcare.persistence.reminders import ReminderRepository  # noqa: E402

PET_IDS = ["pet-buddy", "pet-luna"]


async def seed_adopted_pets(
    store: IStore,
    user_id: str,
    config: RemindersModel = RemindersModel(),
) -> None:
    """
    Add the test pets to the adoption records of a user, keeping the existing ones.
    """
    raw = await store.get(config.adopted_pets_key)
    pets = json.loads(raw) if raw else []
    pets.extend(
        {
            "adopterId": user_id,
            "breed": "Golden Retriever",
            "id": pet_id,
            "name": pet_id.removeprefix("pet-").capitalize(),
        }
        for pet_id in PET_IDS
    )
    await store.set(config.adopted_pets_key, json.dumps(pets))


@pytest.fixture
def random_text() -> str:
    text = "".join(random.choice(string.printable) for _ in range(100))
    return text


@pytest.fixture
def random_id() -> str:
    return "".join(random.choice(string.ascii_lowercase + string.digits) for _ in range(12))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repository(store: MemoryStore) -> ReminderRepository:
    return ReminderRepository(
        config=RemindersModel(),
        store=store,
    )


@pytest_asyncio.fixture
async def user_id(store: MemoryStore, random_id: str) -> str:
    """
    Adopter with the test pets.
    """
    user_id = f"user-{random_id}"
    await seed_adopted_pets(store, user_id)
    return user_id


@pytest.fixture
def make_reminder() -> Callable[..., ReminderModel]:
    """
    Build a reminder without persisting it, any field can be overridden.
    """

    def _make(**kwargs) -> ReminderModel:
        fields = {
            "description": "DHPP and Rabies vaccination due",
            "due_date": date(2024, 3, 1),
            "pet_id": PET_IDS[0],
            "title": "Annual Vaccination",
            "type": ReminderTypeEnum.VACCINE,
            "user_id": "demo-user",
            **kwargs,
        }
        if fields.get("recurring") and "recurring_interval" not in fields:
            fields["recurring_interval"] = RecurringIntervalEnum.YEARLY
        return ReminderModel(**fields)

    return _make


@pytest.fixture
def seed_pets() -> Callable[[IStore, str], Awaitable[None]]:
    return seed_adopted_pets
