import pytest
from pydantic import ValidationError
from pytest_assume.plugin import assume

from petcare.helpers.config import CONFIG
from petcare.helpers.config_models.database import DatabaseModel, ModeEnum
from petcare.helpers.config_models.root import RootModel
from petcare.models.error import StorageUnavailableError
from petcare.models.readiness import ReadinessEnum
from petcare.persistence.memory import MemoryStore
from petcare.persistence.redis import RedisStore


def test_loaded_from_env() -> None:
    """
    Tests set `CONFIG_JSON`, which takes precedence over the YAML file.
    """
    assume(CONFIG.database.mode == ModeEnum.MEMORY)
    assume(isinstance(CONFIG.database.instance, MemoryStore))
    assume(CONFIG.reminders.collection_key == "petpal_reminders")
    assume(CONFIG.reminders.adopted_pets_key == "petpal_adopted_pets")
    assume(CONFIG.reminders.upcoming_window_days == 7)


def test_defaults() -> None:
    config = RootModel()
    assume(config.database.mode == ModeEnum.SQLITE)
    assume(not config.monitoring.logging.json_output)


def test_redis_required() -> None:
    with pytest.raises(ValidationError):
        DatabaseModel.model_validate({"mode": "redis"})


def test_redis_selected() -> None:
    database = DatabaseModel.model_validate(
        {
            "mode": "redis",
            "redis": {"host": "localhost", "ssl": False},
        }
    )
    assume(isinstance(database.instance, RedisStore))
    # Instance is cached
    assume(database.instance is database.instance)


@pytest.mark.asyncio(loop_scope="session")
async def test_redis_unreachable() -> None:
    """
    A Redis server which refuses connections is reported as unavailable.
    """
    database = DatabaseModel.model_validate(
        {
            "mode": "redis",
            "redis": {"host": "127.0.0.1", "port": 1, "ssl": False},
        }
    )
    store = database.instance

    assume(await store.readiness() == ReadinessEnum.FAIL)
    with pytest.raises(StorageUnavailableError):
        await store.get("petpal_reminders")
    with pytest.raises(StorageUnavailableError):
        await store.set("petpal_reminders", "[]")
