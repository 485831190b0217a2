from enum import Enum
from functools import cached_property

from pydantic import BaseModel, Field, SecretStr, ValidationInfo, field_validator

from petcare.persistence.istore import IStore


class ModeEnum(str, Enum):
    MEMORY = "memory"
    """Use memory store, data is lost on restart."""
    REDIS = "redis"
    """Use Redis store."""
    SQLITE = "sqlite"
    """Use a local SQLite file."""


class MemoryModel(BaseModel, frozen=True):
    @cached_property
    def instance(self) -> IStore:
        from petcare.persistence.memory import (
            MemoryStore,
        )

        return MemoryStore()


class SqliteModel(BaseModel, frozen=True):
    path: str = ".local/petcare"
    schema_version: int = Field(default=1, ge=1)
    table: str = "documents"

    def full_path(self) -> str:
        """
        Returns the full path to the sqlite database file.

        Formatted as: `{path}-v{schema_version}.sqlite`.
        """
        return f"{self.path}-v{self.schema_version}.sqlite"

    @cached_property
    def instance(self) -> IStore:
        from petcare.persistence.sqlite import (
            SqliteStore,
        )

        return SqliteStore(self)


class RedisModel(BaseModel, frozen=True):
    database: int = Field(default=0, ge=0)
    host: str
    password: SecretStr | None = None
    port: int = 6379
    ssl: bool = True

    @cached_property
    def instance(self) -> IStore:
        from petcare.persistence.redis import (
            RedisStore,
        )

        return RedisStore(self)


class DatabaseModel(BaseModel):
    memory: MemoryModel | None = MemoryModel()  # Object is fully defined by default
    mode: ModeEnum = ModeEnum.SQLITE
    redis: RedisModel | None = Field(default=None, validate_default=True)
    sqlite: SqliteModel | None = SqliteModel()  # Object is fully defined by default

    @field_validator("redis")
    @classmethod
    def _validate_redis(
        cls,
        redis: RedisModel | None,
        info: ValidationInfo,
    ) -> RedisModel | None:
        if not redis and info.data.get("mode", None) == ModeEnum.REDIS:
            raise ValueError("Redis config required")
        return redis

    @field_validator("sqlite")
    @classmethod
    def _validate_sqlite(
        cls,
        sqlite: SqliteModel | None,
        info: ValidationInfo,
    ) -> SqliteModel | None:
        if not sqlite and info.data.get("mode", None) == ModeEnum.SQLITE:
            raise ValueError("SQLite config required")
        return sqlite

    @cached_property
    def instance(self) -> IStore:
        if self.mode == ModeEnum.MEMORY:
            assert self.memory
            return self.memory.instance

        if self.mode == ModeEnum.REDIS:
            assert self.redis
            return self.redis.instance

        assert self.sqlite
        return self.sqlite.instance
