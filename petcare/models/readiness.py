from enum import Enum

from pydantic import BaseModel


class ReadinessEnum(str, Enum):
    FAIL = "fail"
    """The dependency cannot serve requests."""
    OK = "ok"
    """The dependency is ready."""


class ReadinessCheckModel(BaseModel):
    id: str
    status: ReadinessEnum


class ReadinessModel(BaseModel):
    """
    Readiness of the service, aggregated from its dependency checks.
    """

    checks: list[ReadinessCheckModel]
    status: ReadinessEnum

    @classmethod
    def from_checks(cls, **checks: ReadinessEnum) -> "ReadinessModel":
        """
        Build the readiness from named checks, failed if one of them failed.
        """
        return cls(
            checks=[
                ReadinessCheckModel(id=check_id, status=status)
                for check_id, status in checks.items()
            ],
            status=(
                ReadinessEnum.OK
                if all(status == ReadinessEnum.OK for status in checks.values())
                else ReadinessEnum.FAIL
            ),
        )
