from datetime import date
from enum import Enum
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

DUE_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class ReminderTypeEnum(str, Enum):
    CHECKUP = "checkup"
    """Veterinary health examination."""
    GROOMING = "grooming"
    """Grooming session, nail trimming included."""
    MEDICATION = "medication"
    """Medication or parasite prevention."""
    VACCINE = "vaccine"
    """Vaccination or booster."""


class RecurringIntervalEnum(str, Enum):
    MONTHLY = "monthly"
    """Same day of the next month, clamped to the month end."""
    WEEKLY = "weekly"
    """Seven calendar days later."""
    YEARLY = "yearly"
    """Same month and day of the next year, Feb 29 becomes Feb 28."""


class ReminderStatusEnum(str, Enum):
    COMPLETED = "completed"
    """Marked as done, whatever the due date."""
    FUTURE = "future"
    """Due after the upcoming window, more than a week by default."""
    OVERDUE = "overdue"
    """Due date has passed and not completed."""
    UPCOMING = "upcoming"
    """Due today or within the upcoming window, the next week by default."""


class ReminderFilterEnum(str, Enum):
    ALL = "all"
    COMPLETED = "completed"
    FUTURE = "future"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"


def _today() -> date:
    return date.today()


class ReminderModel(BaseModel):
    """
    Care obligation for one pet, owned by one adopter.

    Serialized with camelCase keys, as stored in the document collection.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    # Immutable fields
    created_date: date = Field(default_factory=_today, frozen=True)
    id: str = Field(default_factory=lambda: str(uuid4()), frozen=True)
    user_id: str = Field(frozen=True)
    # Editable fields
    completed: bool = False
    completed_date: date | None = None
    description: str | None = None
    due_date: date
    pet_id: str
    recurring: bool = False
    recurring_interval: RecurringIntervalEnum | None = None
    title: str
    type: ReminderTypeEnum

    def dump(self) -> dict:
        """
        Serialize the reminder as a JSON-compatible record.
        """
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            mode="json",
        )


class _ReminderInputModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    @field_validator("due_date", check_fields=False)
    @classmethod
    def _validate_due_date(cls, due_date: str | None) -> str | None:
        # Pattern is checked first, this rejects dates like 2024-02-30
        if due_date is None:
            return due_date
        try:
            date.fromisoformat(due_date)
        except ValueError:
            raise ValueError(f'"{due_date}" is not a valid calendar date')
        return due_date


class ReminderCreateModel(_ReminderInputModel):
    """
    Fields accepted when creating a reminder.

    `due_date` is kept as a string so the exact `YYYY-MM-DD` pattern is enforced.
    """

    description: str | None = None
    due_date: str = Field(min_length=1, pattern=DUE_DATE_PATTERN)
    pet_id: str = Field(min_length=1)
    recurring: bool = False
    recurring_interval: RecurringIntervalEnum | None = Field(
        default=None,
        validate_default=True,
    )
    title: str = Field(min_length=1)
    type: ReminderTypeEnum
    user_id: str = Field(min_length=1)

    @field_validator("recurring_interval")
    @classmethod
    def _validate_recurring_interval(
        cls,
        recurring_interval: RecurringIntervalEnum | None,
        info: ValidationInfo,
    ) -> RecurringIntervalEnum | None:
        if not info.data.get("recurring", False):
            return None
        if not recurring_interval:
            raise ValueError("Interval required for a recurring reminder")
        return recurring_interval


class ReminderPatchModel(_ReminderInputModel):
    """
    Partial update, only set fields are applied.
    """

    completed: bool | None = None
    description: str | None = None
    due_date: str | None = Field(default=None, pattern=DUE_DATE_PATTERN)
    pet_id: str | None = Field(default=None, min_length=1)
    recurring: bool | None = None
    recurring_interval: RecurringIntervalEnum | None = None
    title: str | None = Field(default=None, min_length=1)
    type: ReminderTypeEnum | None = None


class ReminderCompletionModel(BaseModel):
    completed: bool = True


class ReminderCompletionResultModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    next_reminder: ReminderModel | None = None
    reminder: ReminderModel


class ReminderGetModel(ReminderModel):
    status: ReminderStatusEnum


class ReminderSummaryModel(BaseModel):
    completed: int = 0
    future: int = 0
    overdue: int = 0
    total: int = 0
    upcoming: int = 0
