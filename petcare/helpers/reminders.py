from datetime import date, datetime
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from petcare.helpers.config import CONFIG
from petcare.helpers.logging import logger
from petcare.helpers.monitoring import (
    SpanAttributeEnum,
    counter_add,
    reminder_completed,
    reminder_created,
    reminder_deleted,
    reminder_projected,
    start_as_current_span,
)
from petcare.helpers.schedule import (
    calendar_day,
    derive_status,
    filter_reminders,
    mark_completed,
    project_next,
    summarize,
)
from petcare.models.error import ReminderValidationError
from petcare.models.pet import AdoptedPetModel
from petcare.models.reminder import (
    ReminderCompletionResultModel,
    ReminderCreateModel,
    ReminderFilterEnum,
    ReminderModel,
    ReminderPatchModel,
    ReminderStatusEnum,
    ReminderSummaryModel,
)
from petcare.persistence.reminders import ReminderRepository

T = TypeVar("T", bound=BaseModel)


@start_as_current_span("reminder_list")
async def list_reminders(
    repository: ReminderRepository,
    user_id: str,
    status_filter: ReminderFilterEnum = ReminderFilterEnum.ALL,
    now: date | datetime | None = None,
) -> list[ReminderModel]:
    """
    List the reminders of a user, sorted by due date.

    Returns an empty list if the user has none. Raises `StorageUnavailableError` if the store cannot be read.
    """
    SpanAttributeEnum.USER_ID.attribute(user_id)
    reminders = await repository.reminder_list(user_id)
    return filter_reminders(
        now=now,
        reminders=reminders,
        status_filter=status_filter,
        upcoming_window_days=CONFIG.reminders.upcoming_window_days,
    )


@start_as_current_span("reminder_adopted_pet_list")
async def list_adopted_pets(
    repository: ReminderRepository,
    user_id: str,
) -> list[AdoptedPetModel]:
    SpanAttributeEnum.USER_ID.attribute(user_id)
    return await repository.adopted_pet_list(user_id)


def get_reminder_status(
    reminder: ReminderModel,
    now: date | datetime | None = None,
) -> ReminderStatusEnum:
    """
    Status of a reminder, today by default.
    """
    return derive_status(
        now=now,
        reminder=reminder,
        upcoming_window_days=CONFIG.reminders.upcoming_window_days,
    )


@start_as_current_span("reminder_summary")
async def summarize_reminders(
    repository: ReminderRepository,
    user_id: str,
    now: date | datetime | None = None,
) -> ReminderSummaryModel:
    """
    Count the reminders of a user per status, for dashboards.
    """
    SpanAttributeEnum.USER_ID.attribute(user_id)
    return summarize(
        now=now,
        reminders=await repository.reminder_list(user_id),
        upcoming_window_days=CONFIG.reminders.upcoming_window_days,
    )


@start_as_current_span("reminder_add")
async def add_reminder(
    repository: ReminderRepository,
    data: ReminderCreateModel | dict,
    now: date | datetime | None = None,
) -> ReminderModel:
    """
    Create a reminder.

    Input is validated before any persistence: `petId`, `title` and `dueDate` are required, `dueDate` must be formatted `YYYY-MM-DD`, `recurringInterval` is required for recurring reminders and the pet must be adopted by the user.

    Raises `ReminderValidationError` naming the invalid fields.
    """
    create = _validate(ReminderCreateModel, data)
    SpanAttributeEnum.USER_ID.attribute(create.user_id)
    SpanAttributeEnum.PET_ID.attribute(create.pet_id)

    await _ensure_adopted(
        pet_id=create.pet_id,
        repository=repository,
        user_id=create.user_id,
    )

    reminder = ReminderModel.model_validate(
        {
            **create.model_dump(),
            "created_date": calendar_day(now),
        }
    )
    SpanAttributeEnum.REMINDER_ID.attribute(reminder.id)
    SpanAttributeEnum.REMINDER_TYPE.attribute(reminder.type.value)

    await repository.reminder_put(reminder)
    counter_add(reminder_created, 1)
    logger.info("Reminder created, due %s", reminder.due_date)
    return reminder


@start_as_current_span("reminder_update")
async def update_reminder(
    repository: ReminderRepository,
    reminder_id: str,
    patch: ReminderPatchModel | dict,
    now: date | datetime | None = None,
) -> ReminderModel | None:
    """
    Apply a partial update to a reminder.

    Only the fields present in the patch are changed. If the patch sets `completed`, the completion rules apply, see `complete_reminder`.

    Returns `None` if the reminder does not exist. Raises `ReminderValidationError` if the patch is invalid.
    """
    patch_model = _validate(ReminderPatchModel, patch)
    SpanAttributeEnum.REMINDER_ID.attribute(reminder_id)

    reminder = await repository.reminder_get(reminder_id)
    if not reminder:
        logger.info("Reminder not found, nothing to update")
        return None

    changes = patch_model.model_dump(exclude_unset=True)
    completed = changes.pop("completed", None)

    if changes.get("pet_id", reminder.pet_id) != reminder.pet_id:
        await _ensure_adopted(
            pet_id=changes["pet_id"],
            repository=repository,
            user_id=reminder.user_id,
        )

    updated = _validate(
        ReminderModel,
        {
            **reminder.model_dump(),
            **changes,
        },
    )
    updated = _normalize_recurrence(updated)

    next_reminder = None
    if completed is not None:
        updated, next_reminder = _complete(
            completed=completed,
            now=now,
            previous=reminder,
            updated=updated,
        )

    await _persist(
        next_reminder=next_reminder,
        repository=repository,
        updated=updated,
    )
    logger.info("Reminder updated")
    return updated


@start_as_current_span("reminder_complete")
async def complete_reminder(
    repository: ReminderRepository,
    reminder_id: str,
    completed: bool = True,
    now: date | datetime | None = None,
) -> ReminderCompletionResultModel | None:
    """
    Mark a reminder as completed, or back to incomplete.

    When a recurring reminder goes from incomplete to completed, its next occurrence is created in the same write. The completed reminder is kept. Marking it incomplete again does not remove nor duplicate the next occurrence.

    Returns `None` if the reminder does not exist.
    """
    SpanAttributeEnum.REMINDER_ID.attribute(reminder_id)

    reminder = await repository.reminder_get(reminder_id)
    if not reminder:
        logger.info("Reminder not found, nothing to complete")
        return None

    updated, next_reminder = _complete(
        completed=completed,
        now=now,
        previous=reminder,
        updated=reminder,
    )
    await _persist(
        next_reminder=next_reminder,
        repository=repository,
        updated=updated,
    )
    return ReminderCompletionResultModel(
        next_reminder=next_reminder,
        reminder=updated,
    )


@start_as_current_span("reminder_delete")
async def delete_reminder(
    repository: ReminderRepository,
    reminder_id: str,
) -> bool:
    """
    Delete a reminder.

    Returns `False` if the reminder does not exist, the store is then left untouched.
    """
    SpanAttributeEnum.REMINDER_ID.attribute(reminder_id)
    deleted = await repository.reminder_delete(reminder_id)
    if not deleted:
        logger.info("Reminder not found, nothing to delete")
        return False
    counter_add(reminder_deleted, 1)
    logger.info("Reminder deleted")
    return True


def _complete(
    completed: bool,
    now: date | datetime | None,
    previous: ReminderModel,
    updated: ReminderModel,
) -> tuple[ReminderModel, ReminderModel | None]:
    """
    Toggle completion and project the next occurrence on the incomplete to completed transition.
    """
    updated = mark_completed(
        completed=completed,
        now=now,
        reminder=updated,
    )
    if previous.completed or not completed:
        return updated, None

    counter_add(reminder_completed, 1)
    if not updated.recurring:
        return updated, None

    next_reminder = project_next(updated, now)
    counter_add(reminder_projected, 1)
    logger.info(
        "Next occurrence %s projected, due %s",
        next_reminder.id,
        next_reminder.due_date,
    )
    return updated, next_reminder


async def _persist(
    repository: ReminderRepository,
    updated: ReminderModel,
    next_reminder: ReminderModel | None,
) -> None:
    if next_reminder:
        await repository.reminder_put(updated, next_reminder)
    else:
        await repository.reminder_put(updated)


async def _ensure_adopted(
    repository: ReminderRepository,
    pet_id: str,
    user_id: str,
) -> None:
    pets = await repository.adopted_pet_list(user_id)
    if pet_id not in {pet.id for pet in pets}:
        raise ReminderValidationError(
            details=[f'Pet "{pet_id}" is not adopted by user "{user_id}"'],
            fields=["petId"],
        )


def _normalize_recurrence(reminder: ReminderModel) -> ReminderModel:
    """
    Drop the interval of non-recurring reminders, require it for recurring ones.
    """
    if not reminder.recurring:
        if reminder.recurring_interval:
            return reminder.model_copy(update={"recurring_interval": None})
        return reminder
    if not reminder.recurring_interval:
        raise ReminderValidationError(
            details=["Interval required for a recurring reminder"],
            fields=["recurringInterval"],
        )
    return reminder


def _validate(model: type[T], data: T | dict) -> T:
    """
    Validate input with a Pydantic model, raising `ReminderValidationError` on failure.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)  # pyright: ignore
    except ValidationError as e:
        fields: list[str] = []
        for error in e.errors():
            field = _field_alias(model, error["loc"][0]) if error["loc"] else "input"
            if field not in fields:
                fields.append(field)
        raise ReminderValidationError(
            details=[str(error) for error in e.errors()],
            fields=fields,
        ) from e


def _field_alias(model: type[BaseModel], loc: int | str) -> str:
    """
    Name a field as in the stored records, camelCase.

    Pydantic reports the attribute name for defaulted values and for snake_case input, unknown keys are reported as sent.
    """
    name = str(loc)
    field = model.model_fields.get(name, None)
    if field and field.alias:
        return field.alias
    return name
