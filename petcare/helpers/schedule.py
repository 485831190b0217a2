from calendar import monthrange
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from uuid import uuid4

from petcare.models.error import ReminderValidationError
from petcare.models.reminder import (
    RecurringIntervalEnum,
    ReminderFilterEnum,
    ReminderModel,
    ReminderStatusEnum,
    ReminderSummaryModel,
)

UPCOMING_WINDOW_DAYS = 7


def calendar_day(now: date | datetime | None) -> date:
    """
    Reduce "now" to a calendar day, time-of-day is irrelevant.
    """
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now


def derive_status(
    reminder: ReminderModel,
    now: date | datetime | None = None,
    upcoming_window_days: int = UPCOMING_WINDOW_DAYS,
) -> ReminderStatusEnum:
    """
    Derive the lifecycle status of a reminder.

    Rules, in order:
    1. Completed reminders are `completed`, whatever the due date
    2. Due date before today is `overdue`
    3. Due today or within the window (bounds included) is `upcoming`
    4. Anything later is `future`

    Pure function, the reminder is not modified.
    """
    if reminder.completed:
        return ReminderStatusEnum.COMPLETED

    diff_days = (reminder.due_date - calendar_day(now)).days
    if diff_days < 0:
        return ReminderStatusEnum.OVERDUE
    if diff_days <= upcoming_window_days:
        return ReminderStatusEnum.UPCOMING
    return ReminderStatusEnum.FUTURE


def filter_reminders(
    reminders: Iterable[ReminderModel],
    status_filter: ReminderFilterEnum,
    now: date | datetime | None = None,
    upcoming_window_days: int = UPCOMING_WINDOW_DAYS,
) -> list[ReminderModel]:
    """
    Keep the reminders matching a filter tab, order is preserved.

    The `completed` tab reads the flag directly, others compare the derived status.
    """
    if status_filter == ReminderFilterEnum.ALL:
        return list(reminders)
    if status_filter == ReminderFilterEnum.COMPLETED:
        return [reminder for reminder in reminders if reminder.completed]
    today = calendar_day(now)
    return [
        reminder
        for reminder in reminders
        if derive_status(reminder, today, upcoming_window_days).value
        == status_filter.value
    ]


def summarize(
    reminders: Iterable[ReminderModel],
    now: date | datetime | None = None,
    upcoming_window_days: int = UPCOMING_WINDOW_DAYS,
) -> ReminderSummaryModel:
    """
    Count reminders per derived status.
    """
    today = calendar_day(now)
    summary = ReminderSummaryModel()
    for reminder in reminders:
        status = derive_status(reminder, today, upcoming_window_days)
        setattr(summary, status.value, getattr(summary, status.value) + 1)
        summary.total += 1
    return summary


def add_months(source: date, months: int) -> date:
    """
    Move a date by a number of months, clamping the day to the target month length.

    Example: Jan 31 + 1 month is Feb 29 in a leap year, Feb 28 otherwise.
    """
    month = source.month - 1 + months
    year = source.year + month // 12
    month = month % 12 + 1
    day = min(source.day, monthrange(year, month)[1])
    return date(year, month, day)


def add_years(source: date, years: int) -> date:
    """
    Move a date by a number of years, Feb 29 becomes Feb 28 in non-leap years.
    """
    try:
        return source.replace(year=source.year + years)
    except ValueError:
        return source.replace(year=source.year + years, day=28)


def next_due_date(
    due_date: date,
    interval: RecurringIntervalEnum,
) -> date:
    """
    Add one interval to the due date.
    """
    if interval == RecurringIntervalEnum.WEEKLY:
        return due_date + timedelta(days=7)
    if interval == RecurringIntervalEnum.MONTHLY:
        return add_months(due_date, 1)
    return add_years(due_date, 1)


def project_next(
    reminder: ReminderModel,
    now: date | datetime | None = None,
) -> ReminderModel:
    """
    Build the next occurrence of a recurring reminder.

    The next due date is computed from the original due date, not from today. The source reminder is left untouched, persisting the projection is up to the caller.

    Raises `ReminderValidationError` if the reminder is recurring without an interval.
    """
    if not reminder.recurring_interval:
        raise ReminderValidationError(
            details=[f"Reminder {reminder.id} is recurring without an interval"],
            fields=["recurringInterval"],
        )

    return reminder.model_copy(
        update={
            "completed": False,
            "completed_date": None,
            "created_date": calendar_day(now),
            "due_date": next_due_date(reminder.due_date, reminder.recurring_interval),
            "id": str(uuid4()),
        }
    )


def mark_completed(
    reminder: ReminderModel,
    completed: bool,
    now: date | datetime | None = None,
) -> ReminderModel:
    """
    Set the completion flag, keeping `completed_date` consistent.

    The completion date is set on the first completion and removed when marked incomplete. Returns a copy, recurrence is not handled here.
    """
    if completed:
        return reminder.model_copy(
            update={
                "completed": True,
                "completed_date": reminder.completed_date or calendar_day(now),
            }
        )
    return reminder.model_copy(
        update={
            "completed": False,
            "completed_date": None,
        }
    )
