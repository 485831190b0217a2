from collections.abc import Callable
from datetime import date, datetime, timedelta

import pytest
from pytest_assume.plugin import assume

from petcare.helpers.schedule import (
    add_months,
    add_years,
    derive_status,
    filter_reminders,
    mark_completed,
    project_next,
    summarize,
)
from petcare.models.error import ReminderValidationError
from petcare.models.reminder import (
    RecurringIntervalEnum,
    ReminderFilterEnum,
    ReminderModel,
    ReminderStatusEnum,
)

_NOW = date(2024, 3, 1)


@pytest.mark.parametrize(
    "offset_days, expected",
    [
        pytest.param(-30, ReminderStatusEnum.OVERDUE, id="month_ago"),
        pytest.param(-1, ReminderStatusEnum.OVERDUE, id="yesterday"),
        pytest.param(0, ReminderStatusEnum.UPCOMING, id="today"),
        pytest.param(1, ReminderStatusEnum.UPCOMING, id="tomorrow"),
        pytest.param(7, ReminderStatusEnum.UPCOMING, id="one_week"),
        pytest.param(8, ReminderStatusEnum.FUTURE, id="eight_days"),
        pytest.param(365, ReminderStatusEnum.FUTURE, id="next_year"),
    ],
)
def test_status_boundaries(
    make_reminder: Callable[..., ReminderModel],
    offset_days: int,
    expected: ReminderStatusEnum,
) -> None:
    """
    Upcoming window includes today and the seventh day.
    """
    reminder = make_reminder(due_date=_NOW + timedelta(days=offset_days))
    assert derive_status(reminder, _NOW) == expected


def test_status_ignores_time_of_day(
    make_reminder: Callable[..., ReminderModel],
) -> None:
    reminder = make_reminder(due_date=_NOW)
    late_evening = datetime(2024, 3, 1, 23, 59, 59)
    early_morning = datetime(2024, 3, 1, 0, 0, 1)

    assume(derive_status(reminder, late_evening) == ReminderStatusEnum.UPCOMING)
    assume(derive_status(reminder, early_morning) == ReminderStatusEnum.UPCOMING)
    assume(
        derive_status(reminder, datetime(2024, 3, 2, 0, 0, 1))
        == ReminderStatusEnum.OVERDUE
    )


@pytest.mark.parametrize(
    "offset_days",
    [-400, -1, 0, 7, 8, 400],
)
def test_completed_dominates(
    make_reminder: Callable[..., ReminderModel],
    offset_days: int,
) -> None:
    reminder = make_reminder(
        completed=True,
        due_date=_NOW + timedelta(days=offset_days),
    )
    assert derive_status(reminder, _NOW) == ReminderStatusEnum.COMPLETED


def test_status_idempotent(make_reminder: Callable[..., ReminderModel]) -> None:
    reminder = make_reminder(due_date=_NOW - timedelta(days=3))
    before = reminder.model_dump()

    first = derive_status(reminder, _NOW)
    second = derive_status(reminder, _NOW)

    assume(first == second == ReminderStatusEnum.OVERDUE)
    # No hidden mutation
    assume(reminder.model_dump() == before)


def test_custom_upcoming_window(make_reminder: Callable[..., ReminderModel]) -> None:
    reminder = make_reminder(due_date=_NOW + timedelta(days=10))
    assume(derive_status(reminder, _NOW) == ReminderStatusEnum.FUTURE)
    assume(
        derive_status(reminder, _NOW, upcoming_window_days=14)
        == ReminderStatusEnum.UPCOMING
    )
    # Bounds stay inclusive
    last_day = make_reminder(due_date=_NOW + timedelta(days=14))
    day_after = make_reminder(due_date=_NOW + timedelta(days=15))
    assume(
        derive_status(last_day, _NOW, upcoming_window_days=14)
        == ReminderStatusEnum.UPCOMING
    )
    assume(
        derive_status(day_after, _NOW, upcoming_window_days=14)
        == ReminderStatusEnum.FUTURE
    )


def test_filter_matches_status(make_reminder: Callable[..., ReminderModel]) -> None:
    """
    Every filter tab is exactly the set of reminders with the matching status.
    """
    reminders = [
        make_reminder(due_date=_NOW + timedelta(days=offset), completed=completed)
        for offset in (-10, -1, 0, 3, 7, 8, 30)
        for completed in (False, True)
    ]

    for status_filter in (
        ReminderFilterEnum.UPCOMING,
        ReminderFilterEnum.OVERDUE,
        ReminderFilterEnum.FUTURE,
        ReminderFilterEnum.COMPLETED,
    ):
        filtered = filter_reminders(reminders, status_filter, _NOW)
        expected = [
            reminder
            for reminder in reminders
            if derive_status(reminder, _NOW).value == status_filter.value
        ]
        assume(filtered == expected, status_filter.value)

    # All tab keeps everything, in order
    assume(filter_reminders(reminders, ReminderFilterEnum.ALL, _NOW) == reminders)


def test_summarize(make_reminder: Callable[..., ReminderModel]) -> None:
    reminders = [
        make_reminder(due_date=_NOW - timedelta(days=2)),
        make_reminder(due_date=_NOW),
        make_reminder(due_date=_NOW + timedelta(days=5)),
        make_reminder(due_date=_NOW + timedelta(days=60)),
        make_reminder(due_date=_NOW - timedelta(days=2), completed=True),
    ]
    summary = summarize(reminders, _NOW)

    assume(summary.total == 5)
    assume(summary.overdue == 1)
    assume(summary.upcoming == 2)
    assume(summary.future == 1)
    assume(summary.completed == 1)


@pytest.mark.parametrize(
    "source, expected",
    [
        pytest.param(date(2024, 1, 31), date(2024, 2, 29), id="leap_february"),
        pytest.param(date(2023, 1, 31), date(2023, 2, 28), id="february"),
        pytest.param(date(2024, 3, 31), date(2024, 4, 30), id="april"),
        pytest.param(date(2024, 12, 15), date(2025, 1, 15), id="new_year"),
        pytest.param(date(2024, 5, 10), date(2024, 6, 10), id="same_day"),
    ],
)
def test_add_months(source: date, expected: date) -> None:
    assert add_months(source, 1) == expected


@pytest.mark.parametrize(
    "source, expected",
    [
        pytest.param(date(2024, 2, 29), date(2025, 2, 28), id="leap_day"),
        pytest.param(date(2024, 12, 30), date(2025, 12, 30), id="same_day"),
    ],
)
def test_add_years(source: date, expected: date) -> None:
    assert add_years(source, 1) == expected


@pytest.mark.parametrize(
    "interval, due_date, expected",
    [
        pytest.param(
            RecurringIntervalEnum.WEEKLY,
            date(2024, 3, 1),
            date(2024, 3, 8),
            id="weekly",
        ),
        pytest.param(
            RecurringIntervalEnum.MONTHLY,
            date(2024, 1, 31),
            date(2024, 2, 29),
            id="monthly_leap",
        ),
        pytest.param(
            RecurringIntervalEnum.MONTHLY,
            date(2023, 1, 31),
            date(2023, 2, 28),
            id="monthly",
        ),
        pytest.param(
            RecurringIntervalEnum.YEARLY,
            date(2024, 2, 29),
            date(2025, 2, 28),
            id="yearly_leap_day",
        ),
    ],
)
def test_project_next(
    make_reminder: Callable[..., ReminderModel],
    interval: RecurringIntervalEnum,
    due_date: date,
    expected: date,
) -> None:
    source = make_reminder(
        completed=True,
        completed_date=date(2024, 6, 1),
        due_date=due_date,
        recurring=True,
        recurring_interval=interval,
    )
    before = source.model_dump()

    projected = project_next(source, _NOW)

    # Next due date is computed from the original due date
    assume(projected.due_date == expected)
    # Fresh pending instance
    assume(projected.id != source.id)
    assume(not projected.completed)
    assume(projected.completed_date is None)
    assume(projected.created_date == _NOW)
    # Same obligation
    for field in (
        "description",
        "pet_id",
        "recurring",
        "recurring_interval",
        "title",
        "type",
        "user_id",
    ):
        assume(getattr(projected, field) == getattr(source, field), field)
    # Source is untouched
    assume(source.model_dump() == before)


def test_project_next_without_interval(
    make_reminder: Callable[..., ReminderModel],
) -> None:
    source = make_reminder(recurring=True, recurring_interval=None)
    with pytest.raises(ReminderValidationError) as e:
        project_next(source)
    assert e.value.field == "recurringInterval"


def test_mark_completed(make_reminder: Callable[..., ReminderModel]) -> None:
    reminder = make_reminder()

    completed = mark_completed(reminder, True, _NOW)
    assume(completed.completed)
    assume(completed.completed_date == _NOW)
    # First completion date is kept
    assume(mark_completed(completed, True, date(2024, 4, 1)).completed_date == _NOW)

    reopened = mark_completed(completed, False, _NOW)
    assume(not reopened.completed)
    assume(reopened.completed_date is None)
    # Copies only
    assume(not reminder.completed)
