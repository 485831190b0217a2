from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError, ValidationException
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from petcare.helpers.config import CONFIG
from petcare.helpers.logging import logger
from petcare.helpers.monitoring import start_as_current_span
from petcare.helpers.reminders import (
    add_reminder,
    complete_reminder,
    delete_reminder,
    get_reminder_status,
    list_adopted_pets,
    list_reminders,
    summarize_reminders,
    update_reminder,
)
from petcare.models.error import (
    ErrorInnerModel,
    ErrorModel,
    ReminderNotFoundError,
    ReminderValidationError,
    StorageUnavailableError,
)
from petcare.models.pet import AdoptedPetModel
from petcare.models.readiness import ReadinessEnum, ReadinessModel
from petcare.models.reminder import (
    ReminderCompletionModel,
    ReminderCompletionResultModel,
    ReminderFilterEnum,
    ReminderGetModel,
    ReminderModel,
    ReminderSummaryModel,
)
from petcare.persistence.reminders import ReminderRepository

# First log
logger.info(
    "petcare-reminders v%s",
    CONFIG.version,
)

# Persistences
_db = CONFIG.database.instance
_repository = ReminderRepository(
    config=CONFIG.reminders,
    store=_db,
)

# FastAPI
api = FastAPI(
    description="Pet care reminders: vaccinations, grooming, medications and checkups for adopted pets, with recurring schedules.",
    title="petcare-reminders",
    version=CONFIG.version,
)


@api.get("/health/liveness")
@start_as_current_span("health_liveness_get")
async def health_liveness_get() -> None:
    """
    Check if the service is running.

    No parameters are expected.

    Returns a 200 OK if the service is technically running.
    """
    return


@api.get(
    "/health/readiness",
    status_code=HTTPStatus.OK,
)
@start_as_current_span("health_readiness_get")
async def health_readiness_get() -> JSONResponse:
    """
    Check if the service is ready to serve requests.

    No parameters are expected. Services tested are: store.

    Returns a 200 OK if the service is ready to serve requests. If the service is not ready, it should return a 503 Service Unavailable.
    """
    readiness = ReadinessModel.from_checks(
        startup=ReadinessEnum.OK,
        store=await _repository.readiness(),
    )
    status_code = (
        HTTPStatus.OK
        if readiness.status == ReadinessEnum.OK
        else HTTPStatus.SERVICE_UNAVAILABLE
    )
    return JSONResponse(
        content=readiness.model_dump(mode="json"),
        status_code=status_code,
    )


@api.get("/users/{user_id}/reminders")
@start_as_current_span("reminder_list_get")
async def reminder_list_get(
    user_id: str,
    filter: ReminderFilterEnum = ReminderFilterEnum.ALL,  # noqa: A002
) -> list[ReminderGetModel]:
    """
    REST API to list the reminders of a user.

    Optional URL parameters:
    - filter: One of `all`, `upcoming`, `overdue`, `completed`, `future`

    Returns a list of reminder objects `ReminderGetModel`, sorted by due date, each with its derived status.
    """
    reminders = await list_reminders(
        repository=_repository,
        status_filter=filter,
        user_id=user_id,
    )
    return [
        ReminderGetModel(
            **reminder.model_dump(),
            status=get_reminder_status(reminder),
        )
        for reminder in reminders
    ]


@api.get("/users/{user_id}/reminders/summary")
@start_as_current_span("reminder_summary_get")
async def reminder_summary_get(user_id: str) -> ReminderSummaryModel:
    """
    REST API to count the reminders of a user per status.
    """
    return await summarize_reminders(
        repository=_repository,
        user_id=user_id,
    )


@api.get("/users/{user_id}/pets")
@start_as_current_span("adopted_pet_list_get")
async def adopted_pet_list_get(user_id: str) -> list[AdoptedPetModel]:
    """
    REST API to list the pets adopted by a user, valid targets for a reminder.
    """
    return await list_adopted_pets(
        repository=_repository,
        user_id=user_id,
    )


@api.post(
    "/reminders",
    status_code=HTTPStatus.CREATED,
)
@start_as_current_span("reminder_post")
async def reminder_post(data: dict[str, Any]) -> ReminderModel:
    """
    REST API to create a reminder.

    Body is a `ReminderCreateModel`, in JSON format. Returns the created reminder.
    """
    return await add_reminder(
        data=data,
        repository=_repository,
    )


@api.patch("/reminders/{reminder_id}")
@start_as_current_span("reminder_patch")
async def reminder_patch(
    reminder_id: str,
    patch: dict[str, Any],
) -> ReminderModel:
    """
    REST API to update some fields of a reminder.

    Body is a `ReminderPatchModel`, in JSON format. Returns the updated reminder.
    """
    reminder = await update_reminder(
        patch=patch,
        reminder_id=reminder_id,
        repository=_repository,
    )
    if not reminder:
        raise ReminderNotFoundError(reminder_id)
    return reminder


@api.put("/reminders/{reminder_id}/completion")
@start_as_current_span("reminder_completion_put")
async def reminder_completion_put(
    reminder_id: str,
    completion: ReminderCompletionModel,
) -> ReminderCompletionResultModel:
    """
    REST API to mark a reminder as completed or incomplete.

    Returns the updated reminder, and the next occurrence if a recurring reminder was completed.
    """
    result = await complete_reminder(
        completed=completion.completed,
        reminder_id=reminder_id,
        repository=_repository,
    )
    if not result:
        raise ReminderNotFoundError(reminder_id)
    return result


@api.delete(
    "/reminders/{reminder_id}",
    status_code=HTTPStatus.NO_CONTENT,
)
@start_as_current_span("reminder_item_delete")
async def reminder_delete(reminder_id: str) -> Response:
    """
    REST API to delete a reminder.
    """
    if not await delete_reminder(
        reminder_id=reminder_id,
        repository=_repository,
    ):
        raise ReminderNotFoundError(reminder_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@api.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request,  # noqa: ARG001
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handle HTTP exceptions and return the error in a standard format.
    """
    return _standard_error(
        message=exc.detail,
        status_code=HTTPStatus(exc.status_code),
    )


@api.exception_handler(ReminderNotFoundError)
async def not_found_exception_handler(
    request: Request,  # noqa: ARG001
    exc: ReminderNotFoundError,
) -> JSONResponse:
    """
    Handle unknown reminders and return the error in a standard format.
    """
    return _standard_error(
        details=[str(arg) for arg in exc.args],
        message="Reminder not found",
        status_code=HTTPStatus.NOT_FOUND,
    )


@api.exception_handler(StorageUnavailableError)
async def storage_exception_handler(
    request: Request,  # noqa: ARG001
    exc: StorageUnavailableError,
) -> JSONResponse:
    """
    Handle store failures, the client is expected to retry later.
    """
    logger.error("Store unavailable: %s", exc)
    return _standard_error(
        message="Storage unavailable, please retry",
        status_code=HTTPStatus.SERVICE_UNAVAILABLE,
    )


@api.exception_handler(RequestValidationError)
@api.exception_handler(ValueError)
async def validation_exception_handler(
    request: Request,  # noqa: ARG001
    exc: ValueError | RequestValidationError,
) -> JSONResponse:
    """
    Handle validation exceptions and return the error in a standard format.
    """
    return _validation_error(exc)


def _validation_error(e: ValidationError | Exception) -> JSONResponse:
    """
    Generate a standard validation error response.
    """
    messages = []
    if isinstance(e, ReminderValidationError):
        messages = [*e.fields, *e.details]  # Field names first, for form highlighting
    elif isinstance(e, ValidationError) or isinstance(e, ValidationException):
        messages = [
            str(x) for x in e.errors()
        ]  # Pydantic returns well formatted errors, use them
    elif isinstance(e, ValueError):
        messages = [str(e)]
    return _standard_error(
        details=messages,
        message="Validation error",
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
    )


def _standard_error(
    message: str,
    status_code: HTTPStatus,
    details: list[str] | None = None,
) -> JSONResponse:
    """
    Generate a standard error response.
    """
    model = ErrorModel(
        error=ErrorInnerModel(
            details=details or [],
            message=message,
        )
    )
    return JSONResponse(
        content=model.model_dump(mode="json"),
        status_code=status_code,
    )
