from pydantic import BaseModel


class ErrorInnerModel(BaseModel):
    message: str
    details: list[str]


class ErrorModel(BaseModel):
    error: ErrorInnerModel


class StorageUnavailableError(Exception):
    """
    The key-value store cannot be read or written.

    A read either returns the full collection or raises this error.
    """


class ReminderNotFoundError(Exception):
    pass


class ReminderValidationError(ValueError):
    """
    Input rejected before any persistence attempt.

    `fields` lists the offending fields, camelCase as in the stored records.
    """

    details: list[str]
    fields: list[str]

    def __init__(
        self,
        fields: list[str],
        details: list[str] | None = None,
    ):
        self.details = details or []
        self.fields = fields
        super().__init__(f"Invalid reminder field(s): {', '.join(fields)}")

    @property
    def field(self) -> str:
        """
        First offending field.
        """
        return self.fields[0]
