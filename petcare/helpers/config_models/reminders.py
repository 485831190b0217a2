from pydantic import BaseModel, Field

from petcare.models.pet import AdoptedPetModel


class RemindersModel(BaseModel):
    adopted_pets_key: str = Field(default="petpal_adopted_pets", min_length=1)
    collection_key: str = Field(default="petpal_reminders", min_length=1)
    default_adopted_pets: list[AdoptedPetModel] = []  # Written once, when the adoption records do not exist yet
    upcoming_window_days: int = Field(default=7, ge=0)
