from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AdoptedPetModel(BaseModel):
    """
    Pet adopted by a user, as supplied by the adoption records.

    Read-only from the reminders point of view, used to validate `pet_id` and to render names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    adopted_date: str | None = None
    adopter_id: str
    age: str | None = None
    breed: str | None = None
    color: str | None = None
    gender: str | None = None
    id: str
    image: str | None = None
    microchip_id: str | None = None
    name: str
    neutered: bool | None = None
    shelter: str | None = None
    vaccinated: bool | None = None
    weight: str | None = None
