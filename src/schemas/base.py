"""Base schema with the backend's camelCase wire format."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base model for every payload exchanged with the backend.

    The backend speaks camelCase JSON (`durationMinutes`, `isVerified`); Python
    code uses snake_case attributes. Both names are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Serialize for a request body or query string (camelCase, no None)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
