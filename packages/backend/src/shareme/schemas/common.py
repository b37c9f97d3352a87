"""Shared schema pieces.

Learn: The wire format is camelCase (firstName, memberEmails, ...) while
Python stays snake_case. CamelModel does the translation; populate_by_name
lets tests and internal callers use either spelling.
"""

import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorBody(BaseModel):
    """Body of every error response."""
    status: int
    message: str
    error: str = Field(description="Machine-readable failure kind")


class UserInfo(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    role: str
