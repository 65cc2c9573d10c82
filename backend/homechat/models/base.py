"""
Base model for API payloads.

The web client speaks camelCase JSON (``profileName``, ``sessionId``) while
Python code uses snake_case attributes. Both spellings are accepted on input
and responses are serialized with the camelCase aliases.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """BaseModel with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
