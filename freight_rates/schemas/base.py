"""
Base schemas with common functionality.
"""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema: snake_case attributes, camelCase on the wire"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump with camelCase keys, as returned to callers"""
        return self.model_dump(by_alias=True)
