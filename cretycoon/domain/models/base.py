"""Shared pydantic base for domain models.

Reference data files and saved runs use camelCase keys; Python code uses
snake_case attributes. Both spellings are accepted on input.
"""

from __future__ import annotations

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    def to_json_dict(self) -> dict:
        """Serialize with camelCase keys, JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)
