"""Base model class for all tablesync models with serialization support."""

from typing import Any, Dict
from pydantic import BaseModel, ConfigDict


class SyncBaseModel(BaseModel):
    """Base model for all tablesync models with built-in serialization.

    Provides ``to_dict()`` and a consistent pydantic configuration.
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=False,
        validate_assignment=True
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary for serialization.

        Enums are flattened to their values, nested models to dictionaries.

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        data = self.model_dump(by_alias=False, exclude_none=True)

        def convert_nested(obj):
            if isinstance(obj, SyncBaseModel):
                return obj.to_dict()
            elif isinstance(obj, dict):
                return {k: convert_nested(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [convert_nested(item) for item in obj]
            elif hasattr(obj, 'value'):  # Handle enums
                return obj.value
            return obj

        return convert_nested(data)


class FrozenModel(SyncBaseModel):
    """Immutable variant used for schema descriptors."""
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=False,
        frozen=True
    )
