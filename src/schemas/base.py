"""
Base schemas for transform parameters.

Provides the base class shared by every plain-data settings model
consumed by the transform engine and the batch orchestrator.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class BaseParams(BaseModel):
    """
    Base class for all parameter models.

    Provides common functionality including:
    - to_dict() method with enum conversion
    - Consistent configuration (unknown fields rejected, camelCase aliases accepted)
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, use_enum_values=False)

    def to_dict(self) -> Dict[str, Any]:
        """
        Export parameters to a plain dictionary.

        Enum members are converted to their string values.

        Returns:
            Dictionary with enum values converted to strings

        Example:
            >>> settings = OutputSettings(format=OutputFormat.PNG, quality=6)
            >>> settings.to_dict()
            {"format": "png", "quality": 6, ...}
        """
        data = self.model_dump(exclude_none=True)

        for key, value in data.items():
            if hasattr(value, "value"):
                data[key] = value.value

        return data
