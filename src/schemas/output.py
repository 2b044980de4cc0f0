"""
Output encoding settings.
"""

from typing import Optional

from pydantic import Field, field_validator, model_validator

from common.constants import OutputConstants
from common.enums import OutputFormat
from schemas.base import BaseParams


def clamp_quality(output_format: OutputFormat, quality: float) -> int:
    """
    Clamp a quality value into the range its format understands.

    PNG takes an integer compression level 0-9, JPG and WebP a percentage 1-100.
    """
    quality = int(round(quality))
    if output_format == OutputFormat.PNG:
        low, high = OutputConstants.PNG_QUALITY_MIN, OutputConstants.PNG_QUALITY_MAX
    else:
        low, high = OutputConstants.LOSSY_QUALITY_MIN, OutputConstants.LOSSY_QUALITY_MAX
    return max(low, min(high, quality))


class OutputSettings(BaseParams):
    """Final encode parameters plus export naming options."""

    format: OutputFormat = Field(default=OutputFormat(OutputConstants.DEFAULT_FORMAT))
    quality: int = Field(
        default=OutputConstants.DEFAULT_QUALITY,
        description="PNG: compression level 0-9, JPG/WebP: quality 1-100",
    )
    maintain_original_name: bool = Field(default=False, alias="maintainOriginalName")
    filename_prefix: Optional[str] = Field(default=None, alias="filenamePrefix")
    filename_suffix: Optional[str] = Field(default=None, alias="filenameSuffix")

    @field_validator("quality", mode="before")
    @classmethod
    def round_quality(cls, v):
        """Accept fractional input (e.g. slider values) by rounding."""
        if isinstance(v, float):
            return int(round(v))
        return v

    @model_validator(mode="after")
    def clamp_quality_to_format(self):
        """Clamp quality into the range of the selected format."""
        self.quality = clamp_quality(self.format, self.quality)
        return self

    @property
    def mime_type(self) -> str:
        return OutputConstants.MIME_TYPES[self.format.value]

    @property
    def extension(self) -> str:
        return OutputConstants.FILE_EXTENSIONS[self.format.value]
