"""
Types package - fundamental types without external dependencies.

This package contains basic types that are used throughout the system:
- Enums (OutputFormat, ProcessStatus, etc.)
- Constants (EngineConstants, BatchConstants, etc.)

IMPORTANT: This package must NOT import from any other project packages
(schemas, core, services, api) to avoid circular dependencies.
"""

# Export all constants
from common.constants import (
    APIConstants,
    BatchConstants,
    EngineConstants,
    GeometryConstants,
    OutputConstants,
    StorageConstants,
    SystemConstants,
)

# Export all enums
from common.enums import OutputFormat, ProcessStatus, ProcessType, ResizeMode

__all__ = [
    # Enums
    "OutputFormat",
    "ProcessStatus",
    "ProcessType",
    "ResizeMode",
    # Constants
    "APIConstants",
    "BatchConstants",
    "EngineConstants",
    "GeometryConstants",
    "OutputConstants",
    "StorageConstants",
    "SystemConstants",
]
