"""
System-related API models.

This module contains models for system status and monitoring:
- System status information
"""

from typing import Any, Dict

from pydantic import BaseModel

from .task import BatchSummary


class SystemStatus(BaseModel):
    """System status information"""

    status: str
    uptime: float
    storage: Dict[str, Any]
    batch: BatchSummary
