"""
Service Layer - Business logic layer between routers and managers.

Services orchestrate operations involving the image store, the transform
engine and the batch processor, and provide a clean interface for routers.
"""

from .image_service import ImageService, count_active_filters, filter_images, generate_file_name

__all__ = ["ImageService", "count_active_filters", "filter_images", "generate_file_name"]
