"""
Business logic services.

Each service handles one stage of the catalog import pipeline.
"""

from services.platform_service import PlatformService, get_platform_service
from services.upload_history_service import UploadHistoryService, get_upload_history_service
from services.product_service import ProductService, get_product_service
from services.export_service import ExportService, get_export_service

__all__ = [
    "PlatformService",
    "get_platform_service",
    "UploadHistoryService",
    "get_upload_history_service",
    "ProductService",
    "get_product_service",
    "ExportService",
    "get_export_service",
]
