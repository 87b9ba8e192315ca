"""
API Schemas Package

This package contains Pydantic models for API requests and responses.
"""

from src.schemas.api.detection import ApiResponse, DetectionSettingsUpdate, DraftRequest

__all__ = ["ApiResponse", "DetectionSettingsUpdate", "DraftRequest"]
