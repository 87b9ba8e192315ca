from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    """Standard API response wrapper."""

    data: Any
    message: Optional[str] = None


class DetectionSettingsUpdate(BaseModel):
    """Partial update of user-controlled detection toggles."""

    notification_listener_enabled: Optional[bool] = None
    sms_reader_enabled: Optional[bool] = None
    auto_show_prompt: Optional[bool] = None


class DraftRequest(BaseModel):
    accounts: List[Dict[str, Any]] = Field(default_factory=list, description="Finance accounts as {id, name}")
