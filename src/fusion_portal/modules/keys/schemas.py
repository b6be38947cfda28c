"""
Fusion Portal API Keys - Schemas.
"""

from pydantic import BaseModel, Field

AVAILABLE_SCOPES = ("verify", "audit", "extract_metadata", "webhook_manage")


class CreateApiKeyRequest(BaseModel):
    key_name: str = ""
    scopes: list[str] = Field(default_factory=lambda: ["verify"])


class ApiKeyActionResponse(BaseModel):
    message: str
