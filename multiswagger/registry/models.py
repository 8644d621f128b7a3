"""
Registry Models

Data models for the spec registry. Field names on the wire are camelCase, as
they appear in the ConfigMap entries and in the /swagger-specs listing.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class APIRecord(BaseModel):
    """Metadata for one documented service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    title: str = ""
    version: str = ""
    description: str = ""
    resource_type: str = Field(default="", alias="resourceType")
    resource_name: str = Field(default="", alias="resourceName")
    namespace: str = ""
    last_updated: str = Field(default="", alias="lastUpdated")
    allowed_methods: Optional[List[str]] = Field(default=None, alias="allowedMethods")
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True)
        if not data.get("error"):
            data.pop("error", None)
        return data
