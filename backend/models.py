"""
Pydantic request models shared across route modules.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class DependencyRequest(BaseModel):
    name: str = Field(min_length=1)
    version: Optional[str] = None
    url: Optional[str] = None


class AddPluginRequest(BaseModel):
    name: str
    version: str
    enabled: Optional[bool] = None
    environment: Optional[dict[str, Any]] = None
    settings: Optional[dict[str, Any]] = None
    dependencies: Optional[list[DependencyRequest]] = None


class UpdatePluginRequest(BaseModel):
    """Partial update. Only the fields the client actually sent are applied,
    so ``{"environment": null}`` clears and an omitted key leaves it alone."""

    environment: Optional[dict[str, Any]] = None
    settings: Optional[dict[str, Any]] = None
    enabled: Optional[bool] = None
    dependencies: Optional[list[DependencyRequest]] = None

    def updates(self) -> dict:
        return self.model_dump(exclude_unset=True)


class ConfigDocument(BaseModel):
    """Whole configuration document as submitted by the dashboard."""

    plugins: Optional[Any] = None
    metadata: Optional[dict[str, Any]] = None
