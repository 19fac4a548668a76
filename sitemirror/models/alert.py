"""
Alert Payload — Derived view of a run outcome for the alerting service.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class AlertPayload(BaseModel):
    """Alert fields; the wire format belongs to the dispatcher."""

    model_config = ConfigDict(frozen=True)

    message: str
    description: str
    responders: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    priority: str = "P3"
    alias: str
    source: str = "sitemirror"
    entity: str = ""

    def to_opsgenie(self) -> Dict[str, Any]:
        """Opsgenie v2 create-alert body."""
        return {
            "message": self.message[:130],
            "alias": self.alias,
            "description": self.description[:15000],
            "responders": [{"name": team, "type": "team"} for team in self.responders],
            "tags": self.tags,
            "entity": self.entity,
            "source": self.source,
            "priority": self.priority,
        }
