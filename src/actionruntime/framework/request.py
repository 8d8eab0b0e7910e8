"""Invocation request and resource lookup contract."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ActionRequest(BaseModel):
    """One action invocation as received from the builder.

    Attributes:
        action_type: Action type name (``"postgresql"``, ``"restapi"``, ...) or numeric id
        display_name: Name of the action in the app, for logs
        resource_id: Saved resource to run against (absent for virtual types)
        content: Action options, still holding ``{{ key }}`` sites
        context: Values bound to the template keys
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    action_type: str | int
    display_name: str = ""
    resource_id: str | int | None = Field(default=None, alias="resourceID")
    content: dict[str, Any] = {}
    context: dict[str, Any] = {}

    def raw_action_options(self) -> dict[str, Any]:
        """Unmodified content plus the ``context`` sub-mapping."""
        return {**self.content, "context": self.context}


@runtime_checkable
class ResourceLookup(Protocol):
    """Source of saved resource options (persistence lives outside the runtime)."""

    async def get_resource_options(self, resource_id: str | int) -> dict[str, Any]: ...


__all__ = ["ActionRequest", "ResourceLookup"]
