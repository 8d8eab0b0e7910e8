"""AI agent connector.

A remote-virtual action type: the agent's configuration lives in the
source manager, which also runs it. The connector templates the prompt
``input`` and string variable values against the action context, forwards
the request, and wraps the returned payload as ``{"content": payload}``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from pydantic import Field, model_validator

from actionruntime.connectors.base import ConnectorOptions, DataConnector, context_of
from actionruntime.connectors.types import ActionType
from actionruntime.core.result import RuntimeResult, ValidateResult
from actionruntime.core.template import assemble_template
from actionruntime.core.timeout import run_with_deadline
from actionruntime.framework.source_manager import SourceManagerClient


class PromptVariable(ConnectorOptions):
    key: str = ""
    value: Any = ""
    default_value: Any = ""


class AIAgentAction(ConnectorOptions):
    """Run request for an AI agent."""

    team_id: str | int | None = Field(default=None, alias="teamID")
    resource_id: str | int | None = Field(default=None, alias="resourceID")
    ai_agent_id: str | int | None = Field(default=None, alias="aiAgentID")
    authorization: str = ""
    run_by_anonymous: bool = False
    agent_type: int = 0
    model: int = 0
    variables: list[PromptVariable] = []
    llm_config: dict[str, Any] = Field(default_factory=dict, alias="modelConfig")
    input: str = ""

    @model_validator(mode="after")
    def _agent_id_required(self) -> AIAgentAction:
        if self.agent_id is None:
            raise ValueError("one of aiAgentID or resourceID is required")
        return self

    @property
    def agent_id(self) -> str | int | None:
        return self.ai_agent_id if self.ai_agent_id is not None else self.resource_id


class AIAgentConnector(DataConnector):
    """Connector that runs AI agents through the source manager."""

    action_type = ActionType.AIAGENT.type_name
    resource_model = None
    action_model = AIAgentAction

    def __init__(self, source_manager: SourceManagerClient | None = None):
        self.source_manager = source_manager or SourceManagerClient()

    def validate_resource_options(self, resource_options: Mapping[str, Any] | None) -> ValidateResult:
        return ValidateResult(valid=True)

    async def run(
        self,
        resource_options: Mapping[str, Any],
        action_options: Mapping[str, Any],
        raw_action_options: Mapping[str, Any],
    ) -> RuntimeResult:
        action = cast(AIAgentAction, self.decode_action(action_options))
        context = context_of(raw_action_options)

        variables = []
        for variable in action.variables:
            value = variable.value
            if isinstance(value, str):
                value = assemble_template(value, context)
            variables.append({"key": variable.key, "value": value, "defaultValue": variable.default_value})

        request = {
            **action_options,
            "input": assemble_template(action.input, context),
            "variables": variables,
        }
        result = await run_with_deadline(
            self.source_manager.run_resource(
                self.action_type,
                action.agent_id,
                request,
                authorization=action.authorization,
            ),
            operation="aiagent.run",
        )
        return RuntimeResult.ok([{"content": result.get("payload")}])


__all__ = [
    "PromptVariable",
    "AIAgentAction",
    "AIAgentConnector",
]
