"""GraphQL connector.

Posts ``{"query", "variables"}`` to the resource's endpoint. Resource URL
params, headers and cookies are templated against the action context.

A variable whose whole value is a single ``{{ key }}`` site is replaced by
the bound context value itself (numbers, lists and objects keep their JSON
type); a missing key yields ``null``. Other string values are templated
into text.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, cast

import httpx
from pydantic import Field, model_validator

from actionruntime.connectors.base import ConnectorOptions, DataConnector, context_of
from actionruntime.connectors.restapi import KeyValue, templated_pairs
from actionruntime.connectors.types import ActionType
from actionruntime.core.errors import ActionRuntimeError, DriverError
from actionruntime.core.result import ConnectionResult, MetaInfoResult, RuntimeResult
from actionruntime.core.settings import get_settings
from actionruntime.core.template import TemplateSite, assemble_template, scan_template
from actionruntime.core.timeout import run_with_deadline

TYPENAME_QUERY = "{__typename}"


class GraphQLResource(ConnectorOptions):
    base_url: str = Field(alias="baseURL", min_length=1)
    url_params: list[KeyValue] = []
    headers: list[KeyValue] = []
    cookies: list[KeyValue] = []
    authentication: Literal["none", "basic", "bearer"] = "none"
    auth_content: dict[str, str] = {}

    @model_validator(mode="after")
    def _check_auth_content(self) -> GraphQLResource:
        if self.authentication == "basic" and not (
            self.auth_content.get("username") and self.auth_content.get("password")
        ):
            raise ValueError("missing basic username or password")
        if self.authentication == "bearer" and not self.auth_content.get("token"):
            raise ValueError("missing bearer token")
        return self


class GraphQLAction(ConnectorOptions):
    query: str = Field(min_length=1)
    variables: list[KeyValue] = []


def resolve_variable(value: Any, context: Mapping[str, Any]) -> Any:
    """Value of one GraphQL variable after context substitution."""
    if not isinstance(value, str):
        return value
    parts = list(scan_template(value.strip()))
    if len(parts) == 1 and isinstance(parts[0], TemplateSite):
        return context.get(parts[0].key)
    return assemble_template(value, context)


class GraphQLConnector(DataConnector):
    """Connector for GraphQL endpoints."""

    action_type = ActionType.GRAPHQL.type_name
    resource_model = GraphQLResource
    action_model = GraphQLAction

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    async def _post(
        self,
        resource: GraphQLResource,
        context: Mapping[str, Any],
        query: str,
        variables: dict[str, Any] | None,
    ) -> httpx.Response:
        headers = templated_pairs(resource.headers, context)
        auth: httpx.Auth | None = None
        if resource.authentication == "basic":
            auth = httpx.BasicAuth(resource.auth_content["username"], resource.auth_content["password"])
        elif resource.authentication == "bearer":
            headers["Authorization"] = f"Bearer {resource.auth_content['token']}"

        try:
            async with httpx.AsyncClient(
                auth=auth,
                cookies=templated_pairs(resource.cookies, context),
                timeout=get_settings().http_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await run_with_deadline(
                    client.post(
                        resource.base_url,
                        params=templated_pairs(resource.url_params, context),
                        headers=headers,
                        json={"query": query, "variables": variables},
                    ),
                    operation="graphql.post",
                )
        except ActionRuntimeError:
            raise
        except httpx.HTTPError as e:
            raise DriverError(f"graphql request failed: {e}", cause=e) from e

        if response.is_error:
            raise DriverError(f"graphql request failed with status {response.status_code}: {response.text}")
        return response

    async def test_connection(self, resource_options: Mapping[str, Any]) -> ConnectionResult:
        resource = cast(GraphQLResource, self.decode_resource(resource_options))
        await self._post(resource, {}, TYPENAME_QUERY, None)
        return ConnectionResult(success=True)

    async def get_meta_info(self, resource_options: Mapping[str, Any]) -> MetaInfoResult:
        return MetaInfoResult(success=True)

    async def run(
        self,
        resource_options: Mapping[str, Any],
        action_options: Mapping[str, Any],
        raw_action_options: Mapping[str, Any],
    ) -> RuntimeResult:
        resource = cast(GraphQLResource, self.decode_resource(resource_options))
        action = cast(GraphQLAction, self.decode_action(action_options))
        context = context_of(raw_action_options)

        # Unsubstituted values, so whole-site variables keep their JSON type.
        raw_variables = raw_action_options.get("variables")
        if isinstance(raw_variables, list):
            declared = [KeyValue.model_validate(item) for item in raw_variables if isinstance(item, Mapping)]
        else:
            declared = action.variables

        variables = {
            assemble_template(variable.key, context): resolve_variable(variable.value, context)
            for variable in declared
            if variable.key
        }
        response = await self._post(resource, context, action.query, variables)
        try:
            body = response.json()
        except ValueError as e:
            raise DriverError("graphql response is not JSON", cause=e) from e
        if not isinstance(body, dict):
            raise DriverError("graphql response is not a JSON object")
        return RuntimeResult.ok([body])


__all__ = [
    "GraphQLResource",
    "GraphQLAction",
    "GraphQLConnector",
    "resolve_variable",
]
