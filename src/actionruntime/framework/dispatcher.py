"""Action dispatcher.

Manifesto:
    The dispatcher is the only entry point the hosting service calls. It
    turns an ``ActionRequest`` into exactly one connector invocation and
    always hands back an ``ActionExecution`` record, so callers never need
    to know which data source ran or how it failed.

Flow::

    ActionRequest
        │
        ├─ 1. resolve      name/id -> connector            UnknownAdapterError
        ├─ 2. resource     source manager | {} | lookup     OptionsValidationError
        │                  + validate_resource_options
        ├─ 3. stage one    process_template_by_context(content, context)
        ├─ 4. validate     validate_action_options          OptionsValidationError
        └─ 5. run          connector.run(...) under Deadline ActionTimeoutError
                                                             ActionCancelledError
                                                             DriverError

Failure mapping:
    Validation, unknown-adapter, driver, timeout and cancellation failures
    produce an unsuccessful envelope (``extra["message"]``) with the error
    attached to the execution. Template encoding failures abort the
    invocation and propagate to the caller. Unexpected exceptions from a
    connector are wrapped as ``DriverError``.

Examples:
    >>> dispatcher = ActionDispatcher(resources=my_resource_store)
    >>> execution = await dispatcher.dispatch(ActionRequest(
    ...     action_type="postgresql",
    ...     resource_id="res-1",
    ...     content={"mode": "sql-safe", "query": "select * from users where id = {{id}}"},
    ...     context={"id": 7},
    ... ))
    >>> execution.result.to_dict()

Tags:
    dispatcher, orchestration, action-runtime
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from actionruntime.connectors.base import DataConnector
from actionruntime.connectors.registry import (
    ConnectorRegistry,
    connector_registry,
    is_known_type,
    is_virtual,
    needs_source_manager_lookup,
    type_name,
)
from actionruntime.core.errors import (
    ActionRuntimeError,
    DriverError,
    OptionsValidationError,
    TemplateEncodingError,
    UnknownAdapterError,
)
from actionruntime.core.logging import LogContext, get_logger
from actionruntime.core.result import RuntimeResult
from actionruntime.core.settings import RuntimeSettings, get_settings
from actionruntime.core.template import process_template_by_context
from actionruntime.core.timeout import Deadline
from actionruntime.framework.request import ActionRequest, ResourceLookup
from actionruntime.framework.source_manager import SourceManagerClient

log = get_logger(__name__)


class ExecutionStatus(str, Enum):
    """Lifecycle of one invocation."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ActionExecution:
    """Record of one dispatched invocation."""

    id: str
    action_type: str
    display_name: str
    status: ExecutionStatus
    created_at: datetime
    completed_at: datetime | None = None
    result: RuntimeResult = field(default_factory=RuntimeResult)
    error: ActionRuntimeError | None = None

    @property
    def ok(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED and self.error is None

    @property
    def duration_ms(self) -> float | None:
        if self.completed_at is None:
            return None
        return round((self.completed_at - self.created_at).total_seconds() * 1000, 2)

    def raise_for_error(self) -> None:
        """Raise the recorded error, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "action_type": self.action_type,
            "display_name": self.display_name,
            "status": self.status.value,
            "result": self.result.to_dict(),
            "duration_ms": self.duration_ms,
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


class ActionDispatcher:
    """
    Dispatcher for action invocations.

    Args:
        resources: Lookup for saved resource options of non-virtual types
        source_manager: Client for types whose options live in the source manager
        registry: Connector registry (defaults to the global one)
        settings: Runtime settings (defaults to ``get_settings()``)
    """

    def __init__(
        self,
        resources: ResourceLookup | None = None,
        source_manager: SourceManagerClient | None = None,
        registry: ConnectorRegistry | None = None,
        settings: RuntimeSettings | None = None,
    ) -> None:
        self.resources = resources
        self.settings = settings or get_settings()
        self.source_manager = source_manager or SourceManagerClient()
        self.registry = registry or connector_registry

    def resolve(self, action_type: str | int) -> tuple[str, DataConnector]:
        """Action type name and a fresh connector for it.

        Connectors for source-manager types are built with this
        dispatcher's ``source_manager`` client.

        Raises:
            UnknownAdapterError: If the type is unknown or has no connector
        """
        name = action_type if isinstance(action_type, str) else type_name(action_type)
        if not is_known_type(name):
            raise UnknownAdapterError(name)
        if needs_source_manager_lookup(name):
            return name, self.registry.create(name, source_manager=self.source_manager)
        return name, self.registry.create(name)

    async def resource_options(self, name: str, request: ActionRequest, connector: DataConnector) -> dict[str, Any]:
        """Resource options for the invocation, validated where they are saved locally."""
        if needs_source_manager_lookup(name):
            if request.resource_id is None:
                raise OptionsValidationError(f"{name} action requires a resource id")
            return await self.source_manager.get_resource(name, request.resource_id)

        if is_virtual(name):
            return {}

        if request.resource_id is None:
            raise OptionsValidationError(f"{name} action requires a resource id")
        if self.resources is None:
            raise DriverError("no resource lookup configured")
        options = await self.resources.get_resource_options(request.resource_id)
        connector.validate_resource_options(options)
        return options

    async def _invoke(self, name: str, connector: DataConnector, request: ActionRequest) -> RuntimeResult:
        resource_options = await self.resource_options(name, request, connector)
        action_options = process_template_by_context(request.content, request.context) or {}
        connector.validate_action_options(action_options)
        return await connector.run(resource_options, action_options, request.raw_action_options())

    async def dispatch(
        self,
        request: ActionRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ActionExecution:
        """
        Run one action invocation.

        Args:
            request: The invocation
            cancel_event: Set by the caller to cancel the invocation

        Returns:
            Execution record; ``result`` holds the connector's envelope

        Raises:
            TemplateEncodingError: If a context value cannot be encoded
        """
        execution = ActionExecution(
            id=str(uuid4()),
            action_type=str(request.action_type),
            display_name=request.display_name,
            status=ExecutionStatus.PENDING,
            created_at=datetime.now(UTC),
        )

        async with LogContext(execution_id=execution.id, action_type=execution.action_type):
            log.info(
                "action.submitted",
                display_name=request.display_name,
                resource_id=request.resource_id,
            )
            log.debug("action.context", context_keys=list(request.context.keys()))

            deadline = Deadline(self.settings.query_timeout_seconds, cancel_event)
            execution.status = ExecutionStatus.RUNNING
            try:
                name, connector = self.resolve(request.action_type)
                execution.action_type = name
                async with deadline.activate():
                    execution.result = await deadline.run(
                        self._invoke(name, connector, request),
                        operation=f"{name}.run",
                    )
                execution.status = ExecutionStatus.COMPLETED

            except TemplateEncodingError as e:
                self._fail(execution, request, e)
                raise

            except ActionRuntimeError as e:
                self._fail(execution, request, e)

            except Exception as e:
                self._fail(execution, request, DriverError(str(e) or type(e).__name__, cause=e))

            finally:
                execution.completed_at = datetime.now(UTC)
                self._summarize(execution)

        return execution

    def _fail(self, execution: ActionExecution, request: ActionRequest, error: ActionRuntimeError) -> None:
        error.with_context(
            action_type=execution.action_type,
            display_name=request.display_name,
            resource_id=None if request.resource_id is None else str(request.resource_id),
            execution_id=execution.id,
        )
        execution.status = ExecutionStatus.FAILED
        execution.error = error
        execution.result = RuntimeResult.fail(error.message)

    def _summarize(self, execution: ActionExecution) -> None:
        summary: dict[str, Any] = {
            "status": execution.status.value,
            "duration_ms": execution.duration_ms,
            "rows_out": len(execution.result.rows),
        }
        if execution.error is None:
            log.info("action.summary", **summary)
        else:
            log.error(
                "action.summary",
                error_type=type(execution.error).__name__,
                error_message=execution.error.message,
                error_category=execution.error.category.value,
                **summary,
            )


__all__ = [
    "ExecutionStatus",
    "ActionExecution",
    "ActionDispatcher",
]
