"""Action type registry and connector factory.

Manifesto:
    The dispatcher should never hard-code connector classes. The registry
    pairs each action type name with its numeric wire id, classifies action
    types (virtual, local-virtual, remote-virtual, needs source-manager
    lookup), and maps names to connector factories.

    All tables are built once at import and are read-only afterwards, so
    concurrent invocations share them without locking.

Taxonomy::

    virtual                       no persisted resource record
      ├── local-virtual           runs in-process        {transformer}
      └── remote-virtual          calls an internal svc  {aiagent, illadrive}
    needs-source-manager-lookup   options fetched first  {aiagent}
    empty-option                  no resource options    {transformer}
    can-create-oauth-token        OAuth resources        {googlesheets}

Features:
    - ``type_id()`` / ``type_name()`` name <-> id lookups
    - ``is_virtual()`` and friends (accept a name or an id)
    - ``ConnectorRegistry`` with pre-registered defaults and family aliases
    - ``get_connector()`` factory: action type name -> connector instance

Tags:
    registry, factory, action-types, connectors, action-runtime
"""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from types import MappingProxyType
from typing import Any

from actionruntime.connectors.aiagent import AIAgentConnector
from actionruntime.connectors.base import DataConnector
from actionruntime.connectors.graphql import GraphQLConnector
from actionruntime.connectors.mysql import MySQLConnector
from actionruntime.connectors.postgresql import PostgreSQLConnector
from actionruntime.connectors.restapi import RESTAPIConnector
from actionruntime.connectors.types import ActionType
from actionruntime.core.errors import UnknownAdapterError

# =============================================================================
# NAME <-> ID TABLE
# =============================================================================

NAME_TO_ID: MappingProxyType[str, int] = MappingProxyType(
    {member.type_name: int(member) for member in ActionType}
)
ID_TO_NAME: MappingProxyType[int, str] = MappingProxyType(
    {value: name for name, value in NAME_TO_ID.items()}
)


def type_id(name: str) -> int:
    """Numeric id of an action type name.

    Raises:
        UnknownAdapterError: If ``name`` is not in the table
    """
    try:
        return NAME_TO_ID[name]
    except KeyError:
        raise UnknownAdapterError(name) from None


def type_name(action_type: int) -> str:
    """Action type name of a numeric id.

    Raises:
        UnknownAdapterError: If ``action_type`` is not in the table
    """
    try:
        return ID_TO_NAME[int(action_type)]
    except (KeyError, ValueError, TypeError):
        raise UnknownAdapterError(action_type) from None


def is_known_type(name: str) -> bool:
    return name in NAME_TO_ID


# =============================================================================
# TAXONOMY
# =============================================================================

VIRTUAL_TYPES = frozenset({"transformer", "aiagent", "illadrive"})
LOCAL_VIRTUAL_TYPES = frozenset({"transformer"})
REMOTE_VIRTUAL_TYPES = frozenset({"aiagent", "illadrive"})
NEEDS_SOURCE_MANAGER_LOOKUP_TYPES = frozenset({"aiagent"})
EMPTY_OPTION_TYPES = frozenset({"transformer"})
CAN_CREATE_OAUTH_TOKEN_TYPES = frozenset({"googlesheets"})


def _as_name(action_type: str | int) -> str:
    if isinstance(action_type, str):
        return action_type
    return ID_TO_NAME.get(int(action_type), "")


def is_virtual(action_type: str | int) -> bool:
    """True when the action type has no persisted resource record."""
    return _as_name(action_type) in VIRTUAL_TYPES


def is_local_virtual(action_type: str | int) -> bool:
    """True when the action type runs entirely in-process."""
    return _as_name(action_type) in LOCAL_VIRTUAL_TYPES


def is_remote_virtual(action_type: str | int) -> bool:
    """True when the action type calls an internal service for its configuration."""
    return _as_name(action_type) in REMOTE_VIRTUAL_TYPES


def needs_source_manager_lookup(action_type: str | int) -> bool:
    """True when resource options must be fetched from the source manager."""
    return _as_name(action_type) in NEEDS_SOURCE_MANAGER_LOOKUP_TYPES


def has_no_options(action_type: str | int) -> bool:
    """True when the action type takes no resource options at all."""
    return _as_name(action_type) in EMPTY_OPTION_TYPES


def can_create_oauth_token(action_type: str | int) -> bool:
    """True when resources of this type are authorized through OAuth."""
    return _as_name(action_type) in CAN_CREATE_OAUTH_TOKEN_TYPES


# =============================================================================
# CONNECTOR FACTORIES
# =============================================================================

ConnectorFactory = Callable[..., DataConnector]


class ConnectorRegistry:
    """
    Registry for connector factories keyed by action type name.

    Pre-registered connectors:
    - ``restapi`` -- :class:`RESTAPIConnector`
    - ``graphql`` -- :class:`GraphQLConnector`
    - ``mysql`` / ``mariadb`` / ``tidb`` -- :class:`MySQLConnector`
    - ``postgresql`` / ``supabasedb`` / ``neon`` / ``hydra`` -- :class:`PostgreSQLConnector`
    - ``aiagent`` -- :class:`AIAgentConnector`
    """

    def __init__(self) -> None:
        self._factories: dict[str, ConnectorFactory] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._factories["restapi"] = RESTAPIConnector
        self._factories["graphql"] = GraphQLConnector
        for name in ("mysql", "mariadb", "tidb"):
            self._factories[name] = partial(MySQLConnector, ActionType.from_name(name))
        for name in ("postgresql", "supabasedb", "neon", "hydra"):
            self._factories[name] = partial(PostgreSQLConnector, ActionType.from_name(name))
        self._factories["aiagent"] = AIAgentConnector

    def register(self, name: str, factory: ConnectorFactory) -> None:
        """Register a connector factory for a known action type name."""
        name = name.lower()
        if not is_known_type(name):
            raise UnknownAdapterError(name, f"cannot register connector for unknown action type: {name}")
        self._factories[name] = factory

    def create(self, name: str, **kwargs: Any) -> DataConnector:
        """Create a connector by action type name.

        Keyword arguments are passed to the factory.

        Raises:
            UnknownAdapterError: If no connector is registered for ``name``
        """
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownAdapterError(name)
        return factory(**kwargs)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def list_connectors(self) -> list[str]:
        """List registered action type names."""
        return sorted(self._factories.keys())


# Global registry
connector_registry = ConnectorRegistry()


def get_connector(action_type: str | int) -> DataConnector:
    """
    Get a connector by action type name or id.

    Usage:
        connector = get_connector("postgresql")
        connector = get_connector(ActionType.MYSQL)
    """
    name = action_type if isinstance(action_type, str) else type_name(action_type)
    return connector_registry.create(name)


__all__ = [
    "NAME_TO_ID",
    "ID_TO_NAME",
    "type_id",
    "type_name",
    "is_known_type",
    "VIRTUAL_TYPES",
    "LOCAL_VIRTUAL_TYPES",
    "REMOTE_VIRTUAL_TYPES",
    "NEEDS_SOURCE_MANAGER_LOOKUP_TYPES",
    "EMPTY_OPTION_TYPES",
    "CAN_CREATE_OAUTH_TOKEN_TYPES",
    "is_virtual",
    "is_local_virtual",
    "is_remote_virtual",
    "needs_source_manager_lookup",
    "has_no_options",
    "can_create_oauth_token",
    "ConnectorFactory",
    "ConnectorRegistry",
    "connector_registry",
    "get_connector",
]
