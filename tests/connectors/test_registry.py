"""Tests for actionruntime.connectors.registry and types."""

from __future__ import annotations

import pytest

from actionruntime.connectors.aiagent import AIAgentConnector
from actionruntime.connectors.mysql import MySQLConnector
from actionruntime.connectors.postgresql import PostgreSQLConnector
from actionruntime.connectors.registry import (
    ConnectorRegistry,
    can_create_oauth_token,
    get_connector,
    has_no_options,
    is_known_type,
    is_local_virtual,
    is_remote_virtual,
    is_virtual,
    needs_source_manager_lookup,
    type_id,
    type_name,
)
from actionruntime.connectors.restapi import RESTAPIConnector
from actionruntime.connectors.types import ActionType
from actionruntime.core.dialect import IndexedDialect, QmarkDialect
from actionruntime.core.errors import UnknownAdapterError


class TestActionTypeTable:
    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("transformer", 0),
            ("restapi", 1),
            ("graphql", 2),
            ("mysql", 4),
            ("postgresql", 6),
            ("supabasedb", 12),
            ("googlesheets", 23),
            ("neon", 24),
            ("hydra", 27),
            ("aiagent", 28),
            ("illadrive", 30),
            ("webhookresponse", 34),
        ],
    )
    def test_name_id_roundtrip(self, name: str, value: int) -> None:
        assert type_id(name) == value
        assert type_name(value) == name

    def test_unknown_name(self) -> None:
        with pytest.raises(UnknownAdapterError):
            type_id("nosuch")

    def test_unknown_id(self) -> None:
        with pytest.raises(UnknownAdapterError):
            type_name(999)

    def test_enum_helpers(self) -> None:
        assert ActionType.from_name("MySQL") is ActionType.MYSQL
        assert ActionType.NEON.type_name == "neon"
        assert is_known_type("clickhouse")
        assert not is_known_type("MySQL")


class TestTaxonomy:
    def test_virtual(self) -> None:
        assert is_virtual("transformer")
        assert is_virtual("aiagent")
        assert is_virtual(ActionType.ILLADRIVE)
        assert not is_virtual("postgresql")

    def test_local_and_remote(self) -> None:
        assert is_local_virtual("transformer") and not is_remote_virtual("transformer")
        assert is_remote_virtual("aiagent") and not is_local_virtual("aiagent")

    def test_source_manager_lookup(self) -> None:
        assert needs_source_manager_lookup("aiagent")
        assert needs_source_manager_lookup(ActionType.AIAGENT)
        assert not needs_source_manager_lookup("illadrive")

    def test_other_sets(self) -> None:
        assert has_no_options("transformer")
        assert can_create_oauth_token("googlesheets")
        assert not can_create_oauth_token("restapi")

    def test_unknown_id_is_in_no_set(self) -> None:
        assert not is_virtual(999)


class TestConnectorRegistry:
    def test_defaults_registered(self) -> None:
        registry = ConnectorRegistry()
        assert registry.list_connectors() == sorted(
            ["restapi", "graphql", "mysql", "mariadb", "tidb", "postgresql", "supabasedb", "neon", "hydra", "aiagent"]
        )

    def test_family_alias_binds_dialect(self) -> None:
        registry = ConnectorRegistry()
        neon = registry.create("neon")
        tidb = registry.create("tidb")
        assert isinstance(neon, PostgreSQLConnector)
        assert neon.action_type == "neon"
        assert isinstance(neon.escaper.dialect, IndexedDialect)
        assert isinstance(tidb, MySQLConnector)
        assert isinstance(tidb.escaper.dialect, QmarkDialect)

    def test_create_returns_fresh_instances(self) -> None:
        registry = ConnectorRegistry()
        assert registry.create("restapi") is not registry.create("restapi")

    def test_create_passes_factory_arguments(self) -> None:
        source_manager = object()
        connector = ConnectorRegistry().create("aiagent", source_manager=source_manager)
        assert isinstance(connector, AIAgentConnector)
        assert connector.source_manager is source_manager

    def test_unregistered_known_type(self) -> None:
        with pytest.raises(UnknownAdapterError):
            ConnectorRegistry().create("transformer")

    def test_register_custom_factory(self) -> None:
        registry = ConnectorRegistry()
        registry.register("S3", RESTAPIConnector)
        assert "s3" in registry
        assert isinstance(registry.create("s3"), RESTAPIConnector)

    def test_register_unknown_type(self) -> None:
        with pytest.raises(UnknownAdapterError):
            ConnectorRegistry().register("nosuch", RESTAPIConnector)


class TestGetConnector:
    def test_by_name(self) -> None:
        assert isinstance(get_connector("aiagent"), AIAgentConnector)

    def test_by_id(self) -> None:
        connector = get_connector(ActionType.MARIADB)
        assert isinstance(connector, MySQLConnector)
        assert connector.action_type == "mariadb"

    def test_unknown(self) -> None:
        with pytest.raises(UnknownAdapterError):
            get_connector("nosuch")
