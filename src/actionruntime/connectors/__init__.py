"""Connectors -- one per data source family.

Architecture::

    types.py        ActionType ids (wire contract)
    base.py         DataConnector contract + typed option records
    registry.py     name <-> id table, taxonomy, ConnectorRegistry
    sql.py          shared relational flow (escape, classify, run)
    postgresql.py   asyncpg          postgresql / supabasedb / neon / hydra
    mysql.py        mysql-connector  mysql / mariadb / tidb
    restapi.py      httpx            restapi
    graphql.py      httpx            graphql
    aiagent.py      source manager   aiagent

Import connectors and the registry from their modules
(``from actionruntime.connectors.registry import get_connector``); this
package only re-exports the type ids, which the core layer depends on.
"""

from actionruntime.connectors.types import ActionType

__all__ = ["ActionType"]
