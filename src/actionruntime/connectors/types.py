"""Action type identities.

Each action type has a stable string name and a stable numeric id. Both
are part of the wire contract with the builder front end: renaming a type
or renumbering it is a breaking change, so new types are only appended.
"""

from __future__ import annotations

from enum import IntEnum


class ActionType(IntEnum):
    """Numeric ids of every known action type, in wire order."""

    TRANSFORMER = 0
    RESTAPI = 1
    GRAPHQL = 2
    REDIS = 3
    MYSQL = 4
    MARIADB = 5
    POSTGRESQL = 6
    MONGODB = 7
    TIDB = 8
    ELASTICSEARCH = 9
    S3 = 10
    SMTP = 11
    SUPABASEDB = 12
    FIREBASE = 13
    CLICKHOUSE = 14
    MSSQL = 15
    HUGGINGFACE = 16
    DYNAMODB = 17
    SNOWFLAKE = 18
    COUCHDB = 19
    HFENDPOINT = 20
    ORACLE = 21
    APPWRITE = 22
    GOOGLESHEETS = 23
    NEON = 24
    UPSTASH = 25
    AIRTABLE = 26
    HYDRA = 27
    AIAGENT = 28
    ORACLE9I = 29
    ILLADRIVE = 30
    TRIGGER = 31
    SERVERSIDETRANSFORMER = 32
    CONDITION = 33
    WEBHOOKRESPONSE = 34

    @property
    def type_name(self) -> str:
        """Wire name of this action type (``"postgresql"``, ``"aiagent"``...)."""
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> ActionType:
        """Look up an action type by wire name.

        Raises:
            KeyError: If ``name`` is not a known action type
        """
        return cls[name.upper()]


__all__ = ["ActionType"]
