"""
Action Runtime - uniform dispatch of builder actions to external data sources.

This package provides:
- actionruntime.core: template substitution, SQL escaping and classification,
  result envelopes, deadlines, errors, logging, settings
- actionruntime.connectors: connector contract, action type registry, and
  the bundled connectors (PostgreSQL, MySQL, REST API, GraphQL, AI agent)
- actionruntime.framework: action requests, the dispatcher, and the
  source-manager client
"""

__version__ = "0.1.0"
