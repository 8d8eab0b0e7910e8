"""Framework -- invocation orchestration.

Architecture::

    request.py          ActionRequest, ResourceLookup protocol
    source_manager.py   httpx client for the resource source manager
    dispatcher.py       ActionDispatcher, ActionExecution

The dispatcher depends on the connector registry, and the AI agent
connector depends on the source manager client, so the dispatcher is
imported from its module (``from actionruntime.framework.dispatcher import
ActionDispatcher``) rather than re-exported here.
"""

from actionruntime.framework.request import ActionRequest, ResourceLookup
from actionruntime.framework.source_manager import SourceManagerClient

__all__ = [
    "ActionRequest",
    "ResourceLookup",
    "SourceManagerClient",
]
