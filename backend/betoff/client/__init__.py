"""
backend/betoff/client/__init__.py

Purpose:
    Viewer/operator side of BETOFF: HTTP API client, the live state
    synchronizer that mirrors the server collection over the push channel,
    and the derived dashboard view.
"""

from betoff.client.api import BetoffClient
from betoff.client.dashboard import DashboardView
from betoff.client.state import ClientStateFile
from betoff.client.sync import LiveBetsSync, SyncState

__all__ = ["BetoffClient", "ClientStateFile", "DashboardView", "LiveBetsSync", "SyncState"]
