"""
Client-side state synchronization: API client, state store, realtime feed.
"""
from .api import ApiError, GlobalUnlockApi, MutationOutcomeUnknown
from .feed import FeedSupervisor, LocalTransport, PollingFallback, RealtimeTransport, SseTransport
from .store import ClientStateStore

__all__ = [
    "ApiError",
    "GlobalUnlockApi",
    "MutationOutcomeUnknown",
    "FeedSupervisor",
    "LocalTransport",
    "PollingFallback",
    "RealtimeTransport",
    "SseTransport",
    "ClientStateStore",
]
