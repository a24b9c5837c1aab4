from .base import EventRecord, EventStore, MatchRecord, RankingSnapshot, RSVPRecord
from .memory_storage import InMemoryEventStore

__all__ = [
    'EventRecord',
    'EventStore',
    'MatchRecord',
    'RankingSnapshot',
    'RSVPRecord',
    'InMemoryEventStore',
]
