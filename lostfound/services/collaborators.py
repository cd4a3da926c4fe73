"""
Collaborator contracts consumed by the engine, with in-memory implementations.
Identity, similarity matching and notification delivery are owned by other systems.
"""

import threading
from typing import Dict, Iterable, List, Optional, Protocol

from pydantic import BaseModel, Field

from lostfound.models.common import Actor
from lostfound.services.notification_service import StatusChangeEvent


class MatchCandidate(BaseModel):
    """A lost item report suggested for a found item"""
    lost_item_id: str
    score: float = Field(..., ge=0, le=1, description="Similarity score, higher is better")


class IdentityDirectory(Protocol):
    def resolve(self, user_id: str) -> Optional[Actor]:
        ...


class MatchSuggestionProvider(Protocol):
    def suggest_matches(self, found_item_id: str) -> List[MatchCandidate]:
        ...


class Notifier(Protocol):
    def notify(self, event: StatusChangeEvent) -> None:
        ...


class InMemoryIdentityDirectory:
    """Directory of known actors keyed by user id"""

    def __init__(self, actors: Optional[Iterable[Actor]] = None):
        self._actors: Dict[str, Actor] = {}
        self._lock = threading.Lock()
        for actor in actors or []:
            self.register(actor)

    def register(self, actor: Actor) -> Actor:
        with self._lock:
            self._actors[actor.user_id] = actor
        return actor

    def resolve(self, user_id: str) -> Optional[Actor]:
        with self._lock:
            return self._actors.get(user_id)


class StaticMatchSuggestionProvider:
    """
    Match feed backed by a fixed table
    Candidates are returned best first regardless of insertion order
    """

    def __init__(self, suggestions: Optional[Dict[str, List[MatchCandidate]]] = None):
        self._suggestions: Dict[str, List[MatchCandidate]] = dict(suggestions or {})

    def add(self, found_item_id: str, lost_item_id: str, score: float) -> None:
        self._suggestions.setdefault(found_item_id, []).append(
            MatchCandidate(lost_item_id=lost_item_id, score=score)
        )

    def suggest_matches(self, found_item_id: str) -> List[MatchCandidate]:
        return sorted(self._suggestions.get(found_item_id, []), key=lambda c: c.score, reverse=True)
