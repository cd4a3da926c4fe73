"""
Services package: collaborator contracts, notifications and the work request façade.
The façade lives in lostfound.services.work_request_service.
"""

from .collaborators import (
    IdentityDirectory,
    InMemoryIdentityDirectory,
    MatchCandidate,
    MatchSuggestionProvider,
    Notifier,
    StaticMatchSuggestionProvider,
)
from .notification_service import LoggingNotifier, StatusChangeEvent, dispatch

__all__ = [
    'IdentityDirectory',
    'InMemoryIdentityDirectory',
    'MatchCandidate',
    'MatchSuggestionProvider',
    'Notifier',
    'StaticMatchSuggestionProvider',
    'LoggingNotifier',
    'StatusChangeEvent',
    'dispatch',
]
