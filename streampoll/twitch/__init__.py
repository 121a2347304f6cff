"""
Twitch Helix API: Requests, Client, Umfragen und Chat-Ankündigungen
"""
from .request import ApiError, Request, RequestCancelled, RequestError, RequestTimeout, TransportError
from .users import User
from .polls import Poll, PollAnswer, PollState, PollValidationError
from .chat import AnnouncementColor
from .client import AuthorizationInProgress, SessionFormatError, TwitchClient

__all__ = [
    'AnnouncementColor',
    'ApiError',
    'AuthorizationInProgress',
    'Poll',
    'PollAnswer',
    'PollState',
    'PollValidationError',
    'Request',
    'RequestCancelled',
    'RequestError',
    'RequestTimeout',
    'SessionFormatError',
    'TransportError',
    'TwitchClient',
    'User',
]
