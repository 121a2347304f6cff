"""
streampoll - Twitch OAuth Login und Umfragen (Polls) über die Helix API
"""
from streampoll.twitch import (
    AnnouncementColor,
    ApiError,
    Poll,
    PollState,
    PollValidationError,
    RequestError,
    TwitchClient,
    User,
)

__version__ = '1.0.0'
