"""
Authentication module for Twitch OAuth2
"""
from .oauth_flow import (
    AuthorizationCancelled,
    ListenerBindError,
    OAuthError,
    OAuthListener,
    RedirectRejected,
    TokenResponse,
)

__all__ = [
    'AuthorizationCancelled',
    'ListenerBindError',
    'OAuthError',
    'OAuthListener',
    'RedirectRejected',
    'TokenResponse',
]
