"""
Konfigurationskonstanten für streampoll
"""

# Dateinamen
CONFIG_FILE = 'config.json'
SECRETS_FILE = 'secrets.json'
SESSION_FILE = 'session.json'

# Twitch Endpunkte
AUTH_BASE_URL = 'https://id.twitch.tv/oauth2'
API_BASE_URL = 'https://api.twitch.tv/helix'

# OAuth Einstellungen
REDIRECT_URI = 'http://localhost:8080/'

# Timeout pro HTTP-Aufruf in Sekunden
REQUEST_TIMEOUT = 10

# Standard-Scopes: Umfragen lesen/verwalten und Ankündigungen im Chat
DEFAULT_SCOPES = [
    'channel:read:polls',
    'channel:manage:polls',
    'moderator:manage:announcements',
    'chat:read',
]

# Standardkonfiguration
DEFAULT_CONFIG = {
    'redirect_uri': REDIRECT_URI,
    'scopes': DEFAULT_SCOPES,
    'request_timeout': REQUEST_TIMEOUT,
    'session_file': SESSION_FILE,
    'log_level': 'INFO',
    'api_base_url': API_BASE_URL,
    'auth_base_url': AUTH_BASE_URL,
    'poll': {
        'refresh_interval': 5,  # Sekunden zwischen zwei Aktualisierungen
    },
}
