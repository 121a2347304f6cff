"""
Twitch Client: Zugangsdaten, Broadcaster-Identität und Fabrik für alle
authentifizierten API-Aufrufe
"""
import json
import logging

import aiohttp

from streampoll.auth.oauth_flow import OAuthListener
from streampoll.config.constants import API_BASE_URL, AUTH_BASE_URL, REDIRECT_URI, REQUEST_TIMEOUT
from streampoll.twitch import chat
from streampoll.twitch.polls import Poll
from streampoll.twitch.request import Request
from streampoll.twitch.users import USERS_PATH, User

LOGGER = logging.getLogger(__name__)

SESSION_FORMAT = 'streampoll.session/1'


class SessionFormatError(ValueError):
    """Der gespeicherte Sitzungs-Snapshot ist unvollständig oder unbekannt"""


class AuthorizationInProgress(RuntimeError):
    """Es läuft bereits eine Autorisierung für diesen Client"""


class TwitchClient:
    """
    Ein Twitch Client mit allen Infos, die für Requests gebraucht werden.

    Token und Broadcaster-Infos werden nur vom Client selbst geschrieben
    (nach OAuth, fetch_identity() oder restore_state()).
    """

    def __init__(self, client_id, client_secret, oauth_token=None, *, http=None,
                 api_base_url=API_BASE_URL, auth_base_url=AUTH_BASE_URL,
                 redirect_uri=REDIRECT_URI, request_timeout=REQUEST_TIMEOUT):
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base_url = api_base_url.rstrip('/')
        self.auth_base_url = auth_base_url.rstrip('/')
        self.redirect_uri = redirect_uri
        self.request_timeout = request_timeout

        self._oauth_token = oauth_token
        self._broadcaster = None
        self._pending_authorization = None
        self._http = http
        self._owns_http = http is None

    @classmethod
    def from_config(cls, config, **kwargs):
        """Baut einen Client aus der geladenen Konfiguration (siehe config.loader)"""
        return cls(
            config['client_id'],
            config['client_secret'],
            api_base_url=config.get('api_base_url', API_BASE_URL),
            auth_base_url=config.get('auth_base_url', AUTH_BASE_URL),
            redirect_uri=config.get('redirect_uri', REDIRECT_URI),
            request_timeout=config.get('request_timeout', REQUEST_TIMEOUT),
            **kwargs,
        )

    @classmethod
    def from_state(cls, client_id, client_secret, blob, **kwargs):
        """Baut einen Client aus einem Snapshot von serialize_state() (ohne Netzwerk)"""
        client = cls(client_id, client_secret, **kwargs)
        client.restore_state(blob)
        return client

    @property
    def oauth_token(self):
        return self._oauth_token

    @property
    def broadcaster(self):
        return self._broadcaster

    @property
    def has_oauth(self):
        return self._oauth_token is not None

    @property
    def has_broadcaster_infos(self):
        return self._broadcaster is not None

    @property
    def is_authorizing(self):
        return self._pending_authorization is not None

    def can_create_poll(self):
        """Umfragen gibt es nur für Affiliates und Partner"""
        return self._broadcaster is not None and self._broadcaster.broadcaster_type != ''

    @property
    def http(self):
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession()
            self._owns_http = True
        return self._http

    def send_request(self, method, url, body=None, params=None, on_completed=None, on_error=None):
        """Startet einen Request mit den Auth-Headern dieses Clients"""
        return Request(
            self.http, method, url, self.client_id, self._oauth_token,
            body=body, params=params,
            on_completed=on_completed, on_error=on_error,
            timeout=self.request_timeout,
        )

    def get(self, url, on_completed=None, on_error=None, **params):
        return self.send_request('GET', url, params=params, on_completed=on_completed, on_error=on_error)

    def post(self, url, body=None, on_completed=None, on_error=None, **params):
        return self.send_request('POST', url, body=body, params=params,
                                 on_completed=on_completed, on_error=on_error)

    def patch(self, url, body=None, on_completed=None, on_error=None, **params):
        return self.send_request('PATCH', url, body=body, params=params,
                                 on_completed=on_completed, on_error=on_error)

    async def request_authorization(self, *scopes, open_browser=True, on_token=None, on_error=None):
        """
        Startet den OAuth-Ablauf über den lokalen Server und gibt den
        OAuthListener zurück. Das Token wird bei Erfolg im Client gespeichert.
        """
        if self._pending_authorization is not None:
            raise AuthorizationInProgress("für diesen Client läuft bereits eine Autorisierung")

        def token_received(token):
            self._pending_authorization = None
            self._oauth_token = token.access_token
            if on_token is not None:
                on_token(token)

        def authorization_failed(failure):
            self._pending_authorization = None
            if on_error is not None:
                on_error(failure)

        listener = OAuthListener(
            self.http, self.client_id, self.client_secret, scopes,
            redirect_uri=self.redirect_uri,
            auth_base_url=self.auth_base_url,
            on_token=token_received,
            on_error=authorization_failed,
            timeout=self.request_timeout,
        )
        self._pending_authorization = listener
        try:
            await listener.start(open_browser=open_browser)
        except Exception:
            self._pending_authorization = None
            raise
        return listener

    def fetch_identity(self, on_completed=None, on_error=None):
        """
        Lädt die Infos des angemeldeten Benutzers und ersetzt die bisherigen.
        Gibt None zurück (kein Request), solange kein Token vorhanden ist.
        """
        if not self.has_oauth:
            LOGGER.warning("fetch_identity ohne OAuth-Token nicht möglich")
            return None

        def identity_received(payload):
            user = User.from_payload(payload)
            self._broadcaster = user
            LOGGER.info("Angemeldet als %s (id=%s)", user.display_name, user.id)
            if on_completed is not None:
                on_completed(user)

        return self.get(f"{self.api_base_url}{USERS_PATH}",
                        on_completed=identity_received, on_error=on_error)

    def serialize_state(self):
        """
        Snapshot mit Token und Broadcaster-Infos, um den Client später ohne
        erneute Anmeldung wiederherzustellen. ACHTUNG: enthält das Token im Klartext.
        """
        if not self.has_oauth or not self.has_broadcaster_infos:
            raise SessionFormatError("Snapshot braucht Token und Broadcaster-Infos")
        return json.dumps({
            'format': SESSION_FORMAT,
            'oauth_token': self._oauth_token,
            'identity': self._broadcaster.to_payload(),
        })

    def restore_state(self, blob):
        """Übernimmt einen Snapshot von serialize_state(); kein Netzwerkaufruf"""
        try:
            snapshot = json.loads(blob)
        except (TypeError, ValueError) as e:
            raise SessionFormatError(f"Snapshot ist kein gültiges JSON: {e}") from e

        if not isinstance(snapshot, dict):
            raise SessionFormatError("Snapshot muss ein JSON-Objekt sein")
        if snapshot.get('format') != SESSION_FORMAT:
            raise SessionFormatError(f"Unbekanntes Snapshot-Format: {snapshot.get('format')!r}")
        if not snapshot.get('oauth_token'):
            raise SessionFormatError("Snapshot enthält kein oauth_token")
        try:
            user = User.from_payload(snapshot.get('identity'))
        except ValueError as e:
            raise SessionFormatError(f"Snapshot enthält keine gültige Identität: {e}") from e

        self._oauth_token = snapshot['oauth_token']
        self._broadcaster = user

    def create_poll(self, title, duration, *choices, **kwargs):
        """Startet eine neue Umfrage auf dem Kanal des Broadcasters"""
        return Poll(self, title, duration, *choices, **kwargs)

    def make_announcement(self, text, color=chat.AnnouncementColor.PRIMARY, on_completed=None, on_error=None):
        return chat.make_announcement(self, text, color, on_completed=on_completed, on_error=on_error)

    async def close(self):
        """Beendet eine offene Autorisierung und schließt die eigene HTTP-Session"""
        if self._pending_authorization is not None:
            listener, self._pending_authorization = self._pending_authorization, None
            await listener.close()
        if self._owns_http and self._http is not None and not self._http.closed:
            await self._http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
