"""
OAuth2 Authorization-Code Flow für Twitch über einen lokalen Einmal-Webserver

Ablauf: state erzeugen -> Browser auf die Autorisierungs-URL schicken ->
genau EINE Weiterleitung auf der Redirect-URI annehmen -> Code gegen Token
tauschen -> Server stoppen.
"""
import asyncio
import logging
import secrets
import time
import webbrowser
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlencode, urlsplit

from aiohttp import web

from streampoll.config.constants import AUTH_BASE_URL, REDIRECT_URI, REQUEST_TIMEOUT
from streampoll.twitch.request import ApiError, Request

LOGGER = logging.getLogger(__name__)

CLOSE_PAGE = '<html><body onload="close()"></body></html>'


class OAuthError(Exception):
    """Basisklasse für Fehler im OAuth-Ablauf"""


class ListenerBindError(OAuthError):
    """Der lokale Server konnte nicht auf der Redirect-URI starten"""


class RedirectRejected(OAuthError):
    """Die Weiterleitung hatte keinen Code oder einen falschen state"""

    def __init__(self, reason, twitch_error=None):
        super().__init__(reason)
        self.reason = reason
        self.twitch_error = twitch_error


class AuthorizationCancelled(OAuthError):
    """Der Ablauf wurde vor dem Erhalt eines Tokens beendet"""


@dataclass(frozen=True)
class TokenResponse:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: List[str] = field(default_factory=list)
    token_type: str = 'bearer'

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict) or not payload.get('access_token'):
            raise ValueError("Antwort enthält kein access_token")
        expires_in = payload.get('expires_in')
        return cls(
            access_token=payload['access_token'],
            refresh_token=payload.get('refresh_token'),
            expires_in=int(expires_in) if expires_in is not None else None,
            scope=list(payload.get('scope') or []),
            token_type=payload.get('token_type', 'bearer'),
        )


def generate_state():
    """Einmal-Wert für den state-Parameter (Zeit + Zufall, kollisionsfrei pro Sitzung)"""
    return f"{int(time.time())}-{secrets.token_urlsafe(8)}"


class OAuthListener:
    """
    Lokaler Server, der genau eine OAuth-Weiterleitung annimmt.
    Das Ergebnis (TokenResponse oder Fehler) kommt genau einmal über
    on_token/on_error und über wait().
    """

    def __init__(self, http, client_id, client_secret, scopes, redirect_uri=REDIRECT_URI,
                 auth_base_url=AUTH_BASE_URL, on_token=None, on_error=None,
                 timeout=REQUEST_TIMEOUT):
        self.client_id = client_id
        self.scopes = list(scopes)
        self.redirect_uri = redirect_uri
        self.state = generate_state()

        self.token = None
        self.error = None

        self._http = http
        self._client_secret = client_secret
        self._auth_base_url = auth_base_url.rstrip('/')
        self._timeout = timeout
        self._on_token = on_token
        self._on_error = on_error

        parts = urlsplit(redirect_uri)
        self._host = parts.hostname or 'localhost'
        self._port = parts.port or 80
        self._path = parts.path or '/'

        self._runner = None
        self._handled = False
        self._exchange = None
        self._shutdown_task = None
        self._dispose_task = None
        self._finished = asyncio.get_running_loop().create_future()

    @property
    def authorization_url(self):
        query = urlencode({
            'client_id': self.client_id,
            'redirect_uri': self.redirect_uri,
            'state': self.state,
            'response_type': 'code',
        })
        return f"{self._auth_base_url}/authorize?{query}&scope={'+'.join(self.scopes)}"

    @property
    def is_listening(self):
        return self._runner is not None

    @property
    def done(self):
        return self._finished.done()

    async def start(self, open_browser=True):
        """Startet den Server und öffnet (optional) den Browser"""
        app = web.Application()
        app.router.add_get(self._path, self._handle_redirect)
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            raise ListenerBindError(
                f"Konnte nicht auf {self._host}:{self._port} lauschen: {e}"
            ) from e

        self._runner = runner
        LOGGER.info("Warte auf OAuth-Weiterleitung an %s", self.redirect_uri)

        if open_browser:
            try:
                webbrowser.open(self.authorization_url)
            except Exception as e:
                LOGGER.warning("Konnte den Browser nicht automatisch öffnen: %s", e)
                LOGGER.info("Bitte öffne diese URL manuell: %s", self.authorization_url)
        return self

    async def wait(self):
        """Wartet auf das Token; wirft den Fehler, falls der Ablauf scheitert"""
        await asyncio.shield(self._finished)
        if self.error is not None:
            raise self.error
        return self.token

    async def close(self):
        """Stoppt den Server; ein noch offener Ablauf endet mit AuthorizationCancelled"""
        self._deliver_error(AuthorizationCancelled("OAuth-Ablauf abgebrochen"))
        if self._exchange is not None:
            self._exchange.cancel()
        await self._stop_listener()

    def dispose(self):
        """Wie close(), aber ohne await (plant das Stoppen im Event Loop ein)"""
        self._dispose_task = asyncio.get_running_loop().create_task(self.close())
        return self._dispose_task

    async def _handle_redirect(self, request):
        if self._handled:
            return web.Response(status=410, text='OAuth-Weiterleitung wurde bereits verarbeitet')
        self._handled = True

        code = request.query.get('code', '')
        state = request.query.get('state', '')
        if not code:
            self._reject('code fehlt in der Weiterleitung', request.query.get('error'))
        elif state != self.state:
            self._reject('state stimmt nicht überein', request.query.get('error'))
        else:
            self._exchange_code(code)

        # nur eine Verbindung: nach der Antwort wird der Server gestoppt
        self._shutdown_task = asyncio.get_running_loop().create_task(self._stop_listener())
        return web.Response(text=CLOSE_PAGE, content_type='text/html')

    def _reject(self, reason, twitch_error=None):
        LOGGER.warning("OAuth-Weiterleitung abgelehnt: %s", reason)
        self._deliver_error(RedirectRejected(reason, twitch_error))

    def _exchange_code(self, code):
        params = {
            'client_id': self.client_id,
            'code': code,
            'client_secret': self._client_secret,
            'grant_type': 'authorization_code',
            'redirect_uri': self.redirect_uri,
        }
        self._exchange = Request(
            self._http, 'POST', f"{self._auth_base_url}/token", self.client_id,
            params=params,
            on_completed=self._on_token_payload,
            on_error=self._deliver_error,
            timeout=self._timeout,
        )

    def _on_token_payload(self, payload):
        try:
            token = TokenResponse.from_payload(payload)
        except ValueError:
            body = payload if isinstance(payload, dict) else {'message': str(payload)}
            self._deliver_error(ApiError(body))
            return
        self._deliver_token(token)

    def _deliver_token(self, token):
        if self._finished.done():
            return
        self.token = token
        LOGGER.info("OAuth-Token erhalten (Scopes: %s)", ' '.join(token.scope) or '-')
        if self._on_token is not None:
            try:
                self._on_token(token)
            except Exception:
                LOGGER.exception("Fehler im Token-Handler")
        self._finished.set_result(None)

    def _deliver_error(self, failure):
        if self._finished.done():
            return
        self.error = failure
        if self._on_error is not None:
            try:
                self._on_error(failure)
            except Exception:
                LOGGER.exception("Fehler im Fehler-Handler des OAuth-Ablaufs")
        self._finished.set_result(None)

    async def _stop_listener(self):
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()
            LOGGER.debug("OAuth-Server auf %s gestoppt", self.redirect_uri)
