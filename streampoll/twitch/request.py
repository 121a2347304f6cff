"""
Asynchrone HTTP-Requests gegen die Twitch API

Ein Request wird beim Erzeugen sofort als asyncio Task gestartet und liefert
genau EIN Ergebnis: entweder on_completed(payload) oder on_error(fehler).
"""
import asyncio
import json
import logging
from urllib.parse import urlencode

import aiohttp
from yarl import URL

from streampoll.config.constants import REQUEST_TIMEOUT

LOGGER = logging.getLogger(__name__)


class RequestError(Exception):
    """Basisklasse für alle Fehler, die ein Request liefern kann"""

    def __init__(self, message, payload=None, status=None):
        super().__init__(message)
        self.payload = payload
        self.status = status


class TransportError(RequestError):
    """Netzwerkfehler oder Antwort, die kein JSON ist (kein Payload)"""


class RequestTimeout(TransportError):
    """Der Aufruf hat das Zeitlimit überschritten"""


class RequestCancelled(TransportError):
    """Der Aufruf wurde vor dem Abschluss abgebrochen"""


class ApiError(RequestError):
    """Die API hat geantwortet, der Body enthält aber ein 'error'-Feld"""

    def __init__(self, payload, status=None):
        self.message = payload.get('message') or payload.get('error') or 'unbekannter Fehler'
        super().__init__(f"API Fehler ({status}): {self.message}", payload=payload, status=status)


def build_url(base_url, params=None):
    """Hängt die Query-Parameter escaped als key=value&key=value an die URL an"""
    if not params:
        return base_url
    pairs = params.items() if isinstance(params, dict) else params
    query = urlencode([(str(key), str(value)) for key, value in pairs])
    separator = '&' if '?' in base_url else '?'
    return f"{base_url}{separator}{query}"


def build_headers(client_id, token=None, json_body=False):
    """Standard-Header der Twitch API (Bearer Token + Client-Id)"""
    headers = {'Client-Id': client_id}
    if token:
        headers['Authorization'] = f"Bearer {token}"
    if json_body:
        headers['Content-Type'] = 'application/json'
    return headers


def classify_response(status, raw):
    """
    Entscheidet, ob eine Antwort Erfolg oder Fehler ist.
    Ein 'error'-Feld im Body gilt unabhängig vom HTTP-Status als API-Fehler.
    Gibt (payload, fehler) zurück, genau eins davon ist None.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError:
            return None, TransportError(f"Antwort ist kein gültiges UTF-8 (HTTP {status})", status=status)

    if not raw.strip():
        return {}, None

    try:
        payload = json.loads(raw)
    except ValueError:
        return None, TransportError(f"Antwort ist kein gültiges JSON (HTTP {status})", status=status)

    if isinstance(payload, dict) and 'error' in payload:
        return None, ApiError(payload, status=status)
    return payload, None


class Request:
    """Ein einzelner, sofort gestarteter API-Aufruf"""

    def __init__(self, http, method, url, client_id, token=None, body=None, params=None,
                 on_completed=None, on_error=None, timeout=REQUEST_TIMEOUT):
        self.method = method.upper()
        self.url = build_url(url, params)
        self.body = body
        self.headers = build_headers(client_id, token, json_body=body is not None)
        self.timeout = timeout
        # ohne Query: die Token-URL enthält das Client-Secret
        self._label = f"{self.method} {url}"

        self.payload = None
        self.error = None
        self.status = None
        self.handler_error = None

        self._http = http
        self._on_completed = on_completed
        self._on_error = on_error
        self._delivered = False

        loop = asyncio.get_running_loop()
        self._finished = loop.create_future()
        self._task = loop.create_task(self._run())

    def __repr__(self):
        return f"<Request {self._label} done={self.done}>"

    def __await__(self):
        return self.wait().__await__()

    @property
    def done(self):
        return self._delivered

    async def wait(self):
        """Wartet auf das Ergebnis; gibt den Payload zurück oder wirft den RequestError"""
        await asyncio.shield(self._finished)
        if self.error is not None:
            raise self.error
        return self.payload

    def cancel(self):
        """Bricht den laufenden Aufruf ab (liefert RequestCancelled)"""
        if self._delivered:
            return False
        self._task.cancel()
        self._fail(RequestCancelled(f"{self._label} abgebrochen"))
        return True

    async def _run(self):
        try:
            data = json.dumps(self.body) if self.body is not None else None
        except (TypeError, ValueError) as e:
            self._fail(TransportError(f"{self._label}: Body ist nicht als JSON darstellbar: {e}"))
            return

        try:
            async with self._http.request(
                self.method,
                URL(self.url, encoded=True),
                headers=self.headers,
                data=data,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                self.status = response.status
                raw = await response.read()
        except asyncio.CancelledError:
            self._fail(RequestCancelled(f"{self._label} abgebrochen"))
            raise
        except asyncio.TimeoutError:
            self._fail(RequestTimeout(f"{self._label}: Timeout nach {self.timeout}s"))
            return
        except aiohttp.ClientError as e:
            self._fail(TransportError(f"{self._label}: {e}"))
            return

        payload, failure = classify_response(self.status, raw)
        if failure is not None:
            self._fail(failure)
        else:
            self._succeed(payload)

    def _succeed(self, payload):
        if self._delivered:
            return
        self._delivered = True
        self.payload = payload

        if self._on_completed is not None:
            try:
                self._on_completed(payload)
            except Exception as e:
                # Fehler im Handler des Aufrufers: nur melden, kein zweites Signal
                self.handler_error = e
                LOGGER.exception("Fehler im Erfolgs-Handler von %s", self._label)
        self._release()

    def _fail(self, failure):
        if self._delivered:
            return
        self._delivered = True
        self.error = failure
        LOGGER.warning("%s fehlgeschlagen: %s", self._label, failure)

        if self._on_error is not None:
            try:
                self._on_error(failure)
            except Exception:
                LOGGER.exception("Fehler im Fehler-Handler von %s", self._label)
        self._release()

    def _release(self):
        self._on_completed = None
        self._on_error = None
        if not self._finished.done():
            self._finished.set_result(None)
