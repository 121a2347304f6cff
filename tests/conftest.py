"""
Pytest-Konfiguration: Fake Twitch Server (aiohttp.web) und Client-Fixtures
Es werden keine echten Netzwerkaufrufe gegen Twitch gemacht.
"""
import asyncio
import json
from dataclasses import dataclass

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

from streampoll.twitch.client import SESSION_FORMAT, TwitchClient

BROADCASTER = {
    'id': '1234',
    'login': 'streamer',
    'display_name': 'Streamer',
    'broadcaster_type': 'affiliate',
}


@dataclass
class Call:
    method: str
    path: str
    query: dict
    body: object
    headers: dict


class FakeTwitch:
    """Antwortet mit vorbereiteten JSON-Bodies und protokolliert jeden Aufruf"""

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.gate = None
        self.base_url = None
        self.app = web.Application()
        self.app.router.add_route('*', '/{tail:.*}', self.handle)

    def url(self, path):
        return f"{self.base_url}{path}"

    def respond(self, method, path, body, status=200):
        """Die letzte Antwort einer Route wird wiederholt, ältere werden verbraucht"""
        self.responses.setdefault((method, path), []).append((status, body))

    def calls_to(self, method, path):
        return [call for call in self.calls if call.method == method and call.path == path]

    async def handle(self, request):
        text = await request.text()
        self.calls.append(Call(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            body=json.loads(text) if text else None,
            headers=dict(request.headers),
        ))
        if self.gate is not None:
            await self.gate.wait()

        queue = self.responses.get((request.method, request.path))
        if not queue:
            return web.json_response(
                {'error': 'Not Found', 'status': 404, 'message': 'keine Fake-Antwort'}, status=404
            )
        status, body = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(body, bytes):
            return web.Response(body=body, status=status, content_type='application/json')
        if isinstance(body, str):
            return web.Response(text=body, status=status)
        return web.json_response(body, status=status)


def make_snapshot(token='token123', user=None):
    return json.dumps({
        'format': SESSION_FORMAT,
        'oauth_token': token,
        'identity': {'data': [dict(user or BROADCASTER)]},
    })


def poll_payload(poll_id='p1', choices=(), status='ACTIVE'):
    return {'data': [{
        'id': poll_id,
        'status': status,
        'choices': [dict(choice) for choice in choices],
    }]}


async def wait_until(predicate, timeout=2.0):
    """Wartet, bis predicate() wahr ist (für Dinge, die im Event Loop nachlaufen)"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Bedingung wurde nicht rechtzeitig erfüllt")
        await asyncio.sleep(0.01)


@pytest.fixture
async def twitch():
    fake = FakeTwitch()
    server = TestServer(fake.app)
    await server.start_server()
    fake.base_url = str(server.make_url('')).rstrip('/')
    yield fake
    if fake.gate is not None:
        fake.gate.set()
    await server.close()


@pytest.fixture
def redirect_uri():
    return f"http://127.0.0.1:{unused_port()}/callback"


def make_client(twitch, redirect_uri, oauth_token='token123', request_timeout=5):
    return TwitchClient(
        'cid', 'secret', oauth_token,
        api_base_url=twitch.url('/helix'),
        auth_base_url=twitch.url('/oauth2'),
        redirect_uri=redirect_uri,
        request_timeout=request_timeout,
    )


@pytest.fixture
async def client(twitch, redirect_uri):
    """Client mit Token, aber ohne Broadcaster-Infos"""
    client = make_client(twitch, redirect_uri)
    yield client
    await client.close()


@pytest.fixture
async def anonymous_client(twitch, redirect_uri):
    """Client ohne Token (vor der Anmeldung)"""
    client = make_client(twitch, redirect_uri, oauth_token=None)
    yield client
    await client.close()


@pytest.fixture
async def broadcaster_client(twitch, redirect_uri):
    """Client mit Token und Broadcaster-Infos (wie nach restore_state)"""
    client = make_client(twitch, redirect_uri)
    client.restore_state(make_snapshot())
    yield client
    await client.close()


@pytest.fixture
async def twitch_gate(twitch):
    """Hält alle Antworten des Fake-Servers zurück, bis gate.set() aufgerufen wird"""
    twitch.gate = asyncio.Event()
    return twitch.gate


@pytest.fixture
async def slow_client(twitch, redirect_uri):
    """Client mit Broadcaster-Infos und sehr kurzem Timeout"""
    client = make_client(twitch, redirect_uri, request_timeout=0.2)
    client.restore_state(make_snapshot())
    yield client
    await client.close()
