"""
Tests für streampoll.twitch.client (Sitzung, Identität, Snapshot)
"""
import json
from unittest.mock import Mock

import aiohttp
import pytest

from conftest import BROADCASTER, make_snapshot
from streampoll.auth.oauth_flow import AuthorizationCancelled
from streampoll.twitch.client import AuthorizationInProgress, SessionFormatError, TwitchClient
from streampoll.twitch.request import ApiError
from streampoll.twitch.users import User

OTHER_USER = {
    'id': '999',
    'login': 'neuer_name',
    'display_name': 'NeuerName',
    'broadcaster_type': '',
}


class TestIdentity:

    async def test_fetch_identity_without_token_is_not_launched(self, twitch, anonymous_client):
        assert anonymous_client.fetch_identity() is None
        assert twitch.calls == []
        assert anonymous_client.broadcaster is None

    async def test_fetch_identity_replaces_user_wholesale(self, twitch, broadcaster_client):
        twitch.respond('GET', '/helix/users', {'data': [OTHER_USER]})
        on_completed = Mock()
        assert broadcaster_client.can_create_poll()

        await broadcaster_client.fetch_identity(on_completed=on_completed)

        expected = User('999', 'neuer_name', 'NeuerName', '')
        assert broadcaster_client.broadcaster == expected
        on_completed.assert_called_once_with(expected)
        assert not broadcaster_client.can_create_poll()
        call = twitch.calls_to('GET', '/helix/users')[0]
        assert call.headers['Authorization'] == 'Bearer token123'

    async def test_fetch_identity_error_keeps_previous_user(self, twitch, broadcaster_client):
        twitch.respond('GET', '/helix/users', {'error': 'Unauthorized', 'status': 401, 'message': 'Invalid OAuth token'}, status=401)
        on_error = Mock()

        with pytest.raises(ApiError):
            await broadcaster_client.fetch_identity(on_error=on_error)

        on_error.assert_called_once()
        assert broadcaster_client.broadcaster.id == BROADCASTER['id']

    def test_user_payload_roundtrip_shape(self):
        user = User.from_payload({'data': [BROADCASTER]})
        assert user.to_payload() == {'data': [BROADCASTER]}

    def test_user_missing_broadcaster_type_defaults_to_empty(self):
        user = User.from_payload({'data': [{'id': '1', 'login': 'x', 'display_name': 'X'}]})
        assert user.broadcaster_type == ''


class TestSessionState:

    def test_serialize_and_restore(self):
        client = TwitchClient.from_state('cid', 'secret', make_snapshot())
        blob = client.serialize_state()

        restored = TwitchClient.from_state('cid', 'secret', blob)

        assert restored.oauth_token == 'token123'
        assert restored.broadcaster == client.broadcaster
        assert json.loads(blob)['format'] == 'streampoll.session/1'

    def test_serialize_requires_token_and_identity(self):
        with pytest.raises(SessionFormatError):
            TwitchClient('cid', 'secret', 'token').serialize_state()

    @pytest.mark.parametrize('blob', [
        'kein json',
        '[]',
        json.dumps({'oauth_token': 't', 'identity': {'data': [BROADCASTER]}}),
        json.dumps({'format': 'streampoll.session/1', 'identity': {'data': [BROADCASTER]}}),
        json.dumps({'format': 'streampoll.session/1', 'oauth_token': 't'}),
        json.dumps({'format': 'streampoll.session/1', 'oauth_token': 't', 'identity': {'data': []}}),
    ])
    def test_restore_rejects_incomplete_snapshots(self, blob):
        client = TwitchClient('cid', 'secret')
        with pytest.raises(SessionFormatError):
            client.restore_state(blob)
        assert not client.has_oauth
        assert not client.has_broadcaster_infos


class TestAuthorization:

    async def test_token_is_stored_after_redirect(self, twitch, anonymous_client, redirect_uri):
        twitch.respond('POST', '/oauth2/token', {'access_token': 'frisch', 'scope': []})
        on_token = Mock()

        listener = await anonymous_client.request_authorization(
            'channel:read:polls', open_browser=False, on_token=on_token,
        )
        assert anonymous_client.is_authorizing

        async with aiohttp.ClientSession() as browser:
            async with browser.get(redirect_uri, params={'code': 'c', 'state': listener.state}):
                pass
        await listener.wait()

        assert anonymous_client.oauth_token == 'frisch'
        assert not anonymous_client.is_authorizing
        on_token.assert_called_once()

    async def test_second_authorization_while_pending_is_refused(self, anonymous_client):
        listener = await anonymous_client.request_authorization('chat:read', open_browser=False)

        with pytest.raises(AuthorizationInProgress):
            await anonymous_client.request_authorization('chat:read', open_browser=False)

        await listener.close()
        assert not anonymous_client.is_authorizing

    async def test_close_disposes_pending_authorization(self, anonymous_client):
        listener = await anonymous_client.request_authorization('chat:read', open_browser=False)

        await anonymous_client.close()

        assert not listener.is_listening
        with pytest.raises(AuthorizationCancelled):
            await listener.wait()
        assert anonymous_client.oauth_token is None
