"""
Benutzerdaten (Broadcaster-Identität) aus der Twitch API
"""
from dataclasses import dataclass

USERS_PATH = '/users'


@dataclass(frozen=True)
class User:
    """Identität des angemeldeten Broadcasters"""
    id: str
    login: str
    display_name: str
    broadcaster_type: str = ''

    @classmethod
    def from_payload(cls, payload):
        """Liest den ersten Eintrag aus einer {"data": [...]} Antwort"""
        try:
            data = payload['data'][0]
            return cls(
                id=str(data['id']),
                login=data['login'],
                display_name=data.get('display_name', data['login']),
                broadcaster_type=data.get('broadcaster_type') or '',
            )
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Ungültige Benutzerdaten: {e!r}") from e

    def to_payload(self):
        return {
            'data': [{
                'id': self.id,
                'login': self.login,
                'display_name': self.display_name,
                'broadcaster_type': self.broadcaster_type,
            }]
        }
