"""
Twitch Chat Integration (Ankündigungen)
"""
import enum
import logging

LOGGER = logging.getLogger(__name__)

READ_SCOPE = 'chat:read'
EDIT_SCOPE = 'chat:edit'
MAKE_ANNOUNCEMENTS_SCOPE = 'moderator:manage:announcements'

ANNOUNCEMENTS_PATH = '/chat/announcements'
MAX_ANNOUNCEMENT_LENGTH = 500


class AnnouncementColor(enum.Enum):
    BLUE = 'blue'
    GREEN = 'green'
    ORANGE = 'orange'
    PURPLE = 'purple'
    PRIMARY = 'primary'


def make_announcement(client, text, color=AnnouncementColor.PRIMARY, on_completed=None, on_error=None):
    """
    Sendet eine Ankündigung in den Chat des Broadcasters.
    Texte über 500 Zeichen werden gekürzt. Gibt None zurück, wenn die
    Broadcaster-Infos noch fehlen.
    """
    broadcaster = client.broadcaster
    if broadcaster is None:
        LOGGER.warning("Ankündigung nicht gesendet: Broadcaster-Infos fehlen")
        return None

    if len(text) > MAX_ANNOUNCEMENT_LENGTH:
        LOGGER.debug("Ankündigung auf %d Zeichen gekürzt", MAX_ANNOUNCEMENT_LENGTH)
        text = text[:MAX_ANNOUNCEMENT_LENGTH]

    body = {
        'message': text,
        'color': AnnouncementColor(color).value,
    }
    params = {
        'broadcaster_id': broadcaster.id,
        'moderator_id': broadcaster.id,
    }
    return client.send_request(
        'POST', f"{client.api_base_url}{ANNOUNCEMENTS_PATH}", body=body, params=params,
        on_completed=on_completed, on_error=on_error,
    )
