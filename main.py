"""
streampoll - Anmeldung
Version 1.0

Meldet den Broadcaster per OAuth (lokaler Server auf der Redirect-URI) an,
lädt die Benutzerdaten und speichert Token + Identität in der Sitzungsdatei,
damit run_poll.py ohne erneute Anmeldung starten kann.
"""
import asyncio

from streampoll.config.loader import load_config
from streampoll.twitch import TwitchClient
from streampoll.twitch.client import SessionFormatError
from streampoll.twitch.request import RequestError
from streampoll.utils.colors import setup_logging, success, error, warning, info, highlight
from streampoll.utils.storage import delete_session, load_session, save_session
from streampoll.auth import OAuthError


async def main():
    """Hauptfunktion: Sitzung wiederherstellen oder neu anmelden"""
    config = load_config()
    setup_logging(config.get('log_level', 'INFO'))

    session_file = config['session_file']
    saved = load_session(session_file)

    async with TwitchClient.from_config(config) as client:
        if saved:
            try:
                client.restore_state(saved)
            except SessionFormatError as e:
                print(warning(f"⚠️  Sitzungsdatei ungültig ({e}), melde neu an."))
                delete_session(session_file)
            else:
                user = client.broadcaster
                print(success(f"✓ Gespeicherte Sitzung geladen: {highlight(user.display_name)}"))
                print(info(f"  Zum erneuten Anmelden {session_file} löschen."))
                return

        print(info("→ Starte Twitch-Autorisierung im Browser..."))
        listener = await client.request_authorization(*config['scopes'])
        print(f"  Falls sich kein Browser öffnet: {listener.authorization_url}")

        try:
            await listener.wait()
        except OAuthError as e:
            print(error(f"✗ Autorisierung fehlgeschlagen: {e}"))
            return
        except RequestError as e:
            print(error(f"✗ Token-Austausch fehlgeschlagen: {e}"))
            return

        print(success("✓ Token erhalten."))

        try:
            await client.fetch_identity()
        except RequestError as e:
            print(error(f"✗ Benutzerdaten konnten nicht geladen werden: {e}"))
            return

        if client.broadcaster is None:
            print(error("✗ Antwort enthielt keine gültigen Benutzerdaten."))
            return

        user = client.broadcaster
        print(success(f"✓ Angemeldet als {highlight(user.display_name)} (id={user.id})"))
        if not client.can_create_poll():
            print(warning("⚠️  Umfragen sind nur für Affiliates und Partner verfügbar."))

        save_session(session_file, client.serialize_state())
        print(success(f"✓ Sitzung in {session_file} gespeichert."))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n→ Programm durch Strg+C beendet.")
