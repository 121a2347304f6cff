#!/usr/bin/env python3
"""
Startet eine Umfrage auf dem eigenen Kanal und zeigt die Stimmen live an.
Benötigt eine gespeicherte Sitzung (zuerst main.py ausführen).

Beispiel:
    python run_poll.py "Welches Spiel als nächstes?" 120 "Celeste" "Hades" "Outer Wilds"
"""
import argparse
import asyncio
import sys

from streampoll.config.loader import load_config
from streampoll.twitch import AnnouncementColor, PollValidationError, TwitchClient
from streampoll.twitch.client import SessionFormatError
from streampoll.twitch.request import RequestError
from streampoll.utils.colors import setup_logging, success, error, warning, info, highlight, dim
from streampoll.utils.storage import load_session


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Twitch-Umfrage starten und verfolgen")
    parser.add_argument('title', help="Frage (max. 60 Zeichen)")
    parser.add_argument('duration', type=int, help="Dauer in Sekunden (15-1800)")
    parser.add_argument('choices', nargs='+', help="2 bis 5 Antworten (je max. 25 Zeichen)")
    parser.add_argument('--interval', type=float, default=None,
                        help="Sekunden zwischen zwei Aktualisierungen (Standard aus config.json)")
    parser.add_argument('--end-after', type=float, default=None,
                        help="Umfrage nach so vielen Sekunden vorzeitig beenden")
    parser.add_argument('--announce', action='store_true',
                        help="Umfrage zusätzlich im Chat ankündigen")
    return parser.parse_args(argv)


def print_results(poll):
    for answer in poll.answers:
        print(f"  {highlight(answer.title)}: {answer.votes}")


def next_sleep(interval, remaining_seconds):
    """Wartezeit bis zur nächsten Aktualisierung, nie über das Ende der Umfrage hinaus"""
    return max(0.0, min(interval, remaining_seconds))


async def run_poll(args):
    """Erstellt die Umfrage, aktualisiert regelmäßig und zeigt das Endergebnis"""
    config = load_config()
    setup_logging(config.get('log_level', 'INFO'))
    interval = args.interval or config['poll']['refresh_interval']

    saved = load_session(config['session_file'])
    if not saved:
        print(error("✗ Keine gespeicherte Sitzung gefunden. Bitte zuerst main.py ausführen."))
        return 1

    async with TwitchClient.from_config(config) as client:
        try:
            client.restore_state(saved)
        except SessionFormatError as e:
            print(error(f"✗ Sitzungsdatei ist ungültig: {e}"))
            return 1

        if not client.can_create_poll():
            print(warning("⚠️  Umfragen sind nur für Affiliates und Partner verfügbar."))
            return 1

        try:
            poll = client.create_poll(args.title, args.duration, *args.choices)
        except PollValidationError as e:
            print(error(f"✗ Ungültige Umfrage: {e}"))
            return 1

        await poll.wait()
        if not poll.is_started:
            print(error(f"✗ Umfrage konnte nicht erstellt werden: {poll.last_error}"))
            return 1

        print(success(f"✓ Umfrage gestartet: {highlight(poll.title)} ({poll.duration}s)"))
        if args.announce:
            try:
                await client.make_announcement(f"Neue Umfrage: {poll.title}", AnnouncementColor.PURPLE)
            except RequestError as e:
                print(warning(f"⚠️  Ankündigung fehlgeschlagen: {e}"))

        loop = asyncio.get_running_loop()
        started = loop.time()
        while poll.is_ongoing:
            await asyncio.sleep(next_sleep(interval, poll.remaining_seconds))

            if args.end_after is not None and loop.time() - started >= args.end_after:
                if poll.end():
                    await poll.wait()
                    print(info("→ Umfrage vorzeitig beendet."))
                break

            if poll.refresh():
                await poll.wait()
                print(dim(f"-- noch {poll.remaining_seconds:.0f}s --"))
                print_results(poll)

        # Endergebnis: auch nach Ablauf liefert der Server noch die finalen Stimmen
        if poll.refresh():
            await poll.wait()

        print(f"\n{'=' * 60}")
        print(success("✓ Endergebnis:", bold=True))
        print_results(poll)
        print(f"{'=' * 60}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(run_poll(parse_args())))
    except KeyboardInterrupt:
        print("\n→ Abgebrochen durch Benutzer.")
