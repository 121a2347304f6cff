"""
Twitch Umfragen (Polls): Erstellen, Aktualisieren und vorzeitiges Beenden

Eine Poll-Instanz spiegelt genau eine Umfrage auf dem Server. Pro Instanz
läuft höchstens ein Request gleichzeitig; Antworten des Servers werden in die
lokalen Antworten gemerged (erst per Titel, danach nur noch per ID).
"""
import enum
import logging
import time

from streampoll.twitch.request import RequestError

LOGGER = logging.getLogger(__name__)

# Scope um Umfragen zu lesen
READ_SCOPE = 'channel:read:polls'
# Scope um Umfragen zu erstellen und zu beenden
MANAGE_SCOPE = 'channel:manage:polls'

POLLS_PATH = '/polls'

MIN_CHOICES = 2
MAX_CHOICES = 5
MAX_TITLE_LENGTH = 60
MAX_CHOICE_LENGTH = 25
MIN_DURATION = 15
MAX_DURATION = 1800


class PollValidationError(ValueError):
    """Ungültige Parameter beim Erstellen einer Umfrage (vor jedem Netzwerkaufruf)"""


class PollState(enum.Enum):
    UNSTARTED = 'unstarted'
    ACTIVE = 'active'
    ENDED = 'ended'


def validate_poll(title, duration, choices):
    """Prüft alle Grenzen der Twitch API, wirft PollValidationError"""
    if not isinstance(duration, int) or isinstance(duration, bool):
        raise PollValidationError("duration muss eine ganze Zahl (Sekunden) sein")
    if duration < MIN_DURATION or duration > MAX_DURATION:
        raise PollValidationError(
            f"duration muss zwischen {MIN_DURATION} und {MAX_DURATION} Sekunden liegen"
        )
    if not title:
        raise PollValidationError("title darf nicht leer sein")
    if len(title) > MAX_TITLE_LENGTH:
        raise PollValidationError(f"title darf höchstens {MAX_TITLE_LENGTH} Zeichen haben")
    if len(choices) < MIN_CHOICES or len(choices) > MAX_CHOICES:
        raise PollValidationError(
            f"es sind nur {MIN_CHOICES} bis {MAX_CHOICES} Antworten erlaubt"
        )
    for choice in choices:
        if not choice:
            raise PollValidationError("Antworten dürfen nicht leer sein")
        if len(choice) > MAX_CHOICE_LENGTH:
            raise PollValidationError(
                f"Antworten dürfen höchstens {MAX_CHOICE_LENGTH} Zeichen haben: {choice!r}"
            )


class PollAnswer:
    """Eine Antwortmöglichkeit; Stimmen kommen ausschließlich vom Server"""

    def __init__(self, title):
        self._title = title
        self.server_id = None
        self.votes = 0

    def __repr__(self):
        return f"PollAnswer({self._title!r}, id={self.server_id!r}, votes={self.votes})"

    @property
    def title(self):
        return self._title

    def update(self, record):
        """
        Übernimmt einen Antwort-Datensatz des Servers, falls er passt.
        Mit bekannter ID zählt nur die ID, sonst der exakte Titel.
        Gibt True zurück, wenn der Datensatz übernommen wurde.
        """
        record_id = record.get('id')
        if self.server_id is not None:
            matches = record_id is not None and str(record_id) == self.server_id
        else:
            matches = record.get('title') == self._title
        if not matches:
            return False

        if self.server_id is None and record_id:
            self.server_id = str(record_id)
        votes = record.get('votes')
        if votes is not None:
            self.votes = int(votes)
        return True


class Poll:
    """
    Eine laufende Umfrage auf dem Kanal des Broadcasters.

    Der Konstruktor prüft alle Parameter und startet sofort den Erstell-Request.
    refresh() und end() geben False zurück, wenn bereits ein Request läuft oder
    die Umfrage (noch) nicht gestartet wurde.
    """

    def __init__(self, client, title, duration, *choices, on_created=None, on_error=None,
                 clock=time.monotonic):
        validate_poll(title, duration, choices)
        if not client.has_oauth:
            raise PollValidationError("der Client hat kein OAuth-Token")
        if not client.has_broadcaster_infos:
            raise PollValidationError("der Client hat keine Broadcaster-Infos")

        self.title = title
        self.duration = duration
        self.answers = tuple(PollAnswer(choice) for choice in choices)

        self.server_id = None
        self.server_status = None
        self.start_time = None
        self.last_error = None

        self._client = client
        self._broadcaster_id = client.broadcaster.id
        self._url = f"{client.api_base_url}{POLLS_PATH}"
        self._clock = clock
        self._terminated = False
        self._request = None
        self._on_finished = None
        self._on_error = None

        body = {
            'broadcaster_id': self._broadcaster_id,
            'title': title,
            'choices': [{'title': choice} for choice in choices],
            'duration': duration,
        }
        self._launch('POST', self._on_create_completed, on_created, on_error, body=body)

    def __repr__(self):
        return f"<Poll {self.title!r} id={self.server_id} state={self.state.value}>"

    @property
    def has_ongoing_request(self):
        return self._request is not None and not self._request.done

    @property
    def is_started(self):
        return self.start_time is not None

    @property
    def is_terminated(self):
        return self._terminated

    @property
    def is_ongoing(self):
        """
        Schätzung anhand der lokalen, monotonen Uhr: gestartet und Laufzeit
        noch nicht abgelaufen. Kann zwischen zwei Aktualisierungen vom Server
        abweichen und ist keine verbindliche Aussage.
        """
        if not self.is_started or self._terminated:
            return False
        return self._clock() < self.start_time + self.duration

    @property
    def remaining_seconds(self):
        if not self.is_ongoing:
            return 0.0
        return max(0.0, self.start_time + self.duration - self._clock())

    @property
    def state(self):
        if not self.is_started:
            return PollState.UNSTARTED
        if self.is_ongoing:
            return PollState.ACTIVE
        return PollState.ENDED

    def results(self):
        """Aktueller Stand als {Antwort: Stimmen}"""
        return {answer.title: answer.votes for answer in self.answers}

    def refresh(self, on_finished=None, on_error=None):
        """
        Lädt den aktuellen Stand vom Server. Funktioniert auch nach dem Ende
        der Umfrage, um die endgültigen Stimmen abzufragen.
        """
        if self.has_ongoing_request or not self.is_started:
            return False
        params = {'broadcaster_id': self._broadcaster_id, 'id': self.server_id}
        return self._launch('GET', self._on_refresh_completed, on_finished, on_error, params=params)

    def end(self, on_finished=None, on_error=None, archive=False):
        """Beendet die Umfrage vorzeitig; die Ergebnisse werden dabei aktualisiert"""
        if self.has_ongoing_request or not self.is_started:
            return False
        body = {
            'broadcaster_id': self._broadcaster_id,
            'id': self.server_id,
            'status': 'ARCHIVED' if archive else 'TERMINATED',
        }
        return self._launch('PATCH', self._on_end_completed, on_finished, on_error, body=body)

    async def wait(self):
        """Wartet, bis der laufende Request abgeschlossen ist (Fehler stehen in last_error)"""
        if self._request is not None:
            try:
                await self._request.wait()
            except RequestError:
                pass
        return self

    def _launch(self, method, on_completed, on_finished, on_error, body=None, params=None):
        self._on_finished = on_finished
        self._on_error = on_error
        self._request = self._client.send_request(
            method, self._url, body=body, params=params,
            on_completed=on_completed, on_error=self._on_request_error,
        )
        return True

    def _on_create_completed(self, payload):
        self._merge(payload)
        self.start_time = self._clock()
        LOGGER.info("Umfrage %r gestartet (id=%s, %ss)", self.title, self.server_id, self.duration)
        self._finish()

    def _on_refresh_completed(self, payload):
        self._merge(payload)
        self._finish()

    def _on_end_completed(self, payload):
        self._merge(payload)
        self._terminated = True
        LOGGER.info("Umfrage %r beendet: %s", self.title, self.results())
        self._finish()

    def _on_request_error(self, failure):
        self.last_error = failure
        callback = self._on_error
        self._on_finished = None
        self._on_error = None
        if callback is not None:
            callback(failure)

    def _finish(self):
        callback = self._on_finished
        self._on_finished = None
        self._on_error = None
        if callback is not None:
            callback(self)

    def _merge(self, payload):
        try:
            data = payload['data'][0]
            records = data.get('choices') or []
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Ungültige Umfrage-Antwort: {e!r}") from e

        if self.server_id is None and data.get('id'):
            self.server_id = str(data['id'])
        self.server_status = data.get('status', self.server_status)

        for answer in self.answers:
            for record in records:
                if answer.update(record):
                    break
