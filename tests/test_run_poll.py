"""
Tests für das Umfrage-Skript (run_poll.py)
"""
import pytest

from run_poll import next_sleep, parse_args


class TestNextSleep:

    def test_full_interval_while_time_remains(self):
        assert next_sleep(5, 42.0) == 5

    def test_shortened_to_remaining_time(self):
        assert next_sleep(5, 1.5) == pytest.approx(1.5)

    def test_no_extra_interval_after_end(self):
        assert next_sleep(5, 0.0) == 0.0


def test_parse_args():
    args = parse_args(['Frage?', '120', 'A', 'B', '--interval', '2', '--announce'])

    assert args.title == 'Frage?'
    assert args.duration == 120
    assert args.choices == ['A', 'B']
    assert args.interval == 2.0
    assert args.end_after is None
    assert args.announce
