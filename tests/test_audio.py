# tests/test_audio.py
import io

from rich.console import Console

from recite_tutor.audio import TickCue, open_cue


def test_tick_rings_terminal_bell():
    buf = io.StringIO()
    cue = TickCue(console=Console(file=buf, force_terminal=True))
    cue.tick()
    assert "\x07" in buf.getvalue()


def test_tick_silent_when_not_a_terminal():
    buf = io.StringIO()
    cue = TickCue(console=Console(file=buf, force_terminal=False))
    cue.tick()
    assert buf.getvalue() == ""


def test_tick_disabled():
    buf = io.StringIO()
    cue = TickCue(enabled=False, console=Console(file=buf, force_terminal=True))
    cue.tick()
    assert buf.getvalue() == ""


def test_device_failure_disables_cue():
    class BrokenConsole:
        is_terminal = True

        def bell(self):
            raise OSError("no device")

    cue = TickCue(console=BrokenConsole())
    cue.tick()
    assert cue.enabled is False
    cue.tick()


def test_shared_cue_released_by_last_holder():
    with open_cue(enabled=False) as outer:
        with open_cue(enabled=False) as inner:
            assert inner is outer
        assert not outer.closed
    assert outer.closed
    with open_cue(enabled=False) as fresh:
        assert fresh is not outer
