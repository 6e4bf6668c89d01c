import pytest

from depth2midi.detection.base import DetectionConfigError, KeyState
from depth2midi.detection.key_layout import KeyboardLayout
from depth2midi.detection.key_state import KeyStateMachine


@pytest.fixture
def key():
    return KeyboardLayout(1, 40, first_semitone=0)[0]


@pytest.fixture
def machine():
    return KeyStateMachine(mute_distance=2.5, sound_distance=4.5, velocity_gain=30.0)


def run_averages(machine, key, averages):
    return [machine.evaluate(key, average) for average in averages]


def test_sharp_press_velocity(machine, key):
    events = run_averages(machine, key, [0, 0, 0, 0, 0, 7, 7, 7, 7, 7])

    assert events[:5] == [None] * 5
    assert events[5] is not None
    assert events[5].velocity == pytest.approx(210.0)
    assert events[5].key_id == key.key_id
    assert events[5].midi_note == key.get_midi_note_number()
    assert events[6:] == [None] * 4
    assert key.sound_volume == pytest.approx(210.0)
    assert machine.state_of(key) is KeyState.SOUNDING


def test_slow_press_scores_low(machine, key):
    averages = [0.5 * step for step in range(1, 11)]

    events = run_averages(machine, key, averages)

    struck = [e for e in events if e is not None]
    assert len(struck) == 1
    assert events.index(struck[0]) == 9  # first average above 4.5 is 5.0
    assert struck[0].velocity == pytest.approx(15.0)


def test_release_and_rearm(machine, key):
    events = run_averages(machine, key, [0, 0, 7, 7, 1, 3, 5, 5])

    assert events[2].velocity == pytest.approx(210.0)
    assert events[3] is None
    assert events[4] is None
    assert events[5] is None
    assert events[6].velocity == pytest.approx(60.0)
    assert events[7] is None


def test_states_follow_average(machine, key):
    machine.evaluate(key, 1.0)
    assert machine.state_of(key) is KeyState.IDLE

    machine.evaluate(key, 3.0)
    assert machine.state_of(key) is KeyState.ARMED

    machine.evaluate(key, 6.0)
    assert machine.state_of(key) is KeyState.SOUNDING

    machine.evaluate(key, 3.0)  # between thresholds: keeps sounding
    assert machine.state_of(key) is KeyState.SOUNDING

    machine.evaluate(key, 2.0)
    assert machine.state_of(key) is KeyState.IDLE
    assert key.sound_volume == 0.0


def test_no_retrigger_while_held(machine, key):
    events = run_averages(machine, key, [0, 6, 8, 10, 4, 9])

    assert sum(e is not None for e in events) == 1


def test_observe_uses_rolling_average(machine, key):
    events = [machine.observe(key, 7.0) for _ in range(4)]

    # averages 1.4, 2.8, 4.2, 5.6
    assert events[:3] == [None, None, None]
    assert events[3].velocity == pytest.approx(42.0)
    assert key.average == pytest.approx(5.6)
    assert key.depth == 7.0


def test_snapshot_reflects_key(machine, key):
    for _ in range(5):
        machine.observe(key, 10.0, occluded=False)
    machine.observe(key, 10.0, occluded=True)

    snap = machine.snapshot(key)

    assert snap.is_sounding
    assert snap.occluded
    assert snap.state is KeyState.SOUNDING
    assert snap.note_name == "C"


def test_non_positive_velocity_still_emits_event(machine, key):
    # the average can exceed the sound threshold while falling
    machine.evaluate(key, 6.0)
    key.sound_volume = 0.0

    event = machine.evaluate(key, 5.0)

    assert event is not None
    assert event.velocity == pytest.approx(-30.0)
    assert not key.is_sounding


def test_mute_above_sound_rejected():
    with pytest.raises(DetectionConfigError):
        KeyStateMachine(mute_distance=5.0, sound_distance=4.0)
