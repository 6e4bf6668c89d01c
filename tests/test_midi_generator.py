import pytest

from depth2midi.midi_generator import MidiWriter, volume_to_velocity


@pytest.mark.parametrize("volume,velocity", [
    (-30.0, 1),
    (0.4, 1),
    (59.6, 60),
    (210.0, 127),
])
def test_volume_to_velocity(volume, velocity):
    assert volume_to_velocity(volume) == velocity


def test_note_on_off_pairing():
    writer = MidiWriter(tempo=120)

    writer.add_note_on(0.5, 60, 80.0)
    assert writer.active_notes == {60: (1.0, 80)}

    writer.add_note_off(1.0, 60)
    assert writer.active_notes == {}
    assert writer.note_count == 1


def test_note_off_without_note_on_is_ignored():
    writer = MidiWriter()

    writer.add_note_off(1.0, 64)

    assert writer.note_count == 0


def test_repeated_note_on_closes_previous():
    writer = MidiWriter()

    writer.add_note_on(0.0, 62, 50.0)
    writer.add_note_on(0.5, 62, 90.0)

    assert writer.note_count == 1
    assert writer.active_notes[62][1] == 90


def test_finalize_closes_hanging_notes():
    writer = MidiWriter()
    writer.add_note_on(0.0, 60, 64.0)
    writer.add_note_on(0.1, 64, 64.0)

    writer.finalize_active_notes(2.0)

    assert writer.active_notes == {}
    assert writer.note_count == 2


def test_save_file(tmp_path):
    writer = MidiWriter()
    writer.add_note_on(0.0, 60, 100.0)
    path = tmp_path / "out" / "take.mid"

    assert writer.save_file(str(path))

    data = path.read_bytes()
    assert data.startswith(b"MThd")
    assert writer.note_count == 1
