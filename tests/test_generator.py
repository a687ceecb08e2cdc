import unittest

import numpy as np

from agentronic.composition import Note
from agentronic.errors import InvalidKeyError, UnsupportedGenerationTypeError
from agentronic.generator import (
    chord_notes,
    generate,
    generate_harmony,
    generate_melody,
    generate_orchestration,
    harmonize,
    scale_for,
)
from agentronic.pitch_classes import MAJOR_SCALE_INTERVALS, NOTE_NAMES, pitch_class_index


class TestScaleFor(unittest.TestCase):
    def test_every_key_yields_rotated_major_scale(self) -> None:
        for idx, key in enumerate(NOTE_NAMES):
            scale = scale_for(key)
            self.assertEqual(len(scale), 7)
            self.assertEqual(len(set(scale)), 7)
            self.assertTrue(all(0 <= pc <= 11 for pc in scale))
            self.assertEqual(scale, [(idx + i) % 12 for i in MAJOR_SCALE_INTERVALS])

    def test_c_major(self) -> None:
        self.assertEqual(scale_for("C"), [0, 2, 4, 5, 7, 9, 11])

    def test_unknown_key_raises(self) -> None:
        for bad in ("H", "Bb", "c", ""):
            with self.assertRaises(InvalidKeyError):
                scale_for(bad)


class TestChordNotes(unittest.TestCase):
    def test_major_and_minor(self) -> None:
        self.assertEqual(chord_notes("C", "major"), [0, 4, 7])
        self.assertEqual(chord_notes("A", "minor"), [9, 12, 16])

    def test_unknown_type_falls_back_to_root_only(self) -> None:
        self.assertEqual(chord_notes("D", "diminished"), [2])
        self.assertEqual(chord_notes("G", ""), [7])

    def test_unknown_root_raises(self) -> None:
        with self.assertRaises(InvalidKeyError):
            chord_notes("X", "major")

    def test_offsets_reduce_back_to_root_third_and_fifth(self) -> None:
        expected_third = {"major": 4, "minor": 3}
        for root in NOTE_NAMES:
            root_idx = pitch_class_index(root)
            for chord_type, third in expected_third.items():
                notes = chord_notes(root, chord_type)
                self.assertEqual(notes[0] % 12, root_idx)
                self.assertEqual((notes[1] - notes[0]) % 12, third)
                self.assertEqual((notes[2] - notes[0]) % 12, 7)
                self.assertEqual(NOTE_NAMES[notes[0] % 12], root)


class TestGenerateMelody(unittest.TestCase):
    def test_c_major_melody_structure(self) -> None:
        melody = generate_melody("C", 8, rng=np.random.default_rng(7))
        self.assertEqual(len(melody), 8)
        allowed = {60, 62, 64, 65, 67, 69, 71, 72}
        for i, note in enumerate(melody):
            self.assertIn(note.pitch, allowed)
            self.assertEqual(note.midi_note, note.pitch)
            self.assertTrue(64 <= note.velocity <= 95)
            self.assertAlmostEqual(note.start_time, i * 0.5, places=8)
            self.assertAlmostEqual(note.duration, 0.5, places=8)
        starts = [n.start_time for n in melody]
        self.assertTrue(all(b > a for a, b in zip(starts, starts[1:])))

    def test_pitches_stay_in_transposed_scale(self) -> None:
        melody = generate_melody("F#", 64, rng=np.random.default_rng(3))
        scale = set(scale_for("F#"))
        for note in melody:
            self.assertIn(note.pitch % 12, scale)
            self.assertTrue(60 <= note.pitch <= 71)

    def test_same_seed_reproduces_melody(self) -> None:
        a = generate_melody("D", 16, rng=np.random.default_rng(42))
        b = generate_melody("D", 16, rng=np.random.default_rng(42))
        self.assertEqual(a, b)

    def test_velocity_range_is_covered_over_many_draws(self) -> None:
        melody = generate_melody("C", 2000, rng=np.random.default_rng(11))
        velocities = {n.velocity for n in melody}
        self.assertEqual(min(velocities), 64)
        self.assertEqual(max(velocities), 95)

    def test_zero_length_and_negative_length(self) -> None:
        self.assertEqual(generate_melody("C", 0), [])
        with self.assertRaises(ValueError):
            generate_melody("C", -1)

    def test_invalid_key_raises(self) -> None:
        with self.assertRaises(InvalidKeyError):
            generate_melody("Q", 4)


class TestHarmonize(unittest.TestCase):
    def test_i_iv_v_i_in_c(self) -> None:
        chords = harmonize([])
        self.assertEqual([c.root_note for c in chords], ["C", "F", "G", "C"])
        self.assertEqual([c.start_time for c in chords], [0.0, 2.0, 4.0, 6.0])
        self.assertTrue(all(c.duration == 2.0 for c in chords))
        self.assertTrue(all(c.chord_type == "major" for c in chords))
        self.assertEqual(chords[1].notes, (5, 9, 12))

    def test_rooted_on_requested_key(self) -> None:
        chords = harmonize([], key="A")
        self.assertEqual([c.root_note for c in chords], ["A", "D", "E", "A"])

    def test_known_quirk_melody_content_is_ignored(self) -> None:
        low = [Note(pitch=40, velocity=70, start_time=0.0, duration=1.0)]
        high = generate_melody("B", 12, rng=np.random.default_rng(5))
        self.assertEqual(harmonize(low, key="G"), harmonize(high, key="G"))
        self.assertEqual(harmonize(low, key="G"), harmonize([], key="G"))


class TestGenerationKinds(unittest.TestCase):
    def test_harmony_uses_key_for_every_step(self) -> None:
        record = generate_harmony(key="D", progression=("I", "vi", "IV", "V", "I"))
        self.assertEqual(len(record["chords"]), 5)
        self.assertTrue(all(c.root_note == "D" for c in record["chords"]))
        self.assertEqual(record["chords"][0].notes, (2, 6, 9))
        self.assertEqual(record["duration"], 10.0)
        self.assertEqual(record["metadata"]["progression"], ["I", "vi", "IV", "V", "I"])

    def test_orchestration_has_one_part_per_instrument(self) -> None:
        record = generate_orchestration(["flute", "oboe"], length=4, rng=np.random.default_rng(1))
        self.assertEqual([p["partNumber"] for p in record["parts"]], [1, 2])
        self.assertEqual([p["instrument"] for p in record["parts"]], ["flute", "oboe"])
        self.assertTrue(all(len(p["notes"]) == 4 for p in record["parts"]))
        self.assertEqual(record["duration"], 2.0)

    def test_generate_dispatch_uses_defaults(self) -> None:
        record = generate("melody", {}, rng=np.random.default_rng(0))
        self.assertEqual(len(record["notes"]), 16)
        self.assertEqual(record["metadata"], {"key": "C", "style": "classical", "noteCount": 16})
        self.assertEqual(record["duration"], 8.0)

    def test_generate_orchestration_defaults(self) -> None:
        record = generate("orchestration", {"length": 2}, rng=np.random.default_rng(0))
        self.assertEqual([p["name"] for p in record["parts"]], ["violin", "viola", "cello"])

    def test_single_string_parameters_are_one_item(self) -> None:
        orchestration = generate("orchestration", {"instruments": "violin", "length": 2}, rng=np.random.default_rng(0))
        self.assertEqual([p["instrument"] for p in orchestration["parts"]], ["violin"])
        harmony = generate("harmony", {"progression": "IV"})
        self.assertEqual(len(harmony["chords"]), 1)
        self.assertEqual(harmony["metadata"]["progression"], ["IV"])

    def test_unknown_generation_type_raises(self) -> None:
        with self.assertRaises(UnsupportedGenerationTypeError):
            generate("counterpoint", {})


if __name__ == "__main__":
    unittest.main()
