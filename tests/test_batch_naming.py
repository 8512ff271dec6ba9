"""
tests/test_batch_naming.py
Tests for hexbloop/batch.py schemes, numbering and session folders
"""

from datetime import datetime

import pytest

from hexbloop.batch import (
    PRESERVE_MARKER,
    BatchNamingEngine,
    format_number,
    to_alpha,
    to_roman,
)
from hexbloop.config import BatchNamingSettings
from hexbloop.counters import CounterStore, MemoryCounterBackend
from hexbloop.lunar import PhaseName, TemporalInfluence, TimeCategory
from hexbloop.naming import is_valid_name
from hexbloop.seeds import SeededRandom

SESSION_TIME = datetime(2024, 3, 9, 21, 15, 30)
FULL_MOON_EVENING = TemporalInfluence(0.5, 1.0, PhaseName.FULL_MOON, TimeCategory.EVENING)


def engine(counters=None, seed=11, **settings) -> BatchNamingEngine:
    return BatchNamingEngine(
        settings=BatchNamingSettings(**settings),
        counters=counters or CounterStore(MemoryCounterBackend()),
        rng=SeededRandom(seed),
        now=SESSION_TIME,
        influence=FULL_MOON_EVENING,
    )


class TestNumbering:
    """Tests for to_alpha / to_roman / format_number"""

    @pytest.mark.parametrize("n,expected", [(1, "A"), (26, "Z"), (27, "AA"), (52, "AZ"), (703, "AAA")])
    def test_alpha(self, n, expected):
        assert to_alpha(n) == expected

    @pytest.mark.parametrize("n,expected", [(1, "i"), (4, "iv"), (9, "ix"), (14, "xiv"),
                                            (40, "xl"), (1994, "mcmxciv")])
    def test_roman(self, n, expected):
        assert to_roman(n) == expected

    def test_non_positive_rejected(self):
        with pytest.raises(ValueError):
            to_alpha(0)
        with pytest.raises(ValueError):
            to_roman(0)

    def test_format_number(self):
        assert format_number(7, "numeric", 3) == "007"
        assert format_number(7, "numeric", 1) == "7"
        assert format_number(3, "alpha") == "C"
        assert format_number(3, "roman") == "iii"
        assert format_number(3, "none") is None


class TestSchemes:
    """Tests for BatchNamingEngine.generate_name per scheme"""

    def test_sequential_default_base(self):
        names = [r.text for r in engine(scheme="sequential").name_batch(["a.wav", "b.wav", "c.wav"])]
        assert names == ["track_001", "track_002", "track_003"]

    def test_sequential_with_prefix_and_suffix(self):
        e = engine(scheme="sequential", prefix="demo", suffix="final", separator="-", numbering_padding=2)
        assert e.generate_name("x.wav", 4, 10).text == "demo-05-final"

    def test_alpha_numbering(self):
        e = engine(scheme="sequential", numbering="alpha")
        assert [r.text for r in e.name_batch(["a", "b"])] == ["track_A", "track_B"]

    def test_roman_numbering(self):
        e = engine(scheme="sequential", numbering="roman")
        assert e.generate_name("a", 3, 5).text == "track_iv"

    def test_timestamp_shared_across_batch(self):
        e = engine(scheme="timestamp")
        names = [r.text for r in e.name_batch(["a.wav", "b.wav"])]
        assert names == ["hexbloop_20240309_211530_001", "hexbloop_20240309_211530_002"]

    def test_timestamp_single_file_has_no_number(self):
        assert engine(scheme="timestamp").name_batch(["a.wav"])[0].text == "hexbloop_20240309_211530"

    def test_preserve_with_marker(self):
        record = engine(scheme="preserve").generate_name("/music/My Song.wav")
        assert record.text == f"My_Song_{PRESERVE_MARKER}"

    def test_preserve_without_marker(self):
        record = engine(scheme="preserve", preserve_original=False).generate_name("/music/My Song.wav")
        assert record.text == "My_Song"

    def test_mystical_names_valid(self):
        records = engine(scheme="mystical").name_batch([f"{i}.wav" for i in range(20)])
        for r in records:
            assert is_valid_name(r.text, r.style)
            assert r.numbering_token is None

    def test_hybrid_has_counter(self):
        records = engine(scheme="hybrid").name_batch(["a.wav", "b.wav"])
        assert records[0].text.endswith("_001")
        assert records[1].text.endswith("_002")

    def test_seeded_mystical_reproducible(self):
        paths = ["a.wav", "b.wav", "c.wav"]
        first = [r.text for r in engine(seed=5).name_batch(paths)]
        second = [r.text for r in engine(seed=5).name_batch(paths)]
        assert first == second

    def test_no_separator(self):
        e = engine(scheme="sequential", separator="", prefix="take")
        assert e.generate_name("a", 0, 1).text == "take001"


class TestUniqueness:
    """Tests for make_unique / name_batch collision handling"""

    def test_duplicates_within_batch(self):
        e = engine(scheme="preserve", preserve_original=False)
        names = [r.text for r in e.name_batch(["/a/song.wav", "/b/song.wav", "/c/SONG.wav"])]
        assert names == ["song", "song_2", "SONG_3"]

    def test_existing_file_in_output_dir(self, tmp_path):
        (tmp_path / "track_001.mp3").write_bytes(b"x")
        e = engine(scheme="sequential")
        names = [r.text for r in e.name_batch(["a.wav", "b.wav"], tmp_path, ".mp3")]
        assert names == ["track_001_2", "track_002"]

    def test_per_path_extensions(self, tmp_path):
        (tmp_path / "song.flac").write_bytes(b"x")
        e = engine(scheme="preserve", preserve_original=False)
        names = [r.text for r in e.name_batch(["/a/song.flac"], tmp_path, [".flac"])]
        assert names == ["song_2"]

    def test_unique_mystical_batch(self):
        records = engine(scheme="mystical").name_batch([f"{i}.wav" for i in range(50)])
        lowered = [r.text.lower() for r in records]
        assert len(set(lowered)) == len(lowered)


class TestSessionFolders:
    """Tests for claim_session_folder / peek_session_folder"""

    def test_disabled(self):
        assert engine().claim_session_folder() is None

    def test_date_scheme(self):
        store = CounterStore(MemoryCounterBackend())
        assert engine(store, session_folders=True).claim_session_folder() == "2024-03-09_session_01"
        assert engine(store, session_folders=True).claim_session_folder() == "2024-03-09_session_02"

    def test_lunar_scheme(self):
        e = engine(session_folders=True, folder_scheme="lunar")
        assert e.claim_session_folder() == "lunar_full_moon_001"

    def test_counter_scheme(self):
        store = CounterStore(MemoryCounterBackend({"global": 41}))
        e = engine(store, session_folders=True, folder_scheme="counter")
        assert e.claim_session_folder() == "session_042"

    def test_claimed_once_per_engine(self):
        store = CounterStore(MemoryCounterBackend())
        e = engine(store, session_folders=True, folder_scheme="counter")
        assert e.claim_session_folder() == e.claim_session_folder()
        assert store.peek("global") == 1

    def test_folder_counter_persists(self, tmp_path):
        path = tmp_path / "counters.json"
        engine(CounterStore.at_path(path), session_folders=True).claim_session_folder()
        folder = engine(CounterStore.at_path(path), session_folders=True).claim_session_folder()
        assert folder == "2024-03-09_session_02"

    def test_peek_does_not_claim(self):
        store = CounterStore(MemoryCounterBackend())
        e = engine(store, session_folders=True, folder_scheme="counter")
        assert e.peek_session_folder() == "session_001"
        assert store.peek("global") == 0


class TestPreview:
    """Tests for preview_batch"""

    def test_preview_sequential(self):
        store = CounterStore(MemoryCounterBackend())
        e = engine(store, scheme="sequential", session_folders=True)
        previews = e.preview_batch(["/in/a.wav", "/in/b.flac"], [".mp3", ".flac"])
        assert [p.generated for p in previews] == ["track_001.mp3", "track_002.flac"]
        assert [p.original for p in previews] == ["a.wav", "b.flac"]
        assert previews[0].folder == "2024-03-09_session_01"
        assert store.snapshot() == {}
