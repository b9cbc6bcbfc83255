import pytest

from playlist_bridge.domain.normalization import (
    ParsedTitle, clean_title, normalize_title, split_on_separator,
)


class TestSplitOnSeparator:
    """Tests for artist/name splitting of video titles."""

    @pytest.mark.parametrize("title, expected", [
        ("Daft Punk - One More Time", ParsedTitle("Daft Punk", "One More Time")),
        ("Sigur Rós – Hoppípolla", ParsedTitle("Sigur Rós", "Hoppípolla")),
        ("Air — La Femme d'Argent", ParsedTitle("Air", "La Femme d'Argent")),
        ("Portishead | Roads", ParsedTitle("Portishead", "Roads")),
        ("Massive Attack: Teardrop", ParsedTitle("Massive Attack", "Teardrop")),
    ])
    def test_known_separators(self, title, expected):
        assert split_on_separator(title) == expected

    def test_splits_only_at_first_occurrence(self):
        parsed = split_on_separator("A - B - C")
        assert parsed == ParsedTitle("A", "B - C")

    def test_separator_order_wins_over_position(self):
        # " - " is tried before ": " even though the colon comes first
        parsed = split_on_separator("Artist: Song - Live")
        assert parsed == ParsedTitle("Artist: Song", "Live")

    def test_by_separator_puts_left_side_in_artist(self):
        # Heuristic, not musical truth: "by" titles come out reversed
        parsed = split_on_separator("Imagine by John Lennon")
        assert parsed == ParsedTitle("Imagine", "John Lennon")

    def test_no_separator(self):
        assert split_on_separator("Teardrop") is None


class TestCleanTitle:
    """Tests for boilerplate stripping."""

    def test_strips_parenthetical(self):
        assert clean_title("Song Title (Official Video)") == "Song Title"

    def test_strips_brackets(self):
        assert clean_title("Hello [HD]") == "Hello"

    def test_strips_trailing_boilerplate(self):
        assert clean_title("Song Official Music Video") == "Song"

    def test_boilerplate_is_case_insensitive(self):
        assert clean_title("Song LYRIC VIDEO") == "Song"

    def test_boilerplate_must_be_whole_word(self):
        assert clean_title("Livestream Highlights") == "Livestream Highlights"
        assert clean_title("Hardcover") == "Hardcover"
        assert clean_title("Musical Chairs") == "Musical Chairs"
        assert clean_title("Audioslave Tribute") == "Audioslave Tribute"

    def test_whole_word_boilerplate_after_prefix_word(self):
        assert clean_title("Musical Chairs Live at Wembley") == "Musical Chairs"


class TestNormalizeTitle:
    """Tests for the full title normalization."""

    def test_separator_title(self):
        parsed = normalize_title("Daft Punk - One More Time (Official Video)")
        assert parsed.artist == "Daft Punk"
        assert parsed.name == "One More Time (Official Video)"

    def test_no_separator_gives_unknown_artist(self):
        parsed = normalize_title("Teardrop (Official Video)")
        assert parsed == ParsedTitle("unknown", "Teardrop")

    def test_falls_back_to_original_when_cleaning_empties_title(self):
        parsed = normalize_title("(Official Video)")
        assert parsed == ParsedTitle("unknown", "(Official Video)")

    def test_empty_title(self):
        assert normalize_title("") == ParsedTitle("unknown", "")
