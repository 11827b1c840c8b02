from beatbridge.domain.entities import ProviderName, Track


def test_normalize_string_basic_cases():
    from beatbridge.domain.normalization import normalize_string

    assert normalize_string("Hello World") == "hello world"
    assert normalize_string("Héllo Wörld!") == "hello world"
    assert normalize_string("Song (Live)") == "song"
    assert normalize_string("Song [Remastered 2011]") == "song"
    assert normalize_string("Artist feat. Someone") == "artist someone"
    assert normalize_string("A & B") == "a and b"
    assert normalize_string("snake_case_title") == "snake case title"
    assert normalize_string("") == ""
    assert normalize_string(None) == ""


def test_normalize_artist_names_is_order_and_case_insensitive():
    from beatbridge.domain.normalization import normalize_artist_names

    a = normalize_artist_names(["The Beatles", "John Lennon"])
    b = normalize_artist_names(["john lennon", "beatles"])
    assert a == b == {"beatles", "john lennon"}


def test_normalize_artist_names_drops_empty_names():
    from beatbridge.domain.normalization import normalize_artist_names

    assert normalize_artist_names(["", "  "]) == set()
    assert normalize_artist_names(None) == set()


def test_title_similarity_identical_after_normalization():
    from beatbridge.domain.normalization import title_similarity

    assert title_similarity("Yesterday", "yesterday (Remastered 2009)") == 1.0


def test_title_similarity_empty_side_is_zero():
    from beatbridge.domain.normalization import title_similarity

    assert title_similarity("", "Yesterday") == 0.0
    assert title_similarity("Yesterday", "   ") == 0.0


def test_title_similarity_partial_is_between_zero_and_one():
    from beatbridge.domain.normalization import title_similarity

    score = title_similarity("Hey Jude", "Hey Jud")
    assert 0.0 < score < 1.0


def test_artist_overlap_coefficient():
    from beatbridge.domain.normalization import artist_overlap

    assert artist_overlap(["Queen"], ["Queen", "David Bowie"]) == 1.0
    assert artist_overlap(["A", "B"], ["B", "C"]) == 0.5
    assert artist_overlap(["A"], ["B"]) == 0.0
    assert artist_overlap([], ["B"]) == 0.0


def test_track_defaults_and_primary_artist():
    track = Track(title="Song")
    assert track.artists == []
    assert track.primary_artist == ""

    track = Track(title="Song", artists=["First", "Second"])
    assert track.primary_artist == "First"


def test_provider_name_from_session_key():
    assert ProviderName.from_session_key("google") is ProviderName.YOUTUBE
    assert ProviderName.from_session_key("YouTube") is ProviderName.YOUTUBE
    assert ProviderName.from_session_key("spotify") is ProviderName.SPOTIFY
    assert ProviderName.YOUTUBE.display_name == "YouTube"


def test_provider_name_from_unknown_session_key_raises():
    import pytest

    with pytest.raises(ValueError):
        ProviderName.from_session_key("deezer")


def test_punctuation_only_artist_keeps_raw_form():
    from beatbridge.domain.normalization import normalize_artist_names, artist_overlap

    assert normalize_artist_names(["!!!", "Queen"]) == {"!!!", "queen"}
    assert artist_overlap(["!!!"], ["!!!"]) == 1.0
    assert artist_overlap(["!!!"], ["???"]) == 0.0


def test_title_similarity_punctuation_or_bracket_only_titles():
    from beatbridge.domain.normalization import title_similarity

    assert title_similarity("!!!", "!!!") == 1.0
    assert title_similarity("?", " ? ") == 1.0
    assert title_similarity("(Intro)", "(intro)") == 1.0
    assert title_similarity("[Untitled]", "[Untitled]") == 1.0
    assert 0.0 < title_similarity("(Intro)", "(Outro)") < 1.0
    assert title_similarity("Yesterday", "(Live)") < 0.5
