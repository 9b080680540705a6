import json

import pytest

from streamseries.errors import DataFormatError
from streamseries.models import Episode
from streamseries.parser import build_catalog, coerce_record, describe_source, load_records, parse_int


def test_end_to_end_example_sorts_episodes():
    catalog = build_catalog(
        [
            {"series": "X", "season": "1", "ep": 2, "title": "B", "url": "u2"},
            {"series": "X", "season": "1", "ep": 1, "title": "A", "url": "u1"},
        ]
    )
    series = catalog.series["X"]
    assert series.seasons["1"].episodes == (Episode(1, "A", "u1"), Episode(2, "B", "u2"))
    assert series.to_dict()["seasons"]["1"] == [
        {"number": 1, "title": "A", "url": "u1"},
        {"number": 2, "title": "B", "url": "u2"},
    ]
    assert series.episode_count == 2


def test_groups_by_series_and_season(records):
    catalog = build_catalog(records)
    assert set(catalog.series) == {"Breaking Bad", "Dark", "Better Call Saul", "Ángel Negro", "alf"}
    bb = catalog.series["Breaking Bad"]
    assert list(bb.seasons) == ["1", "2"]
    assert bb.episode_count == 3
    assert bb.poster_url == "http://img.test/bb.jpg"
    assert catalog.episode_count == len(records)
    assert catalog.loaded


def test_episode_count_matches_records_per_series(records):
    catalog = build_catalog(records)
    for name, series in catalog.series.items():
        expected = sum(1 for r in records if r["series"] == name)
        assert series.episode_count == expected
        assert series.episode_count == sum(len(s.episodes) for s in series.seasons.values())


def test_defaults_are_applied():
    record = coerce_record({})
    assert (record.series, record.season, record.ep, record.title, record.url) == ("Unnamed", "1", 1, "Episode 1", "")

    record = coerce_record({"series": "alf", "ep": "3", "season": 2, "logo serie": "p.jpg"})
    assert record.season == "2"
    assert record.ep == 3
    assert record.title == "Episode 3"
    assert record.poster_url == "p.jpg"


def test_parse_int_fallbacks():
    assert parse_int("7") == 7
    assert parse_int("4.0") == 4
    assert parse_int(2.9) == 2
    assert parse_int("special") == 1
    assert parse_int(None) == 1


def test_ties_keep_input_order():
    catalog = build_catalog(
        [
            {"series": "S", "ep": 2, "title": "first two"},
            {"series": "S", "ep": 1, "title": "one"},
            {"series": "S", "ep": 2, "title": "second two"},
        ]
    )
    titles = [ep.title for ep in catalog.series["S"].seasons["1"].episodes]
    assert titles == ["one", "first two", "second two"]


def test_season_labels_in_natural_order():
    catalog = build_catalog([{"series": "S", "season": label} for label in ["10", "Specials", "2", "1"]])
    assert list(catalog.series["S"].seasons) == ["1", "2", "10", "Specials"]


def test_summaries_sorted_by_name_ignoring_case_and_accents(records):
    catalog = build_catalog(records)
    assert [s.name for s in catalog.summaries] == ["alf", "Ángel Negro", "Better Call Saul", "Breaking Bad", "Dark"]
    bb = next(s for s in catalog.summaries if s.name == "Breaking Bad")
    assert bb.to_dict() == {"name": "Breaking Bad", "posterUrl": "http://img.test/bb.jpg", "seasonCount": 2, "episodeCount": 3}


def test_rebuild_is_deterministic(records):
    first = build_catalog(records)
    second = build_catalog(records)
    assert first.summaries == second.summaries


@pytest.mark.parametrize("payload", [{"series": "X"}, "records", None, 42])
def test_non_sequence_input_is_rejected(payload):
    with pytest.raises(DataFormatError):
        build_catalog(payload)


def test_non_object_entries_are_skipped():
    catalog = build_catalog([None, "junk", {"series": "X"}])
    assert catalog.episode_count == 1
    assert list(catalog.series) == ["X"]


def test_load_records_errors(tmp_path):
    with pytest.raises(DataFormatError):
        load_records(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(DataFormatError):
        load_records(broken)

    wrong_shape = tmp_path / "object.json"
    wrong_shape.write_text(json.dumps({"series": "X"}), encoding="utf-8")
    with pytest.raises(DataFormatError):
        load_records(wrong_shape)


def test_describe_source(data_file, records):
    info = describe_source(data_file)
    assert info["fileExists"] is True
    assert info["length"] == len(records)
    assert info["sample"] == records[:2]
    assert describe_source(data_file.parent / "nope.json")["error"] == "File not found"


@pytest.mark.parametrize("number", [float("inf"), float("-inf"), float("nan"), "1e999", "nan"])
def test_non_finite_episode_numbers_use_default(number):
    catalog = build_catalog([{"series": "X", "ep": number}])
    assert catalog.series["X"].seasons["1"].episodes == (Episode(1, "Episode 1", ""),)


def test_huge_episode_number_from_json_file(tmp_path):
    path = tmp_path / "data.json"
    path.write_text('[{"series": "X", "ep": 1e999}, {"series": "X", "ep": NaN}]', encoding="utf-8")
    catalog = build_catalog(load_records(path))
    assert [ep.number for ep in catalog.series["X"].seasons["1"].episodes] == [1, 1]


def test_series_names_are_grouped_exactly():
    catalog = build_catalog([{"series": "Breaking  Bad"}, {"series": "Breaking Bad"}, {"series": " Dark"}])
    assert set(catalog.series) == {"Breaking  Bad", "Breaking Bad", " Dark"}


def test_season_labels_are_kept_exactly():
    catalog = build_catalog([{"series": "S", "season": "1 "}, {"series": "S", "season": "1"}])
    assert set(catalog.series["S"].seasons) == {"1 ", "1"}


def test_integral_float_season_matches_integer_label():
    catalog = build_catalog([{"series": "S", "season": 1.0}, {"series": "S", "season": 1}, {"series": "S", "season": 2.5}])
    assert list(catalog.series["S"].seasons) == ["1", "2.5"]
    assert len(catalog.series["S"].seasons["1"].episodes) == 2


def test_non_utf8_source_is_a_format_error(tmp_path):
    path = tmp_path / "latin1.json"
    path.write_bytes(b'[{"series": "Caf\xe9"}]')
    with pytest.raises(DataFormatError):
        load_records(path)
    assert describe_source(path)["error"] == "Unreadable file"


def test_directory_source_is_a_format_error(tmp_path):
    with pytest.raises(DataFormatError):
        load_records(tmp_path)
