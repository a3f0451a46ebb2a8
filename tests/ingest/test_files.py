"""Tests for ingest/files.py"""

from datetime import datetime

import pytest

from ingest.files import build_window, list_files, parse_filename, parse_hour_minute, parse_month_day


# --- parse_filename ---


def test_parse_filename():
    result = parse_filename("5339-20210703-1230-G001-EL000100.gz")

    assert result == ("5339", datetime(2021, 7, 3, 12, 30))


def test_parse_filename_with_directory():
    result = parse_filename("xbanddata/5339-20210703-1230-G001-EL000100.gz")

    assert result == ("5339", datetime(2021, 7, 3, 12, 30))


@pytest.mark.parametrize("name", [
    "output.json",
    "5339-20210703-1230.gz",
    "5339-20210703-1230-G001-EL000100.tar.gz",
    "5339-20211399-1230-G001-EL000100.gz",  # month 13
    "5339-2021073-1230-G001-EL000100.gz",
])
def test_parse_filename_rejects_other_names(name):
    assert parse_filename(name) is None


# --- parse_month_day / parse_hour_minute ---


def test_parse_month_day():
    assert parse_month_day("07-03") == (7, 3)


def test_parse_hour_minute_allows_24():
    assert parse_hour_minute("24:00") == (24, 0)


@pytest.mark.parametrize("value", ["7/3", "07-03-2021", "", "ab-cd"])
def test_parse_month_day_invalid(value):
    with pytest.raises(ValueError, match="Invalid date"):
        parse_month_day(value)


@pytest.mark.parametrize("value", ["1230", "12:30:00", "noon"])
def test_parse_hour_minute_invalid(value):
    with pytest.raises(ValueError, match="Invalid time"):
        parse_hour_minute(value)


# --- build_window ---


def test_build_window_full_days():
    start, end = build_window("07-01", "07-31", "00:00", "24:00", year=2021)

    assert start == datetime(2021, 7, 1, 0, 0)
    assert end == datetime(2021, 8, 1, 0, 0)


def test_build_window_end_of_year_rolls_over():
    _, end = build_window("01-01", "12-31", "00:00", "24:00", year=2021)

    assert end == datetime(2022, 1, 1, 0, 0)


def test_build_window_defaults_to_current_year():
    start, _ = build_window("01-01", "12-31", "00:00", "24:00")

    assert start.year == datetime.now().year


def test_build_window_impossible_date_raises():
    with pytest.raises(ValueError, match="Invalid date"):
        build_window("02-30", "03-01", "00:00", "24:00", year=2021)


# --- list_files ---


def _touch(directory, *names):
    for name in names:
        (directory / name).write_bytes(b"")


def test_list_files_filters_by_window(tmp_path):
    _touch(
        tmp_path,
        "5339-20210703-1130-G001-EL000100.gz",
        "5339-20210703-1230-G001-EL000100.gz",
        "5339-20210703-1330-G001-EL000100.gz",
        "5339-20210703-1430-G001-EL000100.gz",
    )

    paths = list_files(tmp_path, datetime(2021, 7, 3, 12, 30), datetime(2021, 7, 3, 13, 30))

    assert [p.name for p in paths] == [
        "5339-20210703-1230-G001-EL000100.gz",
        "5339-20210703-1330-G001-EL000100.gz",
    ]


def test_list_files_skips_other_files(tmp_path):
    _touch(tmp_path, "output.json", "notes.gz", "5339-20210703-1230-G001-EL000100.gz")
    (tmp_path / "subdir.gz").mkdir()

    paths = list_files(tmp_path, datetime(2021, 1, 1), datetime(2022, 1, 1))

    assert [p.name for p in paths] == ["5339-20210703-1230-G001-EL000100.gz"]


def test_list_files_is_sorted_by_name(tmp_path):
    _touch(
        tmp_path,
        "5440-20210703-1230-G001-EL000100.gz",
        "5339-20210703-1235-G001-EL000100.gz",
        "5339-20210703-1230-G001-EL000100.gz",
    )

    paths = list_files(tmp_path, datetime(2021, 1, 1), datetime(2022, 1, 1))

    assert [p.name for p in paths] == sorted(p.name for p in paths)


def test_list_files_missing_directory_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        list_files(tmp_path / "missing", datetime(2021, 1, 1), datetime(2022, 1, 1))


def test_list_files_not_a_directory_raises(tmp_path):
    path = tmp_path / "file.txt"
    path.write_text("x")

    with pytest.raises(NotADirectoryError):
        list_files(path, datetime(2021, 1, 1), datetime(2022, 1, 1))
