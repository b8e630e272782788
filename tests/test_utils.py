import io
from datetime import date, datetime

import pandas as pd
import pytest

import utils
from models import Client


@pytest.mark.parametrize("raw,expected", [
    ("2020/06/10 0:00", "2020-06-10"),
    ("4/23/2020", "2020-04-23"),
    ("4/3/21", "2021-04-03"),
    ("2022-11-05", "2022-11-05"),
    ("", None),
    (None, None),
    ("13/45/2020", None),
    ("4/3/5", None),
    ("4/3/202", None),
    ("4/3/20245", None),
    ("someday", None),
])
def test_parse_sheet_date(raw, expected):
    assert utils.parse_sheet_date(raw) == expected


def test_to_date():
    assert utils.to_date("2024-03-05T10:00:00Z") == date(2024, 3, 5)
    assert utils.to_date(datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)
    assert utils.to_date(date(2024, 3, 5)) == date(2024, 3, 5)
    assert utils.to_date("3/5/2024") is None


def test_shift_months():
    assert utils.shift_months(date(2024, 2, 15), -1) == date(2024, 1, 15)
    assert utils.shift_months(date(2024, 2, 15), -14) == date(2022, 12, 15)
    assert utils.shift_months(date(2023, 5, 31), -3) == date(2023, 3, 3)
    assert utils.shift_months(date(2024, 1, 31), 1) == date(2024, 3, 2)


def test_calc_hst():
    assert utils.calc_hst(100, True) == (13.0, 113.0)
    assert utils.calc_hst(100, False) == (0.0, 100.0)
    assert utils.calc_hst("", True) == (0.0, 0.0)


def test_to_float():
    assert utils.to_float("$1,250.50") == 1250.5
    assert utils.to_float("n/a") is None
    assert utils.to_float("", 1.0) == 1.0


def test_formatting():
    assert utils.fmt_hours(6.5) == "6.5h"
    assert utils.fmt_hours(None) == "0.0h"
    assert utils.fmt_money(12) == "$12.00"
    assert utils.fmt_money(None) == "-"
    assert utils.fmt_date("2024-03-15") == "Mar 15, 2024"
    assert utils.fmt_date(None) == "-"


def test_validate_lesson_inputs():
    assert utils.validate_lesson_inputs(1, "2024-01-01", 1.0, "paid") == []
    errors = utils.validate_lesson_inputs(0, "2024-13-01", "x", "free")
    assert len(errors) == 4


def test_records_to_csv_bytes():
    data = utils.records_to_csv_bytes([Client(id=1, uid="a1", full_name="Ada")])
    df = pd.read_csv(io.BytesIO(data))
    assert list(df["uid"]) == ["A1"]
    assert list(df["full_name"]) == ["Ada"]


def test_insert_sample_data_twice(temp_db):
    utils.insert_sample_data()
    utils.insert_sample_data()
    assert temp_db.fetch_one("SELECT COUNT(*) AS c FROM clients")["c"] == 6
