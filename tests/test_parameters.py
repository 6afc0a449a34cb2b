from datetime import date, datetime

import pytest

from tome.books import BOOK_PARAMETERS
from tome.exception import ParameterError
from tome.parameters import Parameter, SqlType, StatementParameters

VALUES = {
    "title": "Roka",
    "publisher": "Toch",
    "isbn": "42123",
    "release_date": date(2000, 10, 8),
}


def test_keeps_declared_order():
    values = dict(reversed(list(VALUES.items())))
    parameters = StatementParameters(BOOK_PARAMETERS, values)
    assert list(parameters) == ["title", "publisher", "isbn", "release_date"]
    assert len(parameters) == 4
    assert parameters["isbn"] == "42123"


def test_declarations():
    declarations = [parameter.declaration for parameter in BOOK_PARAMETERS]
    assert declarations == [
        "NVARCHAR(50)",
        "NVARCHAR(50)",
        "NVARCHAR(20)",
        "DATE",
    ]


def test_missing_value():
    values = {**VALUES}
    del values["publisher"]
    with pytest.raises(ParameterError, match="publisher"):
        StatementParameters(BOOK_PARAMETERS, values)


def test_unexpected_value():
    with pytest.raises(ParameterError, match="Unexpected parameter"):
        StatementParameters(BOOK_PARAMETERS, {**VALUES, "author": "Toch"})


@pytest.mark.parametrize(
    "name,value",
    (
        ("title", 42),
        ("title", None),
        ("release_date", "2000-10-08"),
    ),
)
def test_mistyped_value(name, value):
    with pytest.raises(ParameterError, match=name):
        StatementParameters(BOOK_PARAMETERS, {**VALUES, name: value})


def test_datetime_is_narrowed_to_date():
    parameters = StatementParameters(
        BOOK_PARAMETERS, {**VALUES, "release_date": datetime(2000, 10, 8, 9)}
    )
    assert parameters["release_date"] == date(2000, 10, 8)


def test_bool_is_not_an_int():
    parameter = Parameter("count", "Count", SqlType.INT)
    assert parameter.adapt(3) == 3
    with pytest.raises(ParameterError):
        parameter.adapt(True)


def test_nullable():
    parameter = Parameter("note", "Note", SqlType.NVARCHAR, 10, nullable=True)
    assert parameter.adapt(None) is None


def test_lengths_are_left_to_the_database():
    parameters = StatementParameters(
        BOOK_PARAMETERS, {**VALUES, "isbn": "9" * 40}
    )
    assert parameters["isbn"] == "9" * 40
