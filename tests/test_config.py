import json

import pytest

from tome import load_connection_string
from tome.exception import TomeError

CONNECTION_STRING = (
    r"server=(localdb)\MSSQLLocalDB;integrated security=SSPI;database=Books"
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "Data": {
                    "DefaultConnection": {
                        "ConnectionString": CONNECTION_STRING
                    },
                    "Empty": {"ConnectionString": ""},
                }
            }
        )
    )
    return path


def test_default_key(config_file):
    assert load_connection_string(config_file) == CONNECTION_STRING


def test_default_path(config_file, monkeypatch):
    monkeypatch.chdir(config_file.parent)
    assert load_connection_string() == CONNECTION_STRING


def test_missing_key(config_file):
    with pytest.raises(TomeError, match="Data:Other:ConnectionString"):
        load_connection_string(config_file, "Data:Other:ConnectionString")


def test_empty_value(config_file):
    with pytest.raises(TomeError, match="non-empty string"):
        load_connection_string(config_file, "Data:Empty:ConnectionString")


def test_key_into_section(config_file):
    with pytest.raises(TomeError, match="non-empty string"):
        load_connection_string(config_file, "Data:DefaultConnection")


def test_missing_file(tmp_path):
    with pytest.raises(TomeError, match="not found"):
        load_connection_string(tmp_path / "config.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(TomeError, match="is not JSON"):
        load_connection_string(path)
