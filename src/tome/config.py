import json
from pathlib import Path
from typing import Any, Union

from tome.exception import TomeError

DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_CONNECTION_KEY = "Data:DefaultConnection:ConnectionString"


def load_connection_string(
    path: Union[str, Path] = DEFAULT_CONFIG_FILE,
    key: str = DEFAULT_CONNECTION_KEY,
) -> str:
    """Read a connection string out of a JSON configuration file

    Nested sections are addressed with a colon separated key, so the
    default key reads:

    ```json
    {"Data": {"DefaultConnection": {"ConnectionString": "..."}}}
    ```

    Args:
        path (Union[str, Path], optional): Location of the file.
            Defaults to `"config.json"` in the working directory.
        key (str, optional): Colon separated key.
            Defaults to `"Data:DefaultConnection:ConnectionString"`.

    Raises:
        TomeError: If the file cannot be read or the key is missing

    Returns:
        str: The connection string
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            data: Any = json.load(f)
    except FileNotFoundError as e:
        raise TomeError(f"Configuration file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise TomeError(f"Configuration file {path} is not JSON: {e}") from e

    for part in key.split(":"):
        if not isinstance(data, dict) or part not in data:
            raise TomeError(f"Could not find {key} in {path}")
        data = data[part]

    if not isinstance(data, str) or not data:
        raise TomeError(f"{key} in {path} must be a non-empty string")
    return data
