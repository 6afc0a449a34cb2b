import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from tome.exception import ParameterError, TomeError

DOLLAR_KEYWORD = re.compile(r"(\$([a-z][a-z0-9_]*))")
DOLLAR_POSITIONAL = re.compile(r"(\$(\d+))")


def convert_sql_params(
    query: str, positional_sub: str = r"%s", keyword_sub: str = r"%(\2)s"
) -> str:
    matches = 0
    if DOLLAR_KEYWORD.search(query):
        matches += 1
        query = DOLLAR_KEYWORD.sub(keyword_sub, query, 0)
    if DOLLAR_POSITIONAL.search(query):
        matches += 1
        query = DOLLAR_POSITIONAL.sub(positional_sub, query, 0)
    if matches > 1:
        raise TomeError(f"Could not properly convert SQL params {matches}")
    return query


def keyword_names(query: str) -> List[str]:
    """Names of `$name` parameters in order of appearance, repeats
    included"""
    return [match.group(2) for match in DOLLAR_KEYWORD.finditer(query)]


def bind_values(
    query: str,
    posargs: Sequence[Any] = (),
    params: Optional[Mapping[str, Any]] = None,
) -> Union[List[Any], Dict[str, Any]]:
    """Check that every placeholder in a `$` style query has a value.

    Raises:
        ParameterError: When a `$name` has no value, or there are fewer
            positional values than `$n` placeholders
    """
    names = keyword_names(query)
    if names:
        params = params or {}
        missing = sorted({name for name in names if name not in params})
        if missing:
            raise ParameterError(
                f"Missing value for parameter(s): {', '.join(missing)}"
            )
        return dict(params)

    positions = [int(m.group(2)) for m in DOLLAR_POSITIONAL.finditer(query)]
    if positions and max(positions) > len(posargs):
        raise ParameterError(
            f"Query expects {max(positions)} positional value(s), "
            f"got {len(posargs)}"
        )
    return list(posargs)


def to_positional(
    query: str, params: Mapping[str, Any], placeholder: str = "?"
) -> Tuple[str, List[Any]]:
    """Rewrite a `$name` query for drivers that only accept positional
    placeholders"""
    values = [params[name] for name in keyword_names(query)]
    query = DOLLAR_KEYWORD.sub(lambda _: placeholder, query)
    return query, values
