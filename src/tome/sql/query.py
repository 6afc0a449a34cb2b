from __future__ import annotations

from enum import IntEnum, auto

from tome.convert import DOLLAR_KEYWORD, DOLLAR_POSITIONAL
from tome.exception import TomeError


class ParamType(IntEnum):
    NONE = auto()
    POSITIONAL = auto()
    KEYWORD = auto()


class SQLQuery:
    """A named piece of SQL written with `$name` or `$1` placeholders"""

    __slots__ = ("name", "text", "param_type")
    text: str
    param_type: ParamType

    def __init__(self, name: str, text: str) -> None:
        self.name = name
        self.text = text
        keyword = bool(DOLLAR_KEYWORD.search(text))
        positional = bool(DOLLAR_POSITIONAL.search(text))
        if keyword and positional:
            raise TomeError(
                f"Query {name} mixes keyword and positional parameters"
            )
        if keyword:
            self.param_type = ParamType.KEYWORD
        elif positional:
            self.param_type = ParamType.POSITIONAL
        else:
            self.param_type = ParamType.NONE

    def __str__(self) -> str:
        return (
            f"<{self.__class__.__name__} name={self.name} "
            f"text={self.text[:6]}... param_type={self.param_type.name}>"
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(name={self.name} "
            f"text={self.text[:6]}...)"
        )

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, SQLQuery)
            and self.text == other.text
            and self.param_type is other.param_type
        )

    def __hash__(self) -> int:
        return hash((self.text, self.param_type))
