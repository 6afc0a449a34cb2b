from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence

from tome.exception import ParameterError


class SqlType(Enum):
    NVARCHAR = "NVARCHAR"
    DATE = "DATE"
    INT = "INT"


PYTHON_TYPES = {
    SqlType.NVARCHAR: (str,),
    SqlType.DATE: (date,),
    SqlType.INT: (int,),
}


class Parameter:
    """A declared statement parameter, mirroring the column it binds to"""

    __slots__ = ("name", "column", "sql_type", "size", "nullable")

    def __init__(
        self,
        name: str,
        column: str,
        sql_type: SqlType,
        size: Optional[int] = None,
        nullable: bool = False,
    ) -> None:
        self.name = name
        self.column = column
        self.sql_type = sql_type
        self.size = size
        self.nullable = nullable

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name}: {self.declaration})"

    @property
    def declaration(self) -> str:
        if self.size:
            return f"{self.sql_type.value}({self.size})"
        return self.sql_type.value

    def adapt(self, value: Any) -> Any:
        if value is None:
            if not self.nullable:
                raise ParameterError(f"{self.name} cannot be None")
            return None
        expected = PYTHON_TYPES[self.sql_type]
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ParameterError(
                f"{self.name} must be {self.declaration}, "
                f"got {type(value).__name__}"
            )
        if self.sql_type is SqlType.DATE and isinstance(value, datetime):
            return value.date()
        return value


class StatementParameters(Mapping[str, Any]):
    """Ordered mapping of parameter name to value for a single statement.

    Values are checked against their declarations when bound, so a
    statement can never be sent with a missing or mistyped value. Lengths
    are left for the database to enforce.
    """

    def __init__(
        self, parameters: Sequence[Parameter], values: Mapping[str, Any]
    ) -> None:
        names = [parameter.name for parameter in parameters]
        missing = [name for name in names if name not in values]
        if missing:
            raise ParameterError(
                f"Missing value for parameter(s): {', '.join(missing)}"
            )
        unexpected = sorted(set(values) - set(names))
        if unexpected:
            raise ParameterError(
                f"Unexpected parameter(s): {', '.join(unexpected)}"
            )

        self._parameters = tuple(parameters)
        self._values: Dict[str, Any] = {
            parameter.name: parameter.adapt(values[parameter.name])
            for parameter in parameters
        }

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    @property
    def parameters(self) -> Sequence[Parameter]:
        return self._parameters
