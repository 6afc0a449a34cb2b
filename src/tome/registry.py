from __future__ import annotations

from inspect import isclass
from typing import TYPE_CHECKING, Set, Type, Union

if TYPE_CHECKING:
    from tome.base import Executor
    from tome.base.interface import BaseInterface


class Registry(dict):
    _singleton = None

    def __new__(cls, *args, **kwargs):
        if cls._singleton is None:
            cls.reset()
        return cls._singleton

    def register(self, executor: Union[Type[Executor], Executor]) -> None:
        cls = executor if isclass(executor) else executor.__class__
        current = self.get(cls.__name__)
        if current is None or (isclass(current) and not isclass(executor)):
            self[cls.__name__] = executor

    @classmethod
    def reset(cls):
        cls._singleton = super().__new__(cls)  # type: ignore


class InterfaceRegistry:
    _singleton = None
    _interfaces: Set[BaseInterface]

    def __new__(cls, *args, **kwargs):
        if cls._singleton is None:
            cls.reset()
        return cls._singleton

    @classmethod
    def add(cls, interface: BaseInterface) -> None:
        instance = cls()
        instance._interfaces.add(interface)

    @classmethod
    def discard(cls, interface: BaseInterface) -> None:
        instance = cls()
        instance._interfaces.discard(interface)

    def __iter__(self):
        return iter(list(self._interfaces))

    def __len__(self) -> int:
        return len(self._interfaces)

    @classmethod
    def reset(cls):
        cls._singleton = super().__new__(cls)
        cls._singleton._interfaces = set()

