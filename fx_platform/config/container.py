import inspect
import types
import typing
from typing import Any, TypeVar, get_type_hints

T = TypeVar("T")


class Container:
    """Constructor-injection container.

    ``resolve(cls)`` builds *cls* by matching each ``__init__`` parameter's
    type hint against registered instances. ``X | None`` hints match a
    registration for ``X``; a parameter with a default is left to its
    default when nothing is registered for it.
    """

    def __init__(self) -> None:
        self._registry: dict[type, Any] = {}

    def register_instance(self, type_key: type, instance: Any) -> None:
        self._registry[type_key] = instance

    def get(self, type_key: type[T]) -> T:
        """The instance registered for *type_key*. Raises KeyError when absent."""
        if type_key not in self._registry:
            raise KeyError(f"No registration found for type {type_key.__name__!r}")
        return self._registry[type_key]

    def has(self, type_key: type) -> bool:
        return type_key in self._registry

    def resolve(self, cls: type[T]) -> T:
        if cls.__init__ is object.__init__:
            return cls()
        try:
            hints = get_type_hints(cls.__init__)
        except Exception as exc:
            raise TypeError(f"Cannot read type hints for {cls.__name__}.__init__: {exc}") from exc
        hints.pop("return", None)

        kwargs: dict[str, Any] = {}
        for name, param in inspect.signature(cls.__init__).parameters.items():
            if name == "self" or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            hint = hints.get(name)
            if hint is None:
                raise TypeError(f"Parameter '{name}' of {cls.__name__}.__init__ has no type hint")

            key = self._match(hint)
            if key is not None:
                kwargs[name] = self._registry[key]
            elif param.default is inspect.Parameter.empty:
                raise TypeError(
                    f"No registration found for type {_type_name(hint)!r} "
                    f"(parameter '{name}' of {cls.__name__}.__init__)"
                )

        return cls(**kwargs)

    def _match(self, hint: Any) -> type | None:
        if hint in self._registry:
            return hint
        if typing.get_origin(hint) in (typing.Union, types.UnionType):
            for member in typing.get_args(hint):
                if member is not type(None) and member in self._registry:
                    return member
        return None


def _type_name(hint: Any) -> str:
    return getattr(hint, "__name__", repr(hint))
