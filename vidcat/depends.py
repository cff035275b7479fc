from typing import Annotated, Any, Callable, TypeVar

from fastapi import Depends, FastAPI

T = TypeVar("T")

_providers: dict[Any, Callable[[], Any]] = {}


def _provider(tp: Any) -> Callable[[], Any]:
    if tp not in _providers:

        def provide() -> Any:
            raise RuntimeError(f"No value bound for {tp!r}")

        _providers[tp] = provide
    return _providers[tp]


def bind(app: FastAPI, tp: type[T], value: T) -> None:
    app.dependency_overrides[_provider(tp)] = lambda: value


class Injected:
    """`Injected[Foo]` resolves to whatever was bound to `Foo` on the app."""

    def __class_getitem__(cls, tp: Any) -> Any:
        return Annotated[tp, Depends(_provider(tp))]
