from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Optional

TODO_ATTRIBUTE = "__todo__"


class InvalidArgumentError(ValueError):
    """Raised when a marker is built with an unusable argument."""

    def __init__(self, argument: str, message: str) -> None:
        super().__init__(f"{message} (argument: {argument})")
        self.argument = argument


@dataclass(frozen=True)
class Todo:
    """Marks a declaration as unfinished work.

    Use it as a decorator on classes, functions, methods and properties::

        @Todo("handle retries", owner="alice", priority=1)
        def fetch(): ...

    or as ``Annotated`` metadata on class fields::

        class Config:
            timeout: Annotated[int, Todo("pick a sane default")] = 0

    ``owner`` and ``priority`` stay ``None`` when omitted, so an empty owner or
    a zero priority is still a value the author chose.
    """

    message: str
    owner: Optional[str] = None
    priority: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.message, str) or not self.message.strip():
            raise InvalidArgumentError("message", "A message is required")
        if self.owner is not None and not isinstance(self.owner, str):
            raise InvalidArgumentError("owner", "Owner must be a string")
        if self.priority is not None and (
            isinstance(self.priority, bool) or not isinstance(self.priority, int)
        ):
            raise InvalidArgumentError("priority", "Priority must be an integer")

    def __call__(self, target: Any) -> Any:
        _attach(_marker_host(target), self)
        return target


def _marker_host(target: Any) -> Any:
    if isinstance(target, (staticmethod, classmethod)):
        return target.__func__
    if isinstance(target, property):
        for accessor in (target.fget, target.fset, target.fdel):
            if accessor is not None:
                return accessor
        raise TypeError("@Todo cannot mark a property without accessors")
    if isinstance(target, functools.cached_property):
        return target.func
    if isinstance(target, type) or (callable(target) and hasattr(target, "__dict__")):
        return target
    raise TypeError(
        f"@Todo can only mark classes, functions, methods or properties, not {type(target).__name__}"
    )


def _attach(host: Any, marker: Todo) -> None:
    if get_marker(host) is not None:
        raise TypeError(f"{getattr(host, '__qualname__', host)!r} is already marked with @Todo")
    setattr(host, TODO_ATTRIBUTE, marker)


def get_marker(obj: Any) -> Optional[Todo]:
    # own __dict__ only: a subclass must not see its base class's marker
    try:
        namespace = vars(obj)
    except TypeError:
        return None
    marker = namespace.get(TODO_ATTRIBUTE)
    return marker if isinstance(marker, Todo) else None
