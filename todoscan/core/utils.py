from __future__ import annotations
import functools
import inspect
from typing import Annotated, Any, ClassVar, Dict, Final, Iterator, Optional, Tuple, get_args, get_origin

from ..marker import Todo, get_marker

CONSTRUCTOR_NAMES = ("__init__", "__new__")
WRAPPER_ORIGINS = (ClassVar, Final)


def unwrap_function(member: Any) -> Optional[Any]:
    """Return the plain function behind a class-body member, or None."""

    if isinstance(member, (staticmethod, classmethod)):
        member = member.__func__
    if inspect.isfunction(member):
        return member
    return None


def marked_accessor(member: Any) -> Optional[Any]:
    """The first accessor of a property that carries a marker, or None."""

    if isinstance(member, property):
        accessors = (member.fget, member.fset, member.fdel)
    elif isinstance(member, functools.cached_property):
        accessors = (member.func,)
    else:
        return None
    for accessor in accessors:
        if accessor is not None and get_marker(accessor) is not None:
            return accessor
    return None


def is_property(member: Any) -> bool:
    return isinstance(member, (property, functools.cached_property))


def own_annotations(cls: type) -> Dict[str, Any]:
    """Annotations declared on ``cls`` itself, not on its bases.

    Postponed (string) annotations are resolved against the defining module,
    whatever name ``Annotated`` was imported under. A name that cannot be
    resolved raises, and the caller records the type as not inspectable.
    """

    return inspect.get_annotations(cls, eval_str=True)


def annotation_marker(hint: Any) -> Optional[Todo]:
    origin = get_origin(hint)
    if origin in WRAPPER_ORIGINS:
        args = get_args(hint)
        return annotation_marker(args[0]) if args else None
    if origin is Annotated:
        for meta in hint.__metadata__:
            if isinstance(meta, Todo):
                return meta
    return None


def iter_declared(cls: type) -> Iterator[Tuple[str, Any]]:
    # vars() preserves definition order and never includes inherited members
    yield from list(vars(cls).items())


def is_nested_class(owner: type, name: str, member: Any) -> bool:
    return inspect.isclass(member) and getattr(member, "__qualname__", None) == f"{owner.__qualname__}.{name}"
