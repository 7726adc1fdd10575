"""Records for inserting rows and helpers for grouping loaded associations."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional, TypeVar, Union

__all__ = ["NewUser", "NewPost", "NewComment", "new_users", "grouped_by"]

C = TypeVar("C")


@dataclass(frozen=True)
class NewUser:
    """A user row to insert."""

    name: str
    hair_color: Optional[str] = None


@dataclass(frozen=True)
class NewPost:
    """A post row to insert."""

    user_id: int
    title: str
    body: Optional[str] = None


@dataclass(frozen=True)
class NewComment:
    """A comment row to insert."""

    post_id: int
    text: str


def new_users(
    count: int,
    hair_color: Union[Callable[[int], Optional[str]], Optional[str]] = None,
) -> list[NewUser]:
    """Build ``count`` users named ``User <index>``.

    ``hair_color`` is either a value shared by all users or a callable taking
    the index and returning the colour.
    """
    if count < 0:
        raise ValueError("count must not be negative")
    color_of = hair_color if callable(hair_color) else (lambda _idx: hair_color)
    return [NewUser(f"User {idx}", color_of(idx)) for idx in range(count)]


def grouped_by(
    children: Iterable[C], parents: Sequence[Any], key: Callable[[C], Any]
) -> list[list[C]]:
    """Group ``children`` under ``parents`` by ``key(child) == parent.id``.

    The result has one list per parent, in parent order; children keep their
    order, and children without a matching parent are left out.
    """
    index = {parent.id: position for position, parent in enumerate(parents)}
    groups: list[list[C]] = [[] for _ in parents]
    for child in children:
        position = index.get(key(child))
        if position is not None:
            groups[position].append(child)
    return groups