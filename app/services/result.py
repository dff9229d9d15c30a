"""Tagged result returned by the user operations.

Expected outcomes (bad input, duplicates, missing users) come back as
Err values so callers have to branch on them.  Failures nobody
anticipated are still raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result = Union[Ok[T], Err[E]]
