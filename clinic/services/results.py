"""Tagged outcomes of query operations.

Operations never raise to their invoker.  They return one of
:class:`Found`, :class:`NotFound` or :class:`Failed`; :func:`narrate`
turns an outcome into the value handed to a conversational caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Found:
    data: Any
    ok = True


@dataclass(frozen=True)
class NotFound:
    message: str
    ok = False


@dataclass(frozen=True)
class Failed:
    message: str
    code: str = 'error'
    ok = False


Result = Union[Found, NotFound, Failed]


def narrate(result: Result) -> Any:
    if isinstance(result, Found):
        return result.data
    return result.message
