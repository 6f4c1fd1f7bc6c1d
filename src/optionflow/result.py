from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

from optionflow.exceptions import UnwrapError

if TYPE_CHECKING:
    from optionflow.option import Option

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


class Result(ABC, Generic[T, E]):
    """Ok(value) or Err(error), as produced by Option.ok_or / ok_or_else.

    Only the accessors needed to move between Result and Option live here.
    """

    __slots__ = ()

    @abstractmethod
    def is_ok(self) -> bool: ...

    @abstractmethod
    def unwrap(self) -> T: ...

    @abstractmethod
    def unwrap_err(self) -> E: ...

    def is_err(self) -> bool:
        return not self.is_ok()

    def unwrap_or(self, default: T) -> T:
        return self.unwrap() if self.is_ok() else default

    def ok(self) -> Option[T]:
        """Ok(v) -> Some(v), Err(_) -> Nothing."""
        from optionflow.option import Nothing, Some

        return Some(self.unwrap()) if self.is_ok() else Nothing()

    def err(self) -> Option[E]:
        """Err(e) -> Some(e), Ok(_) -> Nothing."""
        from optionflow.option import Nothing, Some

        return Some(self.unwrap_err()) if self.is_err() else Nothing()


class Ok(Result[T, E]):
    __slots__ = ("_value",)
    __match_args__ = ("value",)

    def __init__(self, value: T) -> None:
        self._value = value

    @property
    def value(self) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"Ok({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ok):
            return NotImplemented
        return self._value == other._value

    __hash__ = None  # type: ignore[assignment]

    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self._value

    def unwrap_err(self) -> E:
        raise UnwrapError(f"Expected Err, found Ok({self._value!r})", self._value)


class Err(Result[T, E]):
    __slots__ = ("_error",)
    __match_args__ = ("error",)

    def __init__(self, error: E) -> None:
        self._error = error

    @property
    def error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Err({self._error!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Err):
            return NotImplemented
        return self._error == other._error

    __hash__ = None  # type: ignore[assignment]

    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> T:
        raise UnwrapError(f"Expected Ok, found Err({self._error!r})", self._error)

    def unwrap_err(self) -> E:
        return self._error
