from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Coroutine,
    Generator,
    Generic,
    Iterable,
    Iterator,
    TypeVar,
    cast,
    overload,
)

from optionflow.exceptions import EmptyOptionError, UnwrapError
from optionflow.result import Err, Ok, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")  # Held value
U = TypeVar("U")  # Mapped value
V = TypeVar("V")  # Zipped value
E = TypeVar("E")  # Error for ok_or conversions


class OptionKind(Enum):
    """Discriminant of the two Option states."""

    SOME = "some"
    NONE = "none"


def _is_pending(value: Any) -> bool:
    """True for awaitables still to settle. A settled Option is awaitable but never pending."""
    return not isinstance(value, Option) and inspect.isawaitable(value)


def _defer_if_pending(value: Any) -> Any:
    """Wrap an awaitable Option in a LazyOption, pass a settled one through."""
    if isinstance(value, LazyOption) or not _is_pending(value):
        return value
    return LazyOption.from_awaitable(value)


async def _maybe_await(value: T | Awaitable[T]) -> T:
    """Await if awaitable, otherwise return as-is."""
    if inspect.isawaitable(value):
        return await value
    return value


async def _some_after(pending: Awaitable[U]) -> Option[U]:
    return Some(await pending)


async def _err_after(pending: Awaitable[E]) -> Result[Any, E]:
    return Err(await pending)


async def _option_after(pending: Awaitable[Any], option: Option[T]) -> Option[T]:
    await pending
    return option


async def _settled(option: Option[T]) -> Option[T]:
    return option


# =============================================================================
# Variant records
# =============================================================================


class Variant(ABC, Generic[T]):
    """One of the two states an Option can hold.

    Records are immutable. The combinators here return Option facades
    wrapping a record, never the bare record, so callers only ever see
    Options. The facade delegates to these methods.
    """

    __slots__ = ()

    @property
    @abstractmethod
    def kind(self) -> OptionKind: ...

    @abstractmethod
    def is_some(self) -> bool: ...

    def is_nothing(self) -> bool:
        return not self.is_some()

    @abstractmethod
    def unwrap(self) -> T: ...

    @abstractmethod
    def unwrap_or(self, default: T) -> T: ...

    @abstractmethod
    def and_(self, other: Any) -> Any: ...

    @abstractmethod
    def and_then(self, fn: Callable[[T], Any]) -> Any: ...

    @abstractmethod
    def filter(self, predicate: Callable[[T], Any]) -> Any: ...

    @abstractmethod
    def map(self, fn: Callable[[T], Any]) -> Any: ...

    @abstractmethod
    def or_(self, other: Any) -> Any: ...

    @abstractmethod
    def or_else(self, fn: Callable[[], Any]) -> Any: ...

    @abstractmethod
    def match(self, some: Callable[[T], U], none: Callable[[], U] | U) -> U: ...

    @abstractmethod
    def ok_or_else(self, fn: Callable[[], Any]) -> Any: ...

    @abstractmethod
    def __iter__(self) -> Iterator[T]: ...


class Present(Variant[T]):
    """The record holding a value. Any value counts, falsy ones included."""

    __slots__ = ("_value",)
    __match_args__ = ("value",)

    def __init__(self, value: T) -> None:
        self._value = value

    @property
    def value(self) -> T:
        return self._value

    @property
    def kind(self) -> OptionKind:
        return OptionKind.SOME

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Present) and self._value == other._value

    def __hash__(self) -> int:
        return hash((OptionKind.SOME, self._value))

    def __iter__(self) -> Iterator[T]:
        return iter((self._value,))

    def is_some(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self._value

    def unwrap_or(self, default: T) -> T:
        return self._value

    def and_(self, other: Any) -> Any:
        return other

    def and_then(self, fn: Callable[[T], Any]) -> Any:
        return _defer_if_pending(fn(self._value))

    def filter(self, predicate: Callable[[T], Any]) -> Any:
        keep = predicate(self._value)
        if _is_pending(keep):
            return LazyOption.from_awaitable(self._filter_after(keep))
        return Option(self) if keep else Nothing()

    async def _filter_after(self, pending: Awaitable[Any]) -> Option[T]:
        return Option(self) if await pending else Nothing()

    def map(self, fn: Callable[[T], Any]) -> Any:
        mapped = fn(self._value)
        if _is_pending(mapped):
            return LazyOption.from_awaitable(_some_after(mapped))
        return Some(mapped)

    def or_(self, other: Any) -> Option[T]:
        return Option(self)

    def or_else(self, fn: Callable[[], Any]) -> Option[T]:
        return Option(self)

    def match(self, some: Callable[[T], U], none: Callable[[], U] | U) -> U:
        return some(self._value)

    def ok_or_else(self, fn: Callable[[], Any]) -> Result[T, Any]:
        return Ok(self._value)


class Absent(Variant[Any]):
    """The record holding no value. All Absent records are interchangeable."""

    __slots__ = ()
    __match_args__ = ()

    @property
    def kind(self) -> OptionKind:
        return OptionKind.NONE

    def __repr__(self) -> str:
        return "Nothing"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Absent)

    def __hash__(self) -> int:
        return hash(OptionKind.NONE)

    def __iter__(self) -> Iterator[Any]:
        return iter(())

    def is_some(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise EmptyOptionError()

    def unwrap_or(self, default: T) -> T:
        return default

    def and_(self, other: Any) -> Option[Any]:
        return Option(self)

    def and_then(self, fn: Callable[[Any], Any]) -> Option[Any]:
        return Option(self)

    def filter(self, predicate: Callable[[Any], Any]) -> Option[Any]:
        return Option(self)

    def map(self, fn: Callable[[Any], Any]) -> Option[Any]:
        return Option(self)

    def or_(self, other: Any) -> Any:
        return other

    def or_else(self, fn: Callable[[], Any]) -> Any:
        return _defer_if_pending(fn())

    def match(self, some: Callable[[Any], U], none: Callable[[], U] | U) -> U:
        if callable(none):
            return cast(Callable[[], U], none)()
        return none

    def ok_or_else(self, fn: Callable[[], Any]) -> Any:
        error = fn()
        if _is_pending(error):
            return _err_after(error)
        return Err(error)


# =============================================================================
# Option facade
# =============================================================================


class Option(Generic[T]):
    """A value that may be absent: holds either a Present or an Absent record.

    The facade owns one reassignable slot. ``insert``, ``replace``, ``take``
    and ``get_or_insert`` swap the record held in that slot; every other
    operation delegates to whichever record is held at call time and returns
    a new Option, so mutating a result never reaches back into its source.

    Callbacks may be synchronous or return an awaitable. In the latter case
    the combinator returns a LazyOption, which keeps chaining and can be
    awaited for the settled Option:

        await Some(12).and_then(fetch_double).map(str)   # Some('24')

    An Option is itself awaitable and settles to itself, so a chain that
    skipped its async callback is awaited the same way:

        await Nothing().map(fetch_double)   # Nothing

    Use ``Some(value)`` and ``Nothing()`` to build one. Pattern match on
    ``option.variant``:

        match option.variant:
            case Present(value): ...
            case Absent(): ...
    """

    __slots__ = ("_variant",)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, variant: Variant[T]) -> None:
        self._variant = variant

    @property
    def variant(self) -> Variant[T]:
        return self._variant

    @property
    def kind(self) -> OptionKind:
        return self._variant.kind

    def __repr__(self) -> str:
        return repr(self._variant)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Option) and self._variant == other._variant

    def __iter__(self) -> Iterator[T]:
        return iter(self._variant)

    def __await__(self) -> Generator[Any, None, Option[T]]:
        return _settled(self).__await__()

    def is_some(self) -> bool:
        return self._variant.is_some()

    def is_nothing(self) -> bool:
        return self._variant.is_nothing()

    # -- extraction ----------------------------------------------------------

    def unwrap(self) -> T:
        return self._variant.unwrap()

    def unwrap_or(self, default: T) -> T:
        return self._variant.unwrap_or(default)

    def unwrap_or_else(self, fn: Callable[[], T]) -> T:
        return self.unwrap() if self.is_some() else fn()

    def unwrap_or_raise(self, exc: BaseException) -> T:
        if self.is_some():
            return self.unwrap()
        raise exc

    def expect(self, msg: str) -> T:
        if self.is_some():
            return self.unwrap()
        raise EmptyOptionError(msg)

    def expect_nothing(self, msg: str) -> None:
        if self.is_some():
            raise UnwrapError(f"{msg}: {self.unwrap()!r}", self.unwrap())

    def match(self, some: Callable[[T], U], none: Callable[[], U] | U) -> U:
        """Run ``some(value)`` when present, otherwise produce ``none``.

        ``none`` is called when it is callable and returned as-is otherwise.
        To get a callable back as the fallback, wrap it: ``none=lambda: fn``.
        """
        return self._variant.match(some, none)

    # -- combinators ---------------------------------------------------------

    @overload
    def map(self, fn: Callable[[T], Awaitable[U]]) -> LazyOption[U] | Option[U]: ...  # type: ignore[overload-overlap]

    @overload
    def map(self, fn: Callable[[T], U]) -> Option[U]: ...

    def map(self, fn: Callable[[T], Any]) -> Any:
        return self._variant.map(fn)

    def map_or(self, default: U, fn: Callable[[T], U]) -> U:
        return fn(self.unwrap()) if self.is_some() else default

    def map_or_else(self, default_fn: Callable[[], U], fn: Callable[[T], U]) -> U:
        return fn(self.unwrap()) if self.is_some() else default_fn()

    def and_(self, other: Option[U]) -> Option[U]:
        """Nothing if this is Nothing, otherwise ``other`` (eagerly evaluated)."""
        return self._variant.and_(other)

    @overload
    def and_then(self, fn: Callable[[T], Option[U]]) -> Option[U]: ...

    @overload
    def and_then(self, fn: Callable[[T], Awaitable[Option[U]]]) -> LazyOption[U] | Option[U]: ...

    def and_then(self, fn: Callable[[T], Any]) -> Any:
        """Nothing if this is Nothing, otherwise ``fn(value)``. Some call it flatmap."""
        return self._variant.and_then(fn)

    def filter(self, predicate: Callable[[T], Any]) -> Any:
        return self._variant.filter(predicate)

    def or_(self, other: Option[T]) -> Option[T]:
        """This option if it holds a value, otherwise ``other`` (eagerly evaluated)."""
        return self._variant.or_(other)

    @overload
    def or_else(self, fn: Callable[[], Option[T]]) -> Option[T]: ...

    @overload
    def or_else(self, fn: Callable[[], Awaitable[Option[T]]]) -> LazyOption[T] | Option[T]: ...

    def or_else(self, fn: Callable[[], Any]) -> Any:
        return self._variant.or_else(fn)

    def xor(self, other: Option[T]) -> Option[T]:
        if self.is_some() and other.is_nothing():
            return Option(self._variant)
        if self.is_nothing() and other.is_some():
            return Option(other.variant)
        return Nothing()

    def zip(self, other: Option[U]) -> Option[tuple[T, U]]:
        match (self._variant, other.variant):
            case (Present(left), Present(right)):
                return Some((left, right))
            case _:
                return Nothing()

    def zip_with(self, other: Option[U], fn: Callable[[T, U], V]) -> Option[V]:
        return self.zip(other).map(lambda pair: fn(*pair))

    def flatten(self: Option[Option[U]]) -> Option[U]:
        """Flatten Option[Option[U]] to Option[U]."""
        if self.is_some():
            return Option(self.unwrap().variant)
        return Nothing()

    def tee(self, fn: Callable[[T], Any]) -> Any:
        """Run fn on the value for side effects, return an equal Option."""
        unchanged = Option(self._variant)
        if self.is_some():
            outcome = fn(self.unwrap())
            if _is_pending(outcome):
                return LazyOption.from_awaitable(_option_after(outcome, unchanged))
        return unchanged

    inspect = tee

    def inspect_nothing(self, fn: Callable[[], Any]) -> Any:
        """Run fn for side effects when empty, return an equal Option."""
        unchanged = Option(self._variant)
        if self.is_nothing():
            outcome = fn()
            if _is_pending(outcome):
                return LazyOption.from_awaitable(_option_after(outcome, unchanged))
        return unchanged

    # -- conversion ----------------------------------------------------------

    def ok_or(self, error: E) -> Result[T, E]:
        return Ok(self.unwrap()) if self.is_some() else Err(error)

    def ok_or_else(self, fn: Callable[[], Any]) -> Any:
        """Some(v) -> Ok(v), Nothing -> Err(fn()).

        An async ``fn`` turns the Nothing case into an awaitable Result.
        """
        return self._variant.ok_or_else(fn)

    # -- in-place mutation ---------------------------------------------------

    def get_or_insert(self, value: T) -> T:
        """Insert value if empty, then return the held value.

        The returned object is the one held, so mutating it is visible
        through the option afterwards.
        """
        if self.is_nothing():
            self._variant = Present(value)
        return self._variant.unwrap()

    def get_or_insert_with(self, fn: Callable[[], T]) -> T:
        if self.is_nothing():
            self._variant = Present(fn())
        return self._variant.unwrap()

    def insert(self, value: T) -> T:
        """Hold value, dropping any previous one, and return it."""
        self._variant = Present(value)
        return value

    def replace(self, value: T) -> Option[T]:
        """Hold value and return an Option with whatever was held before.

        Some(2).replace(5) -> returns Some(2), option is now Some(5)
        Nothing().replace(3) -> returns Nothing, option is now Some(3)
        """
        previous = Option(self._variant)
        self._variant = Present(value)
        return previous

    def take(self) -> Option[T]:
        """Move the held record out, leaving Nothing in its place."""
        previous = Option(self._variant)
        self._variant = Absent()
        return previous

    # -- async ---------------------------------------------------------------

    def lazy(self) -> LazyOption[T]:
        """Convert to LazyOption for deferred async chaining.

        Some(5).lazy().map(f).and_then(g).collect()
        """
        return LazyOption.from_option(Option(self._variant))

    async def map_async(self, fn: Callable[[T], Coroutine[Any, Any, U]]) -> Option[U]:
        if self.is_some():
            return Some(await fn(self.unwrap()))
        return Nothing()

    async def and_then_async(
        self, fn: Callable[[T], Coroutine[Any, Any, Option[U]]]
    ) -> Option[U]:
        return await fn(self.unwrap()) if self.is_some() else Nothing()

    async def or_else_async(
        self, fn: Callable[[], Coroutine[Any, Any, Option[T]]]
    ) -> Option[T]:
        return Option(self._variant) if self.is_some() else await fn()


def Some(value: T) -> Option[T]:  # noqa: N802
    """Build a present Option. Presence never depends on truthiness."""
    return Option(Present(value))


def Nothing() -> Option[Any]:  # noqa: N802
    """Build a fresh absent Option."""
    return Option(Absent())


def is_some(option: Option[Any]) -> bool:
    return option.is_some()


def is_nothing(option: Option[Any]) -> bool:
    return option.is_nothing()


def from_nullable(value: T | None) -> Option[T]:
    """Some(value) unless value is None. Other falsy values stay Some."""
    return Nothing() if value is None else Some(value)


def sequence_options(options: Iterable[Option[T]]) -> Option[list[T]]:
    """Sequence Options into Option of list. Stops at the first Nothing."""
    values: list[T] = []
    for option in options:
        if option.is_nothing():
            return Nothing()
        values.append(option.unwrap())
    return Some(values)


def traverse_options(items: Iterable[U], fn: Callable[[U], Option[T]]) -> Option[list[T]]:
    """Map fn over items, sequence into Option. Stops at the first Nothing."""
    return sequence_options(fn(item) for item in items)


# =============================================================================
# Deferred wrapper
# =============================================================================


@dataclass(frozen=True, slots=True)
class MapOp:
    fn: Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class AndThenOp:
    fn: Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class FilterOp:
    predicate: Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class AndOp:
    other: Any


@dataclass(frozen=True, slots=True)
class OrOp:
    other: Any


@dataclass(frozen=True, slots=True)
class OrElseOp:
    fn: Callable[[], Any]


@dataclass(frozen=True, slots=True)
class TeeOp:
    fn: Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class InspectNothingOp:
    fn: Callable[[], Any]


@dataclass(frozen=True, slots=True)
class FlattenOp:
    pass


Operation = MapOp | AndThenOp | FilterOp | AndOp | OrOp | OrElseOp | TeeOp | InspectNothingOp | FlattenOp


class _SettleOnce(Generic[T]):
    """Awaits its source once and replays the outcome to every later waiter."""

    __slots__ = ("_awaitable", "_future")

    def __init__(self, awaitable: Awaitable[T]) -> None:
        self._awaitable = awaitable
        self._future: asyncio.Future[T] | None = None

    async def get(self) -> T:
        if self._future is None:
            self._future = asyncio.ensure_future(self._awaitable)
            self._future.add_done_callback(self._log_settled)
        # Cancelling one waiter must not cancel the source shared by sibling chains.
        return await asyncio.shield(self._future)

    @staticmethod
    def _log_settled(future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            logger.debug("Deferred option source was cancelled")
        elif future.exception() is not None:
            logger.debug("Deferred option source raised %r", future.exception())
        else:
            logger.debug("Deferred option source settled to %r", future.result())


class LazyOption(Generic[T]):
    """An Option, eventually: deferred chaining across async boundaries.

    All combinators accept both sync and async callbacks and append an
    operation instead of running it. Awaiting the LazyOption (or calling
    ``collect()``) awaits the source, then applies each operation in the
    order it was chained, awaiting any pending result before the next one.

    Example:
        option = await (
            LazyOption.from_awaitable(find_user(42))
            .and_then(find_profile)    # Async function
            .map(lambda p: p.name)     # Sync function
            .or_(Some("anonymous"))
        )

    The source is settled at most once, so a LazyOption and every chain
    derived from it can be awaited repeatedly. There is no cancellation or
    timeout: a source that never settles stalls the whole chain.
    """

    __slots__ = ("_source", "_operations")

    def __init__(
        self,
        source: Awaitable[Option[T]] | Option[T] | _SettleOnce[Option[T]],
        operations: tuple[Operation, ...] = (),
    ) -> None:
        if not isinstance(source, (Option, _SettleOnce)):
            source = _SettleOnce(source)
        self._source: Option[T] | _SettleOnce[Option[T]] = source
        self._operations = operations

    @classmethod
    def some(cls, value: T) -> LazyOption[T]:
        """Create LazyOption from a present value."""
        return cls(Some(value))

    @classmethod
    def nothing(cls) -> LazyOption[Any]:
        """Create an empty LazyOption."""
        return cls(Nothing())

    @classmethod
    def from_option(cls, option: Option[T]) -> LazyOption[T]:
        """Create LazyOption from an existing Option."""
        return cls(option)

    @classmethod
    def from_awaitable(cls, awaitable: Awaitable[Option[T]]) -> LazyOption[T]:
        """Create LazyOption from a coroutine/awaitable that returns Option."""
        return cls(awaitable)

    def __repr__(self) -> str:
        return f"LazyOption({len(self._operations)} pending)"

    def __await__(self) -> Generator[Any, None, Option[T]]:
        return self.collect().__await__()

    def _chain(self, op: Operation) -> LazyOption[Any]:
        """Internal: create new LazyOption with operation appended."""
        return LazyOption(self._source, (*self._operations, op))

    def map(self, fn: Callable[[T], U | Awaitable[U]]) -> LazyOption[U]:
        """Transform the value. fn can be sync or async."""
        return cast(LazyOption[U], self._chain(MapOp(fn)))

    def and_then(self, fn: Callable[[T], Option[U] | Awaitable[Option[U]]]) -> LazyOption[U]:
        """Chain Option-returning function. fn can be sync or async."""
        return cast(LazyOption[U], self._chain(AndThenOp(fn)))

    def filter(self, predicate: Callable[[T], Any]) -> LazyOption[T]:
        """Keep the value only if predicate holds. predicate can be sync or async."""
        return cast(LazyOption[T], self._chain(FilterOp(predicate)))

    def and_(self, other: Option[U] | Awaitable[Option[U]]) -> LazyOption[U]:
        return cast(LazyOption[U], self._chain(AndOp(other)))

    def or_(self, other: Option[T] | Awaitable[Option[T]]) -> LazyOption[T]:
        return cast(LazyOption[T], self._chain(OrOp(other)))

    def or_else(self, fn: Callable[[], Option[T] | Awaitable[Option[T]]]) -> LazyOption[T]:
        """Recover from Nothing. fn can be sync or async."""
        return cast(LazyOption[T], self._chain(OrElseOp(fn)))

    def tee(self, fn: Callable[[T], Any]) -> LazyOption[T]:
        """Side effect on the value. fn can be sync or async."""
        return cast(LazyOption[T], self._chain(TeeOp(fn)))

    inspect = tee

    def inspect_nothing(self, fn: Callable[[], Any]) -> LazyOption[T]:
        """Side effect when empty. fn can be sync or async."""
        return cast(LazyOption[T], self._chain(InspectNothingOp(fn)))

    def flatten(self: LazyOption[Option[U]]) -> LazyOption[U]:
        """Flatten LazyOption[Option[U]] to LazyOption[U]."""
        return cast(LazyOption[U], self._chain(FlattenOp()))

    async def is_some(self) -> bool:
        return (await self.collect()).is_some()

    async def is_nothing(self) -> bool:
        return (await self.collect()).is_nothing()

    async def unwrap(self) -> T:
        return (await self.collect()).unwrap()

    async def unwrap_or(self, default: T) -> T:
        return (await self.collect()).unwrap_or(default)

    async def collect(self) -> Option[T]:
        """Execute the lazy chain and return the final Option."""
        logger.debug("Settling deferred option with %d pending operation(s)", len(self._operations))
        option: Option[Any]
        if isinstance(self._source, Option):
            option = self._source
        else:
            option = await self._source.get()

        for op in self._operations:
            option = await self._execute_op(option, op)

        return option

    async def _execute_op(self, option: Option[Any], op: Operation) -> Option[Any]:
        """Apply the matching synchronous combinator, then await it if pending."""
        match op:
            case MapOp(fn):
                return await _maybe_await(option.map(fn))

            case AndThenOp(fn):
                return await _maybe_await(option.and_then(fn))

            case FilterOp(predicate):
                return await _maybe_await(option.filter(predicate))

            case AndOp(other):
                return await _maybe_await(option.and_(other))

            case OrOp(other):
                return await _maybe_await(option.or_(other))

            case OrElseOp(fn):
                return await _maybe_await(option.or_else(fn))

            case TeeOp(fn):
                return await _maybe_await(option.tee(fn))

            case InspectNothingOp(fn):
                return await _maybe_await(option.inspect_nothing(fn))

            case FlattenOp():
                return option.flatten()

        return option  # Unreachable, but satisfies type checker
