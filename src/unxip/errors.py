from typing import Any, Type, TypeVar, Union

from typing_extensions import Protocol

T = TypeVar("T", bound="Comparable")


class Comparable(Protocol):
    def __lt__(self: T, other: T) -> bool:
        pass  # pragma: no cover

    def __le__(self: T, other: T) -> bool:
        pass  # pragma: no cover

    def __gt__(self: T, other: T) -> bool:
        pass  # pragma: no cover

    def __ge__(self: T, other: T) -> bool:
        pass  # pragma: no cover


class XarError(Exception):
    """Base error for all errors in the library."""


class XarParseError(XarError):
    """An error when parsing data."""


class InvalidSignature(XarParseError):
    """The archive does not start with the XAR magic."""


class TruncatedHeader(XarParseError):
    """Fewer bytes than the fixed header were available."""


class InvalidSizes(XarParseError):
    """The table of contents sizes in the header are out of bounds."""


class InvalidHeaderSize(XarParseError):
    """The header size is too small, or points past the end of the source."""


class TruncatedToc(XarParseError):
    """The compressed table of contents could not be read in full."""


class DecompressionError(XarParseError):
    """The table of contents did not inflate to its declared size."""


class TocParseError(XarParseError):
    """The table of contents document could not be parsed."""


def _assert_base(  # pylint: disable=too-many-arguments
    result: bool,
    operator: str,
    name: str,
    expected: Any,
    actual: Any,
    location: Union[int, str],
    error_class: Type[XarError] = XarParseError,
) -> None:
    if not result:
        raise error_class(f"{name}: {actual!r} {operator} {expected!r} (at {location})")


def assert_eq(
    name: str,
    expected: T,
    actual: T,
    location: Union[int, str],
    error_class: Type[XarError] = XarParseError,
) -> None:
    result = actual == expected
    _assert_base(result, "==", name, expected, actual, location, error_class)


def assert_le(
    name: str,
    expected: T,
    actual: T,
    location: Union[int, str],
    error_class: Type[XarError] = XarParseError,
) -> None:
    result = actual <= expected
    _assert_base(result, "<=", name, expected, actual, location, error_class)


def assert_gt(
    name: str,
    expected: T,
    actual: T,
    location: Union[int, str],
    error_class: Type[XarError] = XarParseError,
) -> None:
    result = actual > expected
    _assert_base(result, ">", name, expected, actual, location, error_class)


def assert_ge(
    name: str,
    expected: T,
    actual: T,
    location: Union[int, str],
    error_class: Type[XarError] = XarParseError,
) -> None:
    result = actual >= expected
    _assert_base(result, ">=", name, expected, actual, location, error_class)

