# SPDX-FileCopyrightText: 2020-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from binascii import Error as BinasciiError
from binascii import a2b_base64 as base64decode
from binascii import a2b_hex as hexdecode
from binascii import b2a_base64 as base64encode
from binascii import b2a_hex as hexencode
from collections.abc import MutableMapping
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation
from math import inf, isinf, isnan
from struct import pack, unpack
from typing import Any, ClassVar, Protocol, Self, runtime_checkable

from .exceptions import InvalidLiteralError, UnsupportedTypeError

__all__ = (  # noqa: RUF022
    'DataConverter',
    'DataAdapter',
    'AdapterRegistry',
    'Char',

    'get_adapter',
    'value_type_of',
    'from_wire',
    'to_wire',

    'StringAdapter',
    'CharAdapter',
    'Base64BinaryAdapter',
    'HexBinaryAdapter',
    'BooleanAdapter',
    'DatetimeAdapter',
    'DecimalAdapter',
    'DoubleAdapter',
    'FloatAdapter',

    'IntegerAdapter',
    'ByteAdapter',
    'ShortAdapter',
    'IntAdapter',
    'LongAdapter',
    'UnsignedByteAdapter',
    'UnsignedShortAdapter',
    'UnsignedIntAdapter',
    'UnsignedLongAdapter',
    'Int8Adapter',
    'Int16Adapter',
    'Int32Adapter',
    'Int64Adapter',
    'UInt8Adapter',
    'UInt16Adapter',
    'UInt32Adapter',
    'UInt64Adapter',
)


@runtime_checkable
class DataConverter(Protocol):
    """A protocol that describes how a data type converts between itself and XML"""

    @classmethod
    def xml_parse(cls, value: str) -> Self:
        """Parse XML into the data type"""
        ...

    def xml_build(self: Self) -> str:
        """Build XML from the data type"""
        ...


@runtime_checkable
class DataAdapter[T](Protocol):
    """A protocol that describes an external adapter between a data type T and XML"""

    value_type: ClassVar[type]

    @staticmethod
    def xml_parse(value: str, /) -> T:
        """Parse XML into the data type"""
        ...

    @staticmethod
    def xml_build(value: T, /) -> str:
        """Build XML from the data type"""
        ...


type DataAdapterType[T] = type[DataAdapter[T]]


class AdapterRegistry[T]:
    _adapters: ClassVar[MutableMapping[type, type[DataAdapter]]] = {}

    @classmethod
    def associate(cls, data_type: type[T], adapter: type[DataAdapter[T]]) -> None:
        if issubclass(data_type, DataConverter):
            raise TypeError('Types that already support the DataConverter protocol are their own adapters and cannot be associated with another one.')
        cls._adapters[data_type] = adapter

    @classmethod
    def get_adapter(cls, data_type: type[T]) -> type[DataAdapter[T]] | None:
        return cls._adapters.get(data_type, None)


class Char(str):
    """A text value made of exactly one code point"""

    __slots__ = ()

    def __new__(cls, value: str = '\0') -> Self:
        if len(value) != 1:
            raise ValueError(f'a character must be exactly one code point, got {len(value)}: {value!r}')
        return super().__new__(cls, value)


class StringAdapter:
    value_type: ClassVar[type] = str

    @staticmethod
    def xml_parse(value: str) -> str:
        return value

    @staticmethod
    def xml_build(value: str) -> str:
        return value


class CharAdapter:
    value_type: ClassVar[type] = Char

    @staticmethod
    def xml_parse(value: str) -> Char:
        return Char(value)

    @staticmethod
    def xml_build(value: str) -> str:
        return str(Char(value))


class Base64BinaryAdapter:
    value_type: ClassVar[type] = bytes

    @staticmethod
    def xml_parse(value: str) -> bytes:
        try:
            return base64decode(value)
        except BinasciiError as exc:
            raise ValueError(str(exc)) from exc

    @staticmethod
    def xml_build(value: bytes) -> str:
        return base64encode(value, newline=False).decode('ascii')


class HexBinaryAdapter:
    value_type: ClassVar[type] = bytes

    @staticmethod
    def xml_parse(value: str) -> bytes:
        try:
            return hexdecode(value)
        except BinasciiError as exc:
            raise ValueError(str(exc)) from exc

    @staticmethod
    def xml_build(value: bytes) -> str:
        return hexencode(value).decode('ascii')


class BooleanAdapter:
    value_type: ClassVar[type] = bool

    # Only the exact literal "true" is true, anything else is false. There is no validation.

    @staticmethod
    def xml_parse(value: str) -> bool:
        return value == 'true'

    @staticmethod
    def xml_build(value: bool) -> str:  # noqa: FBT001
        return 'true' if value else 'false'


class DatetimeAdapter:
    """RFC 3339 timestamps. Values without an offset are taken to be in UTC."""

    value_type: ClassVar[type] = datetime

    @staticmethod
    def xml_parse(value: str) -> datetime:
        if 'T' not in value and 't' not in value:
            timestamp = datetime.combine(date.fromisoformat(value), time(), tzinfo=UTC)
        else:
            timestamp = datetime.fromisoformat(value.upper())
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        return timestamp

    @staticmethod
    def xml_build(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).isoformat().removesuffix('+00:00') + 'Z'


class DecimalAdapter:
    value_type: ClassVar[type] = Decimal

    @staticmethod
    def xml_parse(value: str) -> Decimal:
        try:
            number = Decimal(value)
        except InvalidOperation:
            raise ValueError(f'invalid decimal literal: {value!r}') from None
        if not number.is_finite():
            raise ValueError(f'invalid decimal literal: {value!r}')
        return number

    @staticmethod
    def xml_build(value: Decimal) -> str:
        return str(value)


class DoubleAdapter:
    """IEEE 754 double precision values, with INF and -INF for the infinities"""

    value_type: ClassVar[type] = float

    @staticmethod
    def xml_parse(value: str) -> float:
        match value:
            case 'INF':
                return +inf
            case '-INF':
                return -inf
            case 'NaN':
                return float('nan')
        number = float(value)
        if isinf(number) or isnan(number):  # float() also accepts spellings like "infinity" or "nan"
            raise ValueError(f'invalid floating point literal: {value!r}')
        return number

    @staticmethod
    def xml_build(value: float) -> str:
        if isnan(value):
            return 'NaN'
        if isinf(value):
            return 'INF' if value > 0 else '-INF'
        return repr(float(value))


class FloatAdapter:
    """IEEE 754 single precision values, with INF and -INF for the infinities"""

    value_type: ClassVar[type] = float

    @staticmethod
    def xml_parse(value: str) -> float:
        number = DoubleAdapter.xml_parse(value)
        try:
            return unpack('<f', pack('<f', number))[0]
        except OverflowError:
            raise ValueError(f'value out of range for single precision float: {value!r}') from None

    @staticmethod
    def xml_build(value: float) -> str:
        return DoubleAdapter.xml_build(value)


AdapterRegistry.associate(str, StringAdapter)
AdapterRegistry.associate(bool, BooleanAdapter)
AdapterRegistry.associate(bytes, Base64BinaryAdapter)
AdapterRegistry.associate(datetime, DatetimeAdapter)
AdapterRegistry.associate(Decimal, DecimalAdapter)
AdapterRegistry.associate(float, DoubleAdapter)
AdapterRegistry.associate(Char, CharAdapter)


class IntegerAdapter:
    value_type: ClassVar[type] = int

    def __init_subclass__(cls, *, min_value: int | None = None, max_value: int | None = None, name: str = 'integer', bits: int | None = None, unsigned: bool = False, **kw: object) -> None:
        super().__init_subclass__(**kw)

        # Subclasses should specify either min_value/max_value/name or bits/unsigned.
        # When bits is specified it overwrites the name and boundaries with computed values.

        lower_bound: int | float
        upper_bound: int | float

        if bits is not None:
            if bits <= 0:
                raise ValueError('when specified, bits must be a positive integer')
            name = f'{"unsigned" if unsigned else "signed"} {bits}-bit integer'
            offset: int = 0 if unsigned else 2 ** (bits - 1)
            lower_bound = 0 - offset
            upper_bound = 2**bits - 1 - offset
        else:
            lower_bound = min_value if min_value is not None else -inf
            upper_bound = max_value if max_value is not None else +inf

        def xml_parse(value: str) -> int:
            number = int(value)
            if lower_bound <= number <= upper_bound:
                return number
            raise ValueError(f"invalid value '{value}' for {name}")

        def xml_build(value: int) -> str:
            if lower_bound <= value <= upper_bound:
                return str(value)
            raise ValueError(f"invalid value '{value}' for {name}")

        cls.xml_parse = staticmethod(xml_parse)  # type: ignore[method-assign]
        cls.xml_build = staticmethod(xml_build)  # type: ignore[method-assign]

    @staticmethod
    def xml_parse(value: str) -> int:
        return int(value)

    @staticmethod
    def xml_build(value: int) -> str:
        return str(value)


AdapterRegistry.associate(int, IntegerAdapter)


class ByteAdapter(IntegerAdapter, bits=8):
    pass


class ShortAdapter(IntegerAdapter, bits=16):
    pass


class IntAdapter(IntegerAdapter, bits=32):
    pass


class LongAdapter(IntegerAdapter, bits=64):
    pass


class UnsignedByteAdapter(IntegerAdapter, bits=8, unsigned=True):
    pass


class UnsignedShortAdapter(IntegerAdapter, bits=16, unsigned=True):
    pass


class UnsignedIntAdapter(IntegerAdapter, bits=32, unsigned=True):
    pass


class UnsignedLongAdapter(IntegerAdapter, bits=64, unsigned=True):
    pass


# Alternative names

Int8Adapter = ByteAdapter
Int16Adapter = ShortAdapter
Int32Adapter = IntAdapter
Int64Adapter = LongAdapter
UInt8Adapter = UnsignedByteAdapter
UInt16Adapter = UnsignedShortAdapter
UInt32Adapter = UnsignedIntAdapter
UInt64Adapter = UnsignedLongAdapter


def _is_adapter(datatype: type) -> bool:
    # adapters describe some other type through value_type, converters describe themselves
    return isinstance(getattr(datatype, 'value_type', None), type) and callable(getattr(datatype, 'xml_parse', None)) and callable(getattr(datatype, 'xml_build', None))


def get_adapter(datatype: Any) -> DataAdapterType[Any]:
    """Return the adapter for a declared datatype (an adapter, a DataConverter type or a registered type)"""
    if isinstance(datatype, type):
        adapter = AdapterRegistry.get_adapter(datatype)
        if adapter is not None:
            return adapter
        if _is_adapter(datatype) or issubclass(datatype, DataConverter):
            return datatype  # type: ignore[return-value]  # a DataConverter is its own adapter
    raise UnsupportedTypeError(f'no conversion rule for the {getattr(datatype, "__qualname__", datatype)!r} type')


def value_type_of(datatype: Any) -> type:
    """Return the python type of the values described by datatype"""
    adapter = get_adapter(datatype)
    return adapter.value_type if _is_adapter(adapter) else adapter


def from_wire(value: str, datatype: Any) -> Any:
    adapter = get_adapter(datatype)
    try:
        return adapter.xml_parse(value)
    except (ValueError, ArithmeticError) as exc:
        raise InvalidLiteralError(f'invalid literal for {getattr(datatype, "__qualname__", datatype)}: {value!r} ({exc!s})') from exc


def to_wire(value: Any, datatype: Any = None) -> str:
    adapter = get_adapter(type(value) if datatype is None else datatype)
    try:
        return adapter.xml_build(value)
    except (ValueError, ArithmeticError) as exc:
        raise InvalidLiteralError(f'cannot represent {value!r} as {getattr(datatype, "__qualname__", datatype)}: {exc!s}') from exc
