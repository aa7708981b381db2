import struct
from typing import Callable, Dict, Tuple, Type, Union
import logging
from typing_extensions import Literal

logger = logging.getLogger( __name__ )

NumberType = Union[Type[int], Type[float]]
Number = Union[int, float]

SignedEncoding = Literal["signed", "unsigned"]
EndianEncoding = Literal["big", "little"]
NumberEncoding = Tuple[NumberType, int, SignedEncoding, EndianEncoding]

ENDIANNESS = ("little", "big")

RAW_TYPE_STRUCT: Dict[Tuple[NumberType, int, SignedEncoding], str] = {
    (int, 1, "unsigned"): "B",
    (int, 1, "signed"): "b",
    (int, 2, "unsigned"): "H",
    (int, 2, "signed"): "h",
    (int, 4, "unsigned"): "I",
    (int, 4, "signed"): "i",
    (int, 8, "unsigned"): "Q",
    (int, 8, "signed"): "q",
    (float, 4, "signed"): "f",
    (float, 8, "signed"): "d",
}

FROM_RAW_TYPE: Dict[NumberEncoding, Callable[[bytes], Number]] = {}


def get_raw_type_struct(
    format_type: NumberType,
    field_size: int,
    signedness: SignedEncoding,
    endian: EndianEncoding,
) -> str:
    endianness = ">" if endian == "big" else "<"
    return f"{endianness}{RAW_TYPE_STRUCT[(format_type, field_size, signedness)]}"


def _from_raw_type(
    format_type: NumberType,
    field_size: int,
    signedness: SignedEncoding,
    endian: EndianEncoding,
) -> Callable[[bytes], Number]:
    fmt = get_raw_type_struct( format_type, field_size, signedness, endian )
    return lambda buffer: struct.unpack( fmt, buffer )[0]


# autogenerate conversion methods based on struct
for format_type, field_size, signedness in RAW_TYPE_STRUCT:
    endian: EndianEncoding
    for endian in ENDIANNESS:
        type_id = (format_type, field_size, signedness, endian)
        FROM_RAW_TYPE[type_id] = _from_raw_type( *type_id )


def has_raw_type( type_id: NumberEncoding ) -> bool:
    return type_id in FROM_RAW_TYPE


def unpack( type_id: NumberEncoding, value: bytes ) -> Number:
    return FROM_RAW_TYPE[type_id]( value )


def unpack_uint( value: bytes, endian: EndianEncoding ) -> int:
    """Convert an unsigned integer byte string of any length to a Python int."""
    type_id = (int, len( value ), "unsigned", endian)
    if has_raw_type( type_id ):
        return unpack( type_id, value )
    return int.from_bytes( value, byteorder=endian, signed=False )
