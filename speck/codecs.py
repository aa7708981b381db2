"""Value parsers which turn captured field bytes into typed values."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from speck import encoding
from speck.common import BytesReadType, ParseError, serialise, to_hex
from speck.encoding import EndianEncoding

logger = logging.getLogger( __name__ )

ParsedValue = Union[bool, int, float, str, List[int], Any]
CustomCodec = Callable[[bytes], Any]

ENDPOINT_SIZE = 21
ENDPOINT_PREFIX = {0: '@', 1: '@+'}
ENDPOINT_ANY_INSTANCE = 0xffff
POINTER_SIZE = 26


class DecodeError( ParseError ):
    pass


class CodecNotFoundError( DecodeError ):
    pass


class CodecRegistry( object ):
    def __init__( self ):
        """Collection of caller-supplied custom codecs, looked up by name.

        A custom codec is any callable taking a byte string and returning the
        parsed value.
        """
        self._codecs: Dict[str, CustomCodec] = {}

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {", ".join( self._codecs ) or "empty"}>'

    def __contains__( self, name: str ) -> bool:
        return name in self._codecs

    def register( self, name: str, func: CustomCodec ) -> None:
        """Register a custom codec.

        name
            Name used to reference the codec from a structure definition.

        func
            Callable taking a byte string and returning the parsed value.
            Replaces any codec previously registered under the same name.
        """
        if not callable( func ):
            raise TypeError( f'Custom codec {name} should be callable, not {func.__class__}' )
        self._codecs[name] = func

    def unregister( self, name: str ) -> None:
        """Remove a custom codec. Unknown names are ignored."""
        self._codecs.pop( name, None )

    def get( self, name: str ) -> CustomCodec:
        """Return the custom codec registered under name.

        Throws CodecNotFoundError if nothing is registered.
        """
        try:
            return self._codecs[name]
        except KeyError:
            raise CodecNotFoundError( f'Custom parser {name} not found' ) from None


#: Process-wide registry used when no other registry is passed in.
default_registry = CodecRegistry()


def register_custom_codec( name: str, func: CustomCodec ) -> None:
    """Register a custom codec with the default registry."""
    default_registry.register( name, func )


def unregister_custom_codec( name: str ) -> None:
    """Remove a custom codec from the default registry."""
    default_registry.unregister( name )


class ValueParser( object ):
    """Base class for value parsers."""

    #: Name of the parser in a structure definition.
    type_name: str = ''

    def __repr__( self ):
        return f'<{self.__class__.__name__}>'

    @property
    def serialised( self ):
        return serialise( self, ('type_name',) )

    def __hash__( self ):
        return hash( self.serialised )

    def __eq__( self, other: Any ) -> bool:
        if not isinstance( other, ValueParser ):
            return NotImplemented
        return self.serialised == other.serialised

    def describe( self, byte_size: Optional[int] = None ) -> str:
        """Short type name for documentation tables."""
        return self.type_name

    def decode( self, data: BytesReadType, endian: EndianEncoding, registry: CodecRegistry ) -> ParsedValue:
        """Convert a byte string to a Python value.

        data
            Captured bytes of the field.

        endian
            Endianness of the structure; either 'little' or 'big'.

        registry
            Registry used to resolve custom codecs.

        Throws DecodeError if the bytes can't be converted.
        """
        raise NotImplementedError


def _expect_size( parser: ValueParser, data: BytesReadType, sizes: Tuple[int, ...] ):
    if len( data ) not in sizes:
        raise DecodeError(
            f'Invalid byte length for {parser.type_name}: expected {" or ".join( str( s ) for s in sizes )}, got {len( data )}'
        )


class BooleanParser( ValueParser ):
    type_name = 'boolean'

    def decode( self, data, endian, registry ):
        _expect_size( self, data, (1,) )
        return data[0] != 0


class UIntParser( ValueParser ):
    type_name = 'uint'

    def describe( self, byte_size=None ):
        return f'uint{byte_size * 8}' if byte_size else 'uint'

    def decode( self, data, endian, registry ):
        if len( data ) == 0:
            raise DecodeError( 'Invalid byte length for uint: got 0' )
        return encoding.unpack_uint( bytes( data ), endian )


class IntParser( ValueParser ):
    type_name = 'int'

    def describe( self, byte_size=None ):
        return f'int{byte_size * 8}' if byte_size else 'int'

    def decode( self, data, endian, registry ):
        _expect_size( self, data, (1, 2, 4, 8) )
        return encoding.unpack( (int, len( data ), 'signed', endian), bytes( data ) )


class FloatParser( ValueParser ):
    type_name = 'float'

    def describe( self, byte_size=None ):
        return f'float{byte_size * 8}' if byte_size else 'float'

    def decode( self, data, endian, registry ):
        _expect_size( self, data, (4, 8) )
        return encoding.unpack( (float, len( data ), 'signed', endian), bytes( data ) )


class StringParser( ValueParser ):
    type_name = 'string'

    def decode( self, data, endian, registry ):
        # invalid sequences become U+FFFD, padding is kept as-is
        return bytes( data ).decode( 'utf-8', errors='replace' )


def parse_enum_key( key: str ) -> int:
    """Convert an enum mapping key (decimal, 0x hexadecimal or 0b binary) to an int.

    Throws ValueError for anything else.
    """
    if not isinstance( key, str ):
        raise ValueError( f'enum key should be a string, not {key.__class__}' )
    if key.startswith( '0x' ):
        return int( key[2:], 16 )
    elif key.startswith( '0b' ):
        return int( key[2:], 2 )
    return int( key, 10 )


class EnumParser( ValueParser ):
    type_name = 'enum'

    def __init__( self, mapping: Dict[str, ParsedValue] ):
        """Parser which maps integer values to arbitrary values.

        mapping
            Dictionary of textual integer keys (e.g. '2', '0x02', '0b10') to the
            value to return. Checked in order; the first matching key wins.

        Throws ValueError if a key can't be interpreted as an integer.
        """
        self.mapping = dict( mapping )
        self._keys = [(parse_enum_key( key ), value) for key, value in self.mapping.items()]

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {len( self.mapping )} values>'

    @property
    def serialised( self ):
        return serialise( self, ('type_name',) ) + (tuple( self.mapping.items() ),)

    def decode( self, data, endian, registry ):
        _expect_size( self, data, (1, 2, 4) )
        number = encoding.unpack_uint( bytes( data ), endian )
        for key, value in self._keys:
            if key == number:
                return value
        raise DecodeError( f'Value 0x{to_hex( data )} not found in enum mapping {self.mapping}' )


class EndpointParser( ValueParser ):
    type_name = 'endpoint'

    def decode( self, data, endian, registry ):
        _expect_size( self, data, (ENDPOINT_SIZE,) )
        prefix = ENDPOINT_PREFIX.get( data[0], '@@' )
        id_bytes = bytes( data[1:19] )
        instance = encoding.unpack( (int, 2, 'unsigned', endian), bytes( data[19:21] ) )

        if not any( id_bytes ):
            name = 'local'
        else:
            name = id_bytes.split( b'\x00', 1 )[0].decode( 'utf-8', errors='replace' )

        if instance == 0:
            return f'{prefix}{name}'
        suffix = '*' if instance == ENDPOINT_ANY_INSTANCE else str( instance )
        return f'{prefix}{name}/{suffix}'


class PointerParser( ValueParser ):
    type_name = 'pointer'

    def decode( self, data, endian, registry ):
        _expect_size( self, data, (POINTER_SIZE,) )
        return f'${to_hex( data )}'


class HexParser( ValueParser ):
    type_name = 'hex'

    def decode( self, data, endian, registry ):
        return to_hex( data )


class ArrayParser( ValueParser ):
    type_name = 'array'

    def decode( self, data, endian, registry ):
        return list( bytes( data ) )


class CustomParser( ValueParser ):
    type_name = 'custom'

    def __init__( self, name: str ):
        """Parser which delegates to a codec from the registry.

        name
            Name the codec was registered under. Resolved at decode time, so
            codecs can be registered after the structure is loaded.
        """
        self.name = name

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.name}>'

    @property
    def serialised( self ):
        return serialise( self, ('type_name', 'name') )

    def describe( self, byte_size=None ):
        return self.name

    def decode( self, data, endian, registry ):
        return registry.get( self.name )( bytes( data ) )


PARSER_TYPES = {
    klass.type_name: klass for klass in (
        BooleanParser,
        UIntParser,
        IntParser,
        FloatParser,
        StringParser,
        EnumParser,
        EndpointParser,
        PointerParser,
        HexParser,
        ArrayParser,
        CustomParser,
    )
}
