import os
from typing import Any, Iterator, Sequence, Tuple, Union

Bytes = Union[bytes, bytearray, memoryview]

BytesReadType = Union[bytes, bytearray, memoryview]
FieldPath = Tuple[str, ...]


class ParseError( Exception ):
    """Base class for errors raised while resolving data against a structure definition."""
    pass


class FieldDefinitionError( Exception ):
    pass


def is_bytes( obj: Any ) -> bool:
    """Returns whether obj is an acceptable Python byte string."""
    return isinstance( obj, getattr( Bytes, '__args__' ) )


def is_byte_list( obj: Any ) -> bool:
    """Returns whether obj is a flat list of integers in the range 0-255."""
    if not isinstance( obj, (list, tuple) ):
        return False
    return all( type( x ) == int and x in range( 256 ) for x in obj )


def to_hex( data: BytesReadType ) -> str:
    return bytes( data ).hex()


def path_str( path: Sequence[str] ) -> str:
    return '.'.join( path )


def serialise( obj: Any, fields: Sequence[str] ):
    return ((obj.__class__.__module__, obj.__class__.__name__), tuple( (x, getattr( obj, x )) for x in fields ))


def file_path_recurse( *root_list: str, suffix: str = '' ) -> Iterator[str]:
    for root in root_list:
        if os.path.isfile( root ):
            yield root
            continue
        for path, _, files in os.walk( root ):
            for item in sorted( files ):
                file_path = os.path.join( path, item )
                if not os.path.isfile( file_path ):
                    continue
                if suffix and not item.endswith( suffix ):
                    continue
                yield file_path
