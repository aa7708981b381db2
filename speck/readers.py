"""Byte sources for the field resolver.

The resolver never touches a buffer directly; it asks a ByteReader for the
next span of bytes, passing along the path of the field being resolved. A
BufferReader hands out real data, a DefaultsReader synthesizes it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Union

from speck.common import BytesReadType, ParseError, is_byte_list, is_bytes, path_str

logger = logging.getLogger( __name__ )

DefaultsType = Dict[str, Any]


class OutOfRangeError( ParseError ):
    pass


class InvalidDefaultsError( ParseError ):
    pass


class ByteReader( object ):
    """Base class for byte sources."""

    def read_bytes( self, count: int, path: Sequence[str] = () ) -> bytes:
        """Return the next count bytes and advance past them.

        count
            Number of bytes to read.

        path
            Names leading to the field being read (section name first).
        """
        raise NotImplementedError

    def peek_bytes( self, count: int, path: Sequence[str] = () ) -> bytes:
        """Return the next count bytes without advancing.

        count
            Number of bytes to read.

        path
            Names leading to the field being read (section name first).
        """
        raise NotImplementedError


class BufferReader( ByteReader ):
    def __init__( self, buffer: Union[BytesReadType, Sequence[int]] ):
        """Sequential reader over a byte string.

        buffer
            Source data. Can be a byte string or a list of integers.
        """
        if is_bytes( buffer ):
            self.buffer = bytes( buffer )
        elif is_byte_list( buffer ):
            self.buffer = bytes( buffer )
        else:
            raise TypeError( f'buffer should be a byte string, not {buffer.__class__}' )
        self.offset = 0

    def __repr__( self ):
        return f'<{self.__class__.__name__}: offset={self.offset}, size={len( self.buffer )}>'

    @property
    def remaining( self ) -> int:
        return len( self.buffer ) - self.offset

    def _check( self, count: int, path: Sequence[str] ):
        if count < 0:
            raise OutOfRangeError( f'{path_str( path )}: can\'t read a negative number of bytes ({count})' )
        if count > self.remaining:
            raise OutOfRangeError(
                f'{path_str( path )}: was expecting {count} bytes at offset {self.offset}, only found {self.remaining}!'
            )

    def read_bytes( self, count, path=() ):
        self._check( count, path )
        result = self.buffer[self.offset:self.offset + count]
        self.offset += count
        return result

    def peek_bytes( self, count, path=() ):
        self._check( count, path )
        return self.buffer[self.offset:self.offset + count]


class DefaultsReader( ByteReader ):
    def __init__( self, defaults: Optional[DefaultsType] = None ):
        """Reader which synthesizes bytes for structure generation.

        There is no cursor; every request is answered by looking up the field
        path in a nested mapping of default values.

        defaults
            Nested dictionary keyed by section name, then field name, then
            child field names. Leaves are byte strings or lists of integers.
            Fields without an entry are filled with zeros.
        """
        if defaults is not None and not isinstance( defaults, dict ):
            raise InvalidDefaultsError( f'defaults should be a dictionary, not {defaults.__class__}' )
        self.defaults = defaults

    def _lookup( self, path: Sequence[str] ) -> Any:
        entry: Any = self.defaults
        for part in path:
            if entry is None:
                return None
            if not isinstance( entry, dict ):
                raise InvalidDefaultsError( f'Invalid path to default data: {path_str( path )}' )
            entry = entry.get( part )
        return entry

    def _fetch( self, count: int, path: Sequence[str], container: bool ) -> bytes:
        entry = self._lookup( path )
        if entry is None:
            return bytes( count )
        if isinstance( entry, dict ):
            if container:
                # the children hold the real defaults
                return bytes( count )
            raise InvalidDefaultsError( f'Invalid path to default data: {path_str( path )}' )
        if not (is_bytes( entry ) or is_byte_list( entry )):
            raise InvalidDefaultsError(
                f'{path_str( path )}: default data should be a byte string or list of bytes, not {entry.__class__}'
            )
        if len( entry ) < count:
            raise InvalidDefaultsError(
                f'Not enough default data for field {path_str( path )} - expected {count}, got {len( entry )}'
            )
        return bytes( entry[:count] )

    def read_bytes( self, count, path=() ):
        return self._fetch( count, path, container=False )

    def peek_bytes( self, count, path=() ):
        return self._fetch( count, path, container=True )
