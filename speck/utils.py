"""General utility functions."""
from __future__ import annotations

import logging
from typing import Iterator, Optional, Tuple

from speck.common import BytesReadType, is_bytes

logger = logging.getLogger( __name__ )


def enable_logging( level: str = "WARNING" ) -> None:
    """Enable sending logs to stderr. Useful for shell sessions.

    level
        Logging threshold, as defined in the logging module of the Python
        standard library. Defaults to 'WARNING'.
    """
    log = logging.getLogger( "speck" )
    log.setLevel( level )
    out = logging.StreamHandler()
    out.setLevel( level )
    form = logging.Formatter( "[%(levelname)s] %(name)s - %(message)s" )
    out.setFormatter( form )
    log.addHandler( out )


def bounds( start: Optional[int], end: Optional[int], length: Optional[int], src_size: int ) -> Tuple[int, int]:
    if length is not None and length < 0:
        raise ValueError( 'Length can\'t be a negative number!' )
    start = 0 if (start is None) else start

    if (end is not None) and (length is not None):
        raise ValueError( 'Can\'t define both an end and a length!' )
    elif (length is not None):
        end = start + length
    elif (end is not None):
        pass
    else:
        end = src_size

    if start < 0:
        start += src_size
    if end < 0:
        end += src_size
    start = max( start, 0 )
    end = min( end, src_size )

    return start, end


def _glyph( byte: int ) -> str:
    return chr( byte ) if byte in range( 0x20, 0x7f ) else '.'


def hexdump_iter(
    source: BytesReadType,
    start: Optional[int] = None,
    end: Optional[int] = None,
    length: Optional[int] = None,
    major_len: int = 8,
    minor_len: int = 4,
    show_offsets: bool = True,
    show_glyphs: bool = True,
) -> Iterator[str]:
    """Return an iterator that renders a byte string in tabular hexadecimal/ASCII format.

    source
        Source byte string to render

    start
        Start offset to read from (default: start)

    end
        End offset to stop reading at (default: end)

    length
        Length to read in (optional replacement for end)

    major_len
        Number of hexadecimal groups per line

    minor_len
        Number of bytes per hexadecimal group

    show_offsets
        Display offsets at the start of each line (default: true)

    show_glyphs
        Display glyph map at the end of each line (default: true)

    Raises ValueError if both end and length are defined.
    """
    assert is_bytes( source )
    start, end = bounds( start, end, length, len( source ) )

    if len( source ) == 0 or (start == end == 0):
        return

    line_len = minor_len * major_len
    for offset in range( start, end, line_len ):
        line = source[offset:min( offset + line_len, end )]
        groups = []
        for i in range( 0, line_len, minor_len ):
            chunk = line[i:i + minor_len]
            groups.append( ' '.join( f'{b:02x}' for b in chunk ).ljust( minor_len * 3 - 1 ) )
        output = '  '.join( groups )
        if show_offsets:
            output = f'{offset:08x}: {output}'
        if show_glyphs:
            output += ' | ' + ''.join( _glyph( b ) for b in line )
        yield output
    return


def hexdump(
    source: BytesReadType,
    start: Optional[int] = None,
    end: Optional[int] = None,
    length: Optional[int] = None,
    major_len: int = 8,
    minor_len: int = 4,
    show_offsets: bool = True,
    show_glyphs: bool = True,
) -> None:
    """Print the contents of a byte string in tabular hexadecimal/ASCII format.

    See hexdump_iter() for the meaning of the arguments.
    """
    for line in hexdump_iter(
        source,
        start=start,
        end=end,
        length=length,
        major_len=major_len,
        minor_len=minor_len,
        show_offsets=show_offsets,
        show_glyphs=show_glyphs,
    ):
        print( line )
