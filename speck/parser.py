"""Parse byte strings according to a structure definition."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Union

from speck import utils
from speck.blocks import ParsedStructure
from speck.codecs import CodecRegistry
from speck.common import BytesReadType
from speck.fields import resolve_structure
from speck.readers import BufferReader, ByteReader
from speck.schema import StructureDefinition, load_structure

logger = logging.getLogger( __name__ )

DefinitionType = Union[StructureDefinition, Dict[str, Any]]


def parse(
    definition: DefinitionType,
    data: Union[BytesReadType, Sequence[int]],
    *,
    registry: Optional[CodecRegistry] = None,
    max_repeat: Optional[int] = None,
    max_depth: Optional[int] = None,
) -> ParsedStructure:
    """Parse a byte string according to a structure definition.

    definition
        Structure definition, or a dictionary in structure definition form.

    data
        Byte string (or list of integers) to parse.

    registry
        Registry used to look up custom codecs. Defaults to the
        process-wide registry.

    max_repeat
        Largest repeat count allowed for a single field. Defaults to no limit.

    max_depth
        Deepest allowed nesting of sub fields. Defaults to no limit.

    Throws a ParseError subclass if the data doesn't fit the definition.
    """
    reader = BufferReader( data )
    if logger.isEnabledFor( logging.DEBUG ):
        logger.debug( f'Parsing {len( reader.buffer )} bytes' )
        for line in utils.hexdump_iter( reader.buffer, end=0x200 ):
            logger.debug( line )
    result = parse_with_reader(
        definition, reader, registry=registry, max_repeat=max_repeat, max_depth=max_depth
    )
    if reader.remaining:
        logger.info( f'{result.name}: {reader.remaining} trailing bytes left unparsed' )
    return result


def parse_with_reader(
    definition: DefinitionType,
    reader: ByteReader,
    *,
    registry: Optional[CodecRegistry] = None,
    max_repeat: Optional[int] = None,
    max_depth: Optional[int] = None,
) -> ParsedStructure:
    """Parse the contents of a ByteReader according to a structure definition.

    See parse() for the meaning of the other arguments.
    """
    return resolve_structure(
        load_structure( definition ),
        reader,
        registry=registry,
        max_repeat=max_repeat,
        max_depth=max_depth,
    )
