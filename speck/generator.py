"""Generate structures and byte strings from a structure definition and defaults."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from speck.blocks import ParsedField, ParsedStructure
from speck.codecs import CodecRegistry
from speck.fields import iter_leaves, resolve_structure
from speck.parser import DefinitionType
from speck.readers import DefaultsReader, DefaultsType
from speck.schema import load_structure

logger = logging.getLogger( __name__ )


def _settle_containers( fields: Sequence[ParsedField] ) -> None:
    # a generated container can't peek at its own bytes, so rebuild them from the children
    for field in fields:
        if field.sub_fields is None or field.bitmask:
            continue
        _settle_containers( field.sub_fields )
        field.data = b''.join( f.data for f in iter_leaves( field.sub_fields ) )


def generate(
    definition: DefinitionType,
    defaults: Optional[DefaultsType] = None,
    *,
    registry: Optional[CodecRegistry] = None,
    max_repeat: Optional[int] = None,
    max_depth: Optional[int] = None,
) -> ParsedStructure:
    """Generate a parsed structure from default values.

    definition
        Structure definition, or a dictionary in structure definition form.

    defaults
        Nested dictionary of default bytes, keyed by section name, then field
        name, then child field names. Fields without defaults are zero-filled.

    See speck.parser.parse() for the meaning of the other arguments.

    Throws InvalidDefaultsError if the defaults don't fit the definition.
    """
    structure = resolve_structure(
        load_structure( definition ),
        DefaultsReader( defaults ),
        registry=registry,
        max_repeat=max_repeat,
        max_depth=max_depth,
    )
    for section in structure:
        _settle_containers( section.fields )
    return structure


def structure_to_bytes( structure: ParsedStructure ) -> bytes:
    """Flatten a parsed structure into a byte string, in schema order."""
    output = bytearray()
    for section in structure:
        for field in iter_leaves( section.fields ):
            output.extend( field.data )
    return bytes( output )


def generate_bytes(
    definition: DefinitionType,
    defaults: Optional[DefaultsType] = None,
    **kwargs,
) -> bytes:
    """Generate a byte string from default values.

    See generate() for the meaning of the arguments.
    """
    result = structure_to_bytes( generate( definition, defaults, **kwargs ) )
    if logger.isEnabledFor( logging.DEBUG ):
        logger.debug( f'Generated {len( result )} bytes' )
    return result
