"""Convert parsed structures into plain JSON-compatible data.

Names are normalised to lowercase identifiers, repeated fields become lists,
nested fields become dictionaries and bit masks are flattened into a
dictionary on their parent field. Sections, fields and bit masks with usage
'omit' are left out.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from speck.blocks import ParsedField, ParsedSection, ParsedStructure
from speck.common import BytesReadType, to_hex
from speck.parser import DefinitionType, parse
from speck.schema import (
    BitMaskFieldDefinition,
    FieldDefinition,
    NestedFieldDefinition,
    SectionDefinition,
    load_structure,
)

logger = logging.getLogger( __name__ )

NAME_SEPARATOR = re.compile( r'[^a-z0-9]+' )


def normalise_name( name: str ) -> str:
    """Lowercase a name and collapse each run of other characters into an underscore."""
    return NAME_SEPARATOR.sub( '_', name.lower() ).strip( '_' )


def to_json( structure: ParsedStructure, definition: DefinitionType ) -> Dict[str, Any]:
    """Convert a parsed structure into a dictionary keyed by normalised section name.

    structure
        Parsed structure to convert.

    definition
        Structure definition the structure was parsed with.
    """
    definition = load_structure( definition )
    result: Dict[str, Any] = {}
    for section_def in definition.sections:
        if section_def.omit:
            continue
        result[normalise_name( section_def.name )] = section_to_json( structure[section_def.name], section_def )
    return result


def parse_and_pack( definition: DefinitionType, data: BytesReadType, **kwargs ) -> Dict[str, Any]:
    """Parse a byte string and convert the result with to_json().

    Extra keyword arguments are passed to speck.parser.parse().
    """
    definition = load_structure( definition )
    return to_json( parse( definition, data, **kwargs ), definition )


def section_to_json( section: ParsedSection, definition: SectionDefinition ) -> Dict[str, Any]:
    return _fields_to_json( section.fields, definition.fields )


def _fields_to_json( fields: Sequence[ParsedField], definitions: Sequence[FieldDefinition] ) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for field_def in definitions:
        if field_def.omit:
            continue
        instances = [f for f in fields if f.name == field_def.name]
        result[normalise_name( field_def.name )] = _instances_to_json( instances, field_def )
    return result


def _instances_to_json( instances: List[ParsedField], definition: FieldDefinition ) -> Any:
    if not instances:
        return None
    if definition.repeated:
        return [_field_to_json( f, definition ) for f in instances]
    return _field_to_json( instances[0], definition )


def _field_to_json( field: ParsedField, definition: FieldDefinition ) -> Any:
    if isinstance( definition, NestedFieldDefinition ):
        return _fields_to_json( field.sub_fields or [], definition.sub_fields )
    elif isinstance( definition, BitMaskFieldDefinition ):
        masks = {m.name: m for m in (field.sub_fields or [])}
        result: Dict[str, Optional[Any]] = {}
        for mask_def in definition.bit_masks:
            if mask_def.omit:
                continue
            mask = masks.get( mask_def.name )
            result[normalise_name( mask_def.name )] = mask.value if mask is not None else None
        return result
    if field.value is None:
        return to_hex( field.data )
    return field.value
