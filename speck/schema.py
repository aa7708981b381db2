"""Definition classes for structure schemas.

Structure definitions are authored as plain JSON-compatible data and loaded
into an immutable tree of definition objects with load_structure().
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from typing_extensions import Literal, TypedDict

from speck.checks import Condition, Is, assertion_from_dict, condition_from_dict
from speck.codecs import PARSER_TYPES, CustomParser, EnumParser, ValueParser
from speck.common import FieldDefinitionError
from speck.encoding import ENDIANNESS, EndianEncoding

logger = logging.getLogger( __name__ )

Usage = Literal['omit']
RepeatType = Union[int, str]


class ValueParserDict( TypedDict, total=False ):
    type: str
    mapping: Dict[str, Any]
    name: str


class BitMaskDict( TypedDict, total=False ):
    id: str
    name: str
    length: int
    description: str
    parser: ValueParserDict
    usage: Usage


class FieldDict( TypedDict, total=False ):
    id: str
    name: str
    description: str
    category: str
    byteSize: int
    repeat: RepeatType
    parser: ValueParserDict
    subFields: List['FieldDict']
    bitMasks: List[BitMaskDict]
    usage: Usage


class SectionDict( TypedDict, total=False ):
    name: str
    description: str
    fields: List[FieldDict]
    usage: Usage


class StructureDict( TypedDict, total=False ):
    name: str
    endian: EndianEncoding
    sections: List[SectionDict]


class FieldDefinition( object ):
    def __init__(
        self,
        name: str,
        byte_size: int,
        *,
        id: Optional[str] = None,
        repeat: Optional[RepeatType] = None,
        condition: Optional[Condition] = None,
        assertion: Optional[Is] = None,
        usage: Optional[Usage] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ):
        """Base class for field definitions.

        name
            Name of the field. Used for the field path and packed output.

        byte_size
            Number of bytes in one instance of the field.

        id
            Optional id for referencing this field from conditions or repeats
            of later fields in the same section.

        repeat
            Number of instances; either a literal count or the id of an
            earlier numeric field. None means a single, non-repeated instance.

        condition
            Condition which must hold for the field to be present at all.

        assertion
            Check applied to the resolved value(s).

        usage
            'omit' to leave the field out of packed output. The field is
            still parsed.

        description, category
            Free text for documentation.
        """
        if not isinstance( name, str ):
            raise FieldDefinitionError( f'Field name should be a string, not {name!r}' )
        if type( byte_size ) != int or byte_size < 0:
            raise FieldDefinitionError( f'{name}: byteSize should be a non-negative integer, not {byte_size!r}' )
        if repeat is not None:
            if type( repeat ) == int:
                if repeat < 0:
                    raise FieldDefinitionError( f'{name}: repeat can\'t be less than zero' )
            elif not isinstance( repeat, str ):
                raise FieldDefinitionError( f'{name}: repeat should be an integer or a field id, not {repeat!r}' )
        if usage not in (None, 'omit'):
            raise FieldDefinitionError( f'{name}: unknown usage {usage!r}' )
        self.name = name
        self.byte_size = byte_size
        self.id = id
        self.repeat = repeat
        self.condition = condition
        self.assertion = assertion
        self.usage = usage
        self.description = description
        self.category = category

    def __repr__( self ):
        desc = self.name if self.id is None else f'{self.name} #{self.id}'
        return f'<{self.__class__.__name__}: {desc}>'

    @property
    def omit( self ) -> bool:
        return self.usage == 'omit'

    @property
    def repeated( self ) -> bool:
        return self.repeat is not None

    @property
    def type_name( self ) -> str:
        """Short type name for documentation tables."""
        return '-'


class LeafFieldDefinition( FieldDefinition ):
    def __init__( self, name: str, byte_size: int, *, parser: Optional[ValueParser] = None, **kwargs ):
        """Field holding a plain value.

        parser
            Value parser to decode the bytes with. Without one, only the raw
            bytes are kept.
        """
        super().__init__( name, byte_size, **kwargs )
        self.parser = parser

    @property
    def type_name( self ):
        return self.parser.describe( self.byte_size ) if self.parser else '-'


class NestedFieldDefinition( FieldDefinition ):
    def __init__( self, name: str, byte_size: int, *, sub_fields: Sequence[FieldDefinition], **kwargs ):
        """Field made of child fields, which consume its bytes in order.

        sub_fields
            Child field definitions.
        """
        super().__init__( name, byte_size, **kwargs )
        self.sub_fields = list( sub_fields )


class BitMaskDefinition( object ):
    def __init__(
        self,
        name: str,
        length: int = 1,
        *,
        id: Optional[str] = None,
        parser: Optional[ValueParser] = None,
        usage: Optional[Usage] = None,
        description: Optional[str] = None,
    ):
        """Run of bits inside a bit-masked field.

        name
            Name of the bit mask.

        length
            Number of bits. Defaults to 1.

        id
            Optional id for referencing the value from later fields.

        parser
            Value parser for the extracted bits. Without one, the value is
            the bits as a binary string.

        usage
            'omit' to leave the bit mask out of packed output.
        """
        if not isinstance( name, str ):
            raise FieldDefinitionError( f'Bit mask name should be a string, not {name!r}' )
        if type( length ) != int or length <= 0:
            raise FieldDefinitionError( f'{name}: bit mask length should be a positive integer, not {length!r}' )
        if usage not in (None, 'omit'):
            raise FieldDefinitionError( f'{name}: unknown usage {usage!r}' )
        self.name = name
        self.length = length
        self.id = id
        self.parser = parser
        self.usage = usage
        self.description = description

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.name}, {self.length} bits>'

    @property
    def omit( self ) -> bool:
        return self.usage == 'omit'

    @property
    def type_name( self ) -> str:
        return self.parser.describe() if self.parser else '-'


class BitMaskFieldDefinition( FieldDefinition ):
    def __init__( self, name: str, byte_size: int, *, bit_masks: Sequence[BitMaskDefinition], **kwargs ):
        """Field whose bytes are split into runs of bits.

        bit_masks
            Bit mask definitions, read in order from the most-significant bit
            of the first byte.
        """
        super().__init__( name, byte_size, **kwargs )
        self.bit_masks = list( bit_masks )
        total = sum( mask.length for mask in self.bit_masks )
        if total > byte_size * 8:
            raise FieldDefinitionError(
                f'{name}: bit masks need {total} bits, but the field only has {byte_size * 8}'
            )

    @property
    def type_name( self ):
        return 'bitmask'


class SectionDefinition( object ):
    def __init__(
        self,
        name: str,
        fields: Sequence[FieldDefinition],
        *,
        usage: Optional[Usage] = None,
        description: Optional[str] = None,
    ):
        self.name = name
        self.fields = list( fields )
        self.usage = usage
        self.description = description

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.name}, {len( self.fields )} fields>'

    @property
    def omit( self ) -> bool:
        return self.usage == 'omit'


class StructureDefinition( object ):
    def __init__( self, name: str, sections: Sequence[SectionDefinition], endian: EndianEncoding = 'little' ):
        """Schema for one binary format.

        name
            Name of the structure.

        sections
            Section definitions, in order. Section names must be unique.

        endian
            Byte order for multi-byte values; either 'little' or 'big'.
            Defaults to 'little'.
        """
        if endian not in ENDIANNESS:
            raise FieldDefinitionError( f'endian should be either \'little\' or \'big\', not {endian!r}' )
        names = [s.name for s in sections]
        for section_name in names:
            if names.count( section_name ) > 1:
                raise FieldDefinitionError( f'Duplicate section name {section_name}' )
        self.name = name
        self.sections = list( sections )
        self.endian = endian

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.name}, {len( self.sections )} sections, {self.endian}-endian>'

    def get_section( self, name: str ) -> Optional[SectionDefinition]:
        for section in self.sections:
            if section.name == name:
                return section
        return None


def parser_from_dict( source: Any ) -> ValueParser:
    """Create a ValueParser from its structure definition form, e.g. {'type': 'uint'}.

    Throws FieldDefinitionError if the parser is malformed.
    """
    if not isinstance( source, dict ) or 'type' not in source:
        raise FieldDefinitionError( f'Unknown parser: {source!r}' )
    klass = PARSER_TYPES.get( source['type'] )
    if klass is None:
        raise FieldDefinitionError( f'Unknown parser type: {source["type"]}' )
    if klass is EnumParser:
        mapping = source.get( 'mapping' )
        if not isinstance( mapping, dict ):
            raise FieldDefinitionError( f'enum parser needs a mapping, not {mapping!r}' )
        try:
            return EnumParser( mapping )
        except ValueError as e:
            raise FieldDefinitionError( f'Invalid enum mapping key: {e}' ) from e
    elif klass is CustomParser:
        name = source.get( 'name' )
        if not isinstance( name, str ):
            raise FieldDefinitionError( f'custom parser needs a name, not {name!r}' )
        return CustomParser( name )
    return klass()


def bit_mask_from_dict( source: Any ) -> BitMaskDefinition:
    if not isinstance( source, dict ):
        raise FieldDefinitionError( f'Bit mask definition should be a dictionary, not {source!r}' )
    return BitMaskDefinition(
        source.get( 'name' ),
        source.get( 'length', 1 ),
        id=source.get( 'id' ),
        parser=parser_from_dict( source['parser'] ) if 'parser' in source else None,
        usage=source.get( 'usage' ),
        description=source.get( 'description' ),
    )


def field_from_dict( source: Any ) -> FieldDefinition:
    """Create a FieldDefinition from its structure definition form.

    The key present picks the field class: 'subFields' for nested fields,
    'bitMasks' for bit-masked fields, anything else is a leaf field.

    Throws FieldDefinitionError if the field is malformed.
    """
    if not isinstance( source, dict ):
        raise FieldDefinitionError( f'Field definition should be a dictionary, not {source!r}' )
    name = source.get( 'name' )
    kwargs = dict(
        id=source.get( 'id' ),
        repeat=source.get( 'repeat' ),
        condition=condition_from_dict( source['if'] ) if 'if' in source else None,
        assertion=assertion_from_dict( source['assert'] ) if 'assert' in source else None,
        usage=source.get( 'usage' ),
        description=source.get( 'description' ),
        category=source.get( 'category' ),
    )
    byte_size = source.get( 'byteSize' )

    if 'subFields' in source and 'bitMasks' in source:
        raise FieldDefinitionError( f'{name}: a field can\'t have both subFields and bitMasks' )
    elif 'subFields' in source:
        if 'parser' in source:
            raise FieldDefinitionError( f'{name}: a field with subFields can\'t have a parser' )
        if not isinstance( source['subFields'], list ):
            raise FieldDefinitionError( f'{name}: subFields should be a list' )
        return NestedFieldDefinition(
            name, byte_size, sub_fields=[field_from_dict( x ) for x in source['subFields']], **kwargs
        )
    elif 'bitMasks' in source:
        if 'parser' in source:
            raise FieldDefinitionError( f'{name}: a field with bitMasks can\'t have a parser' )
        if not isinstance( source['bitMasks'], list ):
            raise FieldDefinitionError( f'{name}: bitMasks should be a list' )
        return BitMaskFieldDefinition(
            name, byte_size, bit_masks=[bit_mask_from_dict( x ) for x in source['bitMasks']], **kwargs
        )
    parser = parser_from_dict( source['parser'] ) if 'parser' in source else None
    return LeafFieldDefinition( name, byte_size, parser=parser, **kwargs )


def section_from_dict( source: Any ) -> SectionDefinition:
    if not isinstance( source, dict ) or not isinstance( source.get( 'fields' ), list ):
        raise FieldDefinitionError( f'Section definition needs a list of fields: {source!r}' )
    name = source.get( 'name' )
    if not isinstance( name, str ):
        raise FieldDefinitionError( f'Section name should be a string, not {name!r}' )
    usage = source.get( 'usage' )
    if usage not in (None, 'omit'):
        raise FieldDefinitionError( f'{name}: unknown usage {usage!r}' )
    return SectionDefinition(
        name,
        [field_from_dict( x ) for x in source['fields']],
        usage=usage,
        description=source.get( 'description' ),
    )


def load_structure( source: Union[StructureDefinition, StructureDict, Dict[str, Any]] ) -> StructureDefinition:
    """Load a structure definition from JSON-compatible data.

    source
        Dictionary in structure definition form, or an already loaded
        StructureDefinition (which is returned unchanged).

    Throws FieldDefinitionError if the definition is malformed.
    """
    if isinstance( source, StructureDefinition ):
        return source
    if not isinstance( source, dict ) or not isinstance( source.get( 'sections' ), list ):
        raise FieldDefinitionError( 'Structure definition needs a list of sections' )
    structure = StructureDefinition(
        source.get( 'name', '' ),
        [section_from_dict( x ) for x in source['sections']],
        endian=source.get( 'endian', 'little' ),
    )
    if logger.isEnabledFor( logging.DEBUG ):
        logger.debug( f'Loaded {structure}' )
    return structure


def find_definition(
    id: str, fields: Sequence[FieldDefinition]
) -> Optional[Union[FieldDefinition, BitMaskDefinition]]:
    """Search a list of field definitions (and their children) for an id."""
    for field in fields:
        if field.id == id:
            return field
        if isinstance( field, NestedFieldDefinition ):
            result = find_definition( id, field.sub_fields )
            if result is not None:
                return result
        elif isinstance( field, BitMaskFieldDefinition ):
            for mask in field.bit_masks:
                if mask.id == id:
                    return mask
    return None
