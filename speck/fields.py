"""Field resolution: walks a structure definition against a byte source."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from speck.bits import BitStream
from speck.blocks import ParsedField, ParsedSection, ParsedStructure
from speck.codecs import CodecRegistry, default_registry
from speck.common import FieldDefinitionError, FieldPath, ParseError, path_str, to_hex
from speck.readers import ByteReader
from speck.refs import SectionState, get_count
from speck.schema import (
    BitMaskDefinition,
    BitMaskFieldDefinition,
    FieldDefinition,
    LeafFieldDefinition,
    NestedFieldDefinition,
    SectionDefinition,
    StructureDefinition,
)

logger = logging.getLogger( __name__ )

#: Bit masks are packed MSB-first, so their values are always read big-endian.
BIT_MASK_ENDIAN = 'big'


class LimitExceededError( ParseError ):
    pass


class Resolver( object ):
    def __init__(
        self,
        definition: StructureDefinition,
        reader: ByteReader,
        *,
        registry: Optional[CodecRegistry] = None,
        max_repeat: Optional[int] = None,
        max_depth: Optional[int] = None,
    ):
        """Resolve a structure definition against a byte source.

        The same resolver drives both parsing (with a BufferReader) and
        generation (with a DefaultsReader).

        definition
            Structure definition to resolve.

        reader
            Byte source to consume.

        registry
            Registry used to look up custom codecs. Defaults to the
            process-wide registry.

        max_repeat
            Largest repeat count allowed for a single field. Defaults to no limit.

        max_depth
            Deepest allowed nesting of sub fields. Top-level fields are at
            depth 0. Defaults to no limit.
        """
        self.definition = definition
        self.reader = reader
        self.registry = registry if registry is not None else default_registry
        self.max_repeat = max_repeat
        self.max_depth = max_depth

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.definition.name}, {self.reader}>'

    @property
    def endian( self ):
        return self.definition.endian

    def resolve( self ) -> ParsedStructure:
        """Resolve every section in order."""
        return ParsedStructure(
            self.definition.name,
            [self.resolve_section( section_def ) for section_def in self.definition.sections],
        )

    def resolve_section( self, section_def: SectionDefinition ) -> ParsedSection:
        if logger.isEnabledFor( logging.DEBUG ):
            logger.debug( f'{section_def.name}: resolving {len( section_def.fields )} fields' )
        state = SectionState( section_def.name )
        section = ParsedSection( section_def.name )
        for field_def in section_def.fields:
            section.fields.extend(
                self.resolve_field( section_def, field_def, state, (section_def.name, field_def.name) )
            )
        return section

    def resolve_field(
        self,
        section_def: SectionDefinition,
        field_def: FieldDefinition,
        state: SectionState,
        path: FieldPath,
        depth: int = 0,
    ) -> List[ParsedField]:
        """Resolve one field definition into zero or more instances.

        section_def
            Definition of the section the field lives in.

        field_def
            Field definition to resolve.

        state
            Accumulator of everything resolved so far in the section. Every
            new instance is added to it.

        path
            Names leading to the field, section name first.

        depth
            Nesting depth of the field; 0 for top-level fields.
        """
        if self.max_depth is not None and depth > self.max_depth:
            raise LimitExceededError( f'{path_str( path )}: nesting depth {depth} exceeds limit of {self.max_depth}' )

        if field_def.condition is not None and not field_def.condition.evaluate( state ):
            if logger.isEnabledFor( logging.DEBUG ):
                logger.debug( f'{path_str( path )}: condition not met, skipping' )
            return []

        count = self.get_repeat_count( field_def, state, path )

        result: List[ParsedField] = []
        for _ in range( count ):
            if isinstance( field_def, NestedFieldDefinition ):
                instance = self._resolve_nested( section_def, field_def, state, path, depth )
            elif isinstance( field_def, BitMaskFieldDefinition ):
                instance = self._resolve_bit_masks( field_def, state, path )
            elif isinstance( field_def, LeafFieldDefinition ):
                instance = self._resolve_leaf( field_def, path )
            else:
                raise FieldDefinitionError( f'{path_str( path )}: unknown field definition {field_def!r}' )
            state.add( instance )
            result.append( instance )

            if logger.isEnabledFor( logging.DEBUG ):
                logger.debug( f'Result for {path_str( path )}: {instance.repr}' )

        if field_def.assertion is not None:
            field_def.assertion.check( result, field_def.repeated, path )
        return result

    def get_repeat_count( self, field_def: FieldDefinition, state: SectionState, path: FieldPath ) -> int:
        """Return the number of instances of a field; 1 if it isn't repeated."""
        if field_def.repeat is None:
            return 1
        if isinstance( field_def.repeat, int ):
            count = field_def.repeat
        else:
            count = get_count( state, field_def.repeat, path )
        if self.max_repeat is not None and count > self.max_repeat:
            raise LimitExceededError( f'{path_str( path )}: repeat count {count} exceeds limit of {self.max_repeat}' )
        return count

    def _resolve_nested(
        self,
        section_def: SectionDefinition,
        field_def: NestedFieldDefinition,
        state: SectionState,
        path: FieldPath,
        depth: int,
    ) -> ParsedField:
        # capture the whole span, but let the children consume it
        data = self.reader.peek_bytes( field_def.byte_size, path )
        sub_fields: List[ParsedField] = []
        for sub_def in field_def.sub_fields:
            sub_fields.extend(
                self.resolve_field( section_def, sub_def, state, path + (sub_def.name,), depth + 1 )
            )
        return ParsedField( field_def.name, data, id=field_def.id, sub_fields=sub_fields )

    def _resolve_bit_masks(
        self, field_def: BitMaskFieldDefinition, state: SectionState, path: FieldPath
    ) -> ParsedField:
        data = self.reader.read_bytes( field_def.byte_size, path )
        stream = BitStream( data )
        masks = [self._resolve_bit_mask( mask, stream, path + (mask.name,) ) for mask in field_def.bit_masks]
        state.add_all( masks )
        return ParsedField( field_def.name, data, id=field_def.id, sub_fields=masks, bitmask=True )

    def _resolve_bit_mask( self, mask: BitMaskDefinition, stream: BitStream, path: FieldPath ) -> ParsedField:
        bit_data = stream.read_bytes( mask.length )
        if mask.parser is not None:
            value = mask.parser.decode( bit_data, BIT_MASK_ENDIAN, self.registry )
        else:
            value = format( int.from_bytes( bit_data, byteorder='big' ), 'b' )
        if logger.isEnabledFor( logging.DEBUG ):
            logger.debug( f'Result for {path_str( path )} [{mask.length} bits]: {value!r}' )
        return ParsedField( mask.name, bit_data, id=mask.id, value=value )

    def _resolve_leaf( self, field_def: LeafFieldDefinition, path: FieldPath ) -> ParsedField:
        data = self.reader.read_bytes( field_def.byte_size, path )
        if logger.isEnabledFor( logging.DEBUG ):
            logger.debug( f'{path_str( path )}: input bytes {to_hex( data )}' )
        value = None
        if field_def.parser is not None:
            value = field_def.parser.decode( data, self.endian, self.registry )
        return ParsedField( field_def.name, data, id=field_def.id, value=value )


def resolve_structure(
    definition: StructureDefinition,
    reader: ByteReader,
    *,
    registry: Optional[CodecRegistry] = None,
    max_repeat: Optional[int] = None,
    max_depth: Optional[int] = None,
) -> ParsedStructure:
    """Resolve a structure definition against a byte source.

    See Resolver for the meaning of the arguments.
    """
    resolver = Resolver(
        definition, reader, registry=registry, max_repeat=max_repeat, max_depth=max_depth
    )
    return resolver.resolve()


def iter_leaves( fields: Sequence[ParsedField] ):
    """Yield the instances that own their bytes, depth first in schema order.

    Leaf and bit-masked fields are yielded; nested fields are descended into.
    """
    for field in fields:
        if field.sub_fields is not None and not field.bitmask:
            yield from iter_leaves( field.sub_fields )
        else:
            yield field
