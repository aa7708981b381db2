"""Backward references between fields of the same section."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from speck.blocks import ParsedField
from speck.common import ParseError, path_str


class MissingReferenceError( ParseError ):
    pass


class TypeMismatchError( ParseError ):
    pass


class SectionState( object ):
    def __init__( self, name: str ):
        """Accumulator for every field resolved so far in one section.

        Fields are stored append-only, at every nesting depth, as soon as
        they are resolved. A side table maps each id to the index of the
        most recent field carrying it, so a field can only ever see fields
        resolved before it.

        name
            Name of the section.
        """
        self.name = name
        self._fields: List[ParsedField] = []
        self._index: Dict[str, int] = {}

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.name}, {len( self._fields )} fields, {len( self._index )} ids>'

    def __len__( self ) -> int:
        return len( self._fields )

    def add( self, field: ParsedField ) -> None:
        """Record a resolved field instance."""
        if field.id is not None:
            self._index[field.id] = len( self._fields )
        self._fields.append( field )

    def add_all( self, fields: Sequence[ParsedField] ) -> None:
        for field in fields:
            self.add( field )

    def lookup( self, id: str ) -> Optional[ParsedField]:
        """Return the most recently resolved field with the given id, or None."""
        index = self._index.get( id )
        if index is None:
            return None
        return self._fields[index]


def is_number( value ) -> bool:
    return type( value ) in (int, float)


def get_count( state: SectionState, id: str, path: Sequence[str] ) -> int:
    """Dereference a repeat count.

    state
        Section accumulator to search.

    id
        Id of the field holding the count.

    path
        Path of the field being repeated; used for error messages.

    Throws MissingReferenceError if no earlier field has the id, and
    TypeMismatchError if its value isn't a non-negative integer.
    """
    target = state.lookup( id )
    if target is None:
        raise MissingReferenceError( f'Repeat field {id} not found for field {path_str( path )}' )
    value = target.value
    if not is_number( value ) or target.sub_fields is not None:
        raise TypeMismatchError( f'Repeat field {id} does not have a numeric parsed value (field {path_str( path )})' )
    if isinstance( value, float ):
        if not value.is_integer():
            raise TypeMismatchError( f'Repeat field {id} has a non-integer value {value} (field {path_str( path )})' )
        value = int( value )
    if value < 0:
        raise TypeMismatchError( f'Repeat field {id} has a negative value {value} (field {path_str( path )})' )
    return value
