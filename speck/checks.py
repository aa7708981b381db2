"""Conditions for optional fields, and assertions on resolved values."""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Sequence, Type

from speck.blocks import ParsedField
from speck.common import FieldDefinitionError, ParseError, path_str
from speck.refs import SectionState, is_number

logger = logging.getLogger( __name__ )

LinkType = Callable[[str], str]


class AssertionFailedError( ParseError ):
    pass


def values_equal( a: Any, b: Any ) -> bool:
    """Compare two parsed values the way JSON values compare.

    Booleans never equal numbers, and lists are compared element-wise.
    """
    if isinstance( a, (list, tuple) ) or isinstance( b, (list, tuple) ):
        if not (isinstance( a, (list, tuple) ) and isinstance( b, (list, tuple) )):
            return False
        return len( a ) == len( b ) and all( values_equal( x, y ) for x, y in zip( a, b ) )
    if isinstance( a, bool ) or isinstance( b, bool ):
        return type( a ) == type( b ) and a == b
    if is_number( a ) and is_number( b ):
        return a == b
    return type( a ) == type( b ) and a == b


def format_value( value: Any ) -> str:
    return json.dumps( value )


class Condition( object ):
    """Base class for field conditions."""

    #: Key of the condition in a structure definition.
    key: str = ''

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.describe( lambda id: id )}>'

    def __eq__( self, other: Any ) -> bool:
        if not isinstance( other, Condition ):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def evaluate( self, state: SectionState ) -> bool:
        """Return whether the condition holds for the fields resolved so far."""
        raise NotImplementedError

    def describe( self, link: LinkType ) -> str:
        """Return a plaintext version of the condition.

        link
            Callable used to render a field id.
        """
        raise NotImplementedError

    def to_dict( self ) -> dict:
        raise NotImplementedError


class FieldComparison( Condition ):
    def __init__( self, id: str, value: Any ):
        """Base class for conditions comparing an earlier field to a value.

        id
            Id of the field to compare. A field that hasn't been resolved yet
            makes the condition false.

        value
            Value to compare against.
        """
        self.id = id
        self.value = value

    def evaluate( self, state ):
        field = state.lookup( self.id )
        if field is None:
            if logger.isEnabledFor( logging.DEBUG ):
                logger.debug( f'{state.name}: condition on #{self.id} is false, field not resolved' )
            return False
        if field.sub_fields is not None or field.value is None:
            return False
        return self.compare( field.value )

    def compare( self, value: Any ) -> bool:
        raise NotImplementedError

    def describe( self, link ):
        return f'{link( self.id )} {self.key} {format_value( self.value )}'

    def to_dict( self ):
        return {self.key: [self.id, self.value]}


class Equals( FieldComparison ):
    key = 'equals'

    def compare( self, value ):
        return values_equal( value, self.value )


class LessThan( FieldComparison ):
    key = 'lessThan'

    def compare( self, value ):
        return is_number( value ) and value < self.value


class GreaterThan( FieldComparison ):
    key = 'greaterThan'

    def compare( self, value ):
        return is_number( value ) and value > self.value


class Includes( FieldComparison ):
    key = 'includes'

    def compare( self, value ):
        # membership: the field's value is one of the listed values
        return any( values_equal( value, choice ) for choice in self.value )

    def describe( self, link ):
        return f'{link( self.id )} in ({",".join( format_value( v ) for v in self.value )})'


class Not( Condition ):
    key = 'not'

    def __init__( self, condition: Condition ):
        self.condition = condition

    def evaluate( self, state ):
        return not self.condition.evaluate( state )

    def describe( self, link ):
        return f'not ({self.condition.describe( link )})'

    def to_dict( self ):
        return {self.key: self.condition.to_dict()}


class And( Condition ):
    key = 'and'

    def __init__( self, conditions: Sequence[Condition] ):
        self.conditions = list( conditions )

    def evaluate( self, state ):
        return all( c.evaluate( state ) for c in self.conditions )

    def describe( self, link ):
        return f' {self.key} '.join( c.describe( link ) for c in self.conditions )

    def to_dict( self ):
        return {self.key: [c.to_dict() for c in self.conditions]}


class Or( And ):
    key = 'or'

    def evaluate( self, state ):
        return any( c.evaluate( state ) for c in self.conditions )


CONDITION_TYPES: Dict[str, Type[Condition]] = {
    klass.key: klass for klass in (Equals, LessThan, GreaterThan, Includes, Not, And, Or)
}


def condition_from_dict( source: Any ) -> Condition:
    """Create a Condition from its structure definition form.

    source
        Dictionary with exactly one key, e.g. {'equals': ['id', 1]}.

    Throws FieldDefinitionError if the condition is malformed.
    """
    if not isinstance( source, dict ) or len( source ) != 1:
        raise FieldDefinitionError( f'Unknown condition type: {source!r}' )
    key, args = next( iter( source.items() ) )
    klass = CONDITION_TYPES.get( key )
    if klass is None:
        raise FieldDefinitionError( f'Unknown condition type: {key}' )

    if klass is Not:
        return Not( condition_from_dict( args ) )
    elif issubclass( klass, And ):
        if not isinstance( args, list ):
            raise FieldDefinitionError( f'{key} condition expects a list of conditions, not {args!r}' )
        return klass( [condition_from_dict( x ) for x in args] )

    if not isinstance( args, list ) or len( args ) != 2 or not isinstance( args[0], str ):
        raise FieldDefinitionError( f'{key} condition expects [id, value], not {args!r}' )
    id, value = args
    if klass in (LessThan, GreaterThan) and not is_number( value ):
        raise FieldDefinitionError( f'{key} condition expects a number, not {value!r}' )
    if klass is Includes and not isinstance( value, list ):
        raise FieldDefinitionError( f'{key} condition expects a list of values, not {value!r}' )
    return klass( id, value )


class Is( object ):
    key = 'is'

    def __init__( self, expected: Any ):
        """Assertion that a field resolves to a constant.

        expected
            Value every instance must decode to. For repeated fields, a list
            gives the expected value of each iteration in turn.
        """
        self.expected = expected

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {format_value( self.expected )}>'

    def __eq__( self, other: Any ) -> bool:
        if not isinstance( other, Is ):
            return NotImplemented
        return values_equal( self.expected, other.expected )

    __hash__ = None

    def test( self, fields: List[ParsedField], repeated: bool ) -> bool:
        """Return whether the resolved instances of a field pass the assertion."""
        if not repeated:
            return bool( fields ) and self._match( fields[0], self.expected )
        for index, field in enumerate( fields ):
            if isinstance( self.expected, list ):
                if index >= len( self.expected ):
                    return False
                expected = self.expected[index]
            else:
                expected = self.expected
            if not self._match( field, expected ):
                return False
        return True

    def _match( self, field: ParsedField, expected: Any ) -> bool:
        if not field.has_value:
            return False
        return values_equal( field.value, expected )

    def check( self, fields: List[ParsedField], repeated: bool, path: Sequence[str] ) -> None:
        """Throws AssertionFailedError if the instances don't pass the assertion."""
        if not self.test( fields, repeated ):
            found = [f.value for f in fields] if repeated else (fields[0].value if fields else None)
            raise AssertionFailedError(
                f'Assertion failed for field {path_str( path )}: expected {format_value( self.expected )}, found {found!r}'
            )

    def to_dict( self ) -> dict:
        return {self.key: self.expected}


def assertion_from_dict( source: Any ) -> Is:
    """Create an assertion from its structure definition form, e.g. {'is': 5}.

    Throws FieldDefinitionError if the assertion is malformed.
    """
    if not isinstance( source, dict ) or list( source ) != [Is.key]:
        raise FieldDefinitionError( f'Unknown assert condition type: {source!r}' )
    return Is( source[Is.key] )
