"""Containers for the parsed data tree."""
from __future__ import annotations

from typing import Any, Iterator, List, Optional, Sequence, Union

from speck.common import serialise, to_hex


class ParsedField( object ):
    def __init__(
        self,
        name: str,
        data: bytes,
        *,
        id: Optional[str] = None,
        value: Any = None,
        sub_fields: Optional[List[ParsedField]] = None,
        bitmask: bool = False,
    ):
        """One resolved instance of a field definition.

        name
            Name of the field definition.

        data
            Raw bytes captured for this instance.

        id
            Id of the field definition, if it has one.

        value
            Decoded value. None if the field has no parser, or has child fields.

        sub_fields
            Child instances in schema order; nested fields and bit masks only.

        bitmask
            True if sub_fields contains the bit masks of a bit-masked field.
        """
        self.name = name
        self.data = bytes( data )
        self.id = id
        self.value = value
        self.sub_fields = sub_fields
        self.bitmask = bitmask

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.repr}>'

    @property
    def repr( self ) -> str:
        desc = self.name
        if self.id is not None:
            desc += f' #{self.id}'
        if self.sub_fields is not None:
            return f'{desc}, {len( self.sub_fields )} {"masks" if self.bitmask else "sub_fields"}'
        if self.value is not None:
            return f'{desc}={self.value!r}'
        return f'{desc}, bytes[{len( self.data )}]'

    @property
    def has_value( self ) -> bool:
        return self.sub_fields is None and self.value is not None

    @property
    def serialised( self ):
        return serialise( self, ('name', 'id', 'data', 'value', 'bitmask') ) + (
            tuple( f.serialised for f in self.sub_fields ) if self.sub_fields is not None else None,
        )

    def __eq__( self, other: Any ) -> bool:
        if not isinstance( other, ParsedField ):
            return NotImplemented
        return self.serialised == other.serialised

    __hash__ = None

    def to_dict( self ) -> dict:
        """Return the instance as basic Python types."""
        result: dict = {'name': self.name}
        if self.id is not None:
            result['id'] = self.id
        result['bytes'] = to_hex( self.data )
        if self.sub_fields is not None:
            result['sub_fields'] = [f.to_dict() for f in self.sub_fields]
        else:
            result['value'] = self.value
        return result


class ParsedSection( object ):
    def __init__( self, name: str, fields: Optional[List[ParsedField]] = None ):
        """Resolved fields of one section, in schema order with repeats expanded."""
        self.name = name
        self.fields: List[ParsedField] = fields if fields is not None else []

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.name}, {len( self.fields )} fields>'

    def __iter__( self ) -> Iterator[ParsedField]:
        return iter( self.fields )

    def __len__( self ) -> int:
        return len( self.fields )

    def __eq__( self, other: Any ) -> bool:
        if not isinstance( other, ParsedSection ):
            return NotImplemented
        return self.name == other.name and self.fields == other.fields

    __hash__ = None

    def find( self, name: str ) -> List[ParsedField]:
        """Return all top-level instances with the given field name."""
        return [f for f in self.fields if f.name == name]

    def to_dict( self ) -> dict:
        return {'name': self.name, 'fields': [f.to_dict() for f in self.fields]}


class ParsedStructure( object ):
    def __init__( self, name: str, sections: Optional[Sequence[ParsedSection]] = None ):
        """Resolved sections of one structure definition.

        Sections can be fetched by position or by name.
        """
        self.name = name
        self.sections: List[ParsedSection] = list( sections ) if sections is not None else []

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.name}, {len( self.sections )} sections>'

    def __iter__( self ) -> Iterator[ParsedSection]:
        return iter( self.sections )

    def __len__( self ) -> int:
        return len( self.sections )

    def __getitem__( self, key: Union[int, str] ) -> ParsedSection:
        if isinstance( key, str ):
            for section in self.sections:
                if section.name == key:
                    return section
            raise KeyError( key )
        return self.sections[key]

    def __eq__( self, other: Any ) -> bool:
        if not isinstance( other, ParsedStructure ):
            return NotImplemented
        return self.name == other.name and self.sections == other.sections

    __hash__ = None

    def to_dict( self ) -> dict:
        return {'name': self.name, 'sections': [s.to_dict() for s in self.sections]}
