"""Render Markdown documentation tables from structure definitions.

Only the schema is used; no byte data is involved. Markdown files can embed
generated tables with a tag, which update_markdown_file() fills in:

    <speck-table file="struct.json" section="Header" level="2"/>
"""
from __future__ import annotations

import json
import logging
import os
import re
from typing import Dict, List, Optional, Sequence, Union

from speck.checks import format_value
from speck.codecs import EnumParser
from speck.common import FieldDefinitionError, file_path_recurse
from speck.schema import (
    BitMaskDefinition,
    BitMaskFieldDefinition,
    FieldDefinition,
    NestedFieldDefinition,
    SectionDefinition,
    find_definition,
    load_structure,
)

logger = logging.getLogger( __name__ )

DefinitionItem = Union[FieldDefinition, BitMaskDefinition]

CONDITION_HEADER = 'Condition (for optional fields)'

TAG_REGEX = re.compile(
    r'<speck-table?\s+([^>]+?)/>|<speck-table?\s+([^>]+?)>[\S\s]*?</\s*speck-table>'
)
ATTR_REGEX = re.compile( r'(\w+)="([^"]+)"' )


def slugify( text: str ) -> str:
    """Convert text to a GitHub-style heading anchor."""
    return re.sub( r'[^\w\- ]', '', text.lower() ).replace( ' ', '-' )


def code( text: str ) -> str:
    return f'`{text}`'


def markdown_table( rows: Sequence[Dict[str, str]] ) -> str:
    """Render a list of dictionaries with the same keys as a Markdown table."""
    if not rows:
        return ''
    headers = list( rows[0] )
    escape = lambda cell: str( cell ).replace( '|', '\\|' ).replace( '\n', ' ' )
    lines = [
        '| ' + ' | '.join( headers ) + ' |',
        '| ' + ' | '.join( ':' + '-' * max( len( h ) - 1, 3 ) for h in headers ) + ' |',
    ]
    for row in rows:
        lines.append( '| ' + ' | '.join( escape( row[h] ) for h in headers ) + ' |' )
    return '\n'.join( lines )


def field_has_description( field: DefinitionItem ) -> bool:
    """Return whether a field gets its own description block."""
    if field.description:
        return True
    if isinstance( field, (NestedFieldDefinition, BitMaskFieldDefinition) ):
        return True
    return isinstance( getattr( field, 'parser', None ), EnumParser )


def field_slug( section_name: str, id: str ) -> str:
    return slugify( f'{section_name}-{id}' )


def _children( definition: Union[SectionDefinition, FieldDefinition] ) -> List[DefinitionItem]:
    if isinstance( definition, SectionDefinition ):
        return list( definition.fields )
    elif isinstance( definition, NestedFieldDefinition ):
        return list( definition.sub_fields )
    elif isinstance( definition, BitMaskFieldDefinition ):
        return list( definition.bit_masks )
    return []


def linked_field( section: SectionDefinition, id: str ) -> str:
    target = find_definition( id, section.fields )
    if target is None:
        raise FieldDefinitionError( f'Field #{id} not found' )
    if not field_has_description( target ):
        return code( target.name )
    return f'[{code( target.name )}](#{field_slug( section.name, id )})'


def field_name( section: SectionDefinition, field: DefinitionItem ) -> str:
    if not field_has_description( field ):
        return field.name
    return f'[{field.name}](#{field_slug( section.name, field.id or field.name )})'


def field_size( section: SectionDefinition, field: DefinitionItem ) -> str:
    if isinstance( field, BitMaskDefinition ):
        return f'{field.length} bit{"" if field.length == 1 else "s"}'
    size = f'{field.byte_size} byte{"" if field.byte_size == 1 else "s"}'
    if isinstance( field.repeat, str ):
        return f'{size} x {linked_field( section, field.repeat )}'
    elif field.repeat is not None:
        return f'{size} x {field.repeat}'
    return size


def field_condition( section: SectionDefinition, field: DefinitionItem ) -> str:
    condition = getattr( field, 'condition', None )
    if condition is None:
        return '-'
    return condition.describe( lambda id: linked_field( section, id ) )


def generate_table(
    definition: Union[SectionDefinition, FieldDefinition],
    section: Optional[SectionDefinition] = None,
    level: int = 1,
) -> str:
    """Render the fields of a section (or the children of a field) as Markdown.

    definition
        Section definition, or a nested/bit-masked field definition.

    section
        Section the definition belongs to. Defaults to definition itself,
        which must then be a section.

    level
        Heading level of the enclosing document section.

    Throws FieldDefinitionError if a condition or repeat refers to an
    unknown id.
    """
    if section is None:
        section = definition
    rows = [
        {
            'Field': field_name( section, field ),
            'Size': field_size( section, field ),
            'Type': field.type_name,
            CONDITION_HEADER: field_condition( section, field ),
        }
        for field in _children( definition )
    ]
    # drop the condition column if nothing is conditional
    if all( row[CONDITION_HEADER] == '-' for row in rows ):
        for row in rows:
            del row[CONDITION_HEADER]

    return markdown_table( rows ) + '\n\n' + generate_field_descriptions( definition, section, level )


def generate_enum_table( parser: EnumParser ) -> str:
    return markdown_table( [
        {'Integer Value': code( key ), 'Mapped Value': code( format_value( value ) )}
        for key, value in parser.mapping.items()
    ] )


def generate_field_descriptions(
    definition: Union[SectionDefinition, FieldDefinition],
    section: Optional[SectionDefinition] = None,
    level: int = 1,
) -> str:
    """Render a heading and description for each field which has one.

    See generate_table() for the meaning of the arguments.
    """
    if section is None:
        section = definition
    text = ''
    for field in _children( definition ):
        if not field_has_description( field ):
            continue
        slug = field_slug( section.name, field.id or field.name )
        text += f'<a id="{slug}"></a>\n{"#" * (level + 1)} {field.name}\n{field.description or ""}\n'
        if isinstance( field, (NestedFieldDefinition, BitMaskFieldDefinition) ):
            text += generate_table( field, section, level + 1 )
        parser = getattr( field, 'parser', None )
        if isinstance( parser, EnumParser ):
            text += '**Enum Mapping:**\n\n'
            text += generate_enum_table( parser )
            text += '\n\n'
    return text


def _parse_attrs( attrs_string: str, md_path: str ) -> Dict[str, Union[str, int]]:
    attrs: Dict[str, Union[str, int]] = {}
    for key, value in ATTR_REGEX.findall( attrs_string ):
        attrs[key] = int( value ) if key == 'level' else value
    for key in ('file', 'section'):
        if key not in attrs:
            logger.error( f'Missing \'{key}\' attribute in speck-table tag ({os.path.basename( md_path )})' )
    return attrs


def _table_from_attrs( attrs: Dict[str, Union[str, int]], md_path: str ) -> Optional[str]:
    file, section_name = attrs.get( 'file' ), attrs.get( 'section' )
    if file is None or section_name is None:
        return None
    logger.info( f'- Generating table for section \'{section_name}\' from {file}' )
    with open( os.path.join( os.path.dirname( md_path ), file ), 'r', encoding='utf-8' ) as f:
        definition = load_structure( json.load( f ) )
    section = definition.get_section( section_name )
    if section is None:
        logger.error( f'Section \'{section_name}\' not found in file: {file}' )
        return None
    return generate_table( section, section, attrs.get( 'level', 1 ) )


def render_markdown( content: str, md_path: str ) -> str:
    """Replace every speck-table tag in a Markdown document with a generated table.

    content
        Markdown source.

    md_path
        Path of the Markdown file; schema paths are relative to it.
    """
    def replace( match ):
        attrs = _parse_attrs( match.group( 1 ) or match.group( 2 ), md_path )
        table = _table_from_attrs( attrs, md_path )
        if table is None:
            return match.group( 0 )
        return (
            f'<speck-table level="{attrs.get( "level", 1 )}" file="{attrs["file"]}" section="{attrs["section"]}">'
            f'\n\n{table}\n</speck-table>'
        )

    return TAG_REGEX.sub( replace, content )


def update_markdown_file( path: str ) -> bool:
    """Regenerate the speck-table tags in a Markdown file.

    Returns True if the file was changed.
    """
    with open( path, 'r', encoding='utf-8' ) as f:
        content = f.read()
    new_content = render_markdown( content, path )
    if new_content == content:
        return False
    with open( path, 'w', encoding='utf-8' ) as f:
        f.write( new_content )
    logger.info( f'Updated {os.path.basename( path )}' )
    return True


def update_markdown_files( *paths: str ) -> List[str]:
    """Regenerate the speck-table tags in every Markdown file under the given paths.

    Returns the list of files that were changed.
    """
    return [path for path in file_path_recurse( *paths, suffix='.md' ) if update_markdown_file( path )]
