from speck import docs, utils
from speck.generator import generate_bytes
from speck.packer import to_json
from speck.parser import parse
from speck.schema import load_structure
from speck.version import __version__

import argparse
import json
import sys
import logging
logger = logging.getLogger( __name__ )

auto_int = lambda s: int( s, base=0 )

ARGS_COMMON = {
    ('--verbose', '-v'): dict(
        dest='verbose',
        action='count',
        default=0,
        help='Show more logging output; repeat for debug output'
    ),
    ('--version', '-V'): dict(
        action='version',
        version='%(prog)s {}'.format( __version__ )
    ),
}
ARGS_LIMITS = {
    ('--max-repeat', '-R'): dict(
        metavar='INT',
        dest='max_repeat',
        type=auto_int,
        help='Largest repeat count allowed for a single field (default: no limit)',
    ),
    ('--max-depth', '-D'): dict(
        metavar='INT',
        dest='max_depth',
        type=auto_int,
        help='Deepest nesting of sub fields allowed (default: no limit)',
    ),
}

ARGS_READ = {
    'schema': dict(
        metavar='SCHEMA',
        help='Structure definition (JSON file)',
    ),
    'source': dict(
        metavar='FILE',
        help='Binary file to parse',
    ),
    ('--indent', '-i'): dict(
        metavar='INT',
        dest='indent',
        type=auto_int,
        default=2,
        help='Indentation of the JSON output (default: 2)'
    ),
    ('--raw', '-r'): dict(
        dest='raw',
        action='store_true',
        help='Output the full parsed tree, including raw bytes and omitted fields'
    ),
}
ARGS_READ.update( ARGS_LIMITS )
ARGS_READ.update( ARGS_COMMON )

ARGS_GEN = {
    'schema': dict(
        metavar='SCHEMA',
        help='Structure definition (JSON file)',
    ),
    ('--defaults', '-d'): dict(
        metavar='FILE',
        dest='defaults',
        help='JSON file of default bytes, keyed by section and field name (default: all zeros)'
    ),
    ('--output', '-o'): dict(
        metavar='FILE',
        dest='output',
        help='File to write the generated bytes to (default: hex dump to stdout)'
    ),
}
ARGS_GEN.update( ARGS_LIMITS )
ARGS_GEN.update( ARGS_COMMON )

ARGS_DOC = {
    'source': dict(
        metavar='PATH',
        nargs='+',
        help='Markdown file, or directory to search for Markdown files',
    ),
}
ARGS_DOC.update( ARGS_COMMON )


def get_parser( args, **kwargs ):
    parser = argparse.ArgumentParser( **kwargs )
    for arg, spec in args.items():
        if isinstance( arg, tuple ):
            parser.add_argument( *arg, **spec )
        else:
            parser.add_argument( arg, **spec )
    return parser


EPILOG_DOC = """
Markdown files can embed tables generated from a structure definition with a tag:

    <speck-table file="struct.json" section="Header" level="2"/>

The file path is relative to the Markdown file. Each run replaces the contents
of the tag with a freshly generated table.
"""

speckread_parser = lambda: get_parser( args=ARGS_READ, description='Parse a binary file with a structure definition and print the result as JSON.' )
speckgen_parser = lambda: get_parser( args=ARGS_GEN, description='Generate a binary file from a structure definition and default values.' )
speckdoc_parser = lambda: get_parser( args=ARGS_DOC, description='Update the structure tables embedded in Markdown files.', epilog=EPILOG_DOC, formatter_class=argparse.RawDescriptionHelpFormatter )


def setup_logging( verbose ):
    if verbose:
        utils.enable_logging( 'DEBUG' if verbose > 1 else 'INFO' )


def load_json( path ):
    with open( path, 'r', encoding='utf-8' ) as f:
        return json.load( f )


def speckread( argv=None ):
    parser = speckread_parser()
    raw_args = parser.parse_args( argv )
    setup_logging( raw_args.verbose )

    definition = load_structure( load_json( raw_args.schema ) )
    with open( raw_args.source, 'rb' ) as src:
        data = src.read()

    structure = parse( definition, data, max_repeat=raw_args.max_repeat, max_depth=raw_args.max_depth )
    result = structure.to_dict() if raw_args.raw else to_json( structure, definition )
    print( json.dumps( result, indent=raw_args.indent ) )


def speckgen( argv=None ):
    parser = speckgen_parser()
    raw_args = parser.parse_args( argv )
    setup_logging( raw_args.verbose )

    definition = load_structure( load_json( raw_args.schema ) )
    defaults = load_json( raw_args.defaults ) if raw_args.defaults else None

    data = generate_bytes( definition, defaults, max_repeat=raw_args.max_repeat, max_depth=raw_args.max_depth )
    if raw_args.output:
        with open( raw_args.output, 'wb' ) as out:
            out.write( data )
        logger.info( f'Wrote {len( data )} bytes to {raw_args.output}' )
    else:
        utils.hexdump( data )


def speckdoc( argv=None ):
    parser = speckdoc_parser()
    raw_args = parser.parse_args( argv )
    setup_logging( raw_args.verbose )

    changed = docs.update_markdown_files( *raw_args.source )
    for path in changed:
        print( path )
    if not changed:
        print( 'No changes', file=sys.stderr )
