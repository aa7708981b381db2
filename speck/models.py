"""Shortcut module to import all of the speck primitives."""

from speck.version import __version__
from speck.common import ParseError, FieldDefinitionError
from speck.readers import ByteReader, BufferReader, DefaultsReader, \
                            OutOfRangeError, InvalidDefaultsError
from speck.bits import BitStream
from speck.codecs import CodecRegistry, ValueParser, DecodeError, CodecNotFoundError, \
                            default_registry, register_custom_codec, unregister_custom_codec
from speck.refs import SectionState, MissingReferenceError, TypeMismatchError
from speck.checks import AssertionFailedError, Condition, Equals, LessThan, \
                            GreaterThan, Includes, Not, And, Or, Is
from speck.schema import StructureDefinition, SectionDefinition, FieldDefinition, \
                            LeafFieldDefinition, NestedFieldDefinition, \
                            BitMaskFieldDefinition, BitMaskDefinition, load_structure
from speck.blocks import ParsedField, ParsedSection, ParsedStructure
from speck.fields import Resolver, LimitExceededError
from speck.parser import parse, parse_with_reader
from speck.generator import generate, generate_bytes, structure_to_bytes
from speck.packer import to_json, parse_and_pack, normalise_name
from speck.docs import generate_table, update_markdown_file, update_markdown_files
