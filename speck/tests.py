import unittest

import contextlib
import io
import json
import os
import struct
import tempfile

from speck import bits
from speck import cli
from speck import docs
from speck import models as spk
from speck import utils


def make_struct( fields, endian='little', name='TestStruct', section='TestSection' ):
    return {
        'name': name,
        'endian': endian,
        'sections': [{'name': section, 'fields': fields}],
    }


class TestBits( unittest.TestCase ):
    def test_bits_read( self ):
        stream = bits.BitStream( b'\xb5' )
        self.assertEqual( stream.read( 1 ), 0b1 )
        self.assertEqual( stream.read( 3 ), 0b011 )
        self.assertEqual( stream.read( 4 ), 0b0101 )
        self.assertEqual( stream.tell(), 8 )
        self.assertEqual( stream.remaining(), 0 )

    def test_bits_read_span( self ):
        stream = bits.BitStream( b'\x0f\xf0' )
        self.assertEqual( stream.read( 4 ), 0x0 )
        self.assertEqual( stream.read( 8 ), 0xff )
        self.assertEqual( stream.read( 4 ), 0x0 )

    def test_bits_read_bytes( self ):
        stream = bits.BitStream( b'\xff\xc0' )
        self.assertEqual( stream.read_bytes( 10 ), b'\x03\xff' )
        self.assertEqual( stream.read_bytes( 6 ), b'\x00' )

    def test_bits_bad_count( self ):
        stream = bits.BitStream( b'\x00' )
        with self.assertRaises( ValueError ):
            stream.read( 0 )
        with self.assertRaises( ValueError ):
            stream.read( -1 )
        with self.assertRaises( spk.OutOfRangeError ):
            stream.read( 9 )


class TestReaders( unittest.TestCase ):
    def test_buffer_reader( self ):
        reader = spk.BufferReader( [1, 2, 3] )
        self.assertEqual( reader.peek_bytes( 2 ), b'\x01\x02' )
        self.assertEqual( reader.read_bytes( 2 ), b'\x01\x02' )
        self.assertEqual( reader.remaining, 1 )
        with self.assertRaises( spk.OutOfRangeError ):
            reader.read_bytes( 2, ('Section', 'Field') )
        self.assertEqual( reader.read_bytes( 0 ), b'' )

    def test_defaults_reader( self ):
        reader = spk.DefaultsReader( {'Section': {'Field': [1, 2, 3], 'Nested': {'Child': b'\x09'}}} )
        self.assertEqual( reader.read_bytes( 2, ('Section', 'Field') ), b'\x01\x02' )
        self.assertEqual( reader.read_bytes( 2, ('Section', 'Other') ), b'\x00\x00' )
        self.assertEqual( reader.read_bytes( 1, ('Missing', 'Field') ), b'\x00' )
        self.assertEqual( reader.peek_bytes( 2, ('Section', 'Nested') ), b'\x00\x00' )
        self.assertEqual( reader.read_bytes( 1, ('Section', 'Nested', 'Child') ), b'\x09' )

    def test_defaults_reader_errors( self ):
        with self.assertRaises( spk.InvalidDefaultsError ):
            spk.DefaultsReader( [1, 2, 3] )
        reader = spk.DefaultsReader( {'Section': {'Field': [1], 'Text': 'abc', 'Nested': {}}} )
        with self.assertRaises( spk.InvalidDefaultsError ):
            reader.read_bytes( 2, ('Section', 'Field') )
        with self.assertRaises( spk.InvalidDefaultsError ):
            reader.read_bytes( 1, ('Section', 'Text') )
        with self.assertRaises( spk.InvalidDefaultsError ):
            reader.read_bytes( 1, ('Section', 'Nested') )
        with self.assertRaises( spk.InvalidDefaultsError ):
            reader.read_bytes( 1, ('Section', 'Field', 'Child') )


class TestCodecs( unittest.TestCase ):
    def decode( self, parser_def, data, endian='little', registry=None ):
        parser = spk.load_structure( make_struct( [{'name': 'F', 'byteSize': len( data ), 'parser': parser_def}] ) ).sections[0].fields[0].parser
        return parser.decode( data, endian, registry or spk.default_registry )

    def test_numbers( self ):
        self.assertEqual( self.decode( {'type': 'uint'}, b'\x34\x12' ), 0x1234 )
        self.assertEqual( self.decode( {'type': 'uint'}, b'\x12\x34', 'big' ), 0x1234 )
        self.assertEqual( self.decode( {'type': 'uint'}, b'\x01\x02\x03' ), 0x030201 )
        self.assertEqual( self.decode( {'type': 'int'}, b'\xff' ), -1 )
        self.assertEqual( self.decode( {'type': 'int'}, b'\xff\xfe', 'big' ), -2 )
        self.assertEqual( self.decode( {'type': 'float'}, struct.pack( '<f', 1.5 ) ), 1.5 )
        self.assertEqual( self.decode( {'type': 'float'}, struct.pack( '>d', -0.25 ), 'big' ), -0.25 )
        with self.assertRaises( spk.DecodeError ):
            self.decode( {'type': 'int'}, b'\x00\x00\x00' )
        with self.assertRaises( spk.DecodeError ):
            self.decode( {'type': 'float'}, b'\x00\x00' )

    def test_simple( self ):
        self.assertIs( self.decode( {'type': 'boolean'}, b'\x00' ), False )
        self.assertIs( self.decode( {'type': 'boolean'}, b'\x02' ), True )
        self.assertEqual( self.decode( {'type': 'string'}, b'abc' ), 'abc' )
        self.assertEqual( self.decode( {'type': 'hex'}, b'\xde\xad' ), 'dead' )
        self.assertEqual( self.decode( {'type': 'array'}, b'\x01\x02' ), [1, 2] )
        self.assertEqual( self.decode( {'type': 'pointer'}, bytes( range( 26 ) ) ), '$' + bytes( range( 26 ) ).hex() )
        self.assertEqual( self.decode( {'type': 'string'}, b'\xff\xfe' ), '\ufffd\ufffd' )
        self.assertEqual( self.decode( {'type': 'string'}, b'ab\xff\x00' ), 'ab\ufffd\x00' )
        with self.assertRaises( spk.DecodeError ):
            self.decode( {'type': 'boolean'}, b'\x00\x00' )

    def test_enum( self ):
        parser_def = {'type': 'enum', 'mapping': {'0x01': 'A', '2': 'B'}}
        self.assertEqual( self.decode( parser_def, b'\x01' ), 'A' )
        self.assertEqual( self.decode( parser_def, b'\x02' ), 'B' )
        with self.assertRaises( spk.DecodeError ):
            self.decode( parser_def, b'\x03' )

    def test_enum_wide( self ):
        parser_def = {'type': 'enum', 'mapping': {'0x0102': 'wide', '0b11': 3}}
        self.assertEqual( self.decode( parser_def, b'\x02\x01' ), 'wide' )
        self.assertEqual( self.decode( parser_def, b'\x01\x02', 'big' ), 'wide' )
        self.assertEqual( self.decode( parser_def, b'\x03\x00\x00\x00' ), 3 )

    def test_endpoint( self ):
        parser_def = {'type': 'endpoint'}
        self.assertEqual( self.decode( parser_def, bytes( 21 ) ), '@local' )
        self.assertEqual( self.decode( parser_def, b'\x01' + bytes( 20 ) ), '@+local' )
        self.assertEqual( self.decode( parser_def, b'\x00jonas' + bytes( 15 ) ), '@jonas' )
        self.assertEqual( self.decode( parser_def, b'\x00jonas' + bytes( 13 ) + b'\x02\x00' ), '@jonas/2' )
        self.assertEqual( self.decode( parser_def, b'\x00jonas' + bytes( 13 ) + b'\xff\xff' ), '@jonas/*' )
        self.assertEqual( self.decode( parser_def, b'\x07' + bytes( 20 ) ), '@@local' )
        with self.assertRaises( spk.DecodeError ):
            self.decode( parser_def, bytes( 20 ) )

    def test_registry( self ):
        registry = spk.CodecRegistry()
        registry.register( 'length', lambda data: len( data ) )
        self.assertIn( 'length', registry )
        self.assertEqual( self.decode( {'type': 'custom', 'name': 'length'}, b'abc', registry=registry ), 3 )
        registry.unregister( 'length' )
        self.assertNotIn( 'length', registry )
        with self.assertRaises( spk.CodecNotFoundError ):
            self.decode( {'type': 'custom', 'name': 'length'}, b'abc', registry=registry )
        with self.assertRaises( TypeError ):
            registry.register( 'broken', 'not a function' )


class TestSchema( unittest.TestCase ):
    def test_load( self ):
        definition = spk.load_structure( make_struct( [
            {'name': 'A', 'id': 'a', 'byteSize': 1, 'parser': {'type': 'uint'}},
            {'name': 'B', 'byteSize': 2, 'subFields': [{'name': 'C', 'byteSize': 2}]},
            {'name': 'D', 'byteSize': 1, 'bitMasks': [{'name': 'E', 'length': 3}]},
        ] ) )
        fields = definition.sections[0].fields
        self.assertIsInstance( fields[0], spk.LeafFieldDefinition )
        self.assertIsInstance( fields[1], spk.NestedFieldDefinition )
        self.assertIsInstance( fields[2], spk.BitMaskFieldDefinition )
        self.assertEqual( fields[2].bit_masks[0].length, 3 )
        self.assertIs( spk.load_structure( definition ), definition )

    def test_errors( self ):
        bad_fields = [
            {'name': 'A', 'byteSize': 1, 'parser': {'type': 'nope'}},
            {'name': 'A', 'byteSize': -1},
            {'name': 'A', 'byteSize': 1, 'repeat': -1},
            {'name': 'A', 'byteSize': 1, 'usage': 'hide'},
            {'name': 'A', 'byteSize': 1, 'subFields': [], 'parser': {'type': 'uint'}},
            {'name': 'A', 'byteSize': 1, 'bitMasks': [{'name': 'B', 'length': 9}]},
            {'name': 'A', 'byteSize': 1, 'if': {'sometimes': ['a', 1]}},
            {'name': 'A', 'byteSize': 1, 'assert': {'isnt': 1}},
            {'name': 'A', 'byteSize': 1, 'parser': {'type': 'enum', 'mapping': {'one': 1}}},
        ]
        for field in bad_fields:
            with self.assertRaises( spk.FieldDefinitionError ):
                spk.load_structure( make_struct( [field] ) )
        with self.assertRaises( spk.FieldDefinitionError ):
            spk.load_structure( make_struct( [], endian='middle' ) )
        with self.assertRaises( spk.FieldDefinitionError ):
            spk.load_structure( {'name': 'X', 'sections': [{'name': 'S', 'fields': []}, {'name': 'S', 'fields': []}]} )


class TestParser( unittest.TestCase ):
    def test_structure( self ):
        definition = make_struct( [
            {'name': 'Field 1', 'byteSize': 2, 'parser': {'type': 'uint'}},
            {'name': 'Field 2', 'byteSize': 2, 'parser': {'type': 'uint'}},
            {'name': 'Field 3', 'byteSize': 1, 'parser': {'type': 'boolean'}},
        ] )
        result = spk.parse( definition, b'\xff\x00\x00\x01\x01' )
        section = result['TestSection']
        self.assertEqual( len( section ), 3 )
        self.assertEqual( [f.value for f in section], [255, 256, True] )
        self.assertEqual( section.fields[1].data, b'\x00\x01' )

    def test_subfields( self ):
        definition = make_struct( [
            {'name': 'Field 1', 'byteSize': 4, 'subFields': [
                {'name': 'SubField A', 'byteSize': 2},
                {'name': 'SubField B', 'byteSize': 2},
                {'name': 'SubField C', 'byteSize': 1, 'repeat': 2},
            ]},
            {'name': 'Bitmask Field', 'byteSize': 1, 'bitMasks': [
                {'name': 'Bit 0', 'length': 1},
                {'name': 'Bits 1-3', 'length': 3},
                {'name': 'Bits 4-7', 'length': 4},
            ]},
        ] )
        result = spk.parse( definition, bytes( 11 ) )
        field1, bitmask = result[0].fields
        self.assertEqual( field1.data, bytes( 4 ) )
        self.assertIsNone( field1.value )
        self.assertEqual( [f.name for f in field1.sub_fields], ['SubField A', 'SubField B', 'SubField C', 'SubField C'] )
        self.assertEqual( [f.data for f in field1.sub_fields], [b'\x00\x00', b'\x00\x00', b'\x00', b'\x00'] )
        self.assertTrue( bitmask.bitmask )
        self.assertEqual( [m.value for m in bitmask.sub_fields], ['0', '0', '0'] )
        self.assertEqual( [m.data for m in bitmask.sub_fields], [b'\x00', b'\x00', b'\x00'] )

    def test_bit_masks( self ):
        definition = make_struct( [
            {'name': 'Flags', 'byteSize': 1, 'bitMasks': [
                {'name': 'High', 'length': 1},
                {'name': 'Middle', 'length': 3, 'parser': {'type': 'uint'}},
                {'name': 'Low', 'length': 4, 'id': 'low', 'parser': {'type': 'uint'}},
            ]},
            {'name': 'Tail', 'byteSize': 1, 'repeat': 'low'},
        ] )
        result = spk.parse( definition, b'\xb5' + bytes( 5 ) )
        flags = result[0].fields[0]
        self.assertEqual( [m.value for m in flags.sub_fields], ['1', 3, 5] )
        self.assertEqual( [m.data for m in flags.sub_fields], [b'\x01', b'\x03', b'\x05'] )
        self.assertEqual( len( result[0].find( 'Tail' ) ), 5 )

    def test_bit_masks_wide( self ):
        definition = make_struct( [
            {'name': 'Flags', 'byteSize': 2, 'bitMasks': [
                {'name': 'Top', 'length': 4, 'parser': {'type': 'uint'}},
                {'name': 'Rest', 'length': 12, 'parser': {'type': 'uint'}},
            ]},
        ] )
        result = spk.parse( definition, b'\xa1\x23' )
        self.assertEqual( [m.value for m in result[0].fields[0].sub_fields], [0xa, 0x123] )

    def test_bit_masks_ignore_endian( self ):
        definition = make_struct( [
            {'name': 'Flags', 'byteSize': 2, 'bitMasks': [
                {'name': 'All', 'length': 16, 'parser': {'type': 'uint'}},
            ]},
            {'name': 'Value', 'byteSize': 2, 'parser': {'type': 'uint'}},
        ], endian='little' )
        result = spk.parse( definition, b'\x01\x02\x01\x02' )
        # masks read MSB-first, leaves use the structure's byte order
        self.assertEqual( result[0].fields[0].sub_fields[0].value, 0x0102 )
        self.assertEqual( result[0].fields[1].value, 0x0201 )

    def test_repeat( self ):
        definition = make_struct( [
            {'name': 'Count', 'id': 'count', 'byteSize': 1, 'parser': {'type': 'uint'}},
            {'name': 'Items', 'byteSize': 1, 'repeat': 'count', 'parser': {'type': 'uint'}},
            {'name': 'Tail', 'byteSize': 1, 'parser': {'type': 'uint'}},
        ] )
        result = spk.parse( definition, b'\x03\x0a\x0b\x0c\x0d' )
        self.assertEqual( [f.value for f in result[0].find( 'Items' )], [10, 11, 12] )
        self.assertEqual( result[0].find( 'Tail' )[0].value, 13 )

        result = spk.parse( definition, b'\x00\x07' )
        self.assertEqual( result[0].find( 'Items' ), [] )
        self.assertEqual( result[0].find( 'Tail' )[0].value, 7 )

    def test_repeat_literal( self ):
        definition = make_struct( [
            {'name': 'Items', 'byteSize': 2, 'repeat': 2, 'parser': {'type': 'uint'}},
            {'name': 'None', 'byteSize': 2, 'repeat': 0},
            {'name': 'Tail', 'byteSize': 1, 'parser': {'type': 'uint'}},
        ] )
        result = spk.parse( definition, b'\x01\x00\x02\x00\x03' )
        self.assertEqual( [f.value for f in result[0]], [1, 2, 3] )

    def test_repeat_errors( self ):
        with self.assertRaises( spk.MissingReferenceError ):
            spk.parse( make_struct( [
                {'name': 'Items', 'byteSize': 1, 'repeat': 'count'},
                {'name': 'Count', 'id': 'count', 'byteSize': 1, 'parser': {'type': 'uint'}},
            ] ), b'\x01\x01' )
        with self.assertRaises( spk.TypeMismatchError ):
            spk.parse( make_struct( [
                {'name': 'Count', 'id': 'count', 'byteSize': 1, 'parser': {'type': 'string'}},
                {'name': 'Items', 'byteSize': 1, 'repeat': 'count'},
            ] ), b'a\x01' )
        with self.assertRaises( spk.TypeMismatchError ):
            spk.parse( make_struct( [
                {'name': 'Count', 'id': 'count', 'byteSize': 1, 'parser': {'type': 'int'}},
                {'name': 'Items', 'byteSize': 1, 'repeat': 'count'},
            ] ), b'\xff\x01' )

    def test_condition( self ):
        definition = make_struct( [
            {'name': 'Flag', 'id': 'flag', 'byteSize': 1, 'parser': {'type': 'boolean'}},
            {'name': 'Optional', 'byteSize': 2, 'if': {'equals': ['flag', True]}, 'parser': {'type': 'uint'}},
            {'name': 'Tail', 'byteSize': 1, 'parser': {'type': 'uint'}},
        ] )
        result = spk.parse( definition, b'\x00\x09' )
        self.assertEqual( [f.name for f in result[0]], ['Flag', 'Tail'] )
        self.assertEqual( result[0].find( 'Tail' )[0].value, 9 )

        result = spk.parse( definition, b'\x01\x02\x00\x09' )
        self.assertEqual( [f.value for f in result[0]], [True, 2, 9] )

    def test_condition_types( self ):
        def check( condition, data ):
            definition = make_struct( [
                {'name': 'Kind', 'id': 'kind', 'byteSize': 1, 'parser': {'type': 'uint'}},
                {'name': 'Extra', 'byteSize': 1, 'if': condition},
            ] )
            return len( spk.parse( definition, data )[0] ) == 2

        self.assertTrue( check( {'lessThan': ['kind', 3]}, b'\x02\x00' ) )
        self.assertFalse( check( {'lessThan': ['kind', 3]}, b'\x03\x00' ) )
        self.assertTrue( check( {'greaterThan': ['kind', 3]}, b'\x04\x00' ) )
        self.assertTrue( check( {'includes': ['kind', [1, 5]]}, b'\x05\x00' ) )
        self.assertFalse( check( {'includes': ['kind', [1, 5]]}, b'\x04\x00' ) )
        self.assertTrue( check( {'not': {'equals': ['kind', 1]}}, b'\x02\x00' ) )
        self.assertTrue( check( {'and': [{'greaterThan': ['kind', 1]}, {'lessThan': ['kind', 4]}]}, b'\x02\x00' ) )
        self.assertFalse( check( {'and': [{'greaterThan': ['kind', 1]}, {'lessThan': ['kind', 4]}]}, b'\x05\x00' ) )
        self.assertTrue( check( {'or': [{'equals': ['kind', 1]}, {'equals': ['kind', 9]}]}, b'\x09\x00' ) )
        # unresolved ids make the condition false
        self.assertFalse( check( {'equals': ['missing', 1]}, b'\x01\x00' ) )
        # booleans never equal numbers
        self.assertFalse( check( {'equals': ['kind', True]}, b'\x01\x00' ) )

    def test_nested_reference( self ):
        definition = make_struct( [
            {'name': 'Header', 'byteSize': 2, 'subFields': [
                {'name': 'Version', 'byteSize': 1, 'parser': {'type': 'uint'}},
                {'name': 'Length', 'id': 'length', 'byteSize': 1, 'parser': {'type': 'uint'}},
            ]},
            {'name': 'Body', 'byteSize': 1, 'repeat': 'length', 'parser': {'type': 'uint'}},
        ] )
        result = spk.parse( definition, b'\x01\x02\x0a\x0b' )
        self.assertEqual( [f.value for f in result[0].find( 'Body' )], [10, 11] )

    def test_repeat_uses_latest_iteration( self ):
        definition = make_struct( [
            {'name': 'Records', 'byteSize': 2, 'repeat': 2, 'subFields': [
                {'name': 'Len', 'id': 'len', 'byteSize': 1, 'parser': {'type': 'uint'}},
                {'name': 'Data', 'byteSize': 1, 'repeat': 'len', 'parser': {'type': 'uint'}},
            ]},
        ] )
        data = b'\x01\x0a\x02\x0b\x0c'
        records = spk.parse( definition, data )[0].find( 'Records' )
        self.assertEqual( len( records ), 2 )
        self.assertEqual( [[f.value for f in r.sub_fields] for r in records], [[1, 10], [2, 11, 12]] )
        self.assertEqual( spk.parse_and_pack( definition, data ), {
            'testsection': {'records': [{'len': 1, 'data': [10]}, {'len': 2, 'data': [11, 12]}]},
        } )

    def test_assertion( self ):
        definition = make_struct( [
            {'name': 'Magic', 'byteSize': 1, 'assert': {'is': 5}, 'parser': {'type': 'uint'}},
        ] )
        self.assertEqual( spk.parse( definition, b'\x05' )[0].fields[0].value, 5 )
        with self.assertRaises( spk.AssertionFailedError ) as cm:
            spk.parse( definition, b'\x06' )
        self.assertIn( 'TestSection.Magic', str( cm.exception ) )

    def test_assertion_repeated( self ):
        definition = make_struct( [
            {'name': 'Magic', 'byteSize': 1, 'repeat': 2, 'assert': {'is': [1, 2]}, 'parser': {'type': 'uint'}},
        ] )
        spk.parse( definition, b'\x01\x02' )
        with self.assertRaises( spk.AssertionFailedError ):
            spk.parse( definition, b'\x02\x01' )

    def test_out_of_range( self ):
        definition = make_struct( [{'name': 'Value', 'byteSize': 4, 'parser': {'type': 'uint'}}] )
        with self.assertRaises( spk.OutOfRangeError ):
            spk.parse( definition, b'\x00\x00' )

    def test_endian( self ):
        fields = [{'name': 'Value', 'byteSize': 4, 'parser': {'type': 'uint'}}]
        self.assertEqual( spk.parse( make_struct( fields ), b'\x12\x34\x56\x78' )[0].fields[0].value, 0x78563412 )
        self.assertEqual( spk.parse( make_struct( fields, 'big' ), b'\x12\x34\x56\x78' )[0].fields[0].value, 0x12345678 )

    def test_limits( self ):
        definition = make_struct( [
            {'name': 'Count', 'id': 'count', 'byteSize': 1, 'parser': {'type': 'uint'}},
            {'name': 'Items', 'byteSize': 1, 'repeat': 'count'},
        ] )
        spk.parse( definition, b'\x02\x00\x00', max_repeat=2 )
        with self.assertRaises( spk.LimitExceededError ):
            spk.parse( definition, b'\x03\x00\x00\x00', max_repeat=2 )

        definition = make_struct( [
            {'name': 'Outer', 'byteSize': 1, 'subFields': [
                {'name': 'Inner', 'byteSize': 1, 'subFields': [{'name': 'Leaf', 'byteSize': 1}]},
            ]},
        ] )
        spk.parse( definition, b'\x00', max_depth=2 )
        with self.assertRaises( spk.LimitExceededError ):
            spk.parse( definition, b'\x00', max_depth=1 )

    def test_custom( self ):
        definition = make_struct( [
            {'name': 'Field 1', 'byteSize': 4, 'parser': {'type': 'custom', 'name': 'double'}},
        ] )
        spk.register_custom_codec( 'double', lambda data: len( data ) * 2 )
        try:
            self.assertEqual( spk.parse( definition, bytes( 4 ) )[0].fields[0].value, 8 )
        finally:
            spk.unregister_custom_codec( 'double' )
        with self.assertRaises( spk.DecodeError ):
            spk.parse( definition, bytes( 4 ) )

    def test_custom_registry( self ):
        definition = make_struct( [
            {'name': 'Field 1', 'byteSize': 4, 'parser': {'type': 'custom', 'name': 'my-custom-parser'}},
        ] )
        registry = spk.CodecRegistry()
        registry.register( 'my-custom-parser', lambda data: f'size<{len( data )}>' )
        result = spk.parse_and_pack( definition, bytes( 4 ), registry=registry )
        self.assertEqual( result, {'testsection': {'field_1': 'size<4>'}} )
        self.assertNotIn( 'my-custom-parser', spk.default_registry )

    def test_to_dict( self ):
        definition = make_struct( [{'name': 'Value', 'id': 'v', 'byteSize': 1, 'parser': {'type': 'uint'}}] )
        self.assertEqual( spk.parse( definition, b'\x2a' ).to_dict(), {
            'name': 'TestStruct',
            'sections': [{'name': 'TestSection', 'fields': [{'name': 'Value', 'id': 'v', 'bytes': '2a', 'value': 42}]}],
        } )


class TestGenerator( unittest.TestCase ):
    definition = make_struct( [
        {'name': 'Version', 'byteSize': 2, 'parser': {'type': 'uint'}},
        {'name': 'Header', 'byteSize': 3, 'subFields': [
            {'name': 'Kind', 'byteSize': 1, 'parser': {'type': 'enum', 'mapping': {'0': 'none', '1': 'one'}}},
            {'name': 'Size', 'byteSize': 2, 'parser': {'type': 'uint'}},
        ]},
        {'name': 'Flags', 'byteSize': 1, 'bitMasks': [
            {'name': 'On', 'length': 1, 'parser': {'type': 'boolean'}},
            {'name': 'Level', 'length': 7, 'parser': {'type': 'uint'}},
        ]},
        {'name': 'Name', 'byteSize': 4, 'parser': {'type': 'string'}},
    ] )
    defaults = {
        'TestSection': {
            'Version': [0x34, 0x12],
            'Header': {'Kind': [1], 'Size': b'\x10\x00'},
            'Flags': [0x85],
            'Name': b'abcdefg',
        }
    }

    def test_generate( self ):
        result = spk.generate( self.definition, self.defaults )
        section = result['TestSection']
        self.assertEqual( section.fields[0].value, 0x1234 )
        self.assertEqual( [f.value for f in section.fields[1].sub_fields], ['one', 16] )
        self.assertEqual( section.fields[1].data, b'\x01\x10\x00' )
        self.assertEqual( [m.value for m in section.fields[2].sub_fields], [True, 5] )
        self.assertEqual( section.fields[3].value, 'abcd' )

    def test_generate_bytes( self ):
        data = spk.generate_bytes( self.definition, self.defaults )
        self.assertEqual( data, b'\x34\x12\x01\x10\x00\x85abcd' )
        self.assertEqual( spk.generate_bytes( self.definition ), bytes( 10 ) )

    def test_round_trip( self ):
        generated = spk.generate( self.definition, self.defaults )
        parsed = spk.parse( self.definition, spk.generate_bytes( self.definition, self.defaults ) )
        self.assertEqual( parsed, generated )
        self.assertEqual( spk.structure_to_bytes( parsed ), spk.structure_to_bytes( generated ) )

    def test_round_trip_repeat( self ):
        definition = make_struct( [
            {'name': 'Count', 'id': 'count', 'byteSize': 1, 'parser': {'type': 'uint'}},
            {'name': 'Items', 'byteSize': 2, 'repeat': 'count', 'parser': {'type': 'uint'}},
        ] )
        defaults = {'TestSection': {'Count': [3], 'Items': [7, 0]}}
        data = spk.generate_bytes( definition, defaults )
        self.assertEqual( data, b'\x03\x07\x00\x07\x00\x07\x00' )
        self.assertEqual( spk.parse( definition, data ), spk.generate( definition, defaults ) )

    def test_invalid_defaults( self ):
        with self.assertRaises( spk.InvalidDefaultsError ):
            spk.generate( self.definition, {'TestSection': {'Name': b'ab'}} )
        with self.assertRaises( spk.InvalidDefaultsError ):
            spk.generate( self.definition, {'TestSection': {'Version': 'no'}} )
        with self.assertRaises( spk.InvalidDefaultsError ):
            spk.generate( self.definition, {'TestSection': {'Header': b'\x01\x02\x03'}} )
        with self.assertRaises( spk.DecodeError ):
            spk.generate( self.definition, {'TestSection': {'Header': {'Kind': [2]}}} )


class TestPacker( unittest.TestCase ):
    def test_structure( self ):
        definition = make_struct( [
            {'name': 'Field 1', 'byteSize': 2, 'parser': {'type': 'uint'}},
            {'name': 'Field 2', 'byteSize': 2, 'parser': {'type': 'uint'}},
            {'name': 'Field 3', 'byteSize': 1, 'parser': {'type': 'boolean'}},
        ] )
        result = spk.parse_and_pack( definition, b'\xff\x00\x00\x01\x01' )
        self.assertEqual( result, {'testsection': {'field_1': 255, 'field_2': 256, 'field_3': True}} )

    def test_endpoint( self ):
        definition = make_struct( [{'name': 'Endpoint', 'byteSize': 21, 'parser': {'type': 'endpoint'}}] )
        self.assertEqual( spk.parse_and_pack( definition, bytes( 21 ) ), {'testsection': {'endpoint': '@local'}} )
        self.assertEqual( spk.parse_and_pack( definition, b'\x01' + bytes( 20 ) ), {'testsection': {'endpoint': '@+local'}} )
        self.assertEqual(
            spk.parse_and_pack( definition, bytes( [0, 106, 111, 110, 97, 115] + [0] * 15 ) ),
            {'testsection': {'endpoint': '@jonas'}}
        )

    def test_shapes( self ):
        definition = {
            'name': 'TestStruct',
            'sections': [
                {'name': 'Main Section', 'fields': [
                    {'name': 'Count', 'id': 'count', 'byteSize': 1, 'parser': {'type': 'uint'}},
                    {'name': 'Points', 'byteSize': 2, 'repeat': 'count', 'subFields': [
                        {'name': 'X', 'byteSize': 1, 'parser': {'type': 'int'}},
                        {'name': 'Y', 'byteSize': 1, 'parser': {'type': 'int'}},
                    ]},
                    {'name': 'Flags', 'byteSize': 1, 'bitMasks': [
                        {'name': 'Visible', 'length': 1, 'parser': {'type': 'boolean'}},
                        {'name': 'Reserved', 'length': 7, 'usage': 'omit'},
                    ]},
                    {'name': 'Raw Data', 'byteSize': 2},
                    {'name': 'Padding', 'byteSize': 1, 'usage': 'omit'},
                    {'name': '(Optional)', 'byteSize': 1, 'if': {'equals': ['count', 9]}},
                ]},
                {'name': 'Hidden', 'usage': 'omit', 'fields': [{'name': 'Junk', 'byteSize': 1}]},
            ],
        }
        data = b'\x02\x01\xff\x02\xfe\x80\xbe\xef\x00\x00'
        self.assertEqual( spk.parse_and_pack( definition, data ), {
            'main_section': {
                'count': 2,
                'points': [{'x': 1, 'y': -1}, {'x': 2, 'y': -2}],
                'flags': {'visible': True},
                'raw_data': 'beef',
                'optional': None,
            },
        } )

    def test_normalise_name( self ):
        self.assertEqual( spk.normalise_name( 'Field 1' ), 'field_1' )
        self.assertEqual( spk.normalise_name( '  Bits 1-3 (high)' ), 'bits_1_3_high' )


class TestDocs( unittest.TestCase ):
    definition = make_struct( [
        {'name': 'Count', 'id': 'count', 'byteSize': 1, 'parser': {'type': 'uint'}},
        {'name': 'Items', 'byteSize': 2, 'repeat': 'count', 'if': {'greaterThan': ['count', 0]}, 'parser': {'type': 'uint'}},
        {'name': 'Kind', 'byteSize': 1, 'description': 'What it is.', 'parser': {'type': 'enum', 'mapping': {'1': 'a'}}},
    ], section='Main' )

    def test_table( self ):
        section = spk.load_structure( self.definition ).sections[0]
        table = spk.generate_table( section )
        self.assertIn( '| Field | Size | Type | Condition (for optional fields) |', table )
        self.assertIn( '| Count | 1 byte | uint8 | - |', table )
        self.assertIn( '| Items | 2 bytes x `Count` | uint16 | `Count` greaterThan 0 |', table )
        self.assertIn( '| [Kind](#main-kind) | 1 byte | enum | - |', table )
        self.assertIn( '<a id="main-kind"></a>\n## Kind\nWhat it is.', table )
        self.assertIn( '| `1` | `"a"` |', table )

    def test_table_no_conditions( self ):
        section = spk.load_structure( make_struct( [{'name': 'A', 'byteSize': 4}] ) ).sections[0]
        table = spk.generate_table( section )
        self.assertIn( '| A | 4 bytes | - |', table )
        self.assertNotIn( docs.CONDITION_HEADER, table )

    def test_markdown_file( self ):
        with tempfile.TemporaryDirectory() as root:
            with open( os.path.join( root, 'struct.json' ), 'w' ) as f:
                json.dump( self.definition, f )
            md_path = os.path.join( root, 'README.md' )
            with open( md_path, 'w' ) as f:
                f.write( '# Format\n\n<speck-table file="struct.json" section="Main"/>\n' )

            self.assertEqual( spk.update_markdown_files( root ), [md_path] )
            with open( md_path ) as f:
                content = f.read()
            self.assertIn( '<speck-table level="1" file="struct.json" section="Main">', content )
            self.assertIn( '| Count | 1 byte | uint8 | - |', content )
            self.assertTrue( content.rstrip().endswith( '</speck-table>' ) )
            self.assertFalse( spk.update_markdown_file( md_path ) )


class TestUtils( unittest.TestCase ):
    def test_hexdump( self ):
        lines = list( utils.hexdump_iter( b'ABCD', major_len=1, minor_len=4 ) )
        self.assertEqual( lines, ['00000000: 41 42 43 44 | ABCD'] )
        lines = list( utils.hexdump_iter( bytes( range( 6 ) ), major_len=1, minor_len=4, show_glyphs=False ) )
        self.assertEqual( lines, ['00000000: 00 01 02 03', '00000004: 04 05      '] )

    def test_bounds( self ):
        self.assertEqual( utils.bounds( None, None, None, 10 ), (0, 10) )
        self.assertEqual( utils.bounds( 2, None, 3, 10 ), (2, 5) )
        self.assertEqual( utils.bounds( -4, None, None, 10 ), (6, 10) )
        with self.assertRaises( ValueError ):
            utils.bounds( 0, 1, 1, 10 )


class TestCli( unittest.TestCase ):
    definition = make_struct( [
        {'name': 'Field 1', 'byteSize': 2, 'parser': {'type': 'uint'}},
        {'name': 'Field 2', 'byteSize': 1, 'parser': {'type': 'boolean'}},
    ] )

    def test_speckread( self ):
        with tempfile.TemporaryDirectory() as root:
            schema_path = os.path.join( root, 'struct.json' )
            data_path = os.path.join( root, 'data.bin' )
            with open( schema_path, 'w' ) as f:
                json.dump( self.definition, f )
            with open( data_path, 'wb' ) as f:
                f.write( b'\x02\x01\x01' )

            out = io.StringIO()
            with contextlib.redirect_stdout( out ):
                cli.speckread( [schema_path, data_path] )
            self.assertEqual( json.loads( out.getvalue() ), {'testsection': {'field_1': 258, 'field_2': True}} )

            out = io.StringIO()
            with contextlib.redirect_stdout( out ):
                cli.speckread( [schema_path, data_path, '--raw'] )
            self.assertEqual( json.loads( out.getvalue() )['sections'][0]['fields'][0]['bytes'], '0201' )

    def test_speckgen( self ):
        with tempfile.TemporaryDirectory() as root:
            schema_path = os.path.join( root, 'struct.json' )
            defaults_path = os.path.join( root, 'defaults.json' )
            output_path = os.path.join( root, 'out.bin' )
            with open( schema_path, 'w' ) as f:
                json.dump( self.definition, f )
            with open( defaults_path, 'w' ) as f:
                json.dump( {'TestSection': {'Field 1': [0x34, 0x12]}}, f )

            cli.speckgen( [schema_path, '--defaults', defaults_path, '--output', output_path] )
            with open( output_path, 'rb' ) as f:
                self.assertEqual( f.read(), b'\x34\x12\x00' )

            out = io.StringIO()
            with contextlib.redirect_stdout( out ):
                cli.speckgen( [schema_path] )
            self.assertTrue( out.getvalue().rstrip().endswith( '| ...' ) )
            self.assertTrue( out.getvalue().startswith( '00000000: 00 00 00' ) )


if __name__ == '__main__':
    unittest.main()
