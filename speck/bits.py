from speck.common import is_bytes
from speck.readers import OutOfRangeError


BIT_MASK = [(1 << size) - 1 for size in range( 0, 65 )]

mask = lambda size: BIT_MASK[size] if size in range( 0, 65 ) else (1 << size) - 1


def read_bits( buffer, byte_offset, bit_offset, size ):
    """Read size bits from buffer, starting at the most-significant bit (0x80) of each byte.

    Returns the bits as a right-aligned integer.
    """
    bit_diff = bit_offset + size
    byte_end = byte_offset + bit_diff // 8
    bit_end = bit_diff % 8
    result = 0

    first_byte = buffer[byte_offset]
    end_byte = buffer[byte_end] if byte_end in range( len( buffer ) ) else 0

    # start
    span_mask = mask( 8 - bit_offset )
    if byte_offset == byte_end:
        span_mask ^= mask( 8 - bit_end )
    result |= first_byte & span_mask
    if byte_offset != byte_end:

        # middle
        for i in range( byte_offset + 1, byte_end ):
            result <<= 8
            result |= buffer[i]

        # end
        span_mask = 0xff ^ mask( 8 - bit_end )
        result <<= 8
        result |= end_byte & span_mask
    result >>= 8 - bit_end
    return result


class BitStream( object ):
    def __init__( self, buffer ):
        """Create a BitStream instance.

        Bits are consumed from the most-significant bit (0x80) through the
        least-significant bit (0x01) of each byte, and returned right-aligned.

        buffer
            Byte string to read from.
        """
        assert is_bytes( buffer )
        self.buffer = buffer
        self.byte_pos = 0
        self.bit_pos = 0

    def __repr__( self ):
        return f'<{self.__class__.__name__}: {self.tell()}/{self.size}>'

    @property
    def size( self ):
        """Total number of bits in the buffer."""
        return len( self.buffer ) * 8

    def tell( self ):
        """Get the current position, in bits."""
        return self.byte_pos * 8 + self.bit_pos

    def remaining( self ):
        return self.size - self.tell()

    def read( self, count ):
        """Get an integer containing the next [count] bits from the source."""
        """
        x.read( 1 ) # 0bA
        x.read( 3 ) # 0bBCD
        x.read( 4 ) # 0bEFGH

        # ABCDEFGH
        """
        if count <= 0:
            raise ValueError( f'Bit count must be a positive number, not {count}' )
        if count > self.remaining():
            raise OutOfRangeError(
                f'Attempted to read {count} bits at bit offset {self.tell()}, only {self.remaining()} left'
            )
        result = read_bits( self.buffer, self.byte_pos, self.bit_pos, count )
        self.seek( count )
        return result

    def read_bytes( self, count ):
        """Get the next [count] bits, right-aligned in the smallest big-endian byte string that fits."""
        value = self.read( count )
        return value.to_bytes( (count + 7) // 8, byteorder='big' )

    def seek( self, count ):
        bit_diff = self.bit_pos + count
        self.byte_pos += bit_diff // 8
        self.bit_pos = bit_diff % 8
