"""Decoder for the "!boR" binary expression format.

The body is a stream of values, each introduced by a one byte type signature:

    i  int32                         machine integer
    I  int32 length, digits          arbitrary-precision integer
    r  float64                       machine real
    R  int32 length, text            arbitrary-precision real
    s  int32 length, name            symbol
    S  int32 length, text            string
    f  int32 part count, head, parts expression
    e  int32 n, n int32 sizes, data  real matrix (packed array)

Expressions only say how many parts they have, not how many bytes they take
up, so the sequence decoder calls itself with a part limit to read them.
"""
from dataclasses import dataclass, field
from .serialization import read_int32, read_float64, read_string_entry, I32_SIZE, F64_SIZE
from .diagnostics import MessageLog, Message, DecodeError, StructureError
from . import expr


class Tag:
    INTEGER_MP = ord("i")
    INTEGER_AP = ord("I")
    REAL_MP = ord("r")
    REAL_AP = ord("R")
    SYMBOL = ord("s")
    STRING = ord("S")
    EXPRESSION = ord("f")
    REAL_MATRIX = ord("e")


# Tags whose payload is a string entry
STRING_ENTRY_TYPES = {
    Tag.INTEGER_AP: expr.IntegerAP,
    Tag.REAL_AP: expr.RealAP,
    Tag.SYMBOL: expr.Symbol,
    Tag.STRING: expr.String,
}

LIST = expr.Symbol("List")


@dataclass
class Decoded:
    values: list[expr.Value]
    bytes_read: int
    messages: list[Message] = field(default_factory=list)


def _rethrow(err: DecodeError, tag: int, offset: int):
    # Same error type, with the position filled in
    raise type(err)(err.reason, offset=offset if err.offset is None else err.offset, tag=chr(tag),
        expected=err.expected, found=err.found) from err


class Decoder:
    MAX_DEPTH = 200
    MAX_MATRIX_LISTS = 1 << 20
    MAX_MATRIX_ELEMENTS = 1 << 22

    def __init__(self, buf, *, log: MessageLog = None, max_depth: int = None, max_matrix_lists: int = None,
            max_matrix_elements: int = None):
        self.buf = buf
        self.log = log if log is not None else MessageLog()
        self.max_depth = Decoder.MAX_DEPTH if max_depth is None else max_depth
        self.max_matrix_lists = Decoder.MAX_MATRIX_LISTS if max_matrix_lists is None else max_matrix_lists
        self.max_matrix_elements = Decoder.MAX_MATRIX_ELEMENTS if max_matrix_elements is None else max_matrix_elements

    def decode_sequence(self, offset: int = 0, max_count: int = None, depth: int = 0) -> tuple[list[expr.Value], int]:
        """Returns the decoded values and the number of bytes read"""
        start = offset
        values = []
        while offset < len(self.buf) and (max_count is None or len(values) < max_count):
            tag_offset = offset
            tag = self.buf[offset]
            offset += 1
            try:
                if tag == Tag.INTEGER_MP:
                    values.append(expr.IntegerMP(read_int32(self.buf, offset)))
                    offset += I32_SIZE
                elif tag == Tag.REAL_MP:
                    values.append(expr.RealMP(read_float64(self.buf, offset)))
                    offset += F64_SIZE
                elif tag in STRING_ENTRY_TYPES:
                    entry = read_string_entry(self.buf, offset)
                    values.append(STRING_ENTRY_TYPES[tag](entry.text))
                    offset += entry.bytes_read
                elif tag == Tag.EXPRESSION:
                    (value, size) = self._decode_expression(offset, depth)
                    values.append(value)
                    offset += size
                elif tag == Tag.REAL_MATRIX:
                    (value, size) = self.decode_matrix(offset, depth)
                    values.append(value)
                    offset += size
                else:
                    self.log.warn("byte {} ({!r}) at offset {} is not a known type signature".format(tag, chr(tag), tag_offset), offset=tag_offset)
            except DecodeError as err:
                if err.tag is not None:
                    # Already has the context of a nested value
                    raise
                _rethrow(err, tag, tag_offset)
        return (values, offset - start)

    def _decode_expression(self, offset: int, depth: int) -> tuple[expr.Expression, int]:
        part_count = read_int32(self.buf, offset)
        if part_count < 0:
            raise StructureError("expression has a negative part count", offset=offset, found=part_count)
        if depth >= self.max_depth:
            raise StructureError("expressions are nested deeper than {}".format(self.max_depth), offset=offset)
        # Head and parts in one go
        (values, size) = self.decode_sequence(offset + I32_SIZE, part_count + 1, depth + 1)
        if not values:
            raise StructureError("expression has no head", offset=offset, expected="{} values".format(part_count + 1), found=0)
        if len(values) < part_count + 1:
            self.log.warn("expression at offset {} declares {} parts but the data ends after {}".format(
                offset - 1, part_count, len(values) - 1), offset=offset - 1)
        head = values[0]
        if not isinstance(head, expr.Symbol):
            raise StructureError("expression head is not a Symbol", offset=offset + I32_SIZE,
                expected="Symbol", found=type(head).__name__)
        return (expr.Expression(head, values[1:]), I32_SIZE + size)

    def decode_matrix(self, offset: int = 0, depth: int = 0) -> tuple[expr.Expression, int]:
        """Real matrices have n dimensions, n sizes and size1*size2*... floats.
        The last size belongs to the innermost lists."""
        start = offset
        n = read_int32(self.buf, offset)
        offset += I32_SIZE
        if n < 0:
            raise StructureError("matrix has a negative dimension count", offset=start, found=n)
        if depth + n > self.max_depth:
            raise StructureError("matrix has more dimensions than nesting allows", offset=start,
                expected="at most {}".format(self.max_depth - depth), found=n)
        sizes = []
        for _ in range(n):
            sizes.append(read_int32(self.buf, offset))
            offset += I32_SIZE
        if n == 0:
            return (expr.Expression(LIST, ()), offset - start)
        self._check_matrix(sizes, start, offset)
        (matrix, size) = self._decode_matrix_level(offset, sizes, n - 1)
        offset += size
        return (matrix, offset - start)

    def _check_matrix(self, sizes: list[int], start: int, data_offset: int):
        for size in sizes:
            if size < 0:
                raise StructureError("matrix has a negative dimension size", offset=start, found=sizes)
        list_count = 1
        lists_at_level = 1
        for size in sizes[:-1]:
            lists_at_level *= size
            list_count += lists_at_level
        if list_count > self.max_matrix_lists:
            raise StructureError("matrix has too many rows", offset=start,
                expected="at most {} lists".format(self.max_matrix_lists), found=list_count)
        element_count = lists_at_level * sizes[-1]
        if element_count > self.max_matrix_elements:
            raise StructureError("matrix has too many elements", offset=start,
                expected="at most {}".format(self.max_matrix_elements), found=element_count)
        data_size = element_count * F64_SIZE
        remaining = max(len(self.buf) - data_offset, 0)
        if data_size > remaining:
            # Missing floats read as 0.0
            self.log.warn("matrix at offset {} is missing {} bytes of data".format(start, data_size - remaining),
                offset=start)

    def _decode_matrix_level(self, offset: int, sizes: list[int], level: int) -> tuple[expr.Expression, int]:
        start = offset
        parts = []
        if level == 0:
            for _ in range(sizes[-1]):
                parts.append(expr.RealMP(read_float64(self.buf, offset)))
                offset += F64_SIZE
        else:
            for _ in range(sizes[-level - 1]):
                (sub_list, size) = self._decode_matrix_level(offset, sizes, level - 1)
                parts.append(sub_list)
                offset += size
        return (expr.Expression(LIST, parts), offset - start)


def decode_sequence(buf, offset: int = 0, max_count: int = None, *, log: MessageLog = None, **limits) -> Decoded:
    dec = Decoder(buf, log=log, **limits)
    try:
        (values, bytes_read) = dec.decode_sequence(offset, max_count)
    except DecodeError as err:
        dec.log.error(str(err), offset=err.offset)
        raise
    return Decoded(values=values, bytes_read=bytes_read, messages=dec.log.messages)


def decode_matrix(buf, offset: int = 0, *, log: MessageLog = None, **limits) -> tuple[expr.Expression, int]:
    dec = Decoder(buf, log=log, **limits)
    try:
        return dec.decode_matrix(offset)
    except DecodeError as err:
        dec.log.error(str(err), offset=err.offset)
        raise
