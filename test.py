import base64
import struct
import unittest
import zlib
from decimal import Decimal
from fractions import Fraction
from mma_decompress import (
    IntegerMP, IntegerAP, RealMP, RealAP, Symbol, String, Expression, List,
    DecodeError, StructureError, InvalidValueError, DecodeWarning, MessageLog,
    Decoder, decode_sequence, decode_matrix, decompress, decompress_decode, to_python)
from mma_decompress.serialization import read_int32, read_float64, read_string_entry
from mma_decompress import util


def i32(n):
    return struct.pack("<l", n)


def f64(x):
    return struct.pack("<d", x)


def entry(tag, text):
    data = text.encode("latin-1")
    return tag + i32(len(data)) + data


def int_mp(n):
    return b"i" + i32(n)


def real_mp(x):
    return b"r" + f64(x)


def sym(name):
    return entry(b"s", name)


def func(head, *parts):
    return b"f" + i32(len(parts)) + sym(head) + b"".join(parts)


def matrix(sizes, values):
    return i32(len(sizes)) + b"".join(i32(s) for s in sizes) + b"".join(f64(v) for v in values)


def compress_text(body, header=b"!boR"):
    return "1:" + base64.b64encode(zlib.compress(header + body)).decode("ascii")


class TestPrimitives(unittest.TestCase):
    def test_read_int32(self):
        buf = b"\xff" + i32(-2) + i32(0x12345678)
        self.assertEqual(read_int32(buf, 1), -2)
        self.assertEqual(read_int32(buf, 5), 0x12345678)

    def test_read_int32_past_end(self):
        buf = b"\x01\x02\x03"
        self.assertEqual(read_int32(buf, 0), 0)
        self.assertEqual(read_int32(buf, 100), 0)
        self.assertEqual(read_int32(i32(5), -1), 0)

    def test_read_float64(self):
        buf = b"ab" + f64(1.5)
        self.assertEqual(read_float64(buf, 2), 1.5)
        self.assertEqual(read_float64(buf, 3), 0.0)

    def test_read_string_entry(self):
        buf = b"xx" + i32(5) + b"hello" + b"rest"
        se = read_string_entry(buf, 2)
        self.assertEqual(se.text, "hello")
        self.assertEqual(se.length, 5)
        self.assertEqual(se.bytes_read, 9)

    def test_read_string_entry_keeps_escapes(self):
        se = read_string_entry(i32(8) + b"\\[Alpha]")
        self.assertEqual(se.text, "\\[Alpha]")

    def test_read_string_entry_negative_length(self):
        with self.assertRaises(StructureError) as ctx:
            read_string_entry(b"\0\0" + i32(-4), 2)
        self.assertEqual(ctx.exception.offset, 2)


class TestValues(unittest.TestCase):
    def test_integer_ap(self):
        self.assertEqual(IntegerAP("0").digits, "0")
        self.assertEqual(IntegerAP("123").digits, "123")
        self.assertEqual(IntegerAP("-123").digits, "-123")

    def test_integer_ap_invalid(self):
        for digits in ["007", "", "12a", "1.5", "-0", "-", "--1"]:
            with self.assertRaises(InvalidValueError, msg=digits):
                IntegerAP(digits)

    def test_real_ap(self):
        self.assertEqual(RealAP("0.5`20.").text, "0.5`20.")
        self.assertEqual(RealAP("1.2345`30.*^-5").text, "1.2345`30.*^-5")
        with self.assertRaises(InvalidValueError):
            RealAP("007.5")
        with self.assertRaises(InvalidValueError):
            RealAP("")

    def test_integer_mp_range(self):
        IntegerMP(-(1 << 31))
        with self.assertRaises(InvalidValueError):
            IntegerMP(1 << 31)
        with self.assertRaises(InvalidValueError):
            IntegerMP(True)

    def test_expression_head_must_be_symbol(self):
        with self.assertRaises(InvalidValueError):
            Expression(String("f"), [])
        with self.assertRaises(InvalidValueError):
            Expression(Expression(Symbol("f"), []), [])

    def test_expression_parts_are_frozen(self):
        parts = [IntegerMP(1)]
        e = Expression(Symbol("f"), parts)
        parts.append(IntegerMP(2))
        self.assertEqual(e.parts, (IntegerMP(1), ))

    def test_structural_equality(self):
        self.assertEqual(List(RealMP(1.0)), Expression(Symbol("List"), [RealMP(1.0)]))
        self.assertNotEqual(Symbol("x"), String("x"))


class TestDecodeSequence(unittest.TestCase):
    def test_primitive_tags(self):
        buf = (int_mp(-7) + entry(b"I", "12345678901234567890") + real_mp(2.5)
            + entry(b"R", "3.14`20.") + sym("Pi") + entry(b"S", "hello"))
        result = decode_sequence(buf)
        self.assertEqual(result.values, [
            IntegerMP(-7),
            IntegerAP("12345678901234567890"),
            RealMP(2.5),
            RealAP("3.14`20."),
            Symbol("Pi"),
            String("hello")])
        self.assertEqual(result.bytes_read, len(buf))
        self.assertEqual(result.messages, [])

    def test_unknown_tag_is_skipped(self):
        buf = b"\x00" + int_mp(7)
        with self.assertWarns(DecodeWarning):
            result = decode_sequence(buf)
        self.assertEqual(result.values, [IntegerMP(7)])
        self.assertEqual(result.bytes_read, 6)
        self.assertEqual(len(result.messages), 1)
        self.assertEqual(result.messages[0].level, "warning")
        self.assertEqual(result.messages[0].offset, 0)

    def test_expression_without_parts(self):
        result = decode_sequence(b"f" + i32(0) + sym("List"))
        self.assertEqual(result.values, [Expression(Symbol("List"), [])])

    def test_nested_expression(self):
        buf = func("Plus", int_mp(1), func("Times", int_mp(2), sym("x")))
        result = decode_sequence(buf)
        self.assertEqual(result.values, [
            Expression(Symbol("Plus"), [
                IntegerMP(1),
                Expression(Symbol("Times"), [IntegerMP(2), Symbol("x")])])])
        self.assertEqual(result.bytes_read, len(buf))

    def test_part_count_bounds_expression(self):
        buf = func("g", int_mp(1)) + int_mp(2)
        result = decode_sequence(buf)
        self.assertEqual(result.values, [Expression(Symbol("g"), [IntegerMP(1)]), IntegerMP(2)])

    def test_max_count(self):
        buf = int_mp(1) + int_mp(2) + int_mp(3)
        result = decode_sequence(buf, 0, 2)
        self.assertEqual(result.values, [IntegerMP(1), IntegerMP(2)])
        self.assertEqual(result.bytes_read, 10)
        result = decode_sequence(buf, 5)
        self.assertEqual(result.values, [IntegerMP(2), IntegerMP(3)])

    def test_truncated_expression_is_partial(self):
        buf = b"f" + i32(3) + sym("g") + int_mp(1)
        with self.assertWarns(DecodeWarning):
            result = decode_sequence(buf)
        self.assertEqual(result.values, [Expression(Symbol("g"), [IntegerMP(1)])])

    def test_truncated_integer_defaults_to_zero(self):
        result = decode_sequence(b"i\x01\x02")
        self.assertEqual(result.values, [IntegerMP(0)])

    def test_head_must_be_symbol(self):
        buf = b"f" + i32(0) + int_mp(5)
        with self.assertRaises(StructureError) as ctx:
            decode_sequence(buf)
        self.assertEqual(ctx.exception.offset, 5)
        self.assertEqual(ctx.exception.tag, "f")
        self.assertEqual(ctx.exception.expected, "Symbol")
        self.assertEqual(ctx.exception.found, "IntegerMP")

    def test_expression_head_expression_is_rejected(self):
        buf = b"f" + i32(0) + func("Derivative", int_mp(1))
        with self.assertRaises(StructureError):
            decode_sequence(buf)

    def test_expression_without_head(self):
        with self.assertRaises(StructureError) as ctx:
            decode_sequence(b"f" + i32(0))
        self.assertEqual(ctx.exception.tag, "f")
        self.assertEqual(ctx.exception.offset, 1)

    def test_limits_are_keyword_only(self):
        with self.assertRaises(TypeError):
            decode_sequence(int_mp(1), 0, None, MessageLog())
        with self.assertRaises(TypeError):
            Decoder(int_mp(1), MessageLog())

    def test_fatal_error_is_logged(self):
        log = MessageLog()
        with self.assertRaises(StructureError):
            decode_sequence(int_mp(1) + b"f" + i32(-1), log=log)
        self.assertEqual(log.messages[-1].level, "error")
        self.assertEqual(log.messages[-1].offset, 6)

    def test_negative_part_count(self):
        with self.assertRaises(StructureError) as ctx:
            decode_sequence(b"f" + i32(-1) + sym("g"))
        self.assertEqual(ctx.exception.tag, "f")

    def test_invalid_value_has_context(self):
        buf = sym("x") + entry(b"I", "007")
        with self.assertRaises(InvalidValueError) as ctx:
            decode_sequence(buf)
        self.assertEqual(ctx.exception.offset, 6)
        self.assertEqual(ctx.exception.tag, "I")
        self.assertIn("offset 6", str(ctx.exception))

    def test_nested_error_keeps_inner_context(self):
        buf = func("g", entry(b"I", "01"))
        with self.assertRaises(InvalidValueError) as ctx:
            decode_sequence(buf)
        self.assertEqual(ctx.exception.tag, "I")
        self.assertEqual(ctx.exception.offset, 11)

    def test_depth_limit(self):
        buf = func("a", func("b", func("c")))
        self.assertEqual(len(decode_sequence(buf, max_depth=3).values), 1)
        with self.assertRaises(StructureError):
            decode_sequence(func("a", func("b", func("c", func("d")))), max_depth=3)

    def test_deep_nesting_fails_cleanly(self):
        buf = sym("x")
        for _ in range(Decoder.MAX_DEPTH + 1):
            buf = func("f", buf)
        with self.assertRaises(StructureError):
            decode_sequence(buf)

    def test_caller_supplied_log(self):
        log = MessageLog()
        with self.assertWarns(DecodeWarning):
            result = decode_sequence(b"?" + int_mp(1), log=log)
        self.assertIs(result.messages, log.messages)
        self.assertEqual(len(log.warnings), 1)

    def test_deterministic(self):
        buf = func("f", int_mp(1), real_mp(0.5), b"e" + matrix([2], [1.0, 2.0]), entry(b"S", "s"))
        self.assertEqual(decode_sequence(buf).values, decode_sequence(buf).values)


class TestDecodeMatrix(unittest.TestCase):
    def test_two_dimensions(self):
        buf = matrix([2, 3], [1, 2, 3, 4, 5, 6])
        (result, bytes_read) = decode_matrix(buf)
        self.assertEqual(result, List(
            List(RealMP(1.0), RealMP(2.0), RealMP(3.0)),
            List(RealMP(4.0), RealMP(5.0), RealMP(6.0))))
        self.assertEqual(bytes_read, len(buf))

    def test_one_dimension(self):
        (result, bytes_read) = decode_matrix(matrix([2], [0.5, -0.5]))
        self.assertEqual(result, List(RealMP(0.5), RealMP(-0.5)))
        self.assertEqual(bytes_read, 24)

    def test_shape_follows_sizes(self):
        (result, _) = decode_matrix(matrix([2, 1, 3], range(6)))
        self.assertEqual(len(result.parts), 2)
        self.assertEqual(len(result.parts[0].parts), 1)
        self.assertEqual(len(result.parts[0].parts[0].parts), 3)
        self.assertEqual(result.parts[1].parts[0].parts[2], RealMP(5.0))

    def test_empty_dimension(self):
        (result, bytes_read) = decode_matrix(matrix([3, 0], []))
        self.assertEqual(result, List(List(), List(), List()))
        self.assertEqual(bytes_read, 12)

    def test_inside_expression(self):
        buf = func("f", b"e" + matrix([1, 2], [1, 2]), int_mp(9))
        result = decode_sequence(buf)
        self.assertEqual(result.values, [Expression(Symbol("f"), [
            List(List(RealMP(1.0), RealMP(2.0))),
            IntegerMP(9)])])
        self.assertEqual(result.bytes_read, len(buf))

    def test_negative_size(self):
        with self.assertRaises(StructureError):
            decode_matrix(matrix([2, -1], []))

    def test_data_past_end(self):
        buf = b"e" + matrix([2], [1.0]) + b"\0\0"
        with self.assertWarns(DecodeWarning):
            result = decode_sequence(buf)
        self.assertEqual(result.values, [List(RealMP(1.0), RealMP(0.0))])
        self.assertEqual(result.bytes_read, 25)
        self.assertEqual(len(result.messages), 1)
        self.assertEqual(result.messages[0].offset, 1)
        self.assertIn("missing 6 bytes", result.messages[0].text)

    def test_truncated_matrix_inside_expression(self):
        buf = func("g", b"e" + matrix([2], [1.0]))
        with self.assertWarns(DecodeWarning):
            result = decode_sequence(buf)
        self.assertEqual(result.values, [Expression(Symbol("g"), [List(RealMP(1.0), RealMP(0.0))])])

    def test_too_many_elements(self):
        with self.assertRaises(StructureError) as ctx:
            decode_sequence(b"e" + matrix([1000, 1000], [1.0]), max_matrix_elements=1000)
        self.assertEqual(ctx.exception.tag, "e")
        self.assertEqual(ctx.exception.offset, 1)

    def test_too_many_lists(self):
        with self.assertRaises(StructureError):
            decode_matrix(matrix([100, 100, 0], []), max_matrix_lists=1000)

    def test_zero_dimensions(self):
        self.assertEqual(decode_matrix(i32(0)), (List(), 4))
        result = decode_sequence(b"e" + i32(0) + int_mp(3))
        self.assertEqual(result.values, [List(), IntegerMP(3)])
        self.assertEqual(result.bytes_read, 10)

    def test_dimensions_count_against_depth(self):
        buf = func("g", b"e" + matrix([1, 1, 1], [1.0]))
        self.assertEqual(len(decode_sequence(buf, max_depth=4).values), 1)
        with self.assertRaises(StructureError) as ctx:
            decode_sequence(buf, max_depth=3)
        self.assertEqual(ctx.exception.tag, "e")
        self.assertEqual(ctx.exception.offset, 12)


class TestDecompress(unittest.TestCase):
    def test_decompress(self):
        self.assertEqual(decompress(compress_text(int_mp(1))), int_mp(1))

    def test_paste_artifacts(self):
        text = compress_text(func("f", int_mp(1), entry(b"S", "text")))
        pasted = "  \"" + text[:6] + "\\\n\\\n" + text[6:] + "\"\n"
        result = decompress_decode(pasted)
        self.assertEqual(result.values, [Expression(Symbol("f"), [IntegerMP(1), String("text")])])

    def test_missing_padding(self):
        text = compress_text(sym("abc")).rstrip("=")
        self.assertEqual(decompress_decode(text).values, [Symbol("abc")])

    def test_unknown_header(self):
        text = compress_text(int_mp(3), header=b"XXXX")
        with self.assertWarns(DecodeWarning):
            result = decompress_decode(text)
        self.assertEqual(result.values, [IntegerMP(3)])
        self.assertEqual(result.messages[0].level, "warning")

    def test_invalid_base64(self):
        with self.assertRaises(DecodeError):
            decompress("1:@@@@")
        with self.assertRaises(DecodeError):
            decompress("1:abcde")

    def test_invalid_input_is_logged(self):
        log = MessageLog()
        with self.assertRaises(DecodeError):
            decompress_decode("1:@@@@", log=log)
        self.assertEqual([msg.level for msg in log.messages], ["error"])

    def test_invalid_deflate_data(self):
        with self.assertRaises(DecodeError):
            decompress("1:" + base64.b64encode(b"not zlib data").decode("ascii"))

    def test_delete_chars(self):
        self.assertEqual(util.delete_chars("a\\\\\"\n\nb", "\\\n\""), "ab")


class TestConvert(unittest.TestCase):
    def test_matrix_to_lists(self):
        (result, _) = decode_matrix(matrix([2, 3], [1, 2, 3, 4, 5, 6]))
        self.assertEqual(to_python(result), [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])

    def test_numbers(self):
        self.assertEqual(to_python(IntegerAP("123456789012345678901234567890")), 123456789012345678901234567890)
        self.assertEqual(to_python(RealAP("1.5`20.*^3")), Decimal("1500"))
        self.assertEqual(to_python(Expression(Symbol("Rational"), [IntegerMP(1), IntegerMP(3)])), Fraction(1, 3))
        self.assertEqual(to_python(Expression(Symbol("Complex"), [RealMP(1.0), RealMP(2.0)])), complex(1, 2))

    def test_symbols(self):
        self.assertIs(to_python(Symbol("True")), True)
        self.assertIsNone(to_python(Symbol("Null")))
        self.assertEqual(to_python(Symbol("x")), Symbol("x"))
        e = Expression(Symbol("f"), [IntegerMP(1)])
        self.assertEqual(to_python(e), e)
        self.assertEqual(to_python(String("s")), "s")


if __name__ == '__main__':
    unittest.main()
