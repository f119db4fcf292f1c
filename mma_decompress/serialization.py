from dataclasses import dataclass
from struct import unpack_from, calcsize, error as StructError
from .diagnostics import StructureError


class Numeric:
    """Contains numeric types"""
    type_formats = {
        # name: structlib format
        "I32": "<l",
        "F64": "<d",
    }

    @staticmethod
    def format_of_type(name: str) -> str:
        """Returns the structlib format of the given type"""
        return Numeric.type_formats.get(name)

    @staticmethod
    def size_of_format(fmt: str) -> int:
        return calcsize(fmt)


I32_FORMAT = Numeric.format_of_type("I32")
F64_FORMAT = Numeric.format_of_type("F64")
I32_SIZE = Numeric.size_of_format(I32_FORMAT)
F64_SIZE = Numeric.size_of_format(F64_FORMAT)


def _read(fmt: str, buf, offset: int, default):
    if offset < 0:
        return default
    try:
        (value, ) = unpack_from(fmt, buf, offset)
    except StructError:
        # Reads past the end of the buffer are not fatal
        return default
    return value


def read_int32(buf, offset: int) -> int:
    return _read(I32_FORMAT, buf, offset, 0)


def read_float64(buf, offset: int) -> float:
    return _read(F64_FORMAT, buf, offset, 0.0)


def read_string(buf, offset: int = 0, length: int = None) -> str:
    """Backslash escapes for non-ASCII characters are left as they are"""
    if length is None:
        length = len(buf) - offset
    return bytes(buf[offset:offset + length]).decode("latin-1")


@dataclass(frozen=True)
class StringEntry:
    length: int
    text: str
    bytes_read: int


def read_string_entry(buf, offset: int = 0) -> StringEntry:
    """Reads a string entry: int32 length followed by that many bytes"""
    length = read_int32(buf, offset)
    if length < 0:
        raise StructureError("string entry has negative length", offset=offset, found=length)
    text = read_string(buf, offset + I32_SIZE, length)
    return StringEntry(length=length, text=text, bytes_read=length + I32_SIZE)
