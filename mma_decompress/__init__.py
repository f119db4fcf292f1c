from .expr import Value, IntegerMP, IntegerAP, RealMP, RealAP, Symbol, String, Expression, List
from .diagnostics import DecodeError, StructureError, InvalidValueError, DecodeWarning, Message, MessageLog
from .bor import Decoder, Decoded, Tag, decode_sequence, decode_matrix
from .compress import decompress, decompress_decode
from .convert import to_python
