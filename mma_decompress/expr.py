"""The seven core types needed to represent decoded expressions.

- IntegerMP is a machine-precision (32-bit) integer.
- IntegerAP is an arbitrary-precision integer stored as a digit string.
- RealMP is a machine-precision (64-bit) IEEE 754 float.
- RealAP is an arbitrary-precision real stored as a formatted string.
- Symbol is an atomic, immutable name.
- String is text with the format's own escapes for non-ASCII left in.
- Expression is a container that has a Symbol head and 0 or more parts.
"""
from dataclasses import dataclass, field
from .diagnostics import InvalidValueError


INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1


def _leading_digits(text: str) -> str:
    if text.startswith("-"):
        text = text[1:]
    end = 0
    while end < len(text) and text[end] in "0123456789":
        end += 1
    return text[:end]


class Value:
    pass


@dataclass(frozen=True)
class IntegerMP(Value):
    n: int

    def __post_init__(self):
        if type(self.n) is not int:
            raise InvalidValueError("IntegerMP: invalid input", found=repr(self.n))
        if not INT32_MIN <= self.n <= INT32_MAX:
            raise InvalidValueError("IntegerMP: input out of 32-bit range", found=self.n)


@dataclass(frozen=True)
class IntegerAP(Value):
    digits: str

    def __post_init__(self):
        if type(self.digits) is not str:
            raise InvalidValueError("IntegerAP: invalid input", found=repr(self.digits))
        unsigned = self.digits[1:] if self.digits.startswith("-") else self.digits
        if not unsigned or not all(ch in "0123456789" for ch in unsigned):
            raise InvalidValueError("IntegerAP: invalid input, contains non-digit", found=repr(self.digits))
        if len(unsigned) > 1 and unsigned[0] == "0":
            raise InvalidValueError("IntegerAP: input starts with 0", found=repr(self.digits))
        if unsigned == "0" and self.digits != "0":
            raise InvalidValueError("IntegerAP: negative zero", found=repr(self.digits))

    def __int__(self):
        return int(self.digits)


@dataclass(frozen=True)
class RealMP(Value):
    n: float

    def __post_init__(self):
        if type(self.n) is int:
            object.__setattr__(self, "n", float(self.n))
        elif type(self.n) is not float:
            raise InvalidValueError("RealMP: invalid input", found=repr(self.n))


@dataclass(frozen=True)
class RealAP(Value):
    text: str

    def __post_init__(self):
        if type(self.text) is not str or not self.text:
            raise InvalidValueError("RealAP: invalid input", found=repr(self.text))
        digits = _leading_digits(self.text)
        if len(digits) > 1 and digits[0] == "0":
            raise InvalidValueError("RealAP: input starts with 0", found=repr(self.text))


@dataclass(frozen=True)
class Symbol(Value):
    name: str

    def __post_init__(self):
        if type(self.name) is not str:
            raise InvalidValueError("Symbol: invalid input", found=repr(self.name))


@dataclass(frozen=True)
class String(Value):
    text: str

    def __post_init__(self):
        if type(self.text) is not str:
            raise InvalidValueError("String: invalid input", found=repr(self.text))


@dataclass(frozen=True)
class Expression(Value):
    head: Symbol
    parts: tuple[Value, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.head, Symbol):
            raise InvalidValueError("Expression: head must be a Symbol", expected="Symbol", found=type(self.head).__name__)
        if type(self.parts) is list:
            # Frozen, so go around __setattr__
            object.__setattr__(self, "parts", tuple(self.parts))
        elif type(self.parts) is not tuple:
            raise InvalidValueError("Expression: parts must be a list or tuple", found=type(self.parts).__name__)
        for part in self.parts:
            if not isinstance(part, Value):
                raise InvalidValueError("Expression: part is not a Value", found=type(part).__name__)

    def has_head(self, name: str) -> bool:
        return self.head.name == name


def List(*parts) -> Expression:
    return Expression(Symbol("List"), parts)
