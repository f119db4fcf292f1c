from decimal import Decimal, InvalidOperation
from fractions import Fraction
from . import expr
from .diagnostics import InvalidValueError


CONSTANTS = {
    "True": True,
    "False": False,
    "Null": None,
}


def real_ap_to_decimal(value: expr.RealAP) -> Decimal:
    """Parses the InputForm of an arbitrary-precision real,
    e.g. 1.2345`20.*^-7, ignoring the precision mark"""
    text = value.text
    exponent = 0
    if "*^" in text:
        (text, exp_text) = text.split("*^", 1)
        exponent = int(exp_text)
    text = text.split("`", 1)[0]
    try:
        mantissa = Decimal(text)
    except InvalidOperation as err:
        raise InvalidValueError("RealAP: cannot convert to a number", found=repr(value.text)) from err
    return mantissa.scaleb(exponent)


def to_python(value: expr.Value):
    """Converts a decoded value to native Python values where there is an
    obvious counterpart. List becomes list, Rational becomes Fraction,
    Complex becomes complex. Other symbols and expressions are returned
    as they are."""
    if isinstance(value, (expr.IntegerMP, expr.RealMP)):
        return value.n
    if isinstance(value, expr.IntegerAP):
        return int(value.digits)
    if isinstance(value, expr.RealAP):
        return real_ap_to_decimal(value)
    if isinstance(value, expr.String):
        return value.text
    if isinstance(value, expr.Symbol):
        if value.name in CONSTANTS:
            return CONSTANTS[value.name]
        return value
    if isinstance(value, expr.Expression):
        parts = [to_python(part) for part in value.parts]
        if value.has_head("List"):
            return parts
        if value.has_head("Rational") and len(parts) == 2 and all(type(p) is int for p in parts):
            return Fraction(parts[0], parts[1])
        if value.has_head("Complex") and len(parts) == 2 and all(type(p) in (int, float) for p in parts):
            return complex(parts[0], parts[1])
        return value
    raise TypeError("Cannot convert {} to a Python value".format(type(value).__name__))
