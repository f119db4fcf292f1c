from dataclasses import dataclass, field
from warnings import warn


class DecodeWarning(UserWarning):
    pass


class DecodeError(Exception):
    """Fatal decode failure.

    offset is the absolute byte offset into the decompressed body (without the
    !boR header) where the problem was found, tag is the type signature that
    was being decoded. Both can be None when not known, e.g. when a value is
    constructed outside of the decoder.
    """

    def __init__(self, message: str, *args, offset: int = None, tag: str = None, expected=None, found=None):
        self.reason = message
        self.offset = offset
        self.tag = tag
        self.expected = expected
        self.found = found
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.offset is not None:
            where.append("at offset {}".format(self.offset))
        if self.tag is not None:
            where.append("(tag '{}')".format(self.tag))
        text = "Decode error"
        if where:
            text += " " + " ".join(where)
        text += ": " + self.reason
        if self.expected is not None:
            text += " (expected {}, found {})".format(self.expected, self.found)
        elif self.found is not None:
            text += " (found {})".format(self.found)
        return text


class StructureError(DecodeError):
    pass


class InvalidValueError(DecodeError):
    pass


@dataclass(frozen=True)
class Message:
    level: str
    text: str
    offset: int = None


@dataclass
class MessageLog:
    """Collects the diagnostics of a decode.

    Warnings are also issued through the warnings module so they show up
    when nobody is looking at the log."""
    messages: list[Message] = field(default_factory=list)

    def info(self, text: str, offset: int = None):
        self.messages.append(Message("info", text, offset))

    def warn(self, text: str, offset: int = None):
        self.messages.append(Message("warning", text, offset))
        warn("Mma warning: " + text, DecodeWarning, stacklevel=3)

    def error(self, text: str, offset: int = None):
        self.messages.append(Message("error", text, offset))

    @property
    def warnings(self) -> list[Message]:
        return [msg for msg in self.messages if msg.level == "warning"]
