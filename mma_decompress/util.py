def bytes_to_string(b) -> str:
    return bytes(b).decode("latin-1").rstrip("\0")


def delete_chars(s: str, chars: str) -> str:
    """Removes every occurrence of the given characters"""
    return "".join(ch for ch in s if ch not in chars)
