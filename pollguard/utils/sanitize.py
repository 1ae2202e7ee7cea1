import re

_ANGLE_BRACKETS_RE = re.compile(r"[<>]")


def sanitize(text: str) -> str:
    """
    Trim surrounding whitespace and drop the characters `<` and `>`.

    This only defuses tag injection in plain-text fields. It is not an HTML
    sanitizer and does not escape quotes or ampersands; templates must still
    autoescape on output.
    """
    # Strip again after removal: "< x" would otherwise leave a leading space
    return _ANGLE_BRACKETS_RE.sub("", text.strip()).strip()
