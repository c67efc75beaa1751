import re

HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}){1,2}$"

_TAG = re.compile(r"<[^>]*>")


def sanitize_string(value):
    """Drop HTML tags and surrounding whitespace from free-text input.

    Non-string values pass through so pydantic can report type errors itself.
    """
    if isinstance(value, str):
        return _TAG.sub("", value).strip()
    return value
