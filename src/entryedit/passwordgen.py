"""Password generation and clipboard access for the entry form."""

import secrets
import string
from dataclasses import dataclass

import pyperclip

SYMBOLS = "!@#$%^&*()-_=+[]{};:,.?/"
DEFAULT_LEN = 16
MAX_LEN = 128


@dataclass
class GenOptions:
    length: int = DEFAULT_LEN
    lower: bool = True
    upper: bool = True
    digits: bool = True
    symbols: bool = False

    def character_classes(self) -> list:
        classes = []
        if self.lower:
            classes.append(string.ascii_lowercase)
        if self.upper:
            classes.append(string.ascii_uppercase)
        if self.digits:
            classes.append(string.digits)
        if self.symbols:
            classes.append(SYMBOLS)
        return classes


def generate_password(opts: GenOptions) -> str:
    """Generate a password holding at least one character of each enabled class.

    Raises:
        ValueError: If no class is enabled or the length cannot fit them
    """
    classes = opts.character_classes()
    if not classes:
        raise ValueError("No character classes selected (lower/upper/digits/symbols).")
    if opts.length > MAX_LEN:
        raise ValueError(
            f"Password length ({opts.length}) exceeds maximum allowed length ({MAX_LEN})."
        )
    if opts.length < len(classes):
        raise ValueError(
            f"Password length ({opts.length}) must be at least {len(classes)} "
            f"to include every enabled character class."
        )

    alphabet = "".join(classes)
    chars = [secrets.choice(charset) for charset in classes]
    chars += [secrets.choice(alphabet) for _ in range(opts.length - len(chars))]

    # Fisher-Yates so the guaranteed characters are not always first
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)


def copy_to_clipboard(text: str) -> bool:
    """Copy text to the clipboard. Returns False when no clipboard is available."""
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException:
        return False
    return True
