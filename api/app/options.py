from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .errors import StudioValidationError
from .presets import CUSTOM_OPTION_VALUE


@dataclass(frozen=True)
class Fixed:
    text: str

    def resolve(self, field: str) -> str:
        return self.text


@dataclass(frozen=True)
class Custom:
    """User-typed option; only usable once the text is non-empty."""

    text: str

    def resolve(self, field: str) -> str:
        value = self.text.strip()
        if not value:
            raise StudioValidationError(f"Please enter a custom {field} description.")
        return value


OptionValue = Union[Fixed, Custom]


def choose(
    selection: Optional[str],
    custom_text: Optional[str],
    choices: Sequence[str],
    *,
    field: str,
    default: Optional[str] = None,
) -> OptionValue:
    """Map a form selection onto a tagged option value.

    The custom sentinel selects the free-text branch; anything else must be one
    of the enumerated ``choices``.
    """
    if selection == CUSTOM_OPTION_VALUE:
        return Custom(custom_text or "")
    if not selection:
        selection = default if default is not None else choices[0]
    if selection not in choices:
        raise StudioValidationError(f"Unknown {field} option: {selection}")
    return Fixed(selection)
