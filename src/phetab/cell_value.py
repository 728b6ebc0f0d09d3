"""
Cell value model.

One observation cell of a curation table holds exactly one of five values:
observed, excluded, not ascertained ("na"), an onset age or a modifier.
Keywords are matched before the broader age patterns.
"""

import re
import typing

from dataclasses import dataclass
from enum import Enum

from .errors import MalformedCellError

# HPO onset classes accepted verbatim as onset text
ONSET_TERMS: dict[str, str] = {
    "Late onset": "HP:0003584",
    "Middle age onset": "HP:0003596",
    "Young adult onset": "HP:0011462",
    "Late young adult onset": "HP:0025710",
    "Intermediate young adult onset": "HP:0025709",
    "Early young adult onset": "HP:0025708",
    "Adult onset": "HP:0003581",
    "Juvenile onset": "HP:0003621",
    "Childhood onset": "HP:0011463",
    "Infantile onset": "HP:0003593",
    "Neonatal onset": "HP:0003623",
    "Congenital onset": "HP:0003577",
    "Antenatal onset": "HP:0030674",
    "Embryonal onset": "HP:0011460",
    "Fetal onset": "HP:0011461",
    "Late first trimester onset": "HP:0034199",
    "Second trimester onset": "HP:0034198",
    "Third trimester onset": "HP:0034197",
}

_ISO_AGE = re.compile(r"P(?:(\d+)Y)?(?:(\d+)M)?(?:(\d+)D)?")
_GESTATIONAL_AGE = re.compile(r"G(\d+)w([0-6])d")


class CellKind(Enum):
    OBSERVED = "Observed"
    EXCLUDED = "Excluded"
    NA = "Na"
    ONSET_AGE = "OnsetAge"
    MODIFIER = "Modifier"


_KEYWORDS = {
    "observed": CellKind.OBSERVED,
    "excluded": CellKind.EXCLUDED,
    "na": CellKind.NA,
}
_TEXT_KINDS = {CellKind.ONSET_AGE, CellKind.MODIFIER}


@dataclass(frozen=True)
class CellValue:
    """
    A tagged cell value. `text` is set for onset and modifier values only and
    is kept exactly as entered.
    """
    kind: CellKind
    text: typing.Optional[str] = None

    def __post_init__(self):
        if self.kind in _TEXT_KINDS:
            if not isinstance(self.text, str) or not self.text:
                raise ValueError(f"{self.kind.value} cell requires non-empty text")
        elif self.text is not None:
            raise ValueError(f"{self.kind.value} cell does not carry text, got {self.text!r}")

    @classmethod
    def parse(cls, text: str) -> "CellValue":
        if text in _KEYWORDS:
            return cls(_KEYWORDS[text])
        if is_age_text(text):
            return cls(CellKind.ONSET_AGE, text)
        if _is_modifier(text):
            return cls(CellKind.MODIFIER, text)
        raise MalformedCellError(text)

    def format(self) -> str:
        if self.kind in _TEXT_KINDS:
            return self.text
        return self.kind.value.lower()

    def __str__(self) -> str:
        return self.format()

    @property
    def is_observed(self) -> bool:
        return self.kind is CellKind.OBSERVED

    @property
    def is_excluded(self) -> bool:
        return self.kind is CellKind.EXCLUDED

    @property
    def is_na(self) -> bool:
        return self.kind is CellKind.NA


OBSERVED = CellValue(CellKind.OBSERVED)
EXCLUDED = CellValue(CellKind.EXCLUDED)
NA = CellValue(CellKind.NA)


def is_age_text(text: str) -> bool:
    """True for an onset label, an ISO-8601 Y/M/D duration or a gestational age."""
    return (
        text in ONSET_TERMS
        or _ISO_AGE.fullmatch(text) is not None
        or _GESTATIONAL_AGE.fullmatch(text) is not None
    )


def _is_modifier(text: str) -> bool:
    # no modifier vocabulary is recognized yet
    return False


def parse_gestational_age(text: str) -> typing.Optional[tuple[int, int]]:
    """Return (weeks, days) for a token such as `G22w3d`, else None."""
    m = _GESTATIONAL_AGE.fullmatch(text)
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2))


def onset_term_for_gestational_age(text: str) -> tuple[str, str]:
    """
    Map a gestational age token to the HPO onset class it falls in.

    Returns (term_id, label). Raises ValueError for text that is not a
    gestational age token.
    """
    parsed = parse_gestational_age(text)
    if parsed is None:
        raise ValueError(f"Not a gestational age: {text!r}")
    weeks, _ = parsed
    if weeks >= 28:
        label = "Third trimester onset"
    elif weeks >= 14:
        label = "Second trimester onset"
    elif weeks >= 11:
        label = "Late first trimester onset"
    else:
        label = "Embryonal onset"
    return ONSET_TERMS[label], label


def is_iso_age(text: str) -> bool:
    return _ISO_AGE.fullmatch(text) is not None
