"""
Column schema (header duplet) framework.

A curation table starts with two header rows. Each column is described by a
pair of header strings, the duplet (display label, type marker), and by a
rule that every cell in that column must satisfy. The Mendelian template
has sixteen fixed columns, a separator column (`HPO`/`na`) and then one
column per HPO concept, headed by (concept label, concept id).
"""

import re
import typing

from dataclasses import dataclass, field
from enum import Enum

from stairval.notepad import Notepad, create_notepad

from .cell_value import CellValue, is_age_text
from .errors import CellError, HeaderError, TableValidationError

_CONCEPT_ID = re.compile(r"HP:\d{7}")
_FORBIDDEN_ID_CHARS = set("/\\().")

# c.<position><remainder>, remainder is checked against the patterns below
_HGVS_C = re.compile(r"c\.([\d_]+)(.*)")
_HGVS_SUBSTITUTION = re.compile(r"[ACGT]+>[ACGT]+")
_HGVS_INSERTION = re.compile(r"ins[ACGT]+")
_HGVS_DELINS = re.compile(r"c\.\d+_\d+delins[A-Za-z0-9]+")
STRUCTURAL_PREFIXES = {"DEL", "DUP", "INV", "INS", "TRANSL"}
TRANSCRIPT_PREFIXES = ("ENST", "NM_")

DECEASED_VALUES = {"yes", "no", "na"}
SEX_VALUES = {"M", "F", "O", "U"}


class ColumnGroup(Enum):
    IDENTITY = "identity"
    DISEASE = "disease"
    GENE_VARIANT = "gene/variant"
    DEMOGRAPHIC = "demographic"
    SEPARATOR = "separator"
    CONCEPT = "concept"


class ColumnKind(Enum):
    PMID = ("PMID", ColumnGroup.IDENTITY)
    TITLE = ("title", ColumnGroup.IDENTITY)
    INDIVIDUAL_ID = ("individual_id", ColumnGroup.IDENTITY)
    COMMENT = ("comment", ColumnGroup.IDENTITY)
    DISEASE_ID = ("disease_id", ColumnGroup.DISEASE)
    DISEASE_LABEL = ("disease_label", ColumnGroup.DISEASE)
    HGNC_ID = ("HGNC_id", ColumnGroup.GENE_VARIANT)
    GENE_SYMBOL = ("gene_symbol", ColumnGroup.GENE_VARIANT)
    TRANSCRIPT = ("transcript", ColumnGroup.GENE_VARIANT)
    ALLELE_1 = ("allele_1", ColumnGroup.GENE_VARIANT)
    ALLELE_2 = ("allele_2", ColumnGroup.GENE_VARIANT)
    VARIANT_COMMENT = ("variant.comment", ColumnGroup.GENE_VARIANT)
    AGE_OF_ONSET = ("age_of_onset", ColumnGroup.DEMOGRAPHIC)
    AGE_AT_LAST_ENCOUNTER = ("age_at_last_encounter", ColumnGroup.DEMOGRAPHIC)
    DECEASED = ("deceased", ColumnGroup.DEMOGRAPHIC)
    SEX = ("sex", ColumnGroup.DEMOGRAPHIC)
    SEPARATOR = ("HPO", ColumnGroup.SEPARATOR)
    CONCEPT = ("concept", ColumnGroup.CONCEPT)

    @property
    def group(self) -> ColumnGroup:
        return self.value[1]


@dataclass(frozen=True)
class ConceptRef:
    """
    An HPO concept used as a column header.
    Equality and hashing use the id only, so a stale label still finds its column.
    """
    concept_id: str
    label: str = field(compare=False)

    def __str__(self) -> str:
        return f"{self.label} ({self.concept_id})"


# ---------------------------------------------------------------------------
# Cell rules. Each raises CellError on a bad value.
# ---------------------------------------------------------------------------

def _check_trimmed(text: str) -> None:
    if not text:
        raise CellError("Value must not be empty")
    if text != text.strip():
        raise CellError(f"Leading or trailing whitespace in {text!r}")
    if "  " in text:
        raise CellError(f"Consecutive spaces in {text!r}")


def _check_curie(text: str) -> tuple[str, str]:
    if not text:
        raise CellError("Empty CURIE")
    if ":" not in text:
        raise CellError(f"Invalid CURIE with no colon: {text!r}")
    if text.count(":") > 1:
        raise CellError(f"Invalid CURIE with multiple colons: {text!r}")
    if any(c.isspace() for c in text):
        raise CellError(f"Invalid CURIE with whitespace: {text!r}")
    prefix, suffix = text.split(":")
    if not prefix:
        raise CellError(f"Invalid CURIE with no prefix: {text!r}")
    if not suffix:
        raise CellError(f"Invalid CURIE with no suffix: {text!r}")
    if not suffix.isdigit():
        raise CellError(f"Invalid CURIE with non-numeric suffix: {text!r}")
    return prefix, suffix


def _check_pmid(text: str) -> None:
    prefix, _ = _check_curie(text)
    if prefix != "PMID":
        raise CellError(f"Invalid PMID prefix: {text!r}")


def _check_identifier(text: str) -> None:
    _check_trimmed(text)
    bad = sorted(_FORBIDDEN_ID_CHARS.intersection(text))
    if bad:
        raise CellError(f"Forbidden character(s) {''.join(bad)!r} in {text!r}")


def _check_optional_text(text: str) -> None:
    if "\t" in text:
        raise CellError(f"Tab character in {text!r}")
    if text != text.strip():
        raise CellError(f"Leading or trailing whitespace in {text!r}")


def _check_disease_id(text: str) -> None:
    prefix, suffix = _check_curie(text)
    if prefix == "OMIM":
        if len(suffix) != 6:
            raise CellError(f"OMIM identifiers must have six digits: {text!r}")
    elif prefix != "MONDO":
        raise CellError(f"Disease id must be an OMIM or MONDO CURIE: {text!r}")


def _check_hgnc_id(text: str) -> None:
    prefix, _ = _check_curie(text)
    if prefix != "HGNC":
        raise CellError(f"Invalid HGNC id: {text!r}")


def _check_gene_symbol(text: str) -> None:
    _check_trimmed(text)
    if " " in text:
        raise CellError(f"Gene symbol must not contain whitespace: {text!r}")


def _check_transcript(text: str) -> None:
    if not text.startswith(TRANSCRIPT_PREFIXES):
        raise CellError(f"Unrecognized transcript prefix {text!r}")
    _, dot, version = text.rpartition(".")
    if not dot or not version.isdigit():
        raise CellError(f"Transcript {text!r} is missing a version")


def check_hgvs(text: str) -> None:
    m = _HGVS_C.fullmatch(text)
    if m is None:
        raise CellError(f"Malformed HGVS: {text!r}")
    remainder = m.group(2)
    if (
        _HGVS_SUBSTITUTION.fullmatch(remainder)
        or _HGVS_INSERTION.fullmatch(remainder)
        or remainder == "del"
        or _HGVS_DELINS.fullmatch(text)
    ):
        return
    raise CellError(f"Malformed HGVS: {text!r}")


def _check_allele(text: str) -> None:
    _check_trimmed(text)
    if text.startswith("c."):
        check_hgvs(text)
        return
    prefix, colon, rest = text.partition(":")
    if not colon or prefix not in STRUCTURAL_PREFIXES or not rest.strip():
        raise CellError(f"Malformed allele {text!r}")


def _check_second_allele(text: str) -> None:
    if text != "na":
        _check_allele(text)


def _check_age(text: str) -> None:
    if text != "na" and not is_age_text(text):
        raise CellError(f"Malformed age {text!r}")


def _check_deceased(text: str) -> None:
    if text not in DECEASED_VALUES:
        raise CellError(f"Malformed deceased entry {text!r}, expected one of yes/no/na")


def _check_sex(text: str) -> None:
    if text not in SEX_VALUES:
        raise CellError(f"Malformed sex entry {text!r}, expected one of M/F/O/U")


def _check_separator(text: str) -> None:
    if text != "na":
        raise CellError(f"Separator column must contain 'na', found {text!r}")


def _check_concept_cell(text: str) -> None:
    CellValue.parse(text)


_CELL_RULES: dict[ColumnKind, typing.Callable[[str], None]] = {
    ColumnKind.PMID: _check_pmid,
    ColumnKind.TITLE: _check_trimmed,
    ColumnKind.INDIVIDUAL_ID: _check_identifier,
    ColumnKind.COMMENT: _check_optional_text,
    ColumnKind.DISEASE_ID: _check_disease_id,
    ColumnKind.DISEASE_LABEL: _check_trimmed,
    ColumnKind.HGNC_ID: _check_hgnc_id,
    ColumnKind.GENE_SYMBOL: _check_gene_symbol,
    ColumnKind.TRANSCRIPT: _check_transcript,
    ColumnKind.ALLELE_1: _check_allele,
    ColumnKind.ALLELE_2: _check_second_allele,
    ColumnKind.VARIANT_COMMENT: _check_optional_text,
    ColumnKind.AGE_OF_ONSET: _check_age,
    ColumnKind.AGE_AT_LAST_ENCOUNTER: _check_age,
    ColumnKind.DECEASED: _check_deceased,
    ColumnKind.SEX: _check_sex,
    ColumnKind.SEPARATOR: _check_separator,
    ColumnKind.CONCEPT: _check_concept_cell,
}


@dataclass(frozen=True)
class HeaderDuplet:
    label: str
    marker: str
    kind: ColumnKind

    @classmethod
    def for_concept(cls, concept: ConceptRef) -> "HeaderDuplet":
        return cls(concept.label, concept.concept_id, ColumnKind.CONCEPT)

    def expected_header(self) -> tuple[str, str]:
        return self.label, self.marker

    def validate_header(self, observed: tuple[str, str], position: int) -> None:
        """
        Fixed columns need an exact match on both strings. Concept columns are
        checked structurally: a trimmed label and an `HP:nnnnnnn` id.
        """
        if self.kind is ColumnKind.CONCEPT:
            _validate_concept_header(observed, position)
        elif tuple(observed) != self.expected_header():
            raise HeaderError(position, repr(self.expected_header()), repr(tuple(observed)))

    def validate_cell(self, text: str) -> None:
        _CELL_RULES[self.kind](text)

    def as_concept(self) -> ConceptRef:
        if self.kind is not ColumnKind.CONCEPT:
            raise ValueError(f"{self.label!r} is not a concept column")
        return ConceptRef(self.marker, self.label)


def _validate_concept_header(observed: tuple[str, str], position: int) -> None:
    label, concept_id = observed
    if not label or label != label.strip():
        raise HeaderError(
            position, "HPO label without flanking whitespace", repr(label),
            f"Column {position}: malformed HPO label {label!r}",
        )
    if _CONCEPT_ID.fullmatch(concept_id) is None:
        raise HeaderError(
            position, "HPO id of the form HP:nnnnnnn", repr(concept_id),
            f"Column {position}: malformed HPO id {concept_id!r} for {label!r}",
        )


MENDELIAN_FIXED_DUPLETS: tuple[HeaderDuplet, ...] = (
    HeaderDuplet("PMID", "CURIE", ColumnKind.PMID),
    HeaderDuplet("title", "str", ColumnKind.TITLE),
    HeaderDuplet("individual_id", "str", ColumnKind.INDIVIDUAL_ID),
    HeaderDuplet("comment", "optional", ColumnKind.COMMENT),
    HeaderDuplet("disease_id", "CURIE", ColumnKind.DISEASE_ID),
    HeaderDuplet("disease_label", "str", ColumnKind.DISEASE_LABEL),
    HeaderDuplet("HGNC_id", "CURIE", ColumnKind.HGNC_ID),
    HeaderDuplet("gene_symbol", "str", ColumnKind.GENE_SYMBOL),
    HeaderDuplet("transcript", "str", ColumnKind.TRANSCRIPT),
    HeaderDuplet("allele_1", "str", ColumnKind.ALLELE_1),
    HeaderDuplet("allele_2", "str", ColumnKind.ALLELE_2),
    HeaderDuplet("variant.comment", "optional", ColumnKind.VARIANT_COMMENT),
    HeaderDuplet("age_of_onset", "age", ColumnKind.AGE_OF_ONSET),
    HeaderDuplet("age_at_last_encounter", "age", ColumnKind.AGE_AT_LAST_ENCOUNTER),
    HeaderDuplet("deceased", "yes/no/na", ColumnKind.DECEASED),
    HeaderDuplet("sex", "M:F:O:U", ColumnKind.SEX),
)
SEPARATOR_DUPLET = HeaderDuplet("HPO", "na", ColumnKind.SEPARATOR)
CONCEPT_OFFSET = len(MENDELIAN_FIXED_DUPLETS) + 1


@dataclass
class TableSchema:
    """Fixed Mendelian block, the separator, then the concept columns in order."""
    concepts: list[ConceptRef] = field(default_factory=list)

    @property
    def width(self) -> int:
        return CONCEPT_OFFSET + len(self.concepts)

    def duplets(self) -> list[HeaderDuplet]:
        return [
            *MENDELIAN_FIXED_DUPLETS,
            SEPARATOR_DUPLET,
            *(HeaderDuplet.for_concept(c) for c in self.concepts),
        ]

    def header_rows(self) -> tuple[list[str], list[str]]:
        duplets = self.duplets()
        return [d.label for d in duplets], [d.marker for d in duplets]

    def index_of(self, concept_id: str) -> int:
        for i, concept in enumerate(self.concepts):
            if concept.concept_id == concept_id:
                return i
        raise KeyError(concept_id)

    def __contains__(self, concept_id: str) -> bool:
        return any(c.concept_id == concept_id for c in self.concepts)

    @classmethod
    def from_header_rows(cls, row1: typing.Sequence[str], row2: typing.Sequence[str]) -> "TableSchema":
        """Build a schema, raising one TableValidationError that lists every bad column."""
        notepad = create_notepad("header")
        concepts = validate_header_rows(row1, row2, notepad)
        if notepad.has_errors(include_subsections=True):
            raise TableValidationError([e.message for e in notepad.errors()])
        return cls(concepts)


def validate_header_rows(
        row1: typing.Sequence[str], row2: typing.Sequence[str], notepad: Notepad
) -> list[ConceptRef]:
    """Check both header rows position by position, adding one error per bad column."""
    if len(row1) != len(row2):
        notepad.add_error(f"Header rows differ in length: {len(row1)} vs {len(row2)}")
        return []
    if len(row1) < CONCEPT_OFFSET:
        notepad.add_error(
            f"Template needs at least {CONCEPT_OFFSET} columns but the header has {len(row1)}"
        )
        return []

    for position, duplet in enumerate(MENDELIAN_FIXED_DUPLETS):
        try:
            duplet.validate_header((row1[position], row2[position]), position)
        except HeaderError as e:
            notepad.add_error(str(e))

    sep = CONCEPT_OFFSET - 1
    observed = (row1[sep], row2[sep])
    if observed != SEPARATOR_DUPLET.expected_header():
        e = HeaderError(
            sep, repr(SEPARATOR_DUPLET.expected_header()), repr(observed),
            f"Column {sep}: Malformed HPO (separator) Header: Expected 'HPO'/'na' but got {row1[sep]!r}/{row2[sep]!r}",
        )
        notepad.add_error(str(e))

    concepts: list[ConceptRef] = []
    seen: dict[str, int] = {}
    for position in range(CONCEPT_OFFSET, len(row1)):
        observed = (row1[position], row2[position])
        try:
            _validate_concept_header(observed, position)
        except HeaderError as e:
            notepad.add_error(str(e))
            continue
        concept = ConceptRef(observed[1], observed[0])
        if concept.concept_id in seen:
            notepad.add_error(
                f"Column {position}: duplicate HPO column {concept.concept_id}, "
                f"first seen in column {seen[concept.concept_id]}"
            )
            continue
        seen[concept.concept_id] = position
        concepts.append(concept)
    return concepts
