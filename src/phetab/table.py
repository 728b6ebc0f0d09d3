"""
Annotation table domain model.

A table couples a `TableSchema` with its case rows. Each row carries the
fixed Mendelian fields and one `CellValue` per concept column, in schema
order. Every operation that changes the concept columns rebuilds all rows
before committing, so a table is never left half-updated.
"""

import logging
import typing

from dataclasses import dataclass, field
from enum import Enum

from stairval.notepad import create_notepad

from .arranger import arrange_concepts
from .cell_value import NA, CellValue
from .errors import (
    CellError,
    DuplicateConceptError,
    StructuralError,
    TableValidationError,
)
from .header import (
    CONCEPT_OFFSET,
    DECEASED_VALUES,
    MENDELIAN_FIXED_DUPLETS,
    SEPARATOR_DUPLET,
    SEX_VALUES,
    ConceptRef,
    TableSchema,
)
from .hierarchy import ConceptHierarchy

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "0.3"


class CohortType(Enum):
    MENDELIAN = "mendelian"
    MELDED = "melded"
    DIGENIC = "digenic"


@dataclass
class IndividualData:
    pmid: str
    title: str
    individual_id: str
    comment: str = ""

    def __post_init__(self):
        if not self.individual_id:
            raise ValueError("individual_id must not be empty")


@dataclass
class DiseaseData:
    disease_id: str
    disease_label: str


@dataclass
class GeneVariantData:
    hgnc_id: str
    gene_symbol: str
    transcript: str
    allele_1: str
    allele_2: str = "na"
    variant_comment: str = ""


@dataclass
class DemographicData:
    age_of_onset: str = "na"
    age_at_last_encounter: str = "na"
    deceased: str = "na"
    sex: str = "U"

    def __post_init__(self):
        if self.deceased not in DECEASED_VALUES:
            raise ValueError(f"Invalid deceased value {self.deceased!r}")
        if self.sex not in SEX_VALUES:
            raise ValueError(f"Invalid sex value {self.sex!r}")


@dataclass
class CaseRow:
    individual: IndividualData
    disease: DiseaseData
    gene_variant: GeneVariantData
    demographics: DemographicData
    cells: list[CellValue] = field(default_factory=list)

    def fixed_values(self) -> list[str]:
        """The sixteen fixed cells in template order."""
        i, d, g, dem = self.individual, self.disease, self.gene_variant, self.demographics
        return [
            i.pmid, i.title, i.individual_id, i.comment,
            d.disease_id, d.disease_label,
            g.hgnc_id, g.gene_symbol, g.transcript, g.allele_1, g.allele_2, g.variant_comment,
            dem.age_of_onset, dem.age_at_last_encounter, dem.deceased, dem.sex,
        ]

    @classmethod
    def from_fixed_values(cls, values: typing.Sequence[str], cells: list[CellValue]) -> "CaseRow":
        if len(values) != len(MENDELIAN_FIXED_DUPLETS):
            raise StructuralError(
                f"Expected {len(MENDELIAN_FIXED_DUPLETS)} fixed values but got {len(values)}"
            )
        return cls(
            individual=IndividualData(*values[0:4]),
            disease=DiseaseData(*values[4:6]),
            gene_variant=GeneVariantData(*values[6:12]),
            demographics=DemographicData(*values[12:16]),
            cells=cells,
        )


@dataclass
class AnnotationTable:
    schema: TableSchema
    rows: list[CaseRow] = field(default_factory=list)
    cohort_type: CohortType = CohortType.MENDELIAN
    hpo_version: typing.Optional[str] = None
    schema_version: str = SCHEMA_VERSION
    cohort_acronym: typing.Optional[str] = None

    def __post_init__(self):
        self.check_structure()

    @property
    def concepts(self) -> list[ConceptRef]:
        return self.schema.concepts

    def check_structure(self) -> None:
        """Raise StructuralError unless every row has one cell per concept column."""
        n = len(self.schema.concepts)
        for i, row in enumerate(self.rows):
            if len(row.cells) != n:
                raise StructuralError(
                    f"Row {i} ({row.individual.individual_id}) has {len(row.cells)} HPO cells "
                    f"but the table has {n} HPO columns"
                )

    def annotations(self, row: CaseRow) -> dict[ConceptRef, CellValue]:
        return dict(zip(self.schema.concepts, row.cells))

    def iter_cells(self) -> typing.Iterator[tuple[CaseRow, ConceptRef, CellValue]]:
        for row in self.rows:
            for concept, value in zip(self.schema.concepts, row.cells):
                yield row, concept, value

    # ------------------------------------------------------------------
    # column and row editing
    # ------------------------------------------------------------------

    def _reshape(self, concepts: list[ConceptRef]) -> None:
        # build all new cell lists first, then swap them in
        new_cells = []
        for row in self.rows:
            current = self.annotations(row)
            new_cells.append([current.get(c, NA) for c in concepts])
        self.schema = TableSchema(list(concepts))
        for row, cells in zip(self.rows, new_cells):
            row.cells = cells

    def rearrange(self, hierarchy: ConceptHierarchy) -> None:
        self._reshape(arrange_concepts(self.schema.concepts, hierarchy).concepts())

    def add_concept(self, concept: ConceptRef, hierarchy: ConceptHierarchy) -> None:
        """Add a concept column; existing rows get na for it."""
        if concept.concept_id in self.schema:
            raise DuplicateConceptError(f"Not allowed to add {concept}: the column is already present")
        self._reshape(arrange_concepts([*self.schema.concepts, concept], hierarchy).concepts())
        logger.info(f"Added HPO column {concept}")

    def remove_concept(self, concept_id: str) -> ConceptRef:
        """Drop a concept column and its cell from every row."""
        index = self.schema.index_of(concept_id)
        removed = self.schema.concepts[index]
        self._reshape([c for c in self.schema.concepts if c.concept_id != concept_id])
        logger.info(f"Removed HPO column {removed}")
        return removed

    def add_row(
            self,
            individual: IndividualData,
            disease: DiseaseData,
            gene_variant: GeneVariantData,
            demographics: DemographicData,
            annotations: typing.Mapping[ConceptRef, CellValue],
            hierarchy: ConceptHierarchy,
    ) -> CaseRow:
        """
        Append a case. Concepts the table does not have yet become new columns,
        the columns are re-arranged and every other row gets na for them.
        """
        new_concepts = [c for c in annotations if c.concept_id not in self.schema]
        if new_concepts:
            union = [*self.schema.concepts, *new_concepts]
            self._reshape(arrange_concepts(union, hierarchy).concepts())
        row = CaseRow(
            individual, disease, gene_variant, demographics,
            [annotations.get(c, NA) for c in self.schema.concepts],
        )
        self.rows.append(row)
        return row

    # ------------------------------------------------------------------
    # raw matrix conversion
    # ------------------------------------------------------------------

    @classmethod
    def from_matrix(
            cls,
            matrix: typing.Sequence[typing.Sequence[str]],
            hpo_version: typing.Optional[str] = None,
            cohort_acronym: typing.Optional[str] = None,
    ) -> "AnnotationTable":
        """
        Parse a template: two header rows followed by one row per case.

        Header and cell problems are gathered into a single TableValidationError.
        A data row whose width differs from the header raises StructuralError.
        """
        if len(matrix) < 2:
            raise TableValidationError(["Template must start with two header rows"])
        schema = TableSchema.from_header_rows(matrix[0], matrix[1])
        duplets = schema.duplets()
        width = len(duplets)

        notepad = create_notepad("rows")
        rows: list[CaseRow] = []
        for r, raw in enumerate(matrix[2:], start=2):
            if len(raw) != width:
                raise StructuralError(f"Row {r} has {len(raw)} cells but the header has {width} columns")
            row_ok = True
            for c, (duplet, text) in enumerate(zip(duplets, raw)):
                try:
                    duplet.validate_cell(text)
                except CellError as e:
                    notepad.add_error(f"Row {r}, column {c} ({duplet.label}): {e}")
                    row_ok = False
            if row_ok:
                cells = [CellValue.parse(text) for text in raw[CONCEPT_OFFSET:]]
                rows.append(CaseRow.from_fixed_values(raw[:len(MENDELIAN_FIXED_DUPLETS)], cells))

        if notepad.has_errors(include_subsections=True):
            raise TableValidationError([e.message for e in notepad.errors()])
        logger.info(f"Parsed {len(rows)} rows with {len(schema.concepts)} HPO columns")
        return cls(schema, rows, hpo_version=hpo_version, cohort_acronym=cohort_acronym)

    def to_matrix(self) -> list[list[str]]:
        row1, row2 = self.schema.header_rows()
        matrix = [row1, row2]
        for row in self.rows:
            matrix.append([*row.fixed_values(), SEPARATOR_DUPLET.marker, *(v.format() for v in row.cells)])
        return matrix
