"""
Schema-union merge of two annotation tables.

The merged table has the union of both concept column sets, arranged for
curation, and the rows of the first table followed by those of the second.
A row gets na for every column its own table did not have. Combining
columns can bring ancestor/descendant pairs together, so the result is
sanitized before it is returned.
"""

import copy
import logging

from .arranger import arrange_concepts
from .cell_value import NA
from .errors import IncompatibleCohortError
from .header import ConceptRef, TableSchema
from .hierarchy import ConceptHierarchy
from .sanitizer import sanitize_table
from .table import AnnotationTable, CaseRow

logger = logging.getLogger(__name__)


def merge_tables(
        first: AnnotationTable, second: AnnotationTable, hierarchy: ConceptHierarchy
) -> AnnotationTable:
    if first.cohort_type is not second.cohort_type:
        raise IncompatibleCohortError(
            f"Cannot merge a {first.cohort_type.value} cohort with a {second.cohort_type.value} cohort"
        )
    if first.hpo_version != second.hpo_version:
        logger.warning(
            f"Merging tables curated with different HPO versions "
            f"({first.hpo_version} and {second.hpo_version})"
        )

    union: dict[str, ConceptRef] = {}
    for concept in [*first.concepts, *second.concepts]:
        union.setdefault(concept.concept_id, concept)
    concepts = arrange_concepts(union.values(), hierarchy).concepts()

    rows: list[CaseRow] = []
    for table in (first, second):
        for row in table.rows:
            current = table.annotations(row)
            merged_row = copy.deepcopy(row)
            merged_row.cells = [current.get(c, NA) for c in concepts]
            rows.append(merged_row)

    merged = AnnotationTable(
        TableSchema(concepts),
        rows,
        cohort_type=first.cohort_type,
        hpo_version=first.hpo_version or second.hpo_version,
        schema_version=first.schema_version,
        cohort_acronym=first.cohort_acronym or second.cohort_acronym,
    )
    sanitize_table(merged, hierarchy)
    logger.info(
        f"Merged {len(first.rows)} + {len(second.rows)} rows into a table with {len(concepts)} HPO columns"
    )
    return merged
