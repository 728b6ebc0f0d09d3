"""
Cohort quality control against the current ontology.

`check_table` adds one notepad issue per problem found; nothing is changed.
`refresh_concept_labels` rewrites obsolete ids and outdated labels.
"""

import logging
import typing

from collections import Counter

from stairval.notepad import Notepad

from .arranger import arrange_concepts
from .errors import DuplicateConceptError, ObsoleteConceptError, UnknownConceptError
from .header import ConceptRef, TableSchema
from .hierarchy import ConceptHierarchy
from .sanitizer import ConflictRule, find_conflicts
from .table import AnnotationTable

logger = logging.getLogger(__name__)


def require_known_concept(concept: ConceptRef, hierarchy: ConceptHierarchy) -> None:
    """Raise UnknownConceptError, or ObsoleteConceptError carrying the replacement id."""
    primary = hierarchy.primary_id_of(concept.concept_id)
    if primary is None:
        raise UnknownConceptError(concept.concept_id)
    if primary != concept.concept_id:
        raise ObsoleteConceptError(concept.concept_id, primary)


def check_concepts(
        concepts: typing.Sequence[ConceptRef], hierarchy: ConceptHierarchy, notepad: Notepad
) -> None:
    for concept in concepts:
        try:
            require_known_concept(concept, hierarchy)
        except UnknownConceptError as e:
            notepad.add_error(str(e))
            continue
        current = hierarchy.label_of(concept.concept_id)
        if current != concept.label:
            notepad.add_error(
                f"{concept.concept_id}: label {concept.label!r} does not match current label {current!r}"
            )


def check_table(table: AnnotationTable, hierarchy: ConceptHierarchy, notepad: Notepad) -> None:
    """
    Run every cohort check:
      - concept ids exist, are current and carry their current label
      - no two rows share the same individual_id and PMID
      - concepts outside Phenotypic abnormality (warnings)
      - redundant or conflicting annotations (warnings)
    """
    table.check_structure()
    check_concepts(table.concepts, hierarchy, notepad)
    current = [c for c in table.concepts if hierarchy.primary_id_of(c.concept_id) == c.concept_id]
    for concept in arrange_concepts(current, hierarchy).unreachable:
        notepad.add_warning(f"{concept} is not under Phenotypic abnormality")

    keys = Counter((row.individual.individual_id, row.individual.pmid) for row in table.rows)
    for (individual_id, pmid), count in keys.items():
        if count > 1:
            notepad.add_error(f"Duplicate row: individual {individual_id!r} from {pmid} appears {count} times")

    n_conflicts = 0
    for row in table.rows:
        for conflict in find_conflicts(table.annotations(row), hierarchy):
            if conflict.rule is ConflictRule.OBSERVED_ANCESTOR_OF_EXCLUDED:
                continue
            n_conflicts += 1
            notepad.add_warning(f"{row.individual.individual_id}: {conflict}")
    if n_conflicts:
        logger.info(f"Identified {n_conflicts} ontology (redundancy) conflicts")


def refresh_concept_labels(table: AnnotationTable, hierarchy: ConceptHierarchy) -> list[str]:
    """
    Replace obsolete ids with their primary id and outdated labels with the
    current label. Unknown ids are left in place. Returns a description of
    each change.
    """
    changes = []
    refreshed: list[ConceptRef] = []
    for concept in table.concepts:
        primary = hierarchy.primary_id_of(concept.concept_id)
        if primary is None:
            refreshed.append(concept)
            continue
        label = hierarchy.label_of(primary)
        updated = ConceptRef(primary, label)
        if primary != concept.concept_id or label != concept.label:
            changes.append(f"{concept} -> {updated}")
        refreshed.append(updated)

    ids = [c.concept_id for c in refreshed]
    if len(set(ids)) != len(ids):
        # two columns collapsed onto the same primary id, keep the table as is
        dupes = sorted(i for i, n in Counter(ids).items() if n > 1)
        raise DuplicateConceptError(f"Obsolete ids resolve to existing column(s): {', '.join(dupes)}")
    table.schema = TableSchema(refreshed)
    for change in changes:
        logger.info(f"Updated HPO header {change}")
    return changes
