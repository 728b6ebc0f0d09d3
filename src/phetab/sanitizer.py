"""
Semantic sanitizer for one row of HPO annotations.

For every annotated pair where one concept is an ancestor of the other:

  1. observed ancestor, observed descendant: the ancestor is redundant -> na
  2. excluded ancestor, observed descendant: conflict, the specific
     observation wins -> ancestor na
  3. excluded ancestor, excluded descendant: the descendant is redundant -> na
  4. observed ancestor, excluded descendant: consistent, left alone

Only observed/excluded cells take part; onset and modifier cells pass through.
"""

import logging
import typing

from dataclasses import dataclass
from enum import Enum

from .cell_value import NA, CellKind, CellValue
from .header import ConceptRef
from .hierarchy import ConceptHierarchy

if typing.TYPE_CHECKING:
    from .table import AnnotationTable

logger = logging.getLogger(__name__)


class ConflictRule(Enum):
    REDUNDANT_OBSERVED_ANCESTOR = 1
    EXCLUDED_ANCESTOR_OF_OBSERVED = 2
    REDUNDANT_EXCLUDED_DESCENDANT = 3
    OBSERVED_ANCESTOR_OF_EXCLUDED = 4


@dataclass(frozen=True)
class AnnotationConflict:
    ancestor: ConceptRef
    descendant: ConceptRef
    rule: ConflictRule

    @property
    def target(self) -> typing.Optional[ConceptRef]:
        """The concept the sanitizer resets to na, None when nothing changes."""
        if self.rule in (ConflictRule.REDUNDANT_OBSERVED_ANCESTOR, ConflictRule.EXCLUDED_ANCESTOR_OF_OBSERVED):
            return self.ancestor
        if self.rule is ConflictRule.REDUNDANT_EXCLUDED_DESCENDANT:
            return self.descendant
        return None

    def __str__(self) -> str:
        if self.rule is ConflictRule.REDUNDANT_OBSERVED_ANCESTOR:
            return f"Observed {self.ancestor} is implied by observed descendant {self.descendant}"
        if self.rule is ConflictRule.EXCLUDED_ANCESTOR_OF_OBSERVED:
            return f"Excluded {self.ancestor} conflicts with observed descendant {self.descendant}"
        if self.rule is ConflictRule.REDUNDANT_EXCLUDED_DESCENDANT:
            return f"Excluded {self.descendant} is implied by excluded ancestor {self.ancestor}"
        return f"Observed {self.ancestor} has excluded descendant {self.descendant}"


_RULES = {
    (CellKind.OBSERVED, CellKind.OBSERVED): ConflictRule.REDUNDANT_OBSERVED_ANCESTOR,
    (CellKind.EXCLUDED, CellKind.OBSERVED): ConflictRule.EXCLUDED_ANCESTOR_OF_OBSERVED,
    (CellKind.EXCLUDED, CellKind.EXCLUDED): ConflictRule.REDUNDANT_EXCLUDED_DESCENDANT,
    (CellKind.OBSERVED, CellKind.EXCLUDED): ConflictRule.OBSERVED_ANCESTOR_OF_EXCLUDED,
}


def find_conflicts(
        annotations: typing.Mapping[ConceptRef, CellValue], hierarchy: ConceptHierarchy
) -> list[AnnotationConflict]:
    """Report every ancestor/descendant pair covered by a rule without changing anything."""
    annotated = [
        (concept, value) for concept, value in annotations.items()
        if value.kind in (CellKind.OBSERVED, CellKind.EXCLUDED)
    ]
    conflicts = []
    for ancestor, a_value in annotated:
        for descendant, d_value in annotated:
            if ancestor == descendant:
                continue
            if hierarchy.is_descendant_of(descendant.concept_id, ancestor.concept_id):
                conflicts.append(AnnotationConflict(ancestor, descendant, _RULES[a_value.kind, d_value.kind]))
    return conflicts


def sanitize_annotations(
        annotations: typing.Mapping[ConceptRef, CellValue], hierarchy: ConceptHierarchy
) -> dict[ConceptRef, CellValue]:
    """
    Return a cleaned copy of one row's annotations.

    Each pass collects every correction against the current state and applies
    them together; passes repeat until nothing changes.
    """
    sanitized = dict(annotations)
    max_passes = sum(1 for v in sanitized.values() if v.kind in (CellKind.OBSERVED, CellKind.EXCLUDED))
    for _ in range(max_passes):
        targets = {c.target for c in find_conflicts(sanitized, hierarchy)} - {None}
        if not targets:
            break
        for concept in targets:
            logger.debug(f"Setting {concept} from {sanitized[concept]} to na")
            sanitized[concept] = NA
    return sanitized


def sanitize_table(table: "AnnotationTable", hierarchy: ConceptHierarchy) -> int:
    """Sanitize every row of a table in place and return the number of cells changed."""
    changed = 0
    for row in table.rows:
        before = table.annotations(row)
        after = sanitize_annotations(before, hierarchy)
        row.cells = [after[c] for c in table.concepts]
        changed += sum(1 for c in table.concepts if before[c] != after[c])
    if changed:
        logger.info(f"Sanitizer reset {changed} redundant or conflicting cell(s) to na")
    return changed
