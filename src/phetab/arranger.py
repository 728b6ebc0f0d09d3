"""
Curation-order arranger.

Orders HPO concept columns so that related terms sit next to each other:
a pre-order depth-first walk of the hierarchy emits each requested concept
the first time it is reached. Neoplasm terms are walked first and moved to
the end so they form one block.
"""

import logging
import typing

from dataclasses import dataclass, field

from .header import ConceptRef
from .hierarchy import NEOPLASM, PHENOTYPIC_ABNORMALITY, ConceptHierarchy

logger = logging.getLogger(__name__)


@dataclass
class Arrangement:
    ordered: list[ConceptRef] = field(default_factory=list)
    # requested concepts that no walk reached, in input order
    unreachable: list[ConceptRef] = field(default_factory=list)

    def concepts(self) -> list[ConceptRef]:
        return self.ordered + self.unreachable


def _walk(
        root: str,
        wanted: dict[str, ConceptRef],
        hierarchy: ConceptHierarchy,
        visited: set[str],
) -> list[ConceptRef]:
    found: list[ConceptRef] = []
    stack = [root]
    while stack:
        concept_id = stack.pop()
        if concept_id in visited:
            continue
        visited.add(concept_id)
        if concept_id in wanted:
            found.append(wanted[concept_id])
        # reversed so the first child is visited first
        stack.extend(reversed(hierarchy.children_of(concept_id)))
    return found


def arrange_concepts(
        concepts: typing.Iterable[ConceptRef], hierarchy: ConceptHierarchy
) -> Arrangement:
    wanted: dict[str, ConceptRef] = {}
    for concept in concepts:
        wanted.setdefault(concept.concept_id, concept)

    visited: set[str] = set()
    neoplasms = _walk(NEOPLASM, wanted, hierarchy, visited)
    general = _walk(PHENOTYPIC_ABNORMALITY, wanted, hierarchy, visited)

    arrangement = Arrangement(ordered=general + neoplasms)
    reached = {c.concept_id for c in arrangement.ordered}
    arrangement.unreachable = [c for cid, c in wanted.items() if cid not in reached]
    if arrangement.unreachable:
        logger.warning(
            "Concepts not reachable from Phenotypic abnormality: "
            + ", ".join(str(c) for c in arrangement.unreachable)
        )
    return arrangement
