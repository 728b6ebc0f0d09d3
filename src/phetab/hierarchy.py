"""
Concept hierarchy adapter.

The annotation engine only needs a handful of read-only queries over the
ontology graph. `ConceptHierarchy` names them; `HpotkHierarchy` answers them
from an `hpotk.MinimalOntology`. Concept ids cross this boundary as CURIE
strings such as `HP:0001166`.
"""

import abc
import logging
import typing

import hpotk

logger = logging.getLogger(__name__)

PHENOTYPIC_ABNORMALITY = "HP:0000118"
NEOPLASM = "HP:0002664"


class ConceptHierarchy(metaclass=abc.ABCMeta):

    @abc.abstractmethod
    def term_exists(self, concept_id: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def label_of(self, concept_id: str) -> typing.Optional[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def is_descendant_of(self, concept_id: str, ancestor_id: str) -> bool:
        """True if `ancestor_id` is a strict ancestor of `concept_id`."""
        raise NotImplementedError

    @abc.abstractmethod
    def children_of(self, concept_id: str) -> typing.Sequence[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def primary_id_of(self, concept_id: str) -> typing.Optional[str]:
        """The current id for a primary or obsolete id, None if unknown."""
        raise NotImplementedError

    def is_ancestor_of(self, concept_id: str, descendant_id: str) -> bool:
        return self.is_descendant_of(descendant_id, concept_id)

    @property
    def version(self) -> typing.Optional[str]:
        return None


class HpotkHierarchy(ConceptHierarchy):
    """`ConceptHierarchy` backed by an already loaded hpotk ontology."""

    def __init__(self, ontology: hpotk.MinimalOntology):
        self._ontology = ontology

    @property
    def ontology(self) -> hpotk.MinimalOntology:
        return self._ontology

    @property
    def version(self) -> typing.Optional[str]:
        return self._ontology.version

    def _get_term(self, concept_id: str):
        try:
            term_id = hpotk.TermId.from_curie(concept_id)
        except ValueError:
            return None
        return self._ontology.get_term(term_id)

    def term_exists(self, concept_id: str) -> bool:
        return self._get_term(concept_id) is not None

    def label_of(self, concept_id: str) -> typing.Optional[str]:
        term = self._get_term(concept_id)
        return None if term is None else term.name

    def primary_id_of(self, concept_id: str) -> typing.Optional[str]:
        term = self._get_term(concept_id)
        return None if term is None else term.identifier.value

    def is_descendant_of(self, concept_id: str, ancestor_id: str) -> bool:
        sub = self._get_term(concept_id)
        obj = self._get_term(ancestor_id)
        if sub is None or obj is None:
            return False
        return self._ontology.graph.is_descendant_of(sub.identifier, obj.identifier)

    def children_of(self, concept_id: str) -> typing.Sequence[str]:
        term = self._get_term(concept_id)
        if term is None:
            return ()
        return tuple(
            child.value
            for child in self._ontology.graph.get_children(term.identifier, include_source=False)
        )


def load_hierarchy(hpo_path: str) -> HpotkHierarchy:
    """Load an HPO JSON file (optionally gzipped) with hpotk."""
    logger.info(f"Loading HPO from {hpo_path}")
    ontology = hpotk.load_minimal_ontology(hpo_path)
    logger.info(f"Loaded HPO version {ontology.version}")
    return HpotkHierarchy(ontology)
