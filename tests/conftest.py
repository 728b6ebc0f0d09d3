import pytest

from phetab.header import CONCEPT_OFFSET, MENDELIAN_FIXED_DUPLETS, ConceptRef
from phetab.hierarchy import ConceptHierarchy

# (id, label, parents) for a small slice of HPO
_TOY_TERMS = [
    ("HP:0000001", "All", []),
    ("HP:0000118", "Phenotypic abnormality", ["HP:0000001"]),
    ("HP:0033127", "Abnormality of the musculoskeletal system", ["HP:0000118"]),
    ("HP:0100807", "Long fingers", ["HP:0033127"]),
    ("HP:0001166", "Arachnodactyly", ["HP:0100807"]),
    ("HP:0001626", "Abnormality of the cardiovascular system", ["HP:0000118"]),
    ("HP:0030680", "Abnormality of cardiovascular system morphology", ["HP:0001626"]),
    ("HP:0001627", "Abnormal heart morphology", ["HP:0030680"]),
    ("HP:0001631", "Atrial septal defect", ["HP:0001627"]),
    ("HP:0000707", "Abnormality of the nervous system", ["HP:0000118"]),
    ("HP:0001250", "Seizure", ["HP:0000707"]),
    ("HP:0001288", "Gait disturbance", ["HP:0000707"]),
    ("HP:0002664", "Neoplasm", ["HP:0000118"]),
    ("HP:0100544", "Neoplasm of the heart", ["HP:0001627", "HP:0002664"]),
    ("HP:0000005", "Mode of inheritance", ["HP:0000001"]),
    ("HP:0000006", "Autosomal dominant inheritance", ["HP:0000005"]),
]
_TOY_ALT_IDS = {"HP:0002355": "HP:0001288"}


class ToyHierarchy(ConceptHierarchy):
    """Hand-built hierarchy; children are listed in the order terms are declared."""

    def __init__(self):
        self._labels = {tid: label for tid, label, _ in _TOY_TERMS}
        self._parents = {tid: parents for tid, _, parents in _TOY_TERMS}
        self._children: dict[str, list[str]] = {tid: [] for tid, _, _ in _TOY_TERMS}
        for tid, _, parents in _TOY_TERMS:
            for parent in parents:
                self._children[parent].append(tid)

    def primary_id_of(self, concept_id):
        concept_id = _TOY_ALT_IDS.get(concept_id, concept_id)
        return concept_id if concept_id in self._labels else None

    def term_exists(self, concept_id):
        return self.primary_id_of(concept_id) is not None

    def label_of(self, concept_id):
        primary = self.primary_id_of(concept_id)
        return None if primary is None else self._labels[primary]

    def children_of(self, concept_id):
        return list(self._children.get(concept_id, []))

    def is_descendant_of(self, concept_id, ancestor_id):
        pending = list(self._parents.get(concept_id, []))
        while pending:
            parent = pending.pop()
            if parent == ancestor_id:
                return True
            pending.extend(self._parents[parent])
        return False

    @property
    def version(self):
        return "2024-04-26"


@pytest.fixture(scope="session")
def hierarchy() -> ToyHierarchy:
    return ToyHierarchy()


@pytest.fixture
def concept(hierarchy):
    """Build a ConceptRef with the current label from its id."""
    def _concept(concept_id: str) -> ConceptRef:
        return ConceptRef(concept_id, hierarchy.label_of(concept_id))
    return _concept


@pytest.fixture
def fixed_row() -> list[str]:
    """A valid set of the sixteen fixed cells."""
    return [
        "PMID:29482508", "Marfan syndrome in a family", "Individual 1", "",
        "OMIM:154700", "Marfan syndrome",
        "HGNC:3603", "FBN1", "NM_000138.5", "c.8326C>T", "na", "",
        "Congenital onset", "P10Y", "no", "M",
    ]


@pytest.fixture
def make_template(fixed_row):
    """
    Build a template matrix from (id, label) header pairs and rows of HPO cell
    text. Each row gets the fixed cells with a numbered individual_id.
    """
    def _make(headers, hpo_rows):
        row1 = [d.label for d in MENDELIAN_FIXED_DUPLETS] + ["HPO"] + [label for _, label in headers]
        row2 = [d.marker for d in MENDELIAN_FIXED_DUPLETS] + ["na"] + [tid for tid, _ in headers]
        matrix = [row1, row2]
        for i, cells in enumerate(hpo_rows, start=1):
            fixed = list(fixed_row)
            fixed[2] = f"Individual {i}"
            matrix.append(fixed + ["na"] + list(cells))
        assert len(row1) == CONCEPT_OFFSET + len(headers)
        return matrix
    return _make
