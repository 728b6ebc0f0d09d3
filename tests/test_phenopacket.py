import json

import pytest

from phetab.phenopacket import phenopacket_id, table_to_phenopackets, write_phenopackets
from phetab.table import AnnotationTable


@pytest.fixture
def table(make_template) -> AnnotationTable:
    matrix = make_template(
        [("HP:0001166", "Arachnodactyly"), ("HP:0001631", "Atrial septal defect"), ("HP:0001250", "Seizure")],
        [["observed", "excluded", "G30w2d"], ["na", "Infantile onset", "P1Y"]],
    )
    return AnnotationTable.from_matrix(matrix, hpo_version="2024-04-26")


def test_one_phenopacket_per_row(table):
    phenopackets = table_to_phenopackets(table)
    assert [p.id for p in phenopackets] == ["PMID_29482508_Individual_1", "PMID_29482508_Individual_2"]
    assert phenopacket_id(table.rows[0]) == phenopackets[0].id


def test_features_follow_cells(table):
    first, second = table_to_phenopackets(table)
    features = {f.type.id: f for f in first.phenotypic_features}
    assert set(features) == {"HP:0001166", "HP:0001631", "HP:0001250"}
    assert not features["HP:0001166"].excluded
    assert features["HP:0001631"].excluded
    assert features["HP:0001250"].onset.gestational_age.weeks == 30
    assert features["HP:0001250"].onset.gestational_age.days == 2

    features = {f.type.id: f for f in second.phenotypic_features}
    assert set(features) == {"HP:0001631", "HP:0001250"}
    assert features["HP:0001631"].onset.ontology_class.id == "HP:0003593"
    assert features["HP:0001250"].onset.age.iso8601duration == "P1Y"


def test_subject_disease_and_variant(table):
    phenopacket = table_to_phenopackets(table)[0]
    assert phenopacket.subject.id == "Individual 1"
    assert phenopacket.subject.time_at_last_encounter.age.iso8601duration == "P10Y"
    assert phenopacket.diseases[0].term.id == "OMIM:154700"
    assert phenopacket.diseases[0].onset.ontology_class.id == "HP:0003577"
    genomic = phenopacket.interpretations[0].diagnosis.genomic_interpretations
    assert len(genomic) == 1
    descriptor = genomic[0].variant_interpretation.variation_descriptor
    assert descriptor.gene_context.symbol == "FBN1"
    assert descriptor.expressions[0].value == "NM_000138.5:c.8326C>T"
    assert phenopacket.meta_data.resources[0].version == "2024-04-26"
    assert phenopacket.meta_data.external_references[0].id == "PMID:29482508"


def test_write_phenopackets(tmp_path, table):
    written = write_phenopackets(table, tmp_path / "out")
    assert len(written) == 2
    data = json.loads(written[0].read_text())
    assert data["subject"]["sex"] == "MALE"
    assert data["subject"]["vitalStatus"]["status"] == "ALIVE"
