import pytest

from stairval.notepad import create_notepad

from phetab.errors import DuplicateConceptError, ObsoleteConceptError, UnknownConceptError
from phetab.header import ConceptRef
from phetab.qc import check_table, refresh_concept_labels, require_known_concept
from phetab.table import AnnotationTable


def _messages(issues):
    return [i.message for i in issues]


def test_require_known_concept(hierarchy):
    require_known_concept(ConceptRef("HP:0001250", "Seizure"), hierarchy)
    with pytest.raises(UnknownConceptError) as unknown:
        require_known_concept(ConceptRef("HP:9999999", "Made up"), hierarchy)
    assert not isinstance(unknown.value, ObsoleteConceptError)
    with pytest.raises(ObsoleteConceptError) as obsolete:
        require_known_concept(ConceptRef("HP:0002355", "Difficulty walking"), hierarchy)
    assert obsolete.value.replacement_id == "HP:0001288"
    assert "HP:0001288" in str(obsolete.value)


def test_check_table_reports_every_problem(make_template, hierarchy):
    matrix = make_template(
        [
            ("HP:0002355", "Difficulty walking"),
            ("HP:9999999", "Made up"),
            ("HP:0001166", "Spider fingers"),
            ("HP:0100807", "Long fingers"),
        ],
        [["observed", "na", "observed", "observed"], ["na", "na", "na", "na"]],
    )
    matrix[3][2] = "Individual 1"
    table = AnnotationTable.from_matrix(matrix)
    notepad = create_notepad("cohort")
    check_table(table, hierarchy, notepad)

    errors = _messages(notepad.errors())
    assert errors[0] == "Concept HP:0002355 is obsolete, replace it with HP:0001288"
    assert errors[1] == "Concept HP:9999999 is not in the ontology"
    assert errors[2].startswith("HP:0001166: label 'Spider fingers'")
    assert errors[3].startswith("Duplicate row: individual 'Individual 1'")
    assert len(errors) == 4

    warnings = _messages(notepad.warnings())
    assert warnings == ["Individual 1: Observed Long fingers (HP:0100807) is implied by observed descendant Spider fingers (HP:0001166)"]


def test_refresh_concept_labels(make_template, hierarchy):
    matrix = make_template(
        [("HP:0002355", "Difficulty walking"), ("HP:0001166", "Spider fingers"), ("HP:9999999", "Made up")],
        [["observed", "excluded", "na"]],
    )
    table = AnnotationTable.from_matrix(matrix)
    changes = refresh_concept_labels(table, hierarchy)
    assert len(changes) == 2
    assert [(c.concept_id, c.label) for c in table.concepts] == [
        ("HP:0001288", "Gait disturbance"),
        ("HP:0001166", "Arachnodactyly"),
        ("HP:9999999", "Made up"),
    ]
    assert [str(v) for v in table.rows[0].cells] == ["observed", "excluded", "na"]


def test_refresh_refuses_collapsing_columns(make_template, hierarchy):
    matrix = make_template(
        [("HP:0002355", "Difficulty walking"), ("HP:0001288", "Gait disturbance")],
        [["observed", "na"]],
    )
    table = AnnotationTable.from_matrix(matrix)
    with pytest.raises(DuplicateConceptError):
        refresh_concept_labels(table, hierarchy)
    assert table.concepts[0].concept_id == "HP:0002355"


def test_concepts_outside_phenotypic_abnormality_are_warned(make_template, hierarchy):
    matrix = make_template(
        [("HP:0001250", "Seizure"), ("HP:0000006", "Autosomal dominant inheritance")],
        [["observed", "observed"]],
    )
    notepad = create_notepad("cohort")
    check_table(AnnotationTable.from_matrix(matrix), hierarchy, notepad)
    assert not notepad.has_errors(include_subsections=True)
    assert _messages(notepad.warnings()) == [
        "Autosomal dominant inheritance (HP:0000006) is not under Phenotypic abnormality"
    ]
