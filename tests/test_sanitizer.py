import pytest

from phetab.cell_value import EXCLUDED, NA, OBSERVED, CellKind, CellValue
from phetab.sanitizer import ConflictRule, find_conflicts, sanitize_annotations


def test_observed_ancestor_of_observed_is_reset(concept, hierarchy):
    """Arachnodactyly implies Abnormality of the musculoskeletal system."""
    ancestor, descendant = concept("HP:0033127"), concept("HP:0001166")
    result = sanitize_annotations({ancestor: OBSERVED, descendant: OBSERVED}, hierarchy)
    assert result == {ancestor: NA, descendant: OBSERVED}


def test_excluded_ancestor_of_observed_is_reset(concept, hierarchy):
    ancestor, descendant = concept("HP:0001626"), concept("HP:0001631")
    result = sanitize_annotations({ancestor: EXCLUDED, descendant: OBSERVED}, hierarchy)
    assert result == {ancestor: NA, descendant: OBSERVED}


def test_excluded_descendant_of_excluded_is_reset(concept, hierarchy):
    ancestor, descendant = concept("HP:0000707"), concept("HP:0001250")
    result = sanitize_annotations({ancestor: EXCLUDED, descendant: EXCLUDED}, hierarchy)
    assert result == {ancestor: EXCLUDED, descendant: NA}


def test_observed_ancestor_of_excluded_is_kept(concept, hierarchy):
    ancestor, descendant = concept("HP:0000707"), concept("HP:0001250")
    annotations = {ancestor: OBSERVED, descendant: EXCLUDED}
    assert sanitize_annotations(annotations, hierarchy) == annotations


def test_rules_apply_across_several_levels(concept, hierarchy):
    top, middle, leaf = concept("HP:0033127"), concept("HP:0100807"), concept("HP:0001166")
    result = sanitize_annotations({top: OBSERVED, middle: OBSERVED, leaf: OBSERVED}, hierarchy)
    assert result == {top: NA, middle: NA, leaf: OBSERVED}


def test_onset_and_unrelated_cells_pass_through(concept, hierarchy):
    onset = CellValue(CellKind.ONSET_AGE, "P3Y")
    annotations = {
        concept("HP:0033127"): onset,
        concept("HP:0001166"): OBSERVED,
        concept("HP:0001250"): EXCLUDED,
        concept("HP:0001631"): NA,
    }
    assert sanitize_annotations(annotations, hierarchy) == annotations


def test_input_is_not_modified(concept, hierarchy):
    annotations = {concept("HP:0033127"): OBSERVED, concept("HP:0001166"): OBSERVED}
    snapshot = dict(annotations)
    sanitize_annotations(annotations, hierarchy)
    assert annotations == snapshot


@pytest.mark.parametrize(
    "values",
    [
        (OBSERVED, OBSERVED, EXCLUDED, OBSERVED),
        (EXCLUDED, EXCLUDED, OBSERVED, EXCLUDED),
        (EXCLUDED, OBSERVED, EXCLUDED, EXCLUDED),
        (OBSERVED, EXCLUDED, OBSERVED, NA),
    ],
)
def test_sanitizer_is_idempotent(concept, hierarchy, values):
    ids = ["HP:0001626", "HP:0001627", "HP:0001631", "HP:0100544"]
    annotations = {concept(i): v for i, v in zip(ids, values)}
    once = sanitize_annotations(annotations, hierarchy)
    assert sanitize_annotations(once, hierarchy) == once
    assert find_conflicts(once, hierarchy) == [] or all(
        c.rule is ConflictRule.OBSERVED_ANCESTOR_OF_EXCLUDED for c in find_conflicts(once, hierarchy)
    )


def test_find_conflicts_reports_without_changing(concept, hierarchy):
    ancestor, descendant = concept("HP:0001626"), concept("HP:0001631")
    annotations = {ancestor: EXCLUDED, descendant: OBSERVED}
    conflicts = find_conflicts(annotations, hierarchy)
    assert len(conflicts) == 1
    assert conflicts[0].rule is ConflictRule.EXCLUDED_ANCESTOR_OF_OBSERVED
    assert conflicts[0].target == ancestor
    assert "conflicts with observed descendant" in str(conflicts[0])
    assert annotations[ancestor] == EXCLUDED


def test_observed_ancestor_of_excluded_has_no_target(concept, hierarchy):
    conflicts = find_conflicts({concept("HP:0000707"): OBSERVED, concept("HP:0001250"): EXCLUDED}, hierarchy)
    assert [c.rule for c in conflicts] == [ConflictRule.OBSERVED_ANCESTOR_OF_EXCLUDED]
    assert conflicts[0].target is None
