from phetab.arranger import arrange_concepts


def test_arrangement_follows_depth_first_order(concept, hierarchy):
    concepts = [
        concept("HP:0001250"),  # Seizure
        concept("HP:0001631"),  # Atrial septal defect
        concept("HP:0033127"),  # Abnormality of the musculoskeletal system
        concept("HP:0001166"),  # Arachnodactyly
    ]
    arrangement = arrange_concepts(concepts, hierarchy)
    assert [c.concept_id for c in arrangement.ordered] == [
        "HP:0033127", "HP:0001166", "HP:0001631", "HP:0001250",
    ]
    assert arrangement.unreachable == []


def test_arrangement_is_a_permutation(concept, hierarchy):
    ids = ["HP:0001288", "HP:0100807", "HP:0001627", "HP:0000707", "HP:0001166", "HP:0030680"]
    arrangement = arrange_concepts([concept(i) for i in ids], hierarchy)
    assert sorted(c.concept_id for c in arrangement.concepts()) == sorted(ids)


def test_neoplasms_are_moved_to_the_end(concept, hierarchy):
    """Neoplasm of the heart sits under both Neoplasm and Abnormal heart morphology."""
    concepts = [concept("HP:0100544"), concept("HP:0001627"), concept("HP:0001250"), concept("HP:0002664")]
    arrangement = arrange_concepts(concepts, hierarchy)
    assert [c.concept_id for c in arrangement.ordered] == [
        "HP:0001627", "HP:0001250", "HP:0002664", "HP:0100544",
    ]


def test_unreachable_concepts_are_kept_and_reported(concept, hierarchy, caplog):
    concepts = [concept("HP:0000006"), concept("HP:0001250")]
    arrangement = arrange_concepts(concepts, hierarchy)
    assert [c.concept_id for c in arrangement.ordered] == ["HP:0001250"]
    assert [c.concept_id for c in arrangement.unreachable] == ["HP:0000006"]
    assert [c.concept_id for c in arrangement.concepts()] == ["HP:0001250", "HP:0000006"]
    assert "Autosomal dominant inheritance" in caplog.text


def test_duplicate_inputs_collapse(concept, hierarchy):
    arrangement = arrange_concepts([concept("HP:0001250"), concept("HP:0001250")], hierarchy)
    assert len(arrangement.concepts()) == 1
