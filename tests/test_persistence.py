import json

from phetab.cell_value import CellKind, CellValue
from phetab.persistence import cell_from_dict, cell_to_dict, load_table, save_table, table_to_dict
from phetab.table import AnnotationTable


def _table(make_template):
    matrix = make_template(
        [("HP:0001166", "Arachnodactyly"), ("HP:0001631", "Atrial septal defect")],
        [["observed", "G22w3d"], ["excluded", "na"]],
    )
    return AnnotationTable.from_matrix(matrix, hpo_version="2024-04-26", cohort_acronym="MFS")


def test_cell_encoding():
    assert cell_to_dict(CellValue.parse("na")) == {"type": "Na"}
    assert cell_to_dict(CellValue.parse("P3Y")) == {"type": "OnsetAge", "data": "P3Y"}
    assert cell_from_dict({"type": "Observed"}) == CellValue.parse("observed")


def test_stable_keys(make_template):
    data = table_to_dict(_table(make_template))
    assert data["cohortType"] == "mendelian"
    assert data["phetoolsSchemaVersion"] == "0.3"
    assert data["hpoHeaders"][0] == {"hpoId": "HP:0001166", "hpoLabel": "Arachnodactyly"}
    row = data["rows"][0]
    assert row["individualData"]["individualId"] == "Individual 1"
    assert row["geneVariantData"]["allele1"] == "c.8326C>T"
    assert row["demographicData"]["ageAtLastEncounter"] == "P10Y"
    assert row["hpoData"] == [{"type": "Observed"}, {"type": "OnsetAge", "data": "G22w3d"}]


def test_save_and_load(tmp_path, make_template):
    table = _table(make_template)
    path = tmp_path / "cohort.json"
    save_table(table, path)
    json.loads(path.read_text())
    loaded = load_table(path)
    assert loaded == table
    assert loaded.cohort_acronym == "MFS"
    assert loaded.to_matrix() == table.to_matrix()
