"""
JSON persistence for annotation tables.

Keys are camelCase and must stay stable between releases, since curated
cohorts are stored this way between sessions. Cells are written as
`{"type": "Observed"}` or, for text-carrying values,
`{"type": "OnsetAge", "data": "P3Y"}`.
"""

import json
import pathlib
import typing

from .cell_value import CellKind, CellValue
from .header import ConceptRef, TableSchema
from .table import (
    AnnotationTable,
    CaseRow,
    CohortType,
    DemographicData,
    DiseaseData,
    GeneVariantData,
    IndividualData,
)

_INDIVIDUAL_KEYS = {"pmid": "pmid", "title": "title", "individual_id": "individualId", "comment": "comment"}
_DISEASE_KEYS = {"disease_id": "diseaseId", "disease_label": "diseaseLabel"}
_GENE_VARIANT_KEYS = {
    "hgnc_id": "hgncId",
    "gene_symbol": "geneSymbol",
    "transcript": "transcript",
    "allele_1": "allele1",
    "allele_2": "allele2",
    "variant_comment": "variantComment",
}
_DEMOGRAPHIC_KEYS = {
    "age_of_onset": "ageOfOnset",
    "age_at_last_encounter": "ageAtLastEncounter",
    "deceased": "deceased",
    "sex": "sex",
}


def cell_to_dict(value: CellValue) -> dict:
    out = {"type": value.kind.value}
    if value.text is not None:
        out["data"] = value.text
    return out


def cell_from_dict(data: dict) -> CellValue:
    return CellValue(CellKind(data["type"]), data.get("data"))


def _block_to_dict(obj, keys: dict[str, str]) -> dict:
    return {camel: getattr(obj, attr) for attr, camel in keys.items()}


def _block_from_dict(cls, data: dict, keys: dict[str, str]):
    return cls(**{attr: data[camel] for attr, camel in keys.items()})


def table_to_dict(table: AnnotationTable) -> dict:
    table.check_structure()
    return {
        "cohortType": table.cohort_type.value,
        "phetoolsSchemaVersion": table.schema_version,
        "hpoVersion": table.hpo_version,
        "cohortAcronym": table.cohort_acronym,
        "hpoHeaders": [{"hpoId": c.concept_id, "hpoLabel": c.label} for c in table.concepts],
        "rows": [
            {
                "individualData": _block_to_dict(row.individual, _INDIVIDUAL_KEYS),
                "diseaseData": _block_to_dict(row.disease, _DISEASE_KEYS),
                "geneVariantData": _block_to_dict(row.gene_variant, _GENE_VARIANT_KEYS),
                "demographicData": _block_to_dict(row.demographics, _DEMOGRAPHIC_KEYS),
                "hpoData": [cell_to_dict(v) for v in row.cells],
            }
            for row in table.rows
        ],
    }


def table_from_dict(data: dict) -> AnnotationTable:
    concepts = [ConceptRef(h["hpoId"], h["hpoLabel"]) for h in data["hpoHeaders"]]
    rows = [
        CaseRow(
            individual=_block_from_dict(IndividualData, r["individualData"], _INDIVIDUAL_KEYS),
            disease=_block_from_dict(DiseaseData, r["diseaseData"], _DISEASE_KEYS),
            gene_variant=_block_from_dict(GeneVariantData, r["geneVariantData"], _GENE_VARIANT_KEYS),
            demographics=_block_from_dict(DemographicData, r["demographicData"], _DEMOGRAPHIC_KEYS),
            cells=[cell_from_dict(c) for c in r["hpoData"]],
        )
        for r in data["rows"]
    ]
    return AnnotationTable(
        TableSchema(concepts),
        rows,
        cohort_type=CohortType(data["cohortType"]),
        hpo_version=data.get("hpoVersion"),
        schema_version=data["phetoolsSchemaVersion"],
        cohort_acronym=data.get("cohortAcronym"),
    )


def save_table(table: AnnotationTable, path: typing.Union[str, pathlib.Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(table_to_dict(table), f, indent=2)


def load_table(path: typing.Union[str, pathlib.Path]) -> AnnotationTable:
    with open(path, encoding="utf-8") as f:
        return table_from_dict(json.load(f))
