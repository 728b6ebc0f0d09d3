"""
Phenopacket export.

Builds one GA4GH Phenopacket (schema v2) per table row. Observed and excluded
cells become phenotypic features; onset text on a cell becomes the feature
onset. Cells that are na are skipped.
"""

import logging
import pathlib
import re
import typing

import phenopackets.schema.v2 as pps2
from google.protobuf.json_format import MessageToJson
from phenopackets.schema.v2.phenopackets_pb2 import Phenopacket

from .cell_value import ONSET_TERMS, CellKind, is_iso_age, parse_gestational_age
from .table import AnnotationTable, CaseRow

logger = logging.getLogger(__name__)

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]")

SEX_CODES = {"M": "MALE", "F": "FEMALE", "O": "OTHER_SEX", "U": "UNKNOWN_SEX"}
VITAL_STATUS_CODES = {"yes": "DECEASED", "no": "ALIVE"}
PHENOPACKET_SCHEMA_VERSION = "2.0"


def phenopacket_id(row: CaseRow) -> str:
    raw = f"{row.individual.pmid}_{row.individual.individual_id}"
    return _UNSAFE_ID_CHARS.sub("_", raw)


def _set_time_element(element, text: str) -> bool:
    """Fill a TimeElement from age text; False when the text is na."""
    if text in ONSET_TERMS:
        element.ontology_class.CopyFrom(pps2.OntologyClass(id=ONSET_TERMS[text], label=text))
        return True
    gestational = parse_gestational_age(text)
    if gestational is not None:
        element.gestational_age.weeks, element.gestational_age.days = gestational
        return True
    if is_iso_age(text):
        element.age.iso8601duration = text
        return True
    return False


def row_to_phenopacket(table: AnnotationTable, row: CaseRow, created_by: str = "phetab") -> Phenopacket:
    phenopacket = Phenopacket()
    phenopacket.id = phenopacket_id(row)

    subject = phenopacket.subject
    subject.id = row.individual.individual_id
    subject.sex = pps2.Sex.Value(SEX_CODES[row.demographics.sex])
    _set_time_element(subject.time_at_last_encounter, row.demographics.age_at_last_encounter)
    if row.demographics.deceased in VITAL_STATUS_CODES:
        subject.vital_status.status = subject.vital_status.Status.Value(
            VITAL_STATUS_CODES[row.demographics.deceased]
        )

    for concept, value in zip(table.concepts, row.cells):
        if value.kind in (CellKind.NA, CellKind.MODIFIER):
            continue
        feature = phenopacket.phenotypic_features.add()
        feature.type.CopyFrom(pps2.OntologyClass(id=concept.concept_id, label=concept.label))
        if value.kind is CellKind.EXCLUDED:
            feature.excluded = True
        elif value.kind is CellKind.ONSET_AGE:
            _set_time_element(feature.onset, value.text)

    disease = phenopacket.diseases.add()
    disease.term.CopyFrom(
        pps2.OntologyClass(id=row.disease.disease_id, label=row.disease.disease_label)
    )
    _set_time_element(disease.onset, row.demographics.age_of_onset)

    interpretation = phenopacket.interpretations.add()
    interpretation.id = f"{phenopacket.id}-interpretation"
    interpretation.progress_status = interpretation.ProgressStatus.SOLVED
    interpretation.diagnosis.disease.CopyFrom(disease.term)
    for allele in (row.gene_variant.allele_1, row.gene_variant.allele_2):
        if allele == "na":
            continue
        genomic = interpretation.diagnosis.genomic_interpretations.add()
        genomic.subject_or_biosample_id = subject.id
        genomic.interpretation_status = genomic.InterpretationStatus.CAUSATIVE
        descriptor = genomic.variant_interpretation.variation_descriptor
        descriptor.id = f"{row.gene_variant.transcript}:{allele}"
        descriptor.gene_context.value_id = row.gene_variant.hgnc_id
        descriptor.gene_context.symbol = row.gene_variant.gene_symbol
        if allele.startswith("c."):
            expression = descriptor.expressions.add()
            expression.syntax = "hgvs.c"
            expression.value = f"{row.gene_variant.transcript}:{allele}"
        else:
            descriptor.label = allele

    reference = phenopacket.meta_data.external_references.add()
    reference.id = row.individual.pmid
    reference.description = row.individual.title

    meta = phenopacket.meta_data
    meta.created.GetCurrentTime()
    meta.created_by = created_by
    meta.phenopacket_schema_version = PHENOPACKET_SCHEMA_VERSION
    hp = meta.resources.add()
    hp.id = "hp"
    hp.name = "human phenotype ontology"
    hp.url = "http://purl.obolibrary.org/obo/hp.owl"
    hp.version = table.hpo_version or ""
    hp.namespace_prefix = "HP"
    hp.iri_prefix = "http://purl.obolibrary.org/obo/HP_"
    return phenopacket


def table_to_phenopackets(table: AnnotationTable) -> list[Phenopacket]:
    table.check_structure()
    return [row_to_phenopacket(table, row) for row in table.rows]


def write_phenopackets(table: AnnotationTable, output_dir: typing.Union[str, pathlib.Path]) -> list[pathlib.Path]:
    output_dir = pathlib.Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for phenopacket in table_to_phenopackets(table):
        path = output_dir / f"{phenopacket.id}.json"
        with open(path, "w", encoding="utf-8") as out_f:
            out_f.write(MessageToJson(phenopacket))
        written.append(path)
    logger.info(f"Wrote {len(written)} phenopackets to {output_dir}")
    return written
