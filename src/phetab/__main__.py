"""
Command-line interface for phetab.

Validates curation templates, converts them to the JSON cohort format,
edits, sanitizes and merges stored cohorts, and exports phenopackets.
"""

import logging
import os
import pathlib
import sys
import typing

import click
import requests
from stairval.notepad import create_notepad

from .errors import (
    DuplicateConceptError,
    StructuralError,
    TableValidationError,
    UnknownConceptError,
)
from .excel import read_template_matrix
from .header import ConceptRef
from .hierarchy import ConceptHierarchy, load_hierarchy
from .merge import merge_tables
from .persistence import load_table, save_table
from .phenopacket import write_phenopackets
from .qc import check_table, refresh_concept_labels, require_known_concept
from .sanitizer import sanitize_table
from .table import AnnotationTable

DEFAULT_HPO_PATH = os.getenv("PHETAB_HPO_PATH", "tests/data/hp.json")
HPO_RELEASES = "https://github.com/obophenotype/human-phenotype-ontology/releases"
HPO_LATEST_RELEASE = "https://api.github.com/repos/obophenotype/human-phenotype-ontology/releases/latest"

_hpo_option = click.option(
    "-hpo",
    "--custom-hpo",
    "hpo_path",
    type=click.Path(dir_okay=False),
    help=f"path to an HPO JSON file (defaults to $PHETAB_HPO_PATH or {DEFAULT_HPO_PATH})",
)
_cohort_option = click.option(
    "-c",
    "--cohort",
    "cohort_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to a cohort JSON file",
)


@click.group()
@click.option("--verbose", is_flag=True, help="Also emit debug logs to stderr")
@click.option(
    "--log-file-path",
    type=click.Path(dir_okay=False, writable=True),
    help="Append timestamped logs to this file",
)
def main(verbose: bool = False, log_file_path: typing.Optional[str] = None):
    """phetab: ontology-consistent phenotype annotation tables."""
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


@main.command(name="download")
@click.option(
    "-d",
    "--data-path",
    "data_dir",
    default="tests/data",
    type=click.Path(exists=True),
    help="where to save HPO JSON (default: tests/data)",
)
@click.option(
    "-v",
    "--hpo-version",
    default=None,
    type=str,
    help="exact HPO release tag (e.g. 2025-03-03 or v2025-03-03)",
)
def download(data_dir: str, hpo_version: typing.Optional[str]):
    """Download a specific or the latest HPO JSON release."""
    datadir = pathlib.Path(data_dir)
    datadir.mkdir(parents=True, exist_ok=True)
    if hpo_version:
        tag = hpo_version if hpo_version.startswith("v") else f"v{hpo_version}"
    else:
        resp = requests.get(HPO_LATEST_RELEASE)
        resp.raise_for_status()
        tag = resp.json()["tag_name"]
    url = f"{HPO_RELEASES}/download/{tag}/hp.json"
    click.echo(f"Downloading HPO release {tag} …")
    resp = requests.get(url)
    resp.raise_for_status()

    out = datadir / "hp.json"
    with open(out, "wb") as f:
        f.write(resp.content)
    click.echo(f"Saved HPO JSON to {out}")


@main.command(name="validate-excel")
@click.option(
    "-e",
    "--excel-path",
    "excel_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to the Excel template",
)
@click.option("-s", "--sheet", default="0", help="sheet name or index (default: first sheet)")
@_hpo_option
def validate_excel(excel_file: str, sheet, hpo_path: typing.Optional[str] = None):
    """
    Check a template: headers, every cell, then the cohort against the ontology.
    All problems are listed in one run.
    """
    hierarchy = _load_hierarchy(_locate_hpo_file(hpo_path))
    table = _parse_template(excel_file, sheet, hierarchy)

    notepad = create_notepad("cohort")
    check_table(table, hierarchy, notepad)
    _report_issues(notepad)
    if notepad.has_errors(include_subsections=True):
        sys.exit(1)
    click.echo(f"{excel_file}: {len(table.rows)} rows, {len(table.concepts)} HPO columns, no errors")


@main.command(name="excel-to-json")
@click.option(
    "-e",
    "--excel-path",
    "excel_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to the Excel template",
)
@click.option("-s", "--sheet", default="0", help="sheet name or index (default: first sheet)")
@click.option("-o", "--output", "output_path", required=True, type=click.Path(dir_okay=False))
@click.option("--acronym", default=None, help="cohort acronym to store with the table")
@click.option("--sanitize/--no-sanitize", default=True, help="reset redundant annotations to na")
@_hpo_option
def excel_to_json(
        excel_file: str,
        sheet,
        output_path: str,
        acronym: typing.Optional[str],
        sanitize: bool,
        hpo_path: typing.Optional[str] = None,
):
    """Convert a template into a cohort JSON file with arranged HPO columns."""
    hierarchy = _load_hierarchy(_locate_hpo_file(hpo_path))
    table = _parse_template(excel_file, sheet, hierarchy)
    table.cohort_acronym = acronym
    for change in _refresh_labels(table, hierarchy):
        click.echo(f"Updated {change}")
    table.rearrange(hierarchy)
    if sanitize:
        changed = sanitize_table(table, hierarchy)
        click.echo(f"Sanitizer changed {changed} cell(s)")
    save_table(table, output_path)
    click.echo(f"Wrote {len(table.rows)} rows to {output_path}")


@main.command(name="sanitize")
@_cohort_option
@click.option("-o", "--output", "output_path", type=click.Path(dir_okay=False), help="defaults to overwriting the input")
@_hpo_option
def sanitize(cohort_path: str, output_path: typing.Optional[str], hpo_path: typing.Optional[str] = None):
    """Reset redundant and conflicting annotations of a stored cohort to na."""
    hierarchy = _load_hierarchy(_locate_hpo_file(hpo_path))
    table = _load_cohort(cohort_path)
    changed = sanitize_table(table, hierarchy)
    save_table(table, output_path or cohort_path)
    click.echo(f"Sanitizer changed {changed} cell(s)")


@main.command(name="merge")
@click.option("-a", "first_path", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("-b", "second_path", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", "output_path", required=True, type=click.Path(dir_okay=False))
@_hpo_option
def merge(first_path: str, second_path: str, output_path: str, hpo_path: typing.Optional[str] = None):
    """Merge two cohort JSON files; rows of -a come first."""
    hierarchy = _load_hierarchy(_locate_hpo_file(hpo_path))
    try:
        merged = merge_tables(_load_cohort(first_path), _load_cohort(second_path), hierarchy)
    except StructuralError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    save_table(merged, output_path)
    click.echo(f"Wrote {len(merged.rows)} rows and {len(merged.concepts)} HPO columns to {output_path}")


@main.command(name="add-term")
@_cohort_option
@click.option("-i", "--hpo-id", "concept_id", required=True, help="HPO id of the new column")
@_hpo_option
def add_term(cohort_path: str, concept_id: str, hpo_path: typing.Optional[str] = None):
    """Add an HPO column to a stored cohort; existing rows get na."""
    hierarchy = _load_hierarchy(_locate_hpo_file(hpo_path))
    table = _load_cohort(cohort_path)
    concept = ConceptRef(concept_id, hierarchy.label_of(concept_id) or "")
    try:
        require_known_concept(concept, hierarchy)
        table.add_concept(concept, hierarchy)
    except (UnknownConceptError, DuplicateConceptError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    save_table(table, cohort_path)
    click.echo(f"Added {concept}")


@main.command(name="remove-term")
@_cohort_option
@click.option("-i", "--hpo-id", "concept_id", required=True, help="HPO id of the column to drop")
def remove_term(cohort_path: str, concept_id: str):
    """Remove an HPO column from a stored cohort."""
    table = _load_cohort(cohort_path)
    try:
        removed = table.remove_concept(concept_id)
    except KeyError:
        click.echo(f"Error: {concept_id} is not a column of {cohort_path}", err=True)
        sys.exit(1)
    save_table(table, cohort_path)
    click.echo(f"Removed {removed}")


@main.command(name="export-phenopackets")
@_cohort_option
@click.option("-o", "--output-dir", "output_dir", required=True, type=click.Path(file_okay=False))
def export_phenopackets(cohort_path: str, output_dir: str):
    """Write one phenopacket JSON file per row of a stored cohort."""
    table = _load_cohort(cohort_path)
    written = write_phenopackets(table, output_dir)
    click.echo(f"Wrote {len(written)} phenopacket files to {output_dir}")


def _locate_hpo_file(hpo_path: typing.Optional[str]) -> pathlib.Path:
    hpo_file = pathlib.Path(hpo_path or DEFAULT_HPO_PATH)
    if not hpo_file.is_file():
        click.echo(f"Error: HPO file not found at {hpo_file}", err=True)
        sys.exit(1)
    return hpo_file


def _load_hierarchy(hpo_file: pathlib.Path) -> ConceptHierarchy:
    return load_hierarchy(str(hpo_file))


def _parse_template(excel_file: str, sheet, hierarchy: ConceptHierarchy) -> AnnotationTable:
    if isinstance(sheet, str) and sheet.isdigit():
        sheet = int(sheet)
    matrix = read_template_matrix(excel_file, sheet_name=sheet)
    try:
        return AnnotationTable.from_matrix(matrix, hpo_version=hierarchy.version)
    except TableValidationError as e:
        click.echo(f"Errors found in {excel_file}:")
        for message in e.messages:
            click.echo(f"- {message}")
        sys.exit(1)
    except StructuralError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _load_cohort(cohort_path: str) -> AnnotationTable:
    try:
        return load_table(cohort_path)
    except StructuralError as e:
        click.echo(f"Error: {cohort_path} is inconsistent: {e}", err=True)
        sys.exit(1)
    except KeyError as e:
        click.echo(f"Error: {cohort_path} is missing the field {e}", err=True)
        sys.exit(1)
    except ValueError as e:
        click.echo(f"Error: {cohort_path} is not a valid cohort file: {e}", err=True)
        sys.exit(1)


def _refresh_labels(table: AnnotationTable, hierarchy: ConceptHierarchy) -> list[str]:
    try:
        return refresh_concept_labels(table, hierarchy)
    except DuplicateConceptError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _report_issues(notepad):
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found:")
        for err in notepad.errors():
            click.echo(f"- {err.message}")
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found:")
        for w in notepad.warnings():
            click.echo(f"- {w.message}")


if __name__ == "__main__":
    main()
