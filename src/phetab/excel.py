"""Read and write curation templates as Excel sheets."""

import logging
import pathlib
import typing

import pandas as pd

from .table import AnnotationTable

logger = logging.getLogger(__name__)


def read_template_matrix(
        workbook_path: typing.Union[str, pathlib.Path], sheet_name: typing.Union[str, int] = 0
) -> list[list[str]]:
    """
    Read one worksheet as a rectangular matrix of strings:
      - no header inference, the two header rows are ordinary rows
      - blank cells become ""
      - numbers are kept as written (read as text)
      - fully blank trailing rows are dropped
    """
    df = pd.read_excel(
        workbook_path,
        sheet_name=sheet_name,
        header=None,
        dtype=str,
        keep_default_na=False,
        engine="openpyxl",
    )
    matrix = [[str(v) for v in row] for row in df.itertuples(index=False, name=None)]
    while matrix and all(v == "" for v in matrix[-1]):
        matrix.pop()
    logger.debug(f"Read {len(matrix)} rows from {workbook_path}")
    return matrix


def write_template(table: AnnotationTable, workbook_path: typing.Union[str, pathlib.Path]) -> None:
    df = pd.DataFrame(table.to_matrix())
    df.to_excel(workbook_path, header=False, index=False, engine="openpyxl")
