"""Category lookup against the vendor mapping workbook."""

import logging
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from s2b_sourcing.core.schema import CategoryMapping

logger = logging.getLogger(__name__)

SOURCE_LABELS = ("크롤링_1차", "크롤링_2차", "크롤링_3차", "크롤링_4차")
TARGET_LABELS = ("1차카테고리", "2차카테고리", "3차카테고리")
CODE_LABEL = "G2B"


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


class CategoryMapper:
    """
    Maps vendor category paths to target catalog categories.

    The workbook holds one sheet per vendor. The header row is the first
    row carrying all four source labels; rows below it are scanned in
    order and the first exact match wins. Sheets are read once and cached.
    """

    def __init__(self, workbook_path: str | Path | None):
        self.workbook_path = Path(workbook_path).expanduser() if workbook_path else None
        self._sheets: dict[str, list[tuple[str, ...]] | None] = {}

    def _load_rows(self, sheet_name: str) -> list[tuple[str, ...]] | None:
        if sheet_name in self._sheets:
            return self._sheets[sheet_name]

        rows = None
        if self.workbook_path is None or not self.workbook_path.is_file():
            logger.warning(f"Category mapping workbook not found: {self.workbook_path}")
        else:
            try:
                wb = load_workbook(self.workbook_path, read_only=True, data_only=True)
            except (InvalidFileException, OSError, KeyError) as e:
                logger.error(f"Could not open category workbook {self.workbook_path}: {e}")
                wb = None
            if wb is not None:
                try:
                    if sheet_name in wb.sheetnames:
                        rows = [
                            tuple(_cell_text(v) for v in row)
                            for row in wb[sheet_name].iter_rows(values_only=True)
                        ]
                    else:
                        logger.warning(f"Sheet '{sheet_name}' not found in category workbook")
                finally:
                    wb.close()

        self._sheets[sheet_name] = rows
        return rows

    def map(self, sheet_name: str, categories: list[str]) -> CategoryMapping:
        """
        Look up the target category of a source category path.

        Args:
            sheet_name: Vendor sheet name (e.g. "DMG")
            categories: Three or four source category levels

        Returns:
            The matching CategoryMapping, or an empty one when nothing matches
        """
        if len(categories) < 3:
            return CategoryMapping()

        rows = self._load_rows(sheet_name)
        if not rows:
            return CategoryMapping()

        header_index = next(
            (i for i, row in enumerate(rows) if all(label in row for label in SOURCE_LABELS)),
            None,
        )
        if header_index is None:
            logger.warning(f"Category mapping header not found in sheet '{sheet_name}'")
            return CategoryMapping()

        header = rows[header_index]
        source_cols = [header.index(label) for label in SOURCE_LABELS]
        target_cols = [header.index(label) if label in header else None for label in TARGET_LABELS]
        code_col = header.index(CODE_LABEL) if CODE_LABEL in header else None

        query = [c.strip() for c in categories[:4]]

        def cell(row: tuple[str, ...], col: int | None) -> str:
            if col is None or col >= len(row):
                return ""
            return row[col]

        for row in rows[header_index + 1:]:
            if all(cell(row, source_cols[i]) == query[i] for i in range(len(query))):
                return CategoryMapping(
                    target_category_1=cell(row, target_cols[0]),
                    target_category_2=cell(row, target_cols[1]),
                    target_category_3=cell(row, target_cols[2]),
                    catalog_code=cell(row, code_col),
                )

        logger.warning(f"No category mapping for {' > '.join(query)} in sheet '{sheet_name}'")
        return CategoryMapping()
