"""Export service for registration records (CSV, JSON)."""

import csv
import io
import json
from datetime import datetime
from pathlib import Path

from s2b_sourcing.core.schema import COLUMN_HEADERS, OutputRecord


class ExportService:
    """Service for exporting registration records in various formats."""

    def export_records_csv(self, records: list[OutputRecord]) -> str:
        """
        Export records as CSV with the registration workbook headers.

        Args:
            records: Records to export.

        Returns:
            CSV string.
        """
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=list(COLUMN_HEADERS.values()))
        writer.writeheader()
        for record in records:
            writer.writerow(record.to_row())
        return output.getvalue()

    def export_records_json(self, records: list[OutputRecord]) -> str:
        """
        Export records as structured JSON.

        Args:
            records: Records to export.

        Returns:
            JSON string.
        """
        return json.dumps(
            {
                "export_version": "1.0",
                "export_date": datetime.now().isoformat(),
                "count": len(records),
                "records": [record.model_dump(mode="json") for record in records],
            },
            ensure_ascii=False,
            indent=2,
        )

    def write(self, records: list[OutputRecord], path: str | Path) -> Path:
        """
        Write records to a file, choosing the format by extension.

        ``.csv`` gets CSV (UTF-8 with BOM so spreadsheet tools detect the
        encoding); anything else gets JSON.
        """
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() == ".csv":
            path.write_text(self.export_records_csv(records), encoding="utf-8-sig")
        else:
            path.write_text(self.export_records_json(records), encoding="utf-8")
        return path
