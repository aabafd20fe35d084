"""
Writes results to JSON or CSV files.
"""

import csv
import json
import logging
from pathlib import Path

import humanize

from openalex_sdk.models import ExportedFile, Page

log = logging.getLogger(__name__)


def flatten_record(record: dict[str, object], prefix: str = '') -> dict[str, object]:
    """
    Flattens one result into a single CSV row.
    - Nested dicts become dotted columns, like `ids.doi`.
    - Lists are JSON-encoded into one cell.
    - None becomes an empty cell.
    - When a dotted key collides with a flattened column (`{'a.b': 1, 'a': {'b': 2}}`), the first value seen wins.
    """
    row: dict[str, object] = {}
    for key, value in record.items():
        column: str = f'{prefix}{key}'
        if isinstance(value, dict):
            for nested_column, nested_value in flatten_record(value, prefix=f'{column}.').items():
                row.setdefault(nested_column, nested_value)
        elif isinstance(value, list):
            row.setdefault(column, json.dumps(value, ensure_ascii=False))
        elif value is None:
            row.setdefault(column, '')
        else:
            row.setdefault(column, value)
    return row


class ExportSink:
    """
    Manages result files on disk.
    - Resolves filename stems (eg `out/works`) against a base directory, creating parents as needed.
    - Writes indented UTF-8 JSON.
    - Writes CSV as a flattened projection; columns are the union of all rows' keys, in first-seen order.
    - Names chunk files `<stem>_<index>`, index starting at 1.
    - Reports each written file with its human-readable size.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir: Path = base_dir if base_dir is not None else Path('.')

    def path_for(self, stem: str, suffix: str) -> Path:
        path: Path = self.base_dir / f'{stem}{suffix}'
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def write_json(self, payload: object, stem: str) -> ExportedFile:
        path: Path = self.path_for(stem, '.json')
        with path.open('w', encoding='utf-8') as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
        return self._report(path)

    def write_csv(self, results: list[dict[str, object]], stem: str) -> ExportedFile:
        path: Path = self.path_for(stem, '.csv')
        rows: list[dict[str, object]] = [flatten_record(r) for r in results]
        columns: dict[str, None] = {}
        for row in rows:
            for column in row:
                columns.setdefault(column, None)
        with path.open('w', encoding='utf-8', newline='') as fh:
            writer = csv.DictWriter(fh, fieldnames=list(columns), restval='')
            writer.writeheader()
            writer.writerows(rows)
        return self._report(path)

    def export_page(self, page: Page, export_json: str | None, export_csv: str | None) -> list[ExportedFile]:
        """
        Writes a whole page (meta included) to JSON and its results to CSV, for whichever targets are set.
        Called by: OpenAlex._search()
        """
        written: list[ExportedFile] = []
        if export_json:
            written.append(self.write_json(page.to_json(), export_json))
        if export_csv:
            written.append(self.write_csv(page.results, export_csv))
        return written

    def flush_chunk(
        self, results: list[dict[str, object]], index: int, export_json: str | None, export_csv: str | None
    ) -> list[ExportedFile]:
        """
        Writes one chunk of a drain to `<stem>_<index>` files.
        Called by: PaginationDriver.drain_in_chunks()
        """
        written: list[ExportedFile] = []
        if export_json:
            written.append(self.write_json(results, f'{export_json}_{index}'))
        if export_csv:
            written.append(self.write_csv(results, f'{export_csv}_{index}'))
        return written

    def _report(self, path: Path) -> ExportedFile:
        size: str = humanize.naturalsize(path.stat().st_size)
        log.info(f'wrote ``{path}`` ({size})')
        return ExportedFile(path=path, size=size)
