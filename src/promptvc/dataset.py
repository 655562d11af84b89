# Copyright (c) Syntropy Systems
"""Dataset loading for JSON and CSV test case files.

JSON files hold ``{"testCases": [{"name", "inputs", "expectedOutput"?}]}``.
CSV files have ``name`` and ``inputs`` columns (inputs is a JSON object string)
and an optional ``expected_output`` column.
"""
from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import cast

from pydantic import ValidationError as PydanticValidationError

from promptvc.errors import DatasetParseError
from promptvc.models.experiment import Dataset, TestCase


def _stringify_inputs(inputs: dict[str, object]) -> dict[str, str]:
    """Template variables are text; other JSON scalars keep their JSON spelling."""
    return {
        str(key): value if isinstance(value, str) else json.dumps(value)
        for key, value in inputs.items()
    }


def _cell(value: object) -> str:
    # Surplus cells beyond the header arrive as a list; they are ignored.
    return value.strip() if isinstance(value, str) else ""


def _first_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def validate_dataset(data: object) -> Dataset:
    """Check the dataset shape and build a Dataset."""
    if not isinstance(data, dict):
        msg = "Dataset must be an object"
        raise DatasetParseError(msg)
    data_dict = cast("dict[str, object]", data)

    raw_cases = data_dict.get("testCases")
    if raw_cases is None:
        msg = 'Dataset must have a "testCases" property'
        raise DatasetParseError(msg)
    if not isinstance(raw_cases, list):
        msg = "testCases must be an array"
        raise DatasetParseError(msg)

    test_cases: list[TestCase] = []
    for raw in cast("list[object]", raw_cases):
        if not isinstance(raw, dict):
            msg = "Test case must be an object"
            raise DatasetParseError(msg)
        case = cast("dict[str, object]", raw)
        if not isinstance(case.get("name"), str):
            msg = 'Each test case must have a "name" string property'
            raise DatasetParseError(msg)
        inputs = case.get("inputs")
        if not isinstance(inputs, dict):
            msg = 'Each test case must have an "inputs" object property'
            raise DatasetParseError(msg)
        try:
            test_cases.append(
                TestCase.model_validate(
                    {**case, "inputs": _stringify_inputs(cast("dict[str, object]", inputs))}
                )
            )
        except PydanticValidationError as e:
            msg = f"Invalid test case '{case['name']}': {_first_error(e)}"
            raise DatasetParseError(msg) from e

    return Dataset(test_cases=test_cases)


def parse_json(content: str) -> Dataset:
    """Parse a JSON dataset."""
    try:
        data = cast("object", json.loads(content))
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON format: {e}"
        raise DatasetParseError(msg) from e
    return validate_dataset(data)


def parse_csv(content: str) -> Dataset:
    """Parse a CSV dataset."""
    if not content.strip():
        msg = "CSV content is empty"
        raise DatasetParseError(msg)

    reader = csv.DictReader(io.StringIO(content), skipinitialspace=True)
    try:
        rows = [
            {(k or "").strip(): _cell(v) for k, v in row.items()}
            for row in reader
            if any(_cell(v) for v in row.values())
        ]
    except csv.Error as e:
        msg = f"Invalid CSV format: {e}"
        raise DatasetParseError(msg) from e

    fieldnames = {name.strip() for name in reader.fieldnames or []}
    if not rows:
        msg = "CSV file contains no data rows"
        raise DatasetParseError(msg)
    if not {"name", "inputs"}.issubset(fieldnames):
        msg = 'CSV must have "name" and "inputs" columns'
        raise DatasetParseError(msg)

    test_cases: list[TestCase] = []
    for row in rows:
        name = row["name"]
        try:
            inputs = cast("object", json.loads(row["inputs"]))
        except json.JSONDecodeError as e:
            msg = f'Invalid JSON in inputs column for "{name}": {e}'
            raise DatasetParseError(msg) from e
        if not isinstance(inputs, dict):
            msg = f'Invalid JSON in inputs column for "{name}": Inputs must be an object'
            raise DatasetParseError(msg)

        test_cases.append(
            TestCase(
                name=name,
                inputs=_stringify_inputs(cast("dict[str, object]", inputs)),
                expected_output=row.get("expected_output") or None,
            )
        )

    return Dataset(test_cases=test_cases)


def parse_file(path: Path) -> Dataset:
    """Parse a dataset file based on its extension (.json or .csv)."""
    suffix = path.suffix.lower()
    if suffix not in {".json", ".csv"}:
        msg = f"Unsupported file format: {path}. Use .json or .csv"
        raise DatasetParseError(msg)

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read file: {e}"
        raise DatasetParseError(msg) from e

    if suffix == ".json":
        return parse_json(content)
    return parse_csv(content)
