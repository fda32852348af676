import pandas as pd


REQUIRED_COLUMNS = ["input", "expected_output", "is_hidden"]
OPTIONAL_COLUMNS = {"description": "", "time_limit": 2, "memory_limit": 128}

TRUTHY = {"1", "true", "yes", "y", "hidden"}


def _text(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    # whole numbers come back from Excel as floats (4 -> 4.0)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return _text(value).strip().lower() in TRUTHY


def parse_test_cases_excel(file):
    df = pd.read_excel(file, dtype=object)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        # Raise KeyError so upstream router can return a HTTP 400 with a helpful message
        raise KeyError(missing[0])

    test_cases = []
    for _, row in df.iterrows():
        tc = {
            "input": _text(row["input"]),
            "expected_output": _text(row["expected_output"]),
            "is_hidden": _flag(row["is_hidden"]),
        }
        for column, default in OPTIONAL_COLUMNS.items():
            value = row.get(column, default)
            if value is None or (not isinstance(value, str) and pd.isna(value)):
                value = default
            tc[column] = _text(value) if column == "description" else value
        test_cases.append(tc)

    return test_cases
