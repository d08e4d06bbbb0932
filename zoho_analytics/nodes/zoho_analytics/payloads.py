"""CONFIG payloads for the Zoho Analytics API.

Zoho expects most options as a JSON document in the `CONFIG` query
parameter. Each builder returns the document for one operation.
"""

import json
from typing import Any

CONFIG_PARAM = "CONFIG"
FILE_TYPE = "json"

IMPORT_TYPES = ["append", "truncateadd", "updateadd"]


def encode_config(payload: dict[str, Any]) -> str:
    """Serialize a CONFIG document the way Zoho expects it (compact JSON)."""
    return json.dumps(payload, separators=(",", ":"))


def config_query(payload: dict[str, Any]) -> dict[str, str]:
    return {CONFIG_PARAM: encode_config(payload)}


def columns_from_entries(entries: list[dict[str, Any]] | None) -> dict[str, Any]:
    """Fold column entries into a ``{columnName: columnValue}`` mapping.

    Entries are not validated; a repeated column name keeps the last value.
    """
    columns: dict[str, Any] = {}
    for entry in entries or []:
        name = entry.get("columnName")
        if not name:
            continue
        columns[name] = entry.get("columnValue", "")
    return columns


def add_row_config(columns: dict[str, Any]) -> dict[str, Any]:
    return {"columns": columns}


def delete_data_config(criteria: str, modify_all: bool) -> dict[str, Any]:
    # modify_all replaces whatever criteria the user typed
    if modify_all:
        return {"deleteAllRows": True}
    return {"criteria": criteria}


def update_data_config(
    columns: dict[str, Any],
    criteria: str,
    modify_all: bool,
) -> dict[str, Any]:
    if modify_all:
        return {"columns": columns, "updateAllRows": True}
    return {"columns": columns, "criteria": criteria}


def export_data_config(criteria: str = "") -> dict[str, Any]:
    payload: dict[str, Any] = {"responseFormat": "json"}
    if criteria:
        payload["criteria"] = criteria
    return payload


def import_data_config(import_type: str) -> dict[str, Any]:
    return {
        "importType": import_type,
        "fileType": FILE_TYPE,
        "autoIdentify": False,
        "retainColumnNames": True,
    }


def import_new_table_config(table_name: str) -> dict[str, Any]:
    return {
        "tableName": table_name,
        "fileType": FILE_TYPE,
        "autoIdentify": False,
        "retainColumnNames": True,
    }


def view_metadata_config() -> dict[str, Any]:
    return {"withInvolvedMetaInfo": True}
