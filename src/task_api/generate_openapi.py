"""
Utility script to generate and write the OpenAPI schema for the FastAPI app.

Builds the application through create_app() and serializes its OpenAPI schema
to interfaces/openapi.json (or a path given on the command line) so API
clients and documentation tools can consume a stable schema without running
the server.

Usage:
    python -m task_api.generate_openapi [OUTPUT_PATH]
"""
from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional

from .main import create_app, openapi_tags
from .settings import Settings

_DEFAULT_OUT = os.path.join("interfaces", "openapi.json")


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema contains the tags metadata declared in main,
    without overriding tag definitions that are already present.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[str] = None) -> str:
    """Write the OpenAPI schema as pretty JSON and return the written file path."""
    # The schema does not depend on runtime settings; use in-memory defaults.
    app = create_app(Settings())
    schema = app.openapi()
    _ensure_tags(schema)

    out_path = out_path or _DEFAULT_OUT
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    return out_path


def main(argv: Optional[List[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    path = generate_openapi(args[0] if args else None)
    print(f"Wrote OpenAPI schema to: {path}")


if __name__ == "__main__":
    main()
