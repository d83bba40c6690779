"""
Export the OpenAPI spec of the catalog API to a JSON file.

Usage:
    python scripts/export_openapi.py [output_path]

Without an argument the spec is written to ./docs/openapi.json.
"""

import json
import os
import sys

# Ensure the app package is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.main import app  # noqa: E402

DEFAULT_OUTPUT = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "docs", "openapi.json"
)


def export(output_file: str) -> dict:
    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)

    spec = app.openapi()
    with open(output_file, "w") as f:
        json.dump(spec, f, indent=2, default=str)
    return spec


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    output_file = argv[0] if argv else DEFAULT_OUTPUT

    spec = export(output_file)

    print(f"OpenAPI spec exported to {output_file}")
    print(f"    Title   : {spec['info']['title']}")
    print(f"    Version : {spec['info']['version']}")
    print(f"    Paths   : {len(spec.get('paths', {}))}")


if __name__ == "__main__":
    main()
