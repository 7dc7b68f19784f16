#!/usr/bin/env python3
"""
Export the OpenAPI specification of the Artgram Booking Platform API.
"""

import json
import sys

from artgram_booking_platform.main import app


def export_openapi_spec(output_file: str = "openapi.json") -> dict:
    """Write the OpenAPI schema to a JSON file and return it."""
    openapi_schema = app.openapi()

    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(openapi_schema, f, indent=2, ensure_ascii=False)

    return openapi_schema


def main():
    output_file = sys.argv[1] if len(sys.argv) > 1 else "openapi.json"

    try:
        schema = export_openapi_spec(output_file)
    except OSError as e:
        print(f"Failed to write {output_file}: {e}")
        sys.exit(1)

    info = schema.get("info", {})
    paths = schema.get("paths", {})
    print(f"Exported {info.get('title')} {info.get('version')} to {output_file}")
    print(f"{sum(len(methods) for methods in paths.values())} operations:")
    for path in sorted(paths):
        print(f"  {path}: {', '.join(method.upper() for method in paths[path])}")


if __name__ == "__main__":
    main()
