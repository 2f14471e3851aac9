"""Definition documents and builders shared across the test modules."""

from pathlib import Path

LIBRARY_DIR = Path(__file__).parent.parent / "textforge" / "definitions" / "library"

DATE_REFORMATTER = """\
name: date_reformatter
description: Convert YYYY-MM-DD dates to DD/MM/YYYY
version: "1.0.0"
transformations:
  - type: regex_replace
    config:
      pattern: '(\\d{4})-(\\d{2})-(\\d{2})'
      replacement: '\\3/\\2/\\1'
"""

SHOUT = """\
name: shout
description: Upper-case every line
version: "1.0.0"
transformations:
  - type: function_based
    config:
      template: "{{ input | upcase }}"
      allowed_functions: [upcase]
"""


def definition_yaml(name: str, pattern: str = "a", replacement: str = "b") -> str:
    """Single-step regex definition with the given name."""
    return (
        f"name: {name}\n"
        f"description: Replace {pattern} with {replacement}\n"
        'version: "1.0.0"\n'
        "transformations:\n"
        "  - type: regex_replace\n"
        "    config:\n"
        f"      pattern: '{pattern}'\n"
        f"      replacement: '{replacement}'\n"
    )


def regex_steps(pattern: str = "a", replacement: str = "b") -> list[dict]:
    return [
        {"type": "regex_replace", "config": {"pattern": pattern, "replacement": replacement}}
    ]
