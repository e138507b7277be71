"""Package lists to collect.

The built-in list groups heavy libraries with their lighter alternatives, so
that the database covers both sides of each suggestion.
"""

from pathlib import Path
from typing import Union

import yaml

LIBRARY_SUGGESTIONS: list[list[str]] = [
    # date handling
    ["moment", "date-fns", "luxon", "dayjs"],
    # utility belts
    ["lodash", "lodash-es", "underscore"],
    # DOM helpers
    ["jquery", "cash-dom", "umbrellajs"],
    # HTTP clients
    ["axios", "ky", "redaxios"],
    # promises
    ["bluebird", "promise-polyfill"],
    # immutable data
    ["immutable", "immer"],
    # number formatting
    ["numeral", "numbro"],
    # id generation
    ["uuid", "nanoid"],
    # class name helpers
    ["classnames", "clsx"],
]


def default_packages() -> list[str]:
    """Flatten the built-in suggestion groups, keeping order and duplicates."""
    return [name for group in LIBRARY_SUGGESTIONS for name in group]


def load_package_list(path: Union[str, Path]) -> list[str]:
    """Load package names from a YAML file.

    Expected format:
        packages:
          - moment
          - [lodash, lodash-es]
          - name: axios

    Entries may be a name, a suggestion group (list of names), or a mapping
    with a ``name`` key. Order and duplicates are preserved.
    """
    with open(path) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or "packages" not in data:
        raise ValueError(f"Invalid package list: expected top-level 'packages' key in {path}")

    raw_packages = data["packages"] or []
    if not isinstance(raw_packages, list):
        raise ValueError(f"Invalid package list: 'packages' must be a list in {path}")

    names = []
    for i, item in enumerate(raw_packages):
        if isinstance(item, dict):
            group = [item.get("name", "")]
        elif isinstance(item, list):
            group = item
        else:
            group = [item]

        for name in group:
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"Entry {i + 1}: expected a package name, got {name!r}")
            names.append(name.strip())

    return names
