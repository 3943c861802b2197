from __future__ import annotations

from pathlib import Path
from typing import Union

import yaml

from . import schemas


def load_config(path: Union[str, Path]) -> schemas.SankeyConfig:
    """Read a YAML Sankey description into a SankeyConfig.

    An empty document is an empty configuration.  The file stem is used as
    the name when the document does not set one.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level, got {type(data).__name__}")

    data.setdefault("name", path.stem)
    return schemas.SankeyConfig.model_validate(data)
