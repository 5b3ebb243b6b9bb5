"""Helpers for loading the template catalog from TOML/JSON sources.

``load_template_catalog`` accepts:

* None -> bundled ``templates.toml``
* dict -> TemplateCatalog.from_dict
* Path / path-like string -> load .toml/.json from filesystem
* Inline JSON/TOML strings
"""

from __future__ import annotations

import json
import logging
import tomllib
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Union

from gitscaffold.config.schema import TemplateCatalog

logger = logging.getLogger("gitscaffold.config.loader")

ConfigSource = Union[str, Path, Dict[str, Any], None]

_BUNDLED_CATALOG = "templates.toml"


def _parse(text: str, fmt: str) -> Dict[str, Any]:
    data = json.loads(text) if fmt == "json" else tomllib.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Top-level configuration must be a mapping/dict")
    return data


def _guess_format(text: str) -> str:
    return "json" if text.lstrip().startswith(("{", "[")) else "toml"


@lru_cache(maxsize=1)
def bundled_catalog() -> TemplateCatalog:
    """Load the catalog shipped with the package.

    The result is frozen and cached, so every caller shares one instance.
    """
    text = (
        resources.files("gitscaffold.config")
        .joinpath(_BUNDLED_CATALOG)
        .read_text(encoding="utf-8")
    )
    return TemplateCatalog.from_dict(_parse(text, "toml"))


def load_template_catalog(source: ConfigSource = None) -> TemplateCatalog:
    """Load a TemplateCatalog from various configuration sources.

    Args:
        source: One of:
            * None: returns the bundled catalog
            * dict: treated as already-parsed configuration mapping
            * str/Path: either a filesystem path to a .toml/.json file,
              or an inline TOML/JSON string (auto-detected)

    Returns:
        TemplateCatalog instance.

    Raises:
        ValueError: If the source does not hold a mapping.
        pydantic.ValidationError: If the catalog is invalid.
    """
    if source is None:
        logger.debug("No catalog source provided; using bundled templates")
        return bundled_catalog()

    if isinstance(source, dict):
        logger.debug("Loading TemplateCatalog from provided dict")
        return TemplateCatalog.from_dict(source)

    if isinstance(source, (str, Path)):
        path = Path(source)
        fmt: Optional[str] = None
        try:
            is_file = path.is_file()
        except OSError:
            # Inline strings can exceed filename limits
            is_file = False

        if is_file:
            text = path.read_text(encoding="utf-8")
            suffix = path.suffix.lower()
            if suffix in {".toml", ".tml"}:
                fmt = "toml"
            elif suffix == ".json":
                fmt = "json"
            else:
                fmt = _guess_format(text)
            logger.info("Loading template catalog from file: %s (fmt=%s)", path, fmt)
        else:
            text = str(source)
            fmt = _guess_format(text)
            logger.info("Loading template catalog from inline %s string", fmt)

        return TemplateCatalog.from_dict(_parse(text, fmt))

    raise TypeError(f"Unsupported config source type: {type(source)!r}")


__all__ = ["bundled_catalog", "load_template_catalog"]
