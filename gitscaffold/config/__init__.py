"""Configuration schema and loading for gitscaffold."""

from .loader import load_template_catalog
from .schema import (
    ArchitectureTemplates,
    ContractTemplates,
    FetcherConfig,
    TemplateCatalog,
    TemplateSource,
)

__all__ = [
    "ArchitectureTemplates",
    "ContractTemplates",
    "FetcherConfig",
    "TemplateCatalog",
    "TemplateSource",
    "load_template_catalog",
]
