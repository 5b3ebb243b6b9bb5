"""Configuration schema definitions using Pydantic for validation.

Configuration objects are frozen: they are built once at startup (from
defaults, the bundled template catalog, or a user file) and passed down
explicitly.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FetcherConfig(BaseModel):
    """Options for cloning templates.

    Attributes:
        verbose: Pass git output straight to the terminal instead of
            parsing it into progress rows.
        git_binary: git executable to run.
        submodule_depth: ``--depth`` used for submodule updates.
        max_tracked_rows: Maximum progress rows shown at once.
    """

    model_config = ConfigDict(frozen=True)

    verbose: bool = False
    git_binary: str = "git"
    submodule_depth: int = Field(default=1, ge=1)
    max_tracked_rows: int = Field(default=10, ge=1, le=100)


class TemplateSource(BaseModel):
    """Where a project template lives.

    Attributes:
        base_url: Repository URL of the template.
        version: Ref (branch, tag or commit) to clone.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_url: str = Field(alias="baseUrl")
    version: str = "main"

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Reject empty template URLs."""
        if not v.strip():
            raise ValueError("baseUrl must not be empty")
        return v.strip()


class ContractTemplates(BaseModel):
    """Contract templates per language."""

    model_config = ConfigDict(frozen=True)

    languages: Dict[str, TemplateSource] = Field(default_factory=dict)


class ArchitectureTemplates(BaseModel):
    """Templates available for one project architecture.

    Attributes:
        languages: Main template per language.
        contracts: Optional contract templates.
    """

    model_config = ConfigDict(frozen=True)

    languages: Dict[str, TemplateSource] = Field(default_factory=dict)
    contracts: Optional[ContractTemplates] = None


class TemplateCatalog(BaseModel):
    """Catalog of project templates by architecture and language."""

    model_config = ConfigDict(frozen=True)

    architectures: Dict[str, ArchitectureTemplates] = Field(default_factory=dict)

    def template_source(self, arch: str, lang: str) -> Optional[TemplateSource]:
        """Look up the main template for ``arch`` and ``lang``.

        Args:
            arch: Architecture name (e.g. ``task``).
            lang: Language name (e.g. ``go``).

        Returns:
            TemplateSource, or None if the catalog has no such template.
        """
        architecture = self.architectures.get(arch)
        if architecture is None:
            return None
        return architecture.languages.get(lang)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateCatalog":
        """Create a catalog from a dictionary.

        Raises:
            ValidationError: If the catalog is invalid.
        """
        return cls.model_validate(data)
