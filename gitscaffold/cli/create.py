"""Create command implementation.

Resolves a template from the catalog, prepares the project directory and
clones the template into it.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional, Tuple

from rich.console import Console

from gitscaffold.cli.fetch import EXIT_FAILURE, build_fetcher, run_fetch
from gitscaffold.config.loader import load_template_catalog
from gitscaffold.config.schema import TemplateCatalog

logger = logging.getLogger("gitscaffold.cli.create")

DEFAULT_TEMPLATE_REF = "main"


def resolve_template(
    catalog: TemplateCatalog,
    arch: str,
    lang: str,
    url_override: Optional[str] = None,
    version_override: Optional[str] = None,
) -> Tuple[str, str]:
    """Pick the template URL and ref to clone.

    Explicit overrides take precedence over catalog entries.

    Args:
        catalog: Template catalog.
        arch: Architecture name.
        lang: Language name.
        url_override: URL from the command line.
        version_override: Ref from the command line.

    Returns:
        Tuple[str, str]: Repository URL and ref.

    Raises:
        LookupError: If no URL is given and the catalog has no template.
    """
    source = catalog.template_source(arch, lang)
    url = url_override or (source.base_url if source else "")
    if not url:
        raise LookupError(f"no template for architecture {arch!r} and language {lang!r}")
    version = version_override or (source.version if source else DEFAULT_TEMPLATE_REF)
    return url, version


def prepare_project_dir(target: Path, overwrite: bool) -> None:
    """Make sure ``target`` can receive a fresh clone.

    Args:
        target: Project directory.
        overwrite: Remove an existing directory instead of failing.

    Raises:
        FileExistsError: If ``target`` exists, is not empty, and
            ``overwrite`` is False.
    """
    if target.exists():
        if not overwrite:
            if target.is_dir() and not any(target.iterdir()):
                return
            raise FileExistsError(
                f"directory {target} already exists; use --overwrite to replace it"
            )
        logger.info("Removing existing directory: %s", target)
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
    target.parent.mkdir(parents=True, exist_ok=True)


def create_command(args, console: Optional[Console] = None) -> int:
    """Execute create command.

    Args:
        args: Parsed command-line arguments.
        console: Shared console (stderr console if None).

    Returns:
        int: Exit code.
    """
    console = console or Console(stderr=True)
    target = Path(args.dir) / args.name

    logger.debug("Creating new project: %s", args.name)
    logger.debug("Directory: %s", target)
    logger.debug("Architecture: %s", args.arch)
    logger.debug("Language: %s", args.lang)

    try:
        catalog = load_template_catalog(getattr(args, "templates", None))
        url, version = resolve_template(
            catalog,
            args.arch,
            args.lang,
            url_override=getattr(args, "template_url", None),
            version_override=getattr(args, "template_version", None),
        )
        prepare_project_dir(target, getattr(args, "overwrite", False))
    except (LookupError, OSError, ValueError) as e:
        console.print(f"[red]Cannot create project {args.name}:[/red] {e}")
        return EXIT_FAILURE

    logger.debug("Using template: %s", url)
    logger.info("Template version: %s", version)

    fetcher = build_fetcher(getattr(args, "verbose", False), console)
    exit_code = run_fetch(fetcher, url, version, target, console)
    if exit_code == 0:
        logger.info("Project %s created in %s", args.name, target)
    return exit_code
