"""dyadartifacts: content-addressed artifacts built from the Dyad language sources.

Publish side (operator-driven): clone dyad-lang at a revision, stage and
archive a payload, and bind it in ``Artifacts.toml`` by git-tree-sha1.

Consumption side (runtime): resolve an artifact name to a local directory,
downloading and verifying the archive on first use.

    >>> from dyadartifacts import list_artifact_names
    >>> list_artifact_names()  # doctest: +SKIP
    ['dyad-cli']
"""

__version__ = "0.1.0"
__description__ = "Content-addressed Dyad language artifacts: publish, resolve, locate."

from dyadartifacts.accessors import (
    artifact_dir,
    dyad_cli_js,
    list_artifact_names,
    locate_file,
    read_attribution,
)
from dyadartifacts.core.registrar import ArtifactRegistrar
from dyadartifacts.core.resolver import ArtifactResolver

__all__ = [
    "ArtifactRegistrar",
    "ArtifactResolver",
    "artifact_dir",
    "dyad_cli_js",
    "list_artifact_names",
    "locate_file",
    "read_attribution",
    "__version__",
]
