"""prelpack: relocatable archives of a properties file and its container images.

Packs a properties file, read from a path, URL or standard input,
together with every container image it references into a single
gzip-compressed tar holding the file (``props``) and an OCI image layout.
"""

__version__ = "0.1.0"
__description__ = (
    "Pack a properties file and the container images it references into one archive"
)

from prelpack.core.packer import Packer, pack
from prelpack.cli.app import app as cli

__all__ = ["Packer", "pack", "cli", "__version__"]
