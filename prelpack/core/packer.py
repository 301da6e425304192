"""Archive-assembly pipeline — the single entry point for packing.

Stages run strictly in order, each only after the previous one has
completed:

    staging_area -> resolve -> persist_payload
        -> extract_image_references -> store_images -> write_archive

Any failure aborts the remaining stages.  The staging directory is
removed on every exit path; the destination archive is only opened once
materialization has fully succeeded.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from rich.console import Console

from prelpack.config import PackerConfig
from prelpack.core.archive import write_archive
from prelpack.core.materializer import ImageMaterializer, RegistryMaterializer
from prelpack.core.registry import RegistryClient
from prelpack.core.source import (
    FurlReader,
    LocationReader,
    parse_source,
    persist_payload,
    resolve,
)
from prelpack.core.staging import staging_area
from prelpack.models.results import PackResult
from prelpack.models.sources import PropsSource

logger = logging.getLogger(__name__)


class Packer:
    """Packs a properties file and the images it names into one archive.

    Parameters
    ----------
    config:
        Packer configuration. Uses environment-driven defaults if omitted.
    reader:
        Location reader for non-stdin sources.
    materializer:
        Image materializer.  Defaults to a registry-backed one.
    console:
        Console for operator-facing output.
    stdin:
        Binary stream used when the source is the stdin sentinel.
    """

    def __init__(
        self,
        config: PackerConfig | None = None,
        *,
        reader: LocationReader | None = None,
        materializer: ImageMaterializer | None = None,
        console: Console | None = None,
        stdin: BinaryIO | None = None,
    ) -> None:
        self.config = config or PackerConfig()
        self.reader = reader or FurlReader(timeout=self.config.http_timeout_seconds)
        self.materializer = materializer or RegistryMaterializer(
            RegistryClient(
                timeout=self.config.http_timeout_seconds,
                insecure_registries=self.config.insecure_registries,
                user_agent=self.config.user_agent,
            )
        )
        self.console = console or Console()
        self._stdin = stdin

    def pack(self, props: str, archive_path: Path | str) -> PackResult:
        """Pack *props* (a path, URL, or the stdin sentinel) into *archive_path*.

        Raises
        ------
        PrelpackError
            For staging, input, persistence, materialization or archive
            failures.
        Exception
            Location reader failures propagate unchanged.
        """
        archive_path = Path(archive_path)
        source = parse_source(props, self.config.stdin_indicator)

        try:
            return self._run(source, archive_path)
        except Exception as exc:
            logger.error("Packing %s failed: %s", source.describe(), exc)
            raise

    def _run(self, source: PropsSource, archive_path: Path) -> PackResult:
        cfg = self.config
        with staging_area(
            cfg.staging_prefix,
            root=cfg.staging_root,
            mode=cfg.staging_dir_mode,
            properties_file_name=cfg.properties_file_name,
        ) as staging:
            logger.info("Packing %s into %s", source.describe(), archive_path)

            payload = resolve(source, self.reader, stdin=self._stdin)
            persist_payload(staging, payload, cfg.properties_file_mode)

            refs = self.materializer.extract_image_references(payload)
            logger.info("Found %d image reference(s)", len(refs))
            self.materializer.store_images(staging.path, refs)

            archive_size = write_archive(
                staging.path,
                archive_path,
                exclusive=cfg.exclusive_create,
                remove_partial=cfg.remove_partial_archive,
                console=self.console,
            )

        return PackResult(
            archive_path=archive_path,
            source=source,
            images=tuple(sorted(refs)),
            payload_size=len(payload),
            archive_size=archive_size,
        )


def pack(
    props: str,
    archive_path: Path | str,
    *,
    config: PackerConfig | None = None,
) -> PackResult:
    """Pack the properties file *props* and its images into *archive_path*."""
    return Packer(config).pack(props, archive_path)
