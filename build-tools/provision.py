"""Pinned-tool cache: fetch and unpack on first use, then run.

    absent -> fetching -> unpacking -> present -> running
    present -> running                      (cache hit, no network)

Only a fully placed, executable file at the cache path counts as present.
The download lands in a scoped temporary directory; the binary reaches the
cache path by an atomic rename from a staging file in the same directory.
"""

import os
import stat
import shutil
import logging
import tempfile
import subprocess
from collections.abc import Sequence
from pathlib import Path

from base import ToolSpec
from errors import ExecutionFailure, ExtractionFailure, ProvisionError
from fetcher import Fetcher, HttpFetcher
from archive import Archive, ZipArchive

logger = logging.getLogger(__name__)

EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class Provisioner:
    def __init__(
        self,
        spec: ToolSpec,
        cache_dir: Path,
        *,
        fetcher: Fetcher | None = None,
        archive: Archive | None = None,
        tmp_root: Path | None = None,
        http_timeout: float | None = None,
    ) -> None:
        self.spec = spec
        self.cache_dir = Path(cache_dir)
        # None: an HttpFetcher is opened per cache miss and closed after it
        self.fetcher = fetcher
        self.archive = archive or ZipArchive()
        self.tmp_root = tmp_root
        self.http_timeout = http_timeout

    @property
    def cache_path(self) -> Path:
        return self.cache_dir / f".{self.spec.name}"

    def ensure(self) -> Path:
        path = self.cache_path
        if path.exists():
            logger.debug("%s %s cached at %s", self.spec.name, self.spec.version, path)
            return path

        logger.info("fetching %s %s (%s-%s)", self.spec.name, self.spec.version, self.spec.os, self.spec.arch)
        fetcher = self.fetcher
        owned = fetcher is None
        if fetcher is None:
            fetcher = HttpFetcher(timeout=self.http_timeout)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(prefix=f"{self.spec.name}.", dir=self.tmp_root) as tmp:
                workdir = Path(tmp)
                archive_path = self._download(fetcher, workdir)
                binary = self._unpack(archive_path, workdir)
                self._place(binary)
        except OSError as exc:
            raise ProvisionError(f"cannot populate {path}: {exc}") from exc
        finally:
            if owned:
                fetcher.close()

        logger.info("installed %s at %s", self.spec.name, path)
        return path

    def _download(self, fetcher: Fetcher, workdir: Path) -> Path:
        url = self.spec.url
        archive_path = workdir / url.rsplit("/", 1)[-1]
        with archive_path.open("wb") as fh:
            for chunk in fetcher.fetch(url):
                fh.write(chunk)
        return archive_path

    def _unpack(self, archive_path: Path, workdir: Path) -> Path:
        member = self.spec.member
        names = self.archive.names(archive_path)
        if member not in names:
            shown = ", ".join(names[:5]) + (", ..." if len(names) > 5 else "")
            raise ExtractionFailure(archive_path, f"no entry {member!r} (has: {shown or 'nothing'})")
        return self.archive.extract(archive_path, member, workdir)

    def _place(self, binary: Path) -> None:
        staged = self.cache_dir / f".{self.spec.name}.{os.getpid()}.partial"
        try:
            shutil.copyfile(binary, staged)
            staged.chmod(staged.stat().st_mode | EXEC_BITS)
            os.replace(staged, self.cache_path)
        finally:
            staged.unlink(missing_ok=True)

    def run(self, args: Sequence[str]) -> int:
        binary = self.ensure()
        cmd = [str(binary), *args]
        try:
            proc = subprocess.run(cmd, check=False)
        except OSError as exc:
            raise ExecutionFailure(f"cannot execute {binary}: {exc}") from exc
        rc = proc.returncode
        # killed by signal N -> 128+N, as a shell reports it
        return 128 - rc if rc < 0 else rc
