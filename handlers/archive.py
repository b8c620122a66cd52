# ============================================================================
# ARCHIVE ACTIVITY
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Handlers - Packaging
# PURPOSE: Zip a working directory for upload
# CREATED: 19 OCT 2026
# ============================================================================
"""
Archive Activity

package walks a directory and writes every file into a zip archive,
entries named relative to the directory. The archive is written into a
sibling scratch directory so it never ends up inside itself; the caller
removes that directory together with the workspace.
"""

import logging
import os
import shutil
import tempfile
import zipfile

from core.contracts import ActivityName
from core.errors import ArchiveError
from core.models import PackageRequest
from handlers.registry import ActivityContext, ActivityRegistry

logger = logging.getLogger(__name__)


class ArchiveActivities:
    """Packaging activity."""

    def register(self, registry: ActivityRegistry) -> None:
        registry.register(ActivityName.PACKAGE, self.package, description="Zip a directory")

    def package(self, ctx: ActivityContext, request: PackageRequest) -> str:
        """
        Package a directory into a zip archive.

        Returns:
            Path of the archive

        Raises:
            ArchiveError: If the directory is missing or the archive cannot be written
        """
        directory = os.path.abspath(request.directory)
        if not os.path.isdir(directory):
            raise ArchiveError(f"Cannot package {directory}: not a directory")

        try:
            target_dir = tempfile.mkdtemp(prefix="archive-", dir=os.path.dirname(directory))
        except OSError as e:
            raise ArchiveError(f"Cannot create archive directory for {directory}: {e}")

        try:
            archive_path = os.path.join(target_dir, request.archive_name)

            count = 0
            with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for current, dirs, files in os.walk(directory):
                    dirs.sort()
                    for name in sorted(files):
                        path = os.path.join(current, name)
                        archive.write(path, arcname=os.path.relpath(path, directory))
                        count += 1
                        if count % 100 == 0:
                            ctx.heartbeat(count)
        except OSError as e:
            shutil.rmtree(target_dir, ignore_errors=True)
            raise ArchiveError(f"Failed to package {directory}: {e}")

        logger.info(f"Packaged {count} file(s) from {directory} into {archive_path}")
        return archive_path


__all__ = ["ArchiveActivities"]
