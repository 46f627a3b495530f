# -*- coding: utf-8 -*-
"""
Per-run workspace directories.

Each run gets an exclusive temporary directory holding the submitted
source file. The directory is bind-mounted read-write into the container.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from coderunner.utils.exceptions import WorkspaceIOError

logger = logging.getLogger(__name__)

# The container may run under a different uid and without CAP_DAC_OVERRIDE
WORKSPACE_MODE = 0o777


def create_workspace(run_id: str, file_name: str, code: Optional[str], root: Optional[str] = None) -> Path:
    """
    Create a workspace and write the source file into it.

    Args:
        run_id: Run identifier, used in the directory prefix
        file_name: Name of the source file (from the language spec)
        code: Source code; None is written as an empty file
        root: Parent directory; defaults to the system temp directory

    Returns:
        Path of the created workspace

    Raises:
        WorkspaceIOError: If the directory or file cannot be written
    """
    if root:
        try:
            os.makedirs(root, exist_ok=True)
        except OSError as e:
            raise WorkspaceIOError(f"Cannot create workspace root {root}: {e}", path=root)

    try:
        workspace = Path(tempfile.mkdtemp(prefix=f"run-{run_id}-", dir=root))
    except OSError as e:
        raise WorkspaceIOError(f"Cannot create workspace: {e}", path=root)

    try:
        workspace.chmod(WORKSPACE_MODE)
        source = workspace / file_name
        source.write_text(code or "", encoding="utf-8")
        source.chmod(0o666)
    except OSError as e:
        delete_workspace(workspace)
        raise WorkspaceIOError(f"Cannot write source file {file_name}: {e}", path=str(workspace))

    logger.debug(f"[{run_id}] workspace ready at {workspace}")
    return workspace


def delete_workspace(workspace: Path) -> None:
    """Recursively delete a workspace. Raises WorkspaceIOError on failure."""
    try:
        shutil.rmtree(workspace)
    except FileNotFoundError:
        return
    except OSError as e:
        raise WorkspaceIOError(f"Cannot delete workspace {workspace}: {e}", path=str(workspace))
