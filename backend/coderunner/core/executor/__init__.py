# -*- coding: utf-8 -*-
"""
Executor module for run containers.

This module provides:
- Language table (file name, image, command per language)
- Container lifecycle with the fixed isolation profile
- Stdio attachment and stdin conduit
- Admission control and per-run workspaces
"""

from coderunner.core.executor.base import (
    EventSink,
    NullEventSink,
    ExecutorError,
    ContainerNotFoundError,
    ContainerLifecycleError,
    ContainerWaitTimeout,
)
from coderunner.core.executor.language_spec import ExecutionSpec, LanguageSpecFactory
from coderunner.core.executor.admission import AdmissionGate
from coderunner.core.executor.stdin_pipe import StdinPipe
from coderunner.core.executor.workspace import create_workspace, delete_workspace
from coderunner.core.executor.container_runtime import (
    ContainerAttachment,
    ContainerRuntime,
    IsolationProfile,
)
from coderunner.core.executor.constants import WORKSPACE_MOUNT_PATH

__all__ = [
    "EventSink",
    "NullEventSink",
    "ExecutorError",
    "ContainerNotFoundError",
    "ContainerLifecycleError",
    "ContainerWaitTimeout",
    "ExecutionSpec",
    "LanguageSpecFactory",
    "AdmissionGate",
    "StdinPipe",
    "create_workspace",
    "delete_workspace",
    "ContainerAttachment",
    "ContainerRuntime",
    "IsolationProfile",
    "WORKSPACE_MOUNT_PATH",
]
