# -*- coding: utf-8 -*-
"""
Constants for the container executor.

Tunable limits live in ExecutorConfig (settings.py); these values are fixed.
"""

# Label stamped on every run container for filtering
CONTAINER_OWNER_LABEL = "coderunner.owner"
CONTAINER_OWNER = "coderunner_sandbox"
RUN_ID_LABEL = "coderunner.run_id"

# Mount path of the per-run workspace inside the container
WORKSPACE_MOUNT_PATH = "/workspace"

# Shell used to run the language command
CONTAINER_SHELL = ["sh", "-c"]

# Hardening applied on top of the resource limits
SECURITY_OPTS = ["no-new-privileges:true"]
CAP_DROP = ["ALL"]

# Multiplexed attach stream ids (docker.utils.socket)
STREAM_STDOUT = 1
STREAM_STDERR = 2

# Bytes read per stdin pump iteration
STDIN_CHUNK_SIZE = 4096

# Seconds to wait for helper threads when closing an attachment
THREAD_JOIN_TIMEOUT = 2.0
