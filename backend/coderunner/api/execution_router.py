"""
Execution API Router

HTTP endpoints to submit runs and query their status.
"""

from fastapi import APIRouter, Depends, Path

from coderunner.core.executor import LanguageSpecFactory
from coderunner.schemas import (
    ExecuteRequest,
    ExecuteStartResponse,
    LanguagesResponse,
    RunStatusResponse,
)
from coderunner.service import ExecutionService, get_execution_service
from coderunner.utils.exceptions import NotFoundError

execution_router = APIRouter(tags=["execution"])


@execution_router.post(
    "/execute",
    summary="Submit code for execution",
    operation_id="execute_code",
    response_model=ExecuteStartResponse,
)
async def execute_code(
    request: ExecuteRequest,
    service: ExecutionService = Depends(get_execution_service),
):
    """
    Accept a run and return its id immediately.

    Output and status are streamed on ``/ws/run/{runId}``; an unsupported
    language is reported there as an ERROR status.
    """
    run_id = service.start(request)
    return ExecuteStartResponse(run_id=run_id)


@execution_router.get(
    "/runs/{run_id}",
    summary="Get run status",
    operation_id="get_run_status",
    response_model=RunStatusResponse,
)
async def get_run_status(
    run_id: str = Path(..., description="Run ID"),
    service: ExecutionService = Depends(get_execution_service),
):
    """Live status, or the final status of a recently finished run"""
    status = service.current_status(run_id)
    if status is None:
        raise NotFoundError(f"Run not found: {run_id}", resource_type="run", resource_id=run_id)
    return RunStatusResponse(run_id=run_id, status=status)


@execution_router.get(
    "/languages",
    summary="List supported languages",
    operation_id="list_languages",
    response_model=LanguagesResponse,
)
async def list_languages():
    return LanguagesResponse(languages=LanguageSpecFactory.supported_languages())
