"""
Execution schemas

Pydantic models for run requests and responses. Wire names are camelCase.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from coderunner.models import ExecutionStatus


class ExecuteRequest(BaseModel):
    """Request model for submitting code"""
    language: str = Field(..., description="Language identifier: java, javascript/js, python/py")
    code: str = Field(..., description="Source code to run")
    input: Optional[str] = Field(None, description="Initial stdin, sent right after the program starts")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "language": "python",
            "code": "print(input())",
            "input": "hi"
        }
    })


class ExecuteStartResponse(BaseModel):
    """Returned as soon as a run is accepted"""
    run_id: str = Field(..., alias="runId", description="Run identifier; attach to /ws/run/{runId}")

    model_config = ConfigDict(populate_by_name=True)


class RunStatusResponse(BaseModel):
    """Current or final status of a run"""
    run_id: str = Field(..., alias="runId", description="Run identifier")
    status: ExecutionStatus = Field(..., description="Lifecycle status")

    model_config = ConfigDict(populate_by_name=True)


class LanguagesResponse(BaseModel):
    """Supported canonical language ids"""
    languages: List[str] = Field(..., description="Canonical language identifiers")


class HealthResponse(BaseModel):
    """Service health"""
    status: str = Field("ok", description="Always 'ok' while the API answers")
    docker: bool = Field(..., description="Whether the Docker engine answered a ping")
    active_runs: int = Field(..., alias="activeRuns", description="Runs currently registered")
    admission: Dict[str, int] = Field(..., description="capacity / inUse of the admission gate")

    model_config = ConfigDict(populate_by_name=True)
