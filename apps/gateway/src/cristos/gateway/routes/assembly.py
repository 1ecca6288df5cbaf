"""组装对话路由

POST /api/assembly/turns: 处理一轮文本输入。
GET /api/assembly/state: 查询状态与进度。
POST /api/assembly/states/{state_id}/commit: 手动提交。
"""

from cristos.core.exceptions import StateNotFoundError
from cristos.core.models import AssemblyProgress, AssemblyState, AssemblyStatus
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from ..deps import get_assembly_engine
from ..services.assembly_engine import AssemblyEngine, AssemblyTurnResult
from ..services.project_committer import CommitResult
from .errors import error_response

router = APIRouter()

# 失败原因 -> HTTP 状态码
_TURN_ERROR_STATUS: dict[str, int] = {
    "user_not_found": 404,
    "state_unavailable": 503,
    "model_call_failed": 503,
    "state_persist_failed": 503,
}


class TurnRequest(BaseModel):
    """单轮输入请求体"""

    user_id: str = Field(min_length=1, description="用户 ID")
    conversation_id: str | None = Field(default=None, description="对话 ID，可缺失")
    text: str = Field(min_length=1, description="用户输入文本")


class StateResponse(BaseModel):
    """状态查询响应"""

    state: AssemblyState
    progress: AssemblyProgress


class CommitResponse(BaseModel):
    """手动提交响应"""

    state: AssemblyState
    result: CommitResult


@router.post("/api/assembly/turns", response_model=AssemblyTurnResult)
async def process_turn(
    body: TurnRequest,
    engine: AssemblyEngine = Depends(get_assembly_engine),
):
    """处理一轮用户输入

    - 成功返回 200 + AssemblyTurnResult
    - 失败时结果体中 success=False，附带致歉文本，状态码按失败原因映射
    """
    result = await engine.process_turn(body.user_id, body.conversation_id, body.text)
    if not result.success:
        return JSONResponse(
            status_code=_TURN_ERROR_STATUS.get(result.error or "", 500),
            content=result.model_dump(mode="json"),
        )
    return result


@router.get("/api/assembly/state", response_model=StateResponse)
async def get_state(
    user_id: str = Query(description="用户 ID"),
    conversation_id: str | None = Query(default=None, description="对话 ID"),
    engine: AssemblyEngine = Depends(get_assembly_engine),
):
    """查询当前组装状态与进度"""
    found = await engine.get_progress(user_id, conversation_id)
    if found is None:
        return error_response(404, "STATE_NOT_FOUND", f"No assembly state for user {user_id}")
    state, progress = found
    return StateResponse(state=state, progress=progress)


@router.post("/api/assembly/states/{state_id}/commit", response_model=CommitResponse)
async def commit_state(
    state_id: str,
    engine: AssemblyEngine = Depends(get_assembly_engine),
):
    """手动提交：需要项目名称已收集

    - 已提交的状态返回 200，committed=False 并给出已有 project_id
    - 已放弃的状态返回 409
    - 名称缺失返回 422
    """
    try:
        state, result = await engine.commit_state(state_id)
    except StateNotFoundError as e:
        return error_response(404, "STATE_NOT_FOUND", e.message)
    if result.project_id is None and state.status == AssemblyStatus.ABANDONED:
        return error_response(409, "STATE_ABANDONED", f"Assembly state {state_id} was abandoned")
    if result.error:
        return error_response(503, "COMMIT_FAILED", result.error)
    if result.project_id is None:
        return error_response(
            422, "PROJECT_NAME_REQUIRED", "A project name is required before committing"
        )
    return CommitResponse(state=state, result=result)
