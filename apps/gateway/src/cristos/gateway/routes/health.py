"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、artifacts_dir、磁盘空间；
            profile=llm/full 时额外探测模型服务。
"""

import shutil

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置：core（默认）仅核心检查；llm/full 包含模型服务健康检查",
    ),
):
    """Readiness 检查

    检查项：
    1. sqlite: 数据库连通性
    2. artifacts_dir: artifacts 目录可访问性
    3. disk_space_mb: 磁盘剩余空间
    4. llm: 根据 profile 决定是否探测模型服务（echo 模式为 skipped）
    """
    effective_profile = profile or "core"

    checks = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = "unavailable"
        all_ok = False

    # 2. Artifacts 目录检查
    try:
        artifacts_path = request.app.state.store_group.artifacts_dir
        if artifacts_path.exists() and artifacts_path.is_dir():
            checks["artifacts_dir"] = "ok"
        else:
            checks["artifacts_dir"] = "error: directory does not exist"
            all_ok = False
    except Exception as e:
        checks["artifacts_dir"] = f"error: {str(e)}"
        all_ok = False

    # 3. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except Exception:
        checks["disk_space_mb"] = 0
        all_ok = False

    # 4. 模型服务健康检查
    if effective_profile in ("llm", "full"):
        litellm_client = getattr(request.app.state, "litellm_client", None)
        if litellm_client is not None:
            try:
                if await litellm_client.health_check():
                    checks["llm"] = "ok"
                else:
                    checks["llm"] = "unreachable"
                    all_ok = False
            except Exception as e:
                log.warning("health_check_error", error=str(e))
                checks["llm"] = "unreachable"
                all_ok = False
        else:
            checks["llm"] = "skipped"
    else:
        checks["llm"] = "skipped"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )
