"""用户注册路由（开发辅助）

POST /api/users: 在身份存储中登记用户。
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from ..deps import get_store_group

router = APIRouter()


class UserRequest(BaseModel):
    """用户登记请求体"""

    user_id: str = Field(min_length=1, description="用户 ID")
    display_name: str = Field(default="", description="显示名称")
    email: str | None = Field(default=None, description="邮箱")


class UserResponse(BaseModel):
    """用户登记响应"""

    user_id: str
    created: bool


@router.post("/api/users", response_model=UserResponse)
async def create_user(
    body: UserRequest,
    store_group=Depends(get_store_group),
):
    """登记用户：新用户 201，已存在 200"""
    created = await store_group.user_store.create_user(
        body.user_id, body.display_name, body.email
    )
    return JSONResponse(
        status_code=201 if created else 200,
        content=UserResponse(user_id=body.user_id, created=created).model_dump(),
    )
