"""封面图后台任务

项目提交成功后投递一次封面图生成。任务在事件循环中后台执行，
失败只记录日志，不影响提交结果。
"""

import asyncio
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx
import structlog
from cristos.core.store.protocols import ProjectStore

log = structlog.get_logger()

COVER_WIDTH = 1024
COVER_HEIGHT = 576


class ImageJobQueue(Protocol):
    """封面图任务队列接口"""

    def enqueue(
        self,
        name: str,
        description: str,
        category: str,
        project_id: str,
    ) -> None: ...


def build_cover_prompt(name: str, description: str, category: str) -> str:
    """封面图提示词"""
    parts = [f"Professional cover illustration for a {category} project named '{name}'"]
    if description:
        parts.append(description[:300])
    parts.append("clean modern style, no text")
    return ". ".join(parts)


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


class CoverImageGenerator:
    """通过外部图片服务生成封面图，写入 artifacts 目录"""

    def __init__(
        self,
        project_store: ProjectStore,
        artifacts_dir: Path,
        base_url: str,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._projects = project_store
        self._covers_dir = artifacts_dir / "covers"
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._transport = transport

    async def generate(
        self,
        name: str,
        description: str,
        category: str,
        project_id: str,
    ) -> str:
        """生成封面图并回写项目引用

        Returns:
            封面图相对 artifacts 目录的存储引用
        """
        prompt = build_cover_prompt(name, description, category)
        url = f"{self._base_url}/{quote(prompt)}"
        params = {"width": COVER_WIDTH, "height": COVER_HEIGHT, "nologo": "true"}
        async with httpx.AsyncClient(
            timeout=self._timeout_s,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()

        path = self._covers_dir / f"{project_id}.jpg"
        await asyncio.to_thread(_write_file, path, resp.content)
        ref = f"covers/{project_id}.jpg"
        await self._projects.set_cover_image(project_id, ref)
        return ref


class BackgroundImageJobQueue:
    """asyncio 后台任务实现的封面图队列"""

    def __init__(self, generator: CoverImageGenerator | None) -> None:
        self._generator = generator
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def enqueue(
        self,
        name: str,
        description: str,
        category: str,
        project_id: str,
    ) -> None:
        """投递封面图任务（立即返回）"""
        if self._generator is None:
            log.debug("cover_image_disabled", project_id=project_id)
            return
        task = asyncio.create_task(
            self._run(self._generator, name, description, category, project_id),
            name=f"cover-image-{project_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        log.info("cover_image_enqueued", project_id=project_id)

    async def _run(
        self,
        generator: CoverImageGenerator,
        name: str,
        description: str,
        category: str,
        project_id: str,
    ) -> None:
        try:
            ref = await generator.generate(name, description, category, project_id)
        except Exception as e:
            log.warning(
                "cover_image_failed",
                project_id=project_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return
        log.info("cover_image_generated", project_id=project_id, cover_image_ref=ref)

    async def drain(self) -> None:
        """等待全部在途任务结束"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """取消全部在途任务"""
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
