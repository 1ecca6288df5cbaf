"""CLI 入口模块 -- python -m cristos.core <command>

支持的命令：
  init-db                初始化数据库
  add-user <user_id>     注册用户（身份存储）
  show-state <state_id>  打印组装状态与进度
"""

import asyncio
import sys

from .config import get_artifacts_dir, get_db_path

_USAGE = """用法: python -m cristos.core <command>
命令:
  init-db                初始化数据库
  add-user <user_id>     注册用户
  show-state <state_id>  打印组装状态与进度"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "add-user" and len(sys.argv) >= 3:
        asyncio.run(add_user(sys.argv[2]))
    elif command == "show-state" and len(sys.argv) >= 3:
        found = asyncio.run(show_state(sys.argv[2]))
        if not found:
            sys.exit(2)
    else:
        print(f"未知命令: {' '.join(sys.argv[1:])}")
        print(_USAGE)
        sys.exit(1)


async def init_database() -> None:
    """创建数据库与表"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    store_group = await create_store_group(db_path, get_artifacts_dir())
    await store_group.conn.close()
    print("初始化完成")


async def add_user(user_id: str) -> None:
    """注册用户"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path(), get_artifacts_dir())
    try:
        created = await store_group.user_store.create_user(user_id)
        print(f"用户 {user_id} {'已创建' if created else '已存在'}")
    finally:
        await store_group.conn.close()


async def show_state(state_id: str) -> bool:
    """打印组装状态 JSON 与进度

    Returns:
        True 如果找到状态
    """
    from .assembly import compute_progress
    from .store import create_store_group

    store_group = await create_store_group(get_db_path(), get_artifacts_dir())
    try:
        state = await store_group.state_store.get_state_by_id(state_id)
        if state is None:
            print(f"未找到组装状态: {state_id}")
            return False
        print(state.model_dump_json(indent=2))
        progress = compute_progress(state)
        print(f"进度: {progress.completed_items}/{progress.total_items}")
        print(f"缺失信息: {', '.join(progress.missing_info) or '无'}")
        return True
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
