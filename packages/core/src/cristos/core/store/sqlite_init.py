"""SQLite 数据库初始化

PRAGMA 配置 + 表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# users 表 DDL（身份存储）
_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id      TEXT PRIMARY KEY,
    display_name TEXT NOT NULL DEFAULT '',
    email        TEXT,
    created_at   TEXT NOT NULL
);
"""

# assembly_states 表 DDL
_STATES_DDL = """
CREATE TABLE IF NOT EXISTS assembly_states (
    state_id         TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    conversation_id  TEXT,
    project_id       TEXT,
    status           TEXT NOT NULL DEFAULT 'in_progress',
    current_step     TEXT NOT NULL DEFAULT 'initializing',
    state_data       TEXT NOT NULL DEFAULT '{}',
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,

    FOREIGN KEY (user_id) REFERENCES users(user_id)
);
"""

_STATES_INDEXES = [
    (
        "CREATE INDEX IF NOT EXISTS idx_states_user_conversation "
        "ON assembly_states(user_id, conversation_id);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_states_updated_at ON assembly_states(updated_at DESC);",
]

# projects 表 DDL
_PROJECTS_DDL = """
CREATE TABLE IF NOT EXISTS projects (
    project_id       TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    source_state_id  TEXT,
    name             TEXT NOT NULL,
    description      TEXT NOT NULL DEFAULT '',
    category         TEXT NOT NULL DEFAULT 'general',
    priority         TEXT NOT NULL DEFAULT 'medium',
    status           TEXT NOT NULL DEFAULT 'active',
    due_date         TEXT,
    metadata         TEXT NOT NULL DEFAULT '{}',
    cover_image_ref  TEXT,
    created_at       TEXT NOT NULL
);
"""

_PROJECTS_INDEXES = [
    # 每个组装状态至多物化一个项目
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_projects_source_state "
        "ON projects(source_state_id) WHERE source_state_id IS NOT NULL;"
    ),
    "CREATE INDEX IF NOT EXISTS idx_projects_user_id ON projects(user_id);",
]

# project_tasks 表 DDL
_PROJECT_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS project_tasks (
    task_id         TEXT PRIMARY KEY,
    project_id      TEXT NOT NULL,
    parent_task_id  TEXT,
    title           TEXT NOT NULL,
    description     TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'todo',
    priority        TEXT NOT NULL DEFAULT 'medium',
    due_date        TEXT,
    assignees       TEXT NOT NULL DEFAULT '[]',
    created_by      TEXT NOT NULL,
    created_at      TEXT NOT NULL,

    FOREIGN KEY (project_id) REFERENCES projects(project_id),
    FOREIGN KEY (parent_task_id) REFERENCES project_tasks(task_id)
);
"""

_PROJECT_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_project_tasks_project ON project_tasks(project_id);",
]

# chat_messages 表 DDL（对话日志）
_MESSAGES_DDL = """
CREATE TABLE IF NOT EXISTS chat_messages (
    seq              INTEGER PRIMARY KEY AUTOINCREMENT,
    message_id       TEXT NOT NULL UNIQUE,
    conversation_id  TEXT NOT NULL,
    user_id          TEXT NOT NULL,
    role             TEXT NOT NULL CHECK (role IN ('user', 'assistant', 'system')),
    content          TEXT NOT NULL,
    created_at       TEXT NOT NULL
);
"""

_MESSAGES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON chat_messages(conversation_id, seq);",
]

# voice_sessions 表 DDL
_VOICE_DDL = """
CREATE TABLE IF NOT EXISTS voice_sessions (
    session_id          TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL,
    conversation_id     TEXT,
    processing_status   TEXT NOT NULL DEFAULT 'recording',
    transcription       TEXT,
    error_message       TEXT,
    processing_time_ms  INTEGER,
    confidence          REAL,
    language            TEXT,
    audio_bytes         INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL
);
"""

_VOICE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_voice_sessions_user ON voice_sessions(user_id);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    for ddl in (
        _USERS_DDL,
        _STATES_DDL,
        _PROJECTS_DDL,
        _PROJECT_TASKS_DDL,
        _MESSAGES_DDL,
        _VOICE_DDL,
    ):
        await conn.execute(ddl)

    # 创建索引
    for idx_sql in (
        _STATES_INDEXES
        + _PROJECTS_INDEXES
        + _PROJECT_TASKS_INDEXES
        + _MESSAGES_INDEXES
        + _VOICE_INDEXES
    ):
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
