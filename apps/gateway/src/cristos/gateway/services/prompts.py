"""提示词构建

组装对话的 system prompt 由当前状态快照参数化。快照中不携带已收集任务与
团队成员的明细，只给出数量，避免其他项目的内容串入本次对话。
"""

import json

from cristos.core.assembly import identify_missing_info
from cristos.core.models import AssemblyState, AssemblyStep

ASSEMBLY_PROMPT_TEMPLATE = """You are Cristos AI, an intelligent project management assistant. \
Your mission is to transform user ideas into comprehensive, structured projects through \
natural conversation.

Current context: {context}

RESPONSE FORMAT:
1. Conversational text must be plain, natural English. No markdown, no special symbols.
2. Use tags ONLY for project elements being captured or updated:
   <project_name>, <project_description>, <category>, <priority>, <status>,
   <edc_date>, <fud_date>, <project_owner>, <project_lead>,
   <team_member1 role="lead" email="...">Name</team_member1>,
   <task1 priority="high" due_date="2025-01-31" assignees="a,b">Task title</task1>,
   <subtask1 parent="Task title">Subtask title</subtask1>
3. Separate conversational text from tags with line breaks.

INSTRUCTIONS:
- Analyse the user message for every project element (name, tasks, team members, dates).
- Emit a tag for each element the user establishes in this message.
- Only include tasks the user mentions for THIS project.
- Priority is one of low, medium, high, urgent. Status is one of planning, active, \
on_hold, completed.
- Ask one or two targeted questions to fill what is still missing: {missing}.
{step_hint}
DATE HANDLING:
- Only real dates in YYYY-MM-DD format (for example 2024-12-31).
- Never output the placeholder text YYYY-MM-DD as a date.
- If no specific date is mentioned, omit the date tag.
"""

_STEP_HINTS: dict[AssemblyStep, str] = {
    AssemblyStep.INITIALIZING: "- Start by finding out what the project is called.",
    AssemblyStep.GATHERING_PROJECT_NAME: "- The project still needs a name. Suggest one.",
    AssemblyStep.GATHERING_PROJECT_DESCRIPTION: (
        "- The project still needs a short description of what it accomplishes."
    ),
    AssemblyStep.SUGGESTING_TEAM_MEMBERS: "- Ask who should be on the team and their roles.",
    AssemblyStep.SUGGESTING_TASKS: "- Propose concrete tasks to get the project moving.",
    AssemblyStep.CONFIRMING_PROJECT: "- Summarise the project and ask the user to confirm.",
}

_TEMPLATE_HINT = "- Offer two or three task templates that fit this kind of project."

SUMMARY_SYSTEM_PROMPT = (
    "You summarise project-planning conversations. Keep only facts relevant to the "
    "project being assembled."
)

SUMMARY_PROMPT_TEMPLATE = """Summarise the following conversation about creating a project. Cover:
1. Project information (name, description, category)
2. Team members and their roles
3. Tasks and their status
4. Current step and next steps

Keep the summary under 200 words.

Conversation:
{transcript}
"""


def build_state_context(state: AssemblyState) -> dict:
    """构建注入 prompt 的状态快照（不含任务与成员明细）"""
    return {
        "current_step": state.current_step.value,
        "gathered_project_info": state.gathered_project_info.model_dump(
            mode="json", exclude_none=True
        ),
        "gathered_tasks": [],
        "gathered_team_members": [],
        "task_count": len(state.gathered_tasks),
        "team_member_count": len(state.gathered_team_members),
        "required_fields": list(state.required_fields),
        "project_committed": state.project_id is not None,
    }


def build_assembly_system_prompt(state: AssemblyState) -> str:
    """组装对话的 system prompt"""
    fresh = (
        state.current_step == AssemblyStep.INITIALIZING
        and not state.gathered_project_info.name
        and not state.gathered_tasks
    )
    context = "Starting fresh" if fresh else json.dumps(build_state_context(state), indent=2)
    missing = identify_missing_info(state)
    step_hint = _STEP_HINTS.get(state.current_step, "")
    if state.current_step == AssemblyStep.SUGGESTING_TASKS and not state.templates_suggested:
        step_hint = f"{step_hint}\n{_TEMPLATE_HINT}"
    return ASSEMBLY_PROMPT_TEMPLATE.format(
        context=context,
        missing=", ".join(missing) if missing else "nothing",
        step_hint=f"{step_hint}\n" if step_hint else "",
    )


def build_turn_messages(
    state: AssemblyState,
    history: list[dict[str, str]],
    text: str,
) -> list[dict[str, str]]:
    """system prompt + 记忆（含摘要）+ 本轮用户输入"""
    return [
        {"role": "system", "content": build_assembly_system_prompt(state)},
        *history,
        {"role": "user", "content": text},
    ]


def build_summary_messages(transcript: str) -> list[dict[str, str]]:
    """摘要调用的 messages"""
    return [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
        {"role": "user", "content": SUMMARY_PROMPT_TEMPLATE.format(transcript=transcript)},
    ]
