"""
Prompt templates for each gateway operation.

Every prompt receives a validated payload (see ``llm.schemas``) and renders
the user message; the JSON schema of the expected reply is appended to the
system message by ``LLMClient``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

from pydantic import BaseModel

PRIORITIZE_TASKS = "prioritize_tasks"
CATEGORIZE_EISENHOWER = "categorize_eisenhower"
CATEGORIZE_LABEL = "categorize_label"
MOTIVATIONAL_QUOTE = "motivational_quote"
ANALYZE_TASKS = "analyze_tasks"
SUGGEST_TASK_TIME = "suggest_task_time"
GENERATE_TASK_DETAILS = "generate_task_details"


@dataclass(frozen=True)
class PromptTemplate:
    system: str
    render: Callable[[BaseModel], str]


def _prioritize(payload) -> str:
    lines = ["Here are the tasks:"]
    for t in payload.tasks:
        lines.append(
            f"Task ID: {t.id}\nTitle: {t.title}\nDescription: {t.description}\n"
            f"Deadline: {t.deadline.isoformat()}"
        )
    return "\n".join(lines)


def _eisenhower(payload) -> str:
    return (
        f'Task Title: "{payload.title}"\n'
        f'Task Description: "{payload.description}"\n'
        f'Task Deadline: "{payload.deadline.isoformat()}"\n\n'
        "Provide the quadrant and a brief reason for your choice."
    )


def _label(payload) -> str:
    return f'Title: "{payload.title}"\nDescription: "{payload.description}"'


def _task_lines(tasks, with_deadline: bool) -> str:
    if not tasks:
        return "- No tasks yet."
    out = []
    for t in tasks:
        line = f'- Task: "{t.title}", Completed: {str(t.completed).lower()}'
        if with_deadline and t.deadline is not None:
            line += f", Deadline: {t.deadline.isoformat()}"
        out.append(line)
    return "\n".join(out)


def _quote(payload) -> str:
    return "Here are the tasks:\n" + _task_lines(payload.tasks, with_deadline=False)


def _analysis(payload) -> str:
    return (
        f"Today's date is {payload.today}.\n\n"
        "Here are the tasks:\n" + _task_lines(payload.tasks, with_deadline=True)
    )


def _suggest(payload) -> str:
    if payload.existing_tasks:
        existing = "\n".join(
            f'- "{t.title}" at {t.deadline.isoformat()}'
            for t in payload.existing_tasks
            if t.deadline is not None
        )
    else:
        existing = "No other tasks scheduled for this day."
    return (
        f"Date: {payload.for_date}\n"
        f'New task to schedule: "{payload.task_title}"\n\n'
        f"Tasks already scheduled for that day:\n{existing}"
    )


def _details(payload) -> str:
    return f'Task title: "{payload.title}"'


PROMPTS: Dict[str, PromptTemplate] = {
    PRIORITIZE_TASKS: PromptTemplate(
        system=(
            "You are an AI task prioritization expert. Given tasks with titles, "
            "descriptions and deadlines, estimate the effort and impact of each task "
            "and assign a numeric priority score. The score must be higher for tasks "
            "that are urgent (closer deadline), have a high impact, and require less "
            "effort. Return every task exactly once, identified by its Task ID, with "
            "its priority score and a brief reason for the score."
        ),
        render=_prioritize,
    ),
    CATEGORIZE_EISENHOWER: PromptTemplate(
        system=(
            "You are an expert in productivity and time management. Categorize the "
            "task into one of the four quadrants of the Eisenhower Matrix.\n"
            "- UrgentImportant: do immediately.\n"
            "- NotUrgentImportant: schedule for later.\n"
            "- UrgentNotImportant: delegate.\n"
            "- NotUrgentNotImportant: eliminate.\n"
            "A closer deadline means more urgent. Tasks related to long-term goals, "
            "career, relationships or health are generally important."
        ),
        render=_eisenhower,
    ),
    CATEGORIZE_LABEL: PromptTemplate(
        system=(
            "Generate a single, concise category for the task. "
            "Examples: Work, Personal, Shopping, Health, Finance, Project Alpha."
        ),
        render=_label,
    ),
    MOTIVATIONAL_QUOTE: PromptTemplate(
        system=(
            "You are a curator of inspiring quotes. Find a short quote from a real, "
            "famous person that reflects the user's current task situation.\n"
            "- Many tasks: a quote about getting started or overcoming overwhelm.\n"
            "- Few tasks: a quote about focus or quality.\n"
            "- Many completed tasks: a quote about achievement or perseverance."
        ),
        render=_quote,
    ),
    ANALYZE_TASKS: PromptTemplate(
        system=(
            "You are a productivity assistant. Give a brief, insightful and "
            "encouraging analysis (2-3 sentences) of the task list. Consider the "
            "total number of tasks, how many are completed, and whether any are "
            "overdue. Start with a key insight and end with a motivational sentence."
        ),
        render=_analysis,
    ),
    SUGGEST_TASK_TIME: PromptTemplate(
        system=(
            "You are a smart scheduling assistant. Suggest up to 4 time slots for a "
            "new task on the given day. Working hours are 08:00 to 18:00. Leave at "
            "least a 1-hour gap from other tasks where possible. Slots are strings "
            'in 24-hour "HH:MM" format.'
        ),
        render=_suggest,
    ),
    GENERATE_TASK_DETAILS: PromptTemplate(
        system=(
            "Given a brief task title, write a detailed description of the task and "
            "a list of the subtasks required to complete it."
        ),
        render=_details,
    ),
}
