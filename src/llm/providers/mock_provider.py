from __future__ import annotations
import json
import re
from datetime import datetime, timezone
from typing import Optional
from llm.providers.base import LLMProvider

_TASK_BLOCK = re.compile(r"Task ID: (?P<id>.+)\nTitle: (?P<title>.*)\nDescription: .*\nDeadline: (?P<deadline>.+)")
_DEADLINE = re.compile(r'Task Deadline: "(?P<deadline>[^"]+)"')


def _days_until(iso: str) -> float:
    try:
        d = datetime.fromisoformat(iso.strip())
    except ValueError:
        return 365.0
    if d.tzinfo is None:
        d = d.replace(tzinfo=timezone.utc)
    return (d - datetime.now(timezone.utc)).total_seconds() / 86400.0


def _category_for(text: str) -> str:
    lower = text.lower()
    if "mom" in lower or "dinner" in lower or "birthday" in lower:
        return "Personal"
    if "run" in lower or "gym" in lower or "doctor" in lower:
        return "Health"
    if "invoice" in lower or "tax" in lower or "budget" in lower:
        return "Finance"
    if "buy" in lower or "groceries" in lower:
        return "Shopping"
    return "Work"


class MockProvider(LLMProvider):
    async def generate(self, *, system: str, user: str, model: Optional[str] = None) -> str:
        """
        Returns dummy JSON responses based on the prompt content.
        """
        if "task prioritization expert" in system:
            tasks = []
            for m in _TASK_BLOCK.finditer(user):
                days = max(_days_until(m.group("deadline")), 0.0)
                score = round(100.0 / (1.0 + days), 2)
                tasks.append({
                    "task_id": m.group("id").strip(),
                    "priority_score": score,
                    "reason": f"Due in {days:.0f} day(s).",
                })
            return json.dumps({"tasks": tasks})

        if "Eisenhower Matrix" in system:
            m = _DEADLINE.search(user)
            urgent = m is not None and _days_until(m.group("deadline")) <= 2
            important = _category_for(user) in {"Work", "Health", "Finance"}
            quadrant = {
                (True, True): "UrgentImportant",
                (False, True): "NotUrgentImportant",
                (True, False): "UrgentNotImportant",
                (False, False): "NotUrgentNotImportant",
            }[(urgent, important)]
            return json.dumps({"quadrant": quadrant, "reason": "Keyword and deadline heuristic."})

        if "concise category" in system:
            return json.dumps({"category": _category_for(user)})

        if "curator of inspiring quotes" in system:
            return json.dumps({
                "quote": "It always seems impossible until it's done.",
                "author": "Nelson Mandela",
            })

        if "productivity assistant" in system:
            count = user.count("- Task:")
            done = user.count("Completed: true")
            return json.dumps({
                "analysis": f"You have {count} task(s) and {done} completed. Keep going, one step at a time!"
            })

        if "scheduling assistant" in system:
            return json.dumps({"suggestions": ["09:00", "11:00", "14:00", "16:00"]})

        if "detailed description" in system:
            return json.dumps({
                "description": "Plan the work, do it, and review the result.",
                "subtasks": ["Plan", "Do", "Review"],
            })

        # Default fallback
        return "{}"
