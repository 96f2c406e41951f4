"""AI reflection appended to the weekly summary draft."""

import logging
from typing import Iterable

from taskgraph.summary.client import GenerationClient
from taskgraph.tasks.errors import ValidationError
from taskgraph.tasks.models import Task

logger = logging.getLogger(__name__)

REFLECTION_HEADER = "AI Reflection:"

DEFAULT_GOAL_CONTEXT = "their personal goals"


def merge_reflection(draft: str, reflection: str) -> str:
    """Append a reflection below the existing draft text."""
    current = draft.strip()
    if current:
        return f"{current}\n\n{REFLECTION_HEADER}\n{reflection}"
    return f"{REFLECTION_HEADER}\n{reflection}"


class SummaryGenerator:
    """Builds the weekly prompt and merges the completion into the draft."""

    def __init__(self, client: GenerationClient, goal_context: str = DEFAULT_GOAL_CONTEXT):
        self.client = client
        self.goal_context = goal_context
        self.is_generating = False

    def build_prompt(self, completed: list[Task]) -> str:
        task_list = "\n".join(f"• {t.text}" for t in completed)
        return f"""You are helping someone track their progress toward {self.goal_context}. They completed these tasks this week:

{task_list}

Please write a short, encouraging weekly summary (2-3 sentences) that:
1. Acknowledges their specific accomplishments
2. Highlights the progress they're making toward {self.goal_context}
3. Provides positive reinforcement to keep them motivated

Focus on being supportive and recognizing the value of their consistent effort, even if the final goal still seems distant."""

    async def generate(self, tasks: Iterable[Task], draft: str) -> str:
        """
        Generate a reflection on the week's completed tasks.

        Args:
            tasks: Current tasks; only completed ones feed the prompt
            draft: Current summary draft

        Returns:
            The new draft with the reflection appended

        Raises:
            ValidationError: If no task is completed
            ExternalServiceFailure: If the service call fails; the caller's
                draft is untouched
        """
        completed = [t for t in tasks if t.completed]
        if not completed:
            raise ValidationError("No completed tasks this week to summarize!")

        self.is_generating = True
        try:
            reflection = await self.client.generate(self.build_prompt(completed))
        finally:
            self.is_generating = False

        logger.info(f"Generated reflection for {len(completed)} completed tasks")
        return merge_reflection(draft, reflection)
