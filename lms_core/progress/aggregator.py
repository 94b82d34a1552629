"""
Course progress aggregation.

A course's steps are its content items plus one extra step per linked quiz.
Steps are identified by string keys so that content and quiz ids never
collide: ``content:<id>`` and ``quiz:<id>``. Progress is always recomputed
from the full completed-key set, never incremented, so recomputing is
idempotent and safe to repeat after duplicate completion events.
"""

from pydantic import BaseModel
from typing import Iterable, Set

from lms_core.utils.rounding import percent_half_up


def content_step_key(content_id: int) -> str:
    return f"content:{content_id}"


def quiz_step_key(quiz_id: int) -> str:
    return f"quiz:{quiz_id}"


class ProgressResult(BaseModel):
    percentage: int
    should_complete: bool
    completed_steps: int
    total_steps: int


def course_step_keys(content_items: Iterable) -> Set[str]:
    """All step keys of a course: each content item, plus each linked quiz."""
    keys = set()
    for item in content_items:
        keys.add(content_step_key(item.id))
        if item.quiz_id is not None:
            keys.add(quiz_step_key(item.quiz_id))
    return keys


def recompute(content_items: Iterable, completed_keys: Iterable[str]) -> ProgressResult:
    step_keys = course_step_keys(content_items)
    total_steps = len(step_keys)

    if total_steps == 0:
        return ProgressResult(percentage=0, should_complete=False, completed_steps=0, total_steps=0)

    completed_steps = len(step_keys & set(completed_keys))
    percentage = min(percent_half_up(completed_steps, total_steps), 100)

    return ProgressResult(
        percentage=percentage,
        should_complete=percentage == 100,
        completed_steps=completed_steps,
        total_steps=total_steps,
    )
