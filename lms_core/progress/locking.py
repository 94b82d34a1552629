"""
Read-time content locking. Nothing here is persisted; the same ordered
content and completed-key set always produce the same lock state.
"""

from typing import Iterable, List, Optional, Sequence, Set

from lms_core.progress.aggregator import content_step_key


def course_order_key(item):
    """Sort key for the course-wide sequence: module order, then content order."""
    return (item.module.order_index, item.order_index, item.id)


def find_linked_video(quiz_id: int, ordered_content: Iterable, exclude_id: Optional[int] = None):
    for item in ordered_content:
        if item.id != exclude_id and item.content_type == "video" and item.quiz_id == quiz_id:
            return item
    return None


def is_quiz_locked(linked_video, completed_keys: Set[str]) -> bool:
    """A quiz is locked until its linked video is completed. Unlinked quizzes are open."""
    if linked_video is None:
        return False
    return content_step_key(linked_video.id) not in completed_keys


def locked_content_ids(ordered_content: Sequence, completed_keys: Iterable[str]) -> Set[int]:
    """
    Ids of the content items that are locked for a student.

    The first item is always open. Any other item stays locked until every
    item before it in course order is completed. A quiz item linked to a
    video is gated by that video instead, wherever the video sits.

    Gating on the whole prefix rather than only the immediately preceding
    item is intentional: an incomplete item keeps everything after it locked.
    """
    completed = set(completed_keys)
    locked = set()
    prefix_completed = True

    for position, item in enumerate(ordered_content):
        linked_video = None
        if item.content_type == "quiz" and item.quiz_id is not None:
            linked_video = find_linked_video(item.quiz_id, ordered_content, exclude_id=item.id)

        if linked_video is not None:
            item_locked = is_quiz_locked(linked_video, completed)
        else:
            item_locked = position > 0 and not prefix_completed

        if item_locked:
            locked.add(item.id)
        if content_step_key(item.id) not in completed:
            prefix_completed = False

    return locked


def is_locked(item, ordered_content: Sequence, completed_keys: Iterable[str]) -> bool:
    return item.id in locked_content_ids(ordered_content, completed_keys)


def order_course_content(content_items: Iterable) -> List:
    return sorted(content_items, key=course_order_key)
