from datetime import datetime
from typing import Any, cast

from quillpress.domain.entities import LifecycleAction, Post, PostStatus
from quillpress.domain.errors import ConflictError

# Status a patch may request -> lifecycle action that reaches it.
_ACTION_FOR_STATUS: dict[PostStatus, LifecycleAction] = {
    "published": "publish",
    "pending": "submit",
    "draft": "unpublish",
}


def restore_target(post: Post) -> PostStatus:
    """A restored post is published again if it was ever published."""
    return "published" if post.published_at is not None else "draft"


def target_status(post: Post, action: LifecycleAction, *, is_admin: bool) -> PostStatus | None:
    """
    Resulting status of ``action`` on a live (not deleted) post.

    Returns None when the action is not allowed from the current status.
    """
    current = post.status

    if action == "publish":
        if current == "published":
            return "published"
        if current in ("draft", "pending"):
            return "published" if is_admin else "pending"

    if action == "submit":
        if current in ("draft", "pending"):
            return "pending"

    if action == "unpublish":
        if current in ("published", "pending", "draft"):
            return "draft"

    if action == "delete":
        if current in ("draft", "pending", "published"):
            return "archived"

    return None


def can_transition(post: Post, action: LifecycleAction, *, is_admin: bool) -> bool:
    if action == "restore":
        return post.is_deleted
    if post.is_deleted:
        return False
    return target_status(post, action, is_admin=is_admin) is not None


def transition(post: Post, action: LifecycleAction, *, is_admin: bool, now: datetime) -> Post:
    """
    Return a NEW Post with the lifecycle action applied.

    Returns the given post unchanged when the action is a no-op (e.g. publishing
    an already published post). Raises ConflictError if the action is illegal.
    """
    if not can_transition(post, action, is_admin=is_admin):
        raise ConflictError(_refusal(post, action))

    if action == "restore":
        return post.model_copy(
            update={"is_deleted": False, "status": restore_target(post), "updated_at": now}
        )

    new_status = cast(PostStatus, target_status(post, action, is_admin=is_admin))

    if action != "delete" and new_status == post.status:
        return post

    updates: dict[str, Any] = {"status": new_status, "updated_at": now}

    if action == "delete":
        updates["is_deleted"] = True

    if new_status == "published" and post.published_at is None:
        # published_at records the first publication and is never reset.
        updates["published_at"] = now

    return post.model_copy(update=updates)


def _refusal(post: Post, action: LifecycleAction) -> str:
    if action == "restore":
        return "Post is not deleted"
    if post.is_deleted:
        return "Post already deleted" if action == "delete" else f"Cannot {action} a deleted post"
    return f"Cannot {action} a post in status '{post.status}'"


def action_for_status(requested: str) -> LifecycleAction:
    """Map a status requested in an edit to the action that reaches it."""
    action = _ACTION_FOR_STATUS.get(requested)  # type: ignore[call-overload]
    if action is None:
        raise ConflictError(f"Status cannot be set to '{requested}' directly")
    return action
