"""Custom OpenAPI schema hooks for drf-spectacular.

Groups operations under feature sections instead of the default tag that
drf-spectacular derives from the first path segment.
"""

from __future__ import annotations

from typing import Any

PATTERN_TAGS = [
    ("/api/v1/auth/jwt/", "JWT Authentication"),
    ("/api/v1/auth/", "Authentication"),
    ("/api/v1/users/", "Users"),
    ("/api/v1/chat/", "Chat"),
]


def tag_for_path(path: str) -> str | None:
    for prefix, tag in PATTERN_TAGS:
        if path.startswith(prefix):
            return tag
    return None


def group_tags_by_path(result: dict[str, Any], generator, request, public):
    for path, operations in result.get("paths", {}).items():
        tag = tag_for_path(path)
        if tag is None:
            continue
        for op in operations.values():
            op["tags"] = [tag]
    return result
