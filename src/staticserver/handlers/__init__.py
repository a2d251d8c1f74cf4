"""
=============================================================================
HANDLERS MODULE
=============================================================================

Turning a request path into something on disk.

    static.py   PathResolver (sandboxed URL → file), is_allowed_resource
                (extension allow-list)

    ┌─────────────────────────────────────────────────────────────────────┐
    │   "/docs/intro?x=1"                                                 │
    │        │ is_allowed_resource()   → False ⇒ 400                     │
    │        ▼                                                            │
    │   PathResolver.resolve()         → OUTSIDE_ROOT / NOT_FOUND ⇒ 404  │
    │        ▼                                                            │
    │   <root>/docs/intro.html         → handed to ResponseWriter        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .static import (
    ALLOWED_EXTENSIONS,
    PathResolver,
    ResolvedTarget,
    ResolveStatus,
    is_allowed_resource,
    is_within,
)

__all__ = [
    "ALLOWED_EXTENSIONS",
    "PathResolver",
    "ResolvedTarget",
    "ResolveStatus",
    "is_allowed_resource",
    "is_within",
]
