"""
=============================================================================
STATIC FILE RESOLUTION
=============================================================================

Maps a decoded URL path to a file beneath the document root, and decides
whether a path is something we are willing to serve at all.

=============================================================================
URL → FILE RULES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  URL                          FILE (relative to document root)     │
    ├─────────────────────────────────────────────────────────────────────┤
    │  /                            www.scu.edu/index.html (default doc) │
    │  /about                       about.html      (bare route + .html) │
    │  /about?lang=en               about.html      (query dropped)      │
    │  /css/site.css                css/site.css                         │
    │  /404.html                    errors/404.html (error pages)        │
    │  /../../etc/passwd.txt        → OUTSIDE_ROOT                       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    ATTACK ATTEMPT:
    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../../etc/hosts.txt HTTP/1.1                              │
    │  GET /%2e%2e/%2e%2e/secret.html HTTP/1.1   (decoded before here)   │
    │  GET /link-to-outside/file.html HTTP/1.1   (symlink indirection)   │
    │                                                                      │
    │  Our protection:                                                    │
    │  1. Resolve the full path (follow .. and symlinks)                 │
    │  2. Check, segment by segment, that it is still inside the root    │
    │  3. If not → OUTSIDE_ROOT, which the caller answers with 404       │
    └─────────────────────────────────────────────────────────────────────┘

Why segment by segment? A string prefix test is wrong:

    root   = /srv/www
    target = /srv/wwwevil/index.html
    str(target).startswith(str(root))   → True   (BUG!)
    target.relative_to(root)            → ValueError (correct)

=============================================================================
ALLOW-LIST BEFORE FILESYSTEM
=============================================================================

is_allowed_resource() is a pure string check. It runs before resolve()
and before any stat() or open(), so a request for "/secrets.db" gets the
same 400 whether or not the file exists.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


ALLOWED_EXTENSIONS = (
    "pdf", "jpeg", "jpg", "png", "txt", "gif",
    "html", "mp4", "json", "js", "css",
)

ERROR_PAGE_PATHS = ("/400.html", "/403.html", "/404.html")


def strip_query(path: str) -> str:
    """Drop the query string and fragment: "/a.html?x=1#top" → "/a.html"."""
    return path.split("?", 1)[0].split("#", 1)[0]


def with_html_suffix(path: str) -> str:
    """Bare routes are HTML pages: "/about" → "/about.html". "/" is left alone."""
    if path != "/" and "." not in path:
        return path + ".html"
    return path


def is_allowed_resource(path: str) -> bool:
    """
    Check a decoded URL path against the extension allow-list.

    Examples:
        >>> is_allowed_resource("/")
        True
        >>> is_allowed_resource("/about")          # becomes /about.html
        True
        >>> is_allowed_resource("/photo.JPG?v=2")
        True
        >>> is_allowed_resource("/app.exe")
        False
        >>> is_allowed_resource("about.html")     # not origin-form
        False
    """
    if not path.startswith("/"):
        return False
    path = with_html_suffix(strip_query(path))
    if path == "/":
        return True
    return path.lower().endswith(tuple("." + ext for ext in ALLOWED_EXTENSIONS))


class ResolveStatus(Enum):
    """Outcome of PathResolver.resolve()."""
    FOUND = "found"                  # Inside the root (existence NOT checked)
    NOT_FOUND = "not_found"          # Could not be turned into a path at all
    OUTSIDE_ROOT = "outside_root"    # Escapes the document root


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Result of resolving a URL path.

    path is set only when status is FOUND, and is then the canonical
    absolute path, guaranteed to be the document root or beneath it.
    """

    status: ResolveStatus
    path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.status is ResolveStatus.FOUND


class PathResolver:
    """
    Sandboxed URL path → filesystem path mapping.

    =========================================================================
    FLOW
    =========================================================================

        resolve("/docs/intro?lang=en")

        1. strip_query        → "/docs/intro"
        2. with_html_suffix   → "/docs/intro.html"
        3. error page rewrite (only /400.html, /403.html, /404.html)
        4. "/" → default document, else drop the leading "/"
        5. (root / relative).resolve()
        6. relative_to(root) or OUTSIDE_ROOT

    resolve() never touches the file's contents and never raises; whether
    the file exists or is readable is the caller's business.

    =========================================================================
    """

    def __init__(
        self,
        document_root: str | Path,
        default_document: str = "www.scu.edu/index.html",
        error_dir: str = "errors",
        log: Optional[logging.Logger] = None,
    ):
        # Resolve once; every candidate is compared against this.
        self.root = Path(document_root).resolve()
        self.default_document = default_document
        self.error_dir = error_dir
        self._log = log or logger

    def resolve(self, decoded_path: str) -> ResolvedTarget:
        """
        Resolve a percent-decoded URL path.

        Args:
            decoded_path: Path from the request line, already decoded.
                          May still contain "?query" or "#fragment".

        Returns:
            ResolvedTarget with FOUND, NOT_FOUND or OUTSIDE_ROOT.
        """
        url_path = with_html_suffix(strip_query(decoded_path))

        if url_path in ERROR_PAGE_PATHS:
            url_path = f"/{self.error_dir}{url_path}"

        relative = self.default_document if url_path == "/" else url_path.removeprefix("/")
        self._log.debug(f"resolve: {decoded_path!r} → relative path {relative!r}")

        # ─────────────────────────────────────────────────────────────────
        # CANONICALIZE
        # ─────────────────────────────────────────────────────────────────
        # resolve() follows symlinks and normalizes .. components.
        # A NUL byte or an OS error means there is no such file for us.
        try:
            candidate = (self.root / relative).resolve()
        except (OSError, ValueError, RuntimeError) as e:
            self._log.warning(f"resolve: cannot canonicalize {relative!r}: {e}")
            return ResolvedTarget(ResolveStatus.NOT_FOUND)

        # ─────────────────────────────────────────────────────────────────
        # SECURITY: PATH TRAVERSAL CHECK
        # ─────────────────────────────────────────────────────────────────
        if not is_within(candidate, self.root):
            self._log.warning(f"resolve: {candidate} is outside the document root")
            return ResolvedTarget(ResolveStatus.OUTSIDE_ROOT)

        return ResolvedTarget(ResolveStatus.FOUND, candidate)

    def error_page(self, status: int) -> Path:
        """Location of the configured error page for a status code."""
        return self.root / self.error_dir / f"{int(status)}.html"


def is_within(path: Path, root: Path) -> bool:
    """
    True if path is root itself or lies beneath it.

    Compares path segments, so /srv/wwwevil is NOT within /srv/www.
    Both arguments must already be canonical.
    """
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. is_allowed_resource: pure string allow-list, runs before any I/O
# 2. PathResolver.resolve: query strip, .html suffix, error-page rewrite,
#    default document, canonicalize, segment-wise containment check
# 3. OUTSIDE_ROOT and NOT_FOUND both become 404 for the client
# =============================================================================
