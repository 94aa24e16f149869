"""
=============================================================================
PATH TEMPLATE COMPILER
=============================================================================

Turns a path template such as ``/users/:id/files/:path*`` into a matcher
function that, given a concrete request path, returns the extracted
parameters or ``None``.

Supported:
- Mandatory parameters:   /users/:id         → one path segment
- Optional parameters:    /users/:id?        → zero or one segment
- Greedy parameters:      /files/:path*      → one or more segments
- Optional greedy:        /files/:path*?     → zero or more segments
- Bare wildcard:          /static/*          → anything, not captured
- Three token formats:    :name   {name}   {{name}}

=============================================================================
TOKEN FORMATS
=============================================================================

The token syntax is chosen per router (not per route):

    ┌──────────────────┬────────────────┬──────────────────────────────┐
    │ Format           │ Mandatory      │ With modifiers               │
    ├──────────────────┼────────────────┼──────────────────────────────┤
    │ colon            │ :id            │ :id?   :path*   :path*?      │
    │ handlebar        │ {id}           │ {id?}  {path*}  {path*?}     │
    │ doubleHandlebar  │ {{id}}         │ {{id?}} {{path*}}            │
    └──────────────────┴────────────────┴──────────────────────────────┘

Parameter names look like identifiers: ``[_$A-Za-z][_$A-Za-z0-9]*``.
A ``*`` that is not attached to a name is the bare wildcard in every format.

=============================================================================
COMPILATION
=============================================================================

Templates and paths are normalized first: ONE leading and ONE trailing
slash are stripped. Then every token is replaced by a capture group and
every piece of literal text between tokens is regex-escaped:

    Template:  /users/:id/files/:path*
                        │          │
    Normalize: users/:id/files/:path*
                        │          │
                        ▼          ▼
    Regex:     ^users/([^/]+?)/files/([\\s\\S]+?)$
                      ────────       ────────────
                      one segment    one or more segments,
                      (no slashes)   slashes allowed

    Params:    ("id", "path")       ← group 1 → "id", group 2 → "path"

Groups are positional and mapped to names through the parameter list, so
names like ``$id`` (not legal in Python named groups) still work.

=============================================================================
THE OPTIONAL-SEGMENT RULE
=============================================================================

An optional token that directly follows a literal slash swallows that slash
too. Otherwise ``foo/:bar?`` could never match plain ``foo``:

    foo/:bar?   →   ^foo(?:/([^/]+?))?$
                        ───────────────
                        the "/" moved INSIDE the optional group

    "foo"       →   {}                 (key absent, not "")
    "foo/x"     →   {"bar": "x"}
    "foo/x/y"   →   None

=============================================================================
INTERVIEW QUESTIONS ABOUT PATH MATCHING
=============================================================================

Q: "Why non-greedy quantifiers inside an anchored pattern?"
A: "Anchoring makes the overall match exact either way. Non-greedy inner
   groups decide HOW the text is split between adjacent greedy tokens:
   foo/:a*/:b* on foo/x/y/z gives a='x', b='y/z'."

Q: "Why escape the literal parts?"
A: "A template like /v1.0/items must not let '.' match any character.
   Escaping turns every literal into an exact match."

=============================================================================
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple, Union

from ..errors import ConfigurationError, InvalidPathDefinition


logger = logging.getLogger(__name__)


# =============================================================================
# TOKEN GRAMMAR
# =============================================================================

PARAM_FORMATS = ("colon", "handlebar", "doubleHandlebar")
DEFAULT_PARAM_FORMAT = "colon"

_NAME = r"[_$A-Za-z][_$A-Za-z0-9]*"

# "*?" must be tried before "*" and "?" so the pair is read as one modifier
_MODIFIER = r"(\*\?|\*|\?)?"

# Group 1: parameter name, group 2: modifier, group 3: bare wildcard
_TOKEN_PATTERNS: Dict[str, re.Pattern] = {
    "colon": re.compile(rf":({_NAME}){_MODIFIER}|(\*)"),
    "handlebar": re.compile(rf"\{{({_NAME}){_MODIFIER}\}}|(\*)"),
    "doubleHandlebar": re.compile(rf"\{{\{{({_NAME}){_MODIFIER}\}}\}}|(\*)"),
}

# One character of a single segment, and one character of anything
SEGMENT_CHAR = r"[^/]"
ANY_CHAR = r"[\s\S]"


# Anything a route can be registered with
PathDescriptor = Union[str, "re.Pattern[str]", "PathMatcher"]

# What a matcher returns on success
MatchResult = Union[Dict[str, str], "re.Match[str]"]


def normalize_path(path: str) -> str:
    """
    Strip a single leading and a single trailing slash.

    Only one of each is removed, so ``//a//`` becomes ``/a/``.
    """
    if path.startswith("/"):
        path = path[1:]
    if path.endswith("/"):
        path = path[:-1]
    return path


def _token_pattern(param_format: str) -> re.Pattern:
    try:
        return _TOKEN_PATTERNS[param_format]
    except KeyError:
        raise ConfigurationError(
            f"Unknown parameter format {param_format!r}. "
            f"Expected one of: {', '.join(PARAM_FORMATS)}"
        ) from None


def create_pattern(
    template: str,
    param_format: str = DEFAULT_PARAM_FORMAT,
    case_sensitive: bool = False,
) -> Tuple[re.Pattern, Tuple[str, ...]]:
    """
    Compile a template string into an anchored regex.

    =====================================================================
    WALKTHROUGH
    =====================================================================

    Input:  "foo/:bar?/baz/:abc"  (colon format)

    Step 1: Find tokens left to right
            ":bar?" at 4, ":abc" at 14

    Step 2: Emit escaped literal text, then the token's group
            "foo/"   → foo/
            ":bar?"  → previous char is "/", so pull it into the group
                       foo(?:/([^/]+?))?
            "/baz/"  → /baz/
            ":abc"   → ([^/]+?)

    Step 3: Anchor
            ^foo(?:/([^/]+?))?/baz/([^/]+?)$

    =====================================================================

    Args:
        template: Path template in the chosen format.
        param_format: "colon", "handlebar" or "doubleHandlebar".
        case_sensitive: Match letters exactly when True.

    Returns:
        Tuple of (compiled regex, parameter names in template order)

    Raises:
        InvalidPathDefinition: If a parameter name is used twice.
        ConfigurationError: If param_format is unknown.
    """
    tokens = _token_pattern(param_format)
    path = normalize_path(template)

    param_names: list[str] = []
    regex = "^"
    offset = 0

    for token in tokens.finditer(path):
        regex += re.escape(path[offset:token.start()])
        offset = token.end()

        # -----------------------------------------------------------------
        # BARE WILDCARD: *
        # -----------------------------------------------------------------
        # Any run of characters (possibly empty), not captured.
        if token.group(3):
            regex += f"{ANY_CHAR}*?"
            continue

        name = token.group(1)
        modifier = token.group(2) or ""

        if name in param_names:
            raise InvalidPathDefinition(
                f"Duplicate parameter name {name!r} in path {template!r}"
            )
        param_names.append(name)

        # ":x" and ":x?" take one segment, ":x*" and ":x*?" take several
        body = f"{ANY_CHAR}+?" if modifier.startswith("*") else f"{SEGMENT_CHAR}+?"

        if modifier.endswith("?"):
            # -------------------------------------------------------------
            # OPTIONAL: :x?  or  :x*?
            # -------------------------------------------------------------
            if regex.endswith("/"):
                regex = regex[:-1] + f"(?:/({body}))?"
            else:
                regex += f"(?:({body}))?"
        else:
            regex += f"({body})"

    regex += re.escape(path[offset:]) + "$"

    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(regex, flags), tuple(param_names)


class PathMatcher:
    """
    A compiled, immutable path matcher.

    Call it with a request path:

        matcher = compile_path("/users/:id")
        matcher("/users/42")     # {"id": "42"}
        matcher("/users")        # None

    A matcher built from a raw ``re.Pattern`` ("native") returns the
    ``re.Match`` object itself instead of a dict, so callers keep access
    to positional groups.
    """

    __slots__ = ("_pattern", "_param_names", "_template", "_native")

    def __init__(
        self,
        pattern: re.Pattern,
        param_names: Tuple[str, ...] = (),
        template: Optional[str] = None,
        native: bool = False,
    ):
        self._pattern = pattern
        self._param_names = tuple(param_names)
        self._template = template
        self._native = native

    @property
    def pattern(self) -> re.Pattern:
        """The compiled regular expression."""
        return self._pattern

    @property
    def param_names(self) -> Tuple[str, ...]:
        """Parameter names in the order they appear in the template."""
        return self._param_names

    @property
    def template(self) -> Optional[str]:
        """The original template string (None for native matchers)."""
        return self._template

    @property
    def native(self) -> bool:
        return self._native

    def __call__(self, path: str) -> Optional[MatchResult]:
        sub_path = normalize_path(path)

        if self._native:
            # Raw regex: same semantics as re.search, result returned as-is
            return self._pattern.search(sub_path)

        match = self._pattern.fullmatch(sub_path)
        if match is None:
            return None

        # Only groups that took part in the match. An omitted optional
        # parameter is ABSENT from the dict, never an empty string.
        return {
            name: value
            for name, value in zip(self._param_names, match.groups())
            if value is not None
        }

    def __repr__(self) -> str:
        source = self._template if self._template is not None else self._pattern.pattern
        return f"PathMatcher({source!r}, params={list(self._param_names)})"


def compile_path(
    path: Any,
    param_format: str = DEFAULT_PARAM_FORMAT,
    case_sensitive: bool = False,
) -> PathMatcher:
    """
    Build a matcher from any supported path descriptor.

    Args:
        path: A template string, a compiled ``re.Pattern``, or an existing
              ``PathMatcher`` (returned unchanged).
        param_format: Token format for template strings.
        case_sensitive: Match letters exactly when True. Ignored for
                        ``re.Pattern`` descriptors, which keep their own flags.

    Returns:
        A PathMatcher.

    Raises:
        InvalidPathDefinition: For any other descriptor type.
    """
    if isinstance(path, PathMatcher):
        return path

    if isinstance(path, str):
        pattern, param_names = create_pattern(path, param_format, case_sensitive)
        logger.debug(f"Compiled path {path!r} → {pattern.pattern} {list(param_names)}")
        return PathMatcher(pattern, param_names, template=path)

    if isinstance(path, re.Pattern) and isinstance(path.pattern, str):
        return PathMatcher(path, native=True)

    raise InvalidPathDefinition(
        "Path definition must be a string or a regular expression, "
        f"got {type(path).__name__}"
    )
