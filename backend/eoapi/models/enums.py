"""ENUM types shared by the replay engine and the API schemas."""

import enum


class Op(str, enum.Enum):
    """The nine EO operators.

    Member names are the long form; values are the wire codes stored in
    the log.
    """

    NULLIFY = "NUL"  # Tombstone, never erases
    DESCRIBE = "DES"  # Set metadata fields
    INSERT = "INS"  # Create a record
    SEGMENT = "SEG"  # Reference/embed relation
    CONNECT = "CON"  # Navigation/routing relation
    SYNTHESIZE = "SYN"  # Resolve a conflict
    ALTER = "ALT"  # JSON-patch an existing record
    SUPERPOSE = "SUP"  # Record concurrent values
    RECOMBINE = "REC"  # Derive a view

    @classmethod
    def lookup(cls, symbol: str) -> "Op | None":
        """Resolve a wire code ("INS") or long name ("INSERT")."""
        try:
            return cls(symbol)
        except ValueError:
            return cls.__members__.get(symbol)


class RootType(str, enum.Enum):
    """Entity kind encoded in the root segment of a target."""

    PAGE = "page"
    BLOG = "blog"
    WIKI = "wiki"
    EXPERIMENT = "exp"
    SITE = "site"  # site:index only


class ChildType(str, enum.Enum):
    """Sub-record kind encoded in the child segment of a target."""

    BLOCK = "block"
    REVISION = "rev"
    ENTRY = "entry"
    INDEX = "index"


class ContentType(str, enum.Enum):
    """Content shape of a projected entity."""

    PAGE = "page"
    BLOG = "blog"
    WIKI = "wiki"
    EXPERIMENT = "experiment"


class ContentStatus(str, enum.Enum):
    """Publication status of an entity."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Visibility(str, enum.Enum):
    """Who may see an entity."""

    PUBLIC = "public"
    PRIVATE = "private"


class EntryKind(str, enum.Enum):
    """Kind of a lab-notebook experiment entry."""

    NOTE = "note"
    DATASET = "dataset"
    RESULT = "result"
    CHART = "chart"
    LINK = "link"
    DECISION = "decision"


class AccessMode(str, enum.Enum):
    """Which entities a replay pass may emit."""

    PUBLIC = "public"  # published + public only
    INCLUDE_DRAFTS = "include_drafts"  # everything except archived


ROOT_CONTENT_TYPES: dict[RootType, ContentType] = {
    RootType.PAGE: ContentType.PAGE,
    RootType.BLOG: ContentType.BLOG,
    RootType.WIKI: ContentType.WIKI,
    RootType.EXPERIMENT: ContentType.EXPERIMENT,
}
