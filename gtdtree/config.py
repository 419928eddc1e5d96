"""
Service configuration loaded from environment variables.
"""
import os
from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_DB_PATH = os.path.join(os.path.expanduser("~"), ".gtdtree", "gtdtree.sqlite")

# Absolute ceiling on hierarchy recursion; malformed data may contain parent cycles.
MAX_TREE_DEPTH = 100


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the item tree service."""

    db_path: str = DEFAULT_DB_PATH
    service_port: int = 8004
    log_level: str = "INFO"

    query_slow_threshold: float = 0.1
    enable_query_logging: bool = True

    # Sentinel folders are root items located by case-insensitive title
    trash_title: str = "Trash"
    archive_title: str = "Archive"
    reference_title: str = "Reference"
    templates_title: str = "Templates"
    inbox_title: str = "Inbox"

    actionable_tag: str = "next"
    stuck_excluded_tags: Tuple[str, ...] = field(default=("on-hold", "routine"))

    task_kind: str = "Task"
    folder_kind: str = "Folder"
    template_kind: str = "Template"
    default_clone_kind: str = "Project"

    node_tree_max_depth: int = 20

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        return cls(
            db_path=os.getenv("GTDTREE_DB_PATH", DEFAULT_DB_PATH),
            service_port=_env_int("GTDTREE_SERVICE_PORT", 8004),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            query_slow_threshold=float(os.getenv("DB_QUERY_SLOW_THRESHOLD", "0.1")),
            enable_query_logging=_env_bool("DB_ENABLE_QUERY_LOGGING", True),
            trash_title=os.getenv("GTDTREE_TRASH_TITLE", "Trash"),
            archive_title=os.getenv("GTDTREE_ARCHIVE_TITLE", "Archive"),
            reference_title=os.getenv("GTDTREE_REFERENCE_TITLE", "Reference"),
            templates_title=os.getenv("GTDTREE_TEMPLATES_TITLE", "Templates"),
            inbox_title=os.getenv("GTDTREE_INBOX_TITLE", "Inbox"),
            actionable_tag=os.getenv("GTDTREE_ACTIONABLE_TAG", "next"),
            stuck_excluded_tags=_env_list("GTDTREE_STUCK_EXCLUDED_TAGS", ("on-hold", "routine")),
            node_tree_max_depth=_env_int("GTDTREE_NODE_TREE_MAX_DEPTH", 20),
        )
