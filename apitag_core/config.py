"""
apitag Configuration
====================

Runtime configuration for the sync engine, loaded from the environment
(a ``.env`` file in the working directory is honoured).

Environment Variables:
    APITAG_DB_PATH: SQLite code model database (default: apitag.db)
    APITAG_TAG_PATTERN: Regex used to find tags in documentation
    APITAG_CLOSURE_MAX_ITERATIONS: Transitive closure iteration cap (default: 10)
    APITAG_WALK_MAX_DEPTH: Maximum expression tree depth walked (default: 256)
    APITAG_HEURISTIC_TEXT_MATCH: true|false, enable the text-search relatedness tier
    APITAG_TAG_ANNOTATION: Simple name of the tag annotation (default: ApiMsgId)
    APITAG_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    APITAG_LOG_FORMAT: json|text (default: json)
    APITAG_INDEXER_URL: Project indexer service (default: http://localhost:8766)
"""

import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

# Default configuration values
DEFAULT_DB_PATH = "apitag.db"
DEFAULT_TAG_PATTERN = r"([A-Za-z0-9]+-[A-Za-z0-9]+-[A-Za-z0-9]+.*)"
DEFAULT_CLOSURE_MAX_ITERATIONS = 10
DEFAULT_WALK_MAX_DEPTH = 256
DEFAULT_TAG_ANNOTATION = "ApiMsgId"
DEFAULT_INDEXER_URL = "http://localhost:8766"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for the resolver, propagator and surfaces.

    Attributes:
        db_path: SQLite code model database path
        tag_pattern: Regex with one group capturing the tag
        closure_max_iterations: Iteration cap for the class-seed closure
        walk_max_depth: Depth cap for expression tree walks
        heuristic_text_match: Whether the text-search relatedness tier may run
        tag_annotation: Simple name of the annotation that also carries a tag
        log_level: Logging level name
        json_logs: Emit JSON logs instead of plain text
        indexer_url: Base URL of the project indexer service
    """

    db_path: str = DEFAULT_DB_PATH
    tag_pattern: str = DEFAULT_TAG_PATTERN
    closure_max_iterations: int = DEFAULT_CLOSURE_MAX_ITERATIONS
    walk_max_depth: int = DEFAULT_WALK_MAX_DEPTH
    heuristic_text_match: bool = True
    tag_annotation: str = DEFAULT_TAG_ANNOTATION
    log_level: str = "INFO"
    json_logs: bool = True
    indexer_url: str = DEFAULT_INDEXER_URL

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Create configuration from environment variables.

        Returns:
            SyncConfig instance with values from environment
        """
        load_dotenv()

        return cls(
            db_path=os.environ.get("APITAG_DB_PATH", DEFAULT_DB_PATH),
            tag_pattern=os.environ.get("APITAG_TAG_PATTERN", DEFAULT_TAG_PATTERN),
            closure_max_iterations=int(
                os.environ.get("APITAG_CLOSURE_MAX_ITERATIONS", DEFAULT_CLOSURE_MAX_ITERATIONS)
            ),
            walk_max_depth=int(os.environ.get("APITAG_WALK_MAX_DEPTH", DEFAULT_WALK_MAX_DEPTH)),
            heuristic_text_match=_env_bool("APITAG_HEURISTIC_TEXT_MATCH", True),
            tag_annotation=os.environ.get("APITAG_TAG_ANNOTATION", DEFAULT_TAG_ANNOTATION),
            log_level=os.environ.get("APITAG_LOG_LEVEL", "INFO").upper(),
            json_logs=os.environ.get("APITAG_LOG_FORMAT", "json").lower() == "json",
            indexer_url=os.environ.get("APITAG_INDEXER_URL", DEFAULT_INDEXER_URL),
        )

    def is_valid(self) -> bool:
        """Check if configuration has usable values."""
        return not self.get_validation_errors()

    def get_validation_errors(self) -> list[str]:
        """Get list of validation error messages."""
        errors = []

        try:
            compiled = re.compile(self.tag_pattern)
        except re.error as e:
            errors.append(f"APITAG_TAG_PATTERN is not a valid regex: {e}")
        else:
            if compiled.groups < 1:
                errors.append("APITAG_TAG_PATTERN must contain one capturing group")

        if self.closure_max_iterations < 1:
            errors.append("APITAG_CLOSURE_MAX_ITERATIONS must be at least 1")
        if self.walk_max_depth < 1:
            errors.append("APITAG_WALK_MAX_DEPTH must be at least 1")
        if self.log_level not in LOG_LEVELS:
            errors.append(f"APITAG_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        if not self.tag_annotation:
            errors.append("APITAG_TAG_ANNOTATION must not be empty")

        return errors
