"""Error taxonomy for a migration run.

Record-level errors (``EmissionUnmappable``) are caught by the conversion
engine and reported as skipped records. Run-level errors (``PathCollision``,
``OutputConflict``) abort the run before anything touches the filesystem.
"""
from typing import Dict, List, Optional


class MigrationError(Exception):
    """Base class for every error raised by the migration core."""


class EmissionUnmappable(MigrationError):
    """A body construct has no rewrite rule in the target idiom."""

    def __init__(self, construct: str, record_name: str = "", message: Optional[str] = None):
        self.construct = construct
        self.record_name = record_name
        if message is None:
            message = f"no rewrite rule for '{construct}'"
            if record_name:
                message = f"{record_name}: {message}"
        super().__init__(message)


class RewriteDivergence(EmissionUnmappable):
    """A rewrite table kept matching after its pass limit."""

    def __init__(self, table_name: str, passes: int):
        self.table_name = table_name
        self.passes = passes
        super().__init__(
            construct=table_name,
            message=f"rewrite table '{table_name}' did not reach a fixed point after {passes} passes",
        )


class PathCollision(MigrationError):
    """Two or more artifacts of one run resolve to the same target path."""

    def __init__(self, collisions: Dict[str, List[str]]):
        self.collisions = collisions
        details = "; ".join(
            f"{path} <- {', '.join(sources)}" for path, sources in sorted(collisions.items())
        )
        super().__init__(f"{len(collisions)} target path collision(s): {details}")


class OutputConflict(MigrationError):
    """The output directory already holds different content and no override was given."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Output directory {path} is not empty; pass overwrite=True to replace it"
        )
