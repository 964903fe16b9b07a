"""Reading, merging and writing flat ``KEY=value`` .env files.

The format is deliberately dumb: one entry per line, split on the first
``=``, no quoting, no escaping, no comments. A value containing a newline
cannot be represented and will corrupt the file on the next read.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_env(text: str) -> dict[str, str]:
    """Parse .env text into an ordered dict.

    Lines without ``=`` are skipped. Everything after the first ``=`` is the
    value, further ``=`` included. A repeated key keeps its first position
    but takes the last value.
    """
    values: dict[str, str] = {}
    for line in text.split("\n"):
        if "=" not in line:
            continue
        key, val = line.split("=", 1)
        if key:
            values[key] = val
    return values


def serialize_env(values: dict[str, str]) -> str:
    """Serialize entries back to ``KEY=value`` lines (no trailing newline)."""
    return "\n".join(f"{key}={val}" for key, val in values.items())


def merge_env(existing: dict[str, str], new: dict[str, str]) -> dict[str, str]:
    """Overlay *new* on *existing*. New wins; unrelated keys are preserved."""
    merged = dict(existing)
    merged.update(new)
    return merged


def load_env_file(path: Path) -> dict[str, str]:
    """Parse an existing .env file into a dict. Returns empty dict if missing."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No existing env file at %s", path)
        return {}
    return parse_env(text)


def write_env_file(path: Path, values: dict[str, str]) -> None:
    """Write *values* to *path*, replacing its contents in full.

    Goes through a sibling temp file so a reader never sees a half-written
    file. Concurrent writers are not guarded against.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(serialize_env(values), encoding="utf-8")
    try:
        tmp.chmod(0o600)
    except OSError:
        pass  # Windows or restricted filesystem
    tmp.replace(path)
    logger.info("Wrote %d entries to %s", len(values), path)


def update_env_file(path: Path, new: dict[str, str]) -> dict[str, str]:
    """Merge *new* into the .env file at *path* and return what was written."""
    merged = merge_env(load_env_file(path), new)
    write_env_file(path, merged)
    return merged
