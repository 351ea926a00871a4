"""
Markdown shelf: patterns kept as one markdown file per category, with
optional git snapshots of the shelf directory.
"""

from __future__ import annotations

import glob
import os
import shutil
import subprocess
from typing import Optional

import shelf.config as config
from shelf.errors import PatternNotFoundError, StorageError, ValidationIssue

ENTRY_SEPARATOR = "\n\n---\n\n"
GITIGNORE_CONTENT = ".DS_Store\n*.swp\n*.swo\n*~\n.#*\n"
RESOURCE_PREFIX = "shelf://patterns"
DESCRIPTION_MAX_LENGTH = 100
EXAMPLE_FILENAME = "example.md"

EXAMPLE_PATTERN = """# Shelf Usage Patterns

Keep one markdown file per topic in the patterns directory. Each file becomes
a `shelf://patterns/<name>` resource.

## 1. Store Project-Specific Context

**api-auth.md**
```markdown
# API Authentication

Our API uses Bearer auth with JWT tokens that expire after 1 hour.
Always check token expiry before making requests.
```

## 2. Build a Knowledge Base of Solutions

**webhooks.md**
```markdown
# Webhook Patterns

## Retry Logic
- Initial retry after 1 second
- Double the delay each time (max 5 minutes)
- Max 5 retries before marking as failed
```

## Using the shelf

Reference stored patterns in conversation:
- "Check shelf://patterns/api-auth for our authentication approach"
- "Apply the webhook retry pattern from shelf://patterns/webhooks"
"""


def _run_git(args: list[str], cwd: str) -> str:
    """Run a git command and return stdout as a stripped string.

    Raises:
        RuntimeError: If the subprocess exits with a non-zero return code.
    """
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise RuntimeError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
    return result.stdout.strip()


def category_filename(category: str) -> str:
    return category if category.endswith(".md") else f"{category}.md"


def _is_within(path: str, root: str) -> bool:
    path = os.path.realpath(path)
    root = os.path.realpath(root)
    return path == root or path.startswith(root + os.sep)


def snapshot_root(patterns_dir: str, shelf_root: Optional[str] = None) -> str:
    """The directory a snapshot commits: the shelf root when it holds the patterns, else the patterns directory."""
    shelf_root = shelf_root or config.SHELF_ROOT
    if _is_within(patterns_dir, shelf_root):
        return os.path.abspath(shelf_root)
    return os.path.abspath(patterns_dir)


def snapshot(shelf_root: str, message: str) -> bool:
    """Commit the whole shelf directory; False when git is missing or the commit fails."""
    if shutil.which("git") is None:
        config.logger.info("git_unavailable", extra={"shelf_root": shelf_root})
        return False
    try:
        if not os.path.isdir(os.path.join(shelf_root, ".git")):
            _run_git(["init"], cwd=shelf_root)
            gitignore = os.path.join(shelf_root, ".gitignore")
            if not os.path.exists(gitignore):
                with open(gitignore, "w", encoding="utf-8") as handle:
                    handle.write(GITIGNORE_CONTENT)
        _run_git(["add", "."], cwd=shelf_root)
        _run_git(["commit", "-m", message], cwd=shelf_root)
    except (RuntimeError, OSError) as exc:
        config.logger.warning(
            "git_snapshot_failed",
            extra={"shelf_root": shelf_root, "detail": str(exc)},
        )
        return False
    return True


def store_markdown_pattern(
    category: str,
    pattern: str,
    append: bool = True,
    patterns_dir: Optional[str] = None,
    git_snapshots: Optional[bool] = None,
    shelf_root: Optional[str] = None,
) -> dict:
    """Write ``pattern`` into ``<category>.md``, appending when the file exists."""
    patterns_dir = patterns_dir or config.PATTERNS_DIR
    git_snapshots = config.GIT_SNAPSHOTS_ENABLED if git_snapshots is None else git_snapshots

    filename = category_filename(category)
    filepath = os.path.join(patterns_dir, filename)
    try:
        os.makedirs(patterns_dir, exist_ok=True)
        if append and os.path.exists(filepath):
            with open(filepath, "r", encoding="utf-8") as handle:
                existing = handle.read()
            content = f"{existing}{ENTRY_SEPARATOR}{pattern}"
            commit_message = f"Update {category} pattern"
            status = "appended"
        else:
            content = pattern
            commit_message = f"Add {category} pattern"
            status = "written"
        with open(filepath, "w", encoding="utf-8") as handle:
            handle.write(content)
    except OSError as exc:
        raise StorageError(f"Cannot store pattern in {filepath}: {exc}") from exc

    committed = False
    if git_snapshots:
        committed = snapshot(snapshot_root(patterns_dir, shelf_root), commit_message)

    return {
        "status": status,
        "filename": filename,
        "path": filepath,
        "committed": committed,
    }


def ensure_example_pattern(patterns_dir: Optional[str] = None) -> bool:
    """Write ``example.md`` when the shelf has none; True when it was created."""
    patterns_dir = patterns_dir or config.PATTERNS_DIR
    example_file = os.path.join(patterns_dir, EXAMPLE_FILENAME)
    if os.path.exists(example_file):
        return False
    try:
        os.makedirs(patterns_dir, exist_ok=True)
        with open(example_file, "w", encoding="utf-8") as handle:
            handle.write(EXAMPLE_PATTERN)
    except OSError as exc:
        raise StorageError(f"Cannot create example pattern {example_file}: {exc}") from exc
    config.logger.info("example_pattern_created", extra={"path": example_file})
    return True


def extract_description(filepath: str) -> Optional[str]:
    """First non-empty line after a leading heading, cut to 100 characters."""
    with open(filepath, "r", encoding="utf-8") as handle:
        lines = [line.strip() for line in handle.readlines()]
    if lines and lines[0].startswith("#"):
        lines = lines[1:]
    for line in lines:
        if line:
            return line[:DESCRIPTION_MAX_LENGTH]
    return None


def _pattern_files(patterns_dir: str) -> list[str]:
    return sorted(glob.glob(os.path.join(patterns_dir, "**", "*.md"), recursive=True))


def list_markdown_patterns(patterns_dir: Optional[str] = None) -> dict:
    """Every markdown pattern under the patterns directory, nested ones included."""
    patterns_dir = patterns_dir or config.PATTERNS_DIR
    patterns = []
    for path in _pattern_files(patterns_dir):
        relative = os.path.relpath(path, patterns_dir).replace(os.sep, "/")
        name = relative[: -len(".md")]
        patterns.append({
            "name": name,
            "uri": f"{RESOURCE_PREFIX}/{name}",
            "description": extract_description(path),
        })
    return {"patterns": patterns, "total": len(patterns)}


def read_markdown_pattern(name: str, patterns_dir: Optional[str] = None) -> str:
    """Raw markdown of ``<name>.md``; nested names such as ``team/api.md`` are accepted.

    Raises:
        ValidationIssue: If the name points outside the patterns directory.
        PatternNotFoundError: If no such file exists.
    """
    patterns_dir = patterns_dir or config.PATTERNS_DIR
    filepath = os.path.join(patterns_dir, f"{name}.md")
    if not os.path.exists(filepath) and "/" in name:
        filepath = os.path.join(patterns_dir, category_filename(name))

    if not _is_within(filepath, patterns_dir):
        raise ValidationIssue(
            "pattern name must stay inside the patterns directory",
            field="name",
            error_type="invalid_value",
        )
    if not os.path.isfile(filepath):
        raise PatternNotFoundError(f"Pattern not found: {name}")

    try:
        with open(filepath, "r", encoding="utf-8") as handle:
            return handle.read()
    except OSError as exc:
        raise StorageError(f"Cannot read pattern {filepath}: {exc}") from exc
