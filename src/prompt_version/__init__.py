"""
Prompt Version - git-like version control for prompt files.

Tracks revisions of individual text artifacts with commits, branches, tags,
diffs and checkout, backed by a deduplicating content-addressed object store
kept in a local .prompt-versions/ directory.
"""

__version__ = "1.0.0"
