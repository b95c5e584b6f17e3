"""Persisted models for the version index.

Field names are serialized with their camelCase aliases so store.json keeps
the same layout regardless of which implementation wrote it.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BRANCH = "main"


class VersionMetadata(BaseModel):
    """One commit record for a tracked file."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="12-char id derived from content hash and timestamp")
    content_hash: str = Field(alias="contentHash", description="SHA-256 of the content")
    message: str = ""
    author: str = ""
    timestamp: int = Field(description="Creation time in milliseconds since epoch")
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    tags: List[str] = Field(default_factory=list)
    branch: str = DEFAULT_BRANCH


class VersionEntry(BaseModel):
    """Version metadata together with its loaded content."""

    metadata: VersionMetadata
    content: str


class BranchInfo(BaseModel):
    """A named lineage of versions; head_id is empty until the first commit."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    head_id: str = Field(default="", alias="headId")
    created_at: int = Field(alias="createdAt")
    description: Optional[str] = None


class PromptVersionStore(BaseModel):
    """Aggregate root holding the full version graph of one tracked file."""

    model_config = ConfigDict(populate_by_name=True)

    prompt_file: str = Field(alias="promptFile")
    versions: List[VersionMetadata] = Field(default_factory=list)
    branches: List[BranchInfo] = Field(default_factory=list)
    current_branch: str = Field(default=DEFAULT_BRANCH, alias="currentBranch")
    tags: Dict[str, str] = Field(default_factory=dict)

    def find_branch(self, name: str) -> Optional[BranchInfo]:
        for branch in self.branches:
            if branch.name == name:
                return branch
        return None

    def active_branch(self) -> Optional[BranchInfo]:
        return self.find_branch(self.current_branch)

    def find_version(self, version_id: str) -> Optional[VersionMetadata]:
        """Resolve a version by exact id, then by first id starting with the prefix.

        Ambiguous prefixes resolve to the earliest created match.
        """
        if not version_id:
            return None
        for version in self.versions:
            if version.id == version_id:
                return version
        for version in self.versions:
            if version.id.startswith(version_id):
                return version
        return None

    def find_by_content_hash(self, content_hash: str) -> Optional[VersionMetadata]:
        for version in self.versions:
            if version.content_hash == content_hash:
                return version
        return None
