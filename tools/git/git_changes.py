"""
Git Change Detector Tool

Collects the change set a comment check runs against:
- the files changed on the current branch relative to a base branch
- the unified diff of those changes

Both use the merge-base form (`base...HEAD`), so only the branch's own
changes are included.
"""

from dataclasses import dataclass, field
from pathlib import Path

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from loguru import logger

from tools.base import BaseTool, DiffError, ToolResult


@dataclass
class ChangeSetInput:
    """Input data for change detection."""

    base_ref: str = "main"
    head_ref: str = "HEAD"
    extensions: list[str] = field(default_factory=lambda: [".py"])
    include_diff: bool = True


@dataclass
class ChangeSet:
    """Changed files and the diff they came from."""

    base_ref: str
    head_ref: str
    changed_files: list[str] = field(default_factory=list)
    diff: str = ""


class GitChangeDetector(BaseTool[ChangeSetInput, ChangeSet]):
    """
    Git 변경사항을 감지하는 툴.

    베이스 브랜치와 현재 브랜치 사이의 변경 파일 목록과 diff 를 제공합니다.
    """

    def __init__(self, repo_path: str | None = None):
        """
        Git Change Detector 초기화.

        Args:
            repo_path: Git 저장소 경로 (상대 또는 절대 경로)
        """
        super().__init__("GitChangeDetector")
        self.repo_path: Path | None = None
        self.repo: Repo | None = None

        if repo_path:
            self._initialize_repository(repo_path)

    def execute(self, input_data: ChangeSetInput) -> ToolResult[ChangeSet]:
        """
        Collect the change set.

        Args:
            input_data: Refs and file filters

        Returns:
            Change set result
        """
        if not self.repo:
            self._initialize_repository(".")

        changed_files = self.get_changed_files(
            input_data.base_ref, input_data.extensions, input_data.head_ref
        )
        diff = ""
        if input_data.include_diff and changed_files:
            diff = self.get_diff(input_data.base_ref, input_data.head_ref)

        return ToolResult.success(
            output=ChangeSet(
                base_ref=input_data.base_ref,
                head_ref=input_data.head_ref,
                changed_files=changed_files,
                diff=diff,
            ),
            metrics=self._create_metrics(files_processed=len(changed_files)),
        )

    def _initialize_repository(self, repo_path: str) -> None:
        """
        Initialize Git repository.

        Args:
            repo_path: Git repository path

        Raises:
            DiffError: Path missing or not a Git repository
        """
        self.repo_path = Path(repo_path).resolve()

        if not self.repo_path.is_dir():
            raise DiffError(f"Repository path is not a directory: {self.repo_path}")

        try:
            self.repo = Repo(self.repo_path, search_parent_directories=True)
            logger.debug(f"Git repository initialized: {self.repo_path}")
        except (InvalidGitRepositoryError, NoSuchPathError) as err:
            raise DiffError(f"Invalid Git repository: {self.repo_path}") from err

    def validate_input(self, input_data: ChangeSetInput) -> bool:
        return bool(input_data.base_ref and input_data.head_ref)

    def get_changed_files(
        self, base_ref: str, extensions: list[str] | None = None, head_ref: str = "HEAD"
    ) -> list[str]:
        """
        Get the changed files between the merge base of two refs and the head.

        Args:
            base_ref: Base branch or commit
            extensions: Only keep files with these suffixes (all when None)
            head_ref: Head reference

        Returns:
            Changed file paths relative to the repository root

        Raises:
            DiffError: git diff failed
        """
        if not self.repo:
            raise DiffError("Git repository not initialized")

        try:
            output = self.repo.git.diff("--name-only", f"{base_ref}...{head_ref}")
        except GitCommandError as e:
            raise DiffError(f"Failed to get changed files: {e}") from e

        files = [line.strip() for line in output.splitlines() if line.strip()]
        if extensions is not None:
            files = [f for f in files if any(f.endswith(ext) for ext in extensions)]

        logger.debug(f"{base_ref}...{head_ref}: {len(files)} matching changed file(s)")
        return files

    def get_diff(self, base_ref: str, head_ref: str = "HEAD") -> str:
        """
        Get the full unified diff between the merge base and the head.

        Raises:
            DiffError: git diff failed
        """
        if not self.repo:
            raise DiffError("Git repository not initialized")

        try:
            return self.repo.git.diff(f"{base_ref}...{head_ref}")
        except GitCommandError as e:
            raise DiffError(f"Failed to get diff: {e}") from e

    def fetch_base_branch(self, base_ref: str, remote: str = "origin") -> bool:
        """Make `base_ref` available locally; returns False when fetch fails."""
        if not self.repo:
            raise DiffError("Git repository not initialized")

        try:
            self.repo.git.fetch(remote, f"{base_ref}:{base_ref}")
            logger.info(f"Fetched base branch {base_ref}")
            return True
        except GitCommandError as e:
            logger.info(
                f"Could not fetch {base_ref} (may already exist locally): {e.status}"
            )
            return False
