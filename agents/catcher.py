"""Comment catcher pipeline.

`CommentCatcher` runs one check end to end:

1. collect the changed files and the diff against the base branch,
2. add files related to them through imports (best-effort),
3. extract the significant comments of all those files,
4. ask the LLM which comments the diff made outdated.

Git and extraction failures abort the run; dependency expansion failures
only shrink the set of analyzed files.
"""

from __future__ import annotations

from loguru import logger

from tools.base import CommentExtractionError, DiffError
from tools.comments.extractor import CommentExtractor, ExtractionInput
from tools.config import CatcherConfig
from tools.dependencies.expander import ModuleResolver, find_related_files
from tools.git.git_changes import ChangeSetInput, GitChangeDetector
from tools.llm.base import LLMProvider
from tools.llm.providers import create_provider
from tools.llm.tool import CommentAnalyzer

from .base import BaseAgent, CatcherState


class CommentCatcher(BaseAgent):
    """Finds comments that a branch's changes made outdated."""

    def __init__(
        self,
        config: CatcherConfig | None = None,
        provider: LLMProvider | None = None,
        repo_path: str = ".",
        resolver: ModuleResolver | None = None,
    ) -> None:
        """Initialize the catcher.

        Args:
            config: Runtime configuration; defaults apply when omitted.
            provider: LLM provider; built from `config.llm_options` when
                omitted, which requires the provider's API key.
            repo_path: Path inside the Git repository to check.
            resolver: Replaces the import resolver used for expansion.
        """
        super().__init__("CommentCatcher")
        self.config = config or CatcherConfig()
        self.provider = provider or create_provider(
            self.config.llm_options, self.config.api_key()
        )
        self.repo_path = repo_path
        self.resolver = resolver

    async def run(
        self, base_ref: str = "main", depth: int = 3, use_deps: bool = True
    ) -> CatcherState:
        """Run the check.

        Args:
            base_ref: Branch or commit to compare against.
            depth: Maximum import hops for related files.
            use_deps: When False, only the changed files are analyzed.

        Returns:
            The filled pipeline state; `state.findings` holds the result.

        Raises:
            DiffError: The change set could not be computed.
            CommentExtractionError: A source file could not be read.
            RuntimeError: The LLM provider call failed.
        """
        state = CatcherState(base_ref=base_ref, depth=depth)

        logger.info(f"Finding changed files against {base_ref}")
        detector = GitChangeDetector(self.repo_path)
        change_result = detector.run(
            ChangeSetInput(base_ref=base_ref, extensions=self.config.extensions)
        )
        if not change_result.ok or change_result.output is None:
            raise DiffError(change_result.error_message or "Failed to get changed files")

        state.changed_files = change_result.output.changed_files
        state.diff = change_result.output.diff
        if not state.changed_files:
            logger.info("No changed files found")
            return state
        logger.info(f"Found {len(state.changed_files)} changed file(s)")

        root = str(detector.repo.working_tree_dir) if detector.repo else self.repo_path

        if use_deps and depth > 0:
            logger.info(f"Finding related files (depth {depth})")
            state.related_files = find_related_files(
                state.changed_files,
                depth,
                config=self.config,
                root=root,
                resolver=self.resolver,
            )
            logger.info(f"Found {len(state.related_files)} related file(s)")

        logger.info(f"Extracting comments from {len(state.analyzed_files)} file(s)")
        extractor = CommentExtractor.from_config(self.config, root=root)
        extraction = extractor.run(ExtractionInput(files=state.analyzed_files))
        if not extraction.ok or extraction.output is None:
            raise CommentExtractionError(
                extraction.error_message or "Failed to extract comments"
            )
        state.comments = extraction.output
        logger.info(f"Found {len(state.comments)} comment(s)")

        if not state.comments:
            return state

        logger.info("Analyzing comments with LLM")
        options = self.config.llm_options
        analyzer = CommentAnalyzer(
            self.provider,
            batch_size=options.batch_size,
            consolidate_duplicates=options.consolidate_duplicates,
        )
        state.findings = await analyzer.analyze(state.comments, state.diff)
        logger.info(f"Found {len(state.findings)} potentially outdated comment(s)")
        return state
