"""
Tools Base Interface

Every pipeline stage (git, dependency expansion, comment extraction) is a
`BaseTool`. Callers use `run()`, which times the stage, logs it and turns
exceptions into a `ToolResult.error` with a `ToolErrorCode`, so the pipeline
decides in one place which failures are fatal.
"""

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from loguru import logger

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class ConfigError(ValueError):
    """Invalid configuration or missing credential. Always fatal."""


class DiffError(RuntimeError):
    """Git could not produce the change set."""


class CommentExtractionError(RuntimeError):
    """A source file exists but could not be read."""


class ToolStatus(Enum):
    SUCCESS = "success"
    ERROR = "error"


class ToolErrorCode(Enum):
    """Failure classes reported by `BaseTool.run`."""

    INVALID_INPUT = "INVALID_INPUT"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    GIT_ERROR = "GIT_ERROR"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    READ_ERROR = "READ_ERROR"
    TIMEOUT = "TIMEOUT"


# Checked in order; subclasses of ValueError come before ValueError itself.
_ERROR_CODES: list[tuple[type[BaseException] | tuple[type[BaseException], ...], ToolErrorCode]] = [
    (ConfigError, ToolErrorCode.CONFIG_ERROR),
    (DiffError, ToolErrorCode.GIT_ERROR),
    (CommentExtractionError, ToolErrorCode.READ_ERROR),
    ((ValueError, TypeError), ToolErrorCode.INVALID_INPUT),
    (FileNotFoundError, ToolErrorCode.FILE_NOT_FOUND),
    (PermissionError, ToolErrorCode.PERMISSION_ERROR),
    (TimeoutError, ToolErrorCode.TIMEOUT),
]


@dataclass
class ToolMetrics:
    """How long a stage took and how many files it touched."""

    processing_time_ms: int
    files_processed: int | None = None
    additional_metrics: dict[str, Any] | None = None


@dataclass
class ToolResult(Generic[OutputT]):
    """Outcome of one tool run: an output on success, a code and message on error."""

    status: ToolStatus
    output: OutputT | None = None
    error_code: ToolErrorCode | None = None
    error_message: str | None = None
    metrics: ToolMetrics | None = None

    def __post_init__(self) -> None:
        if self.status == ToolStatus.ERROR and not self.error_code:
            raise ValueError("error_code is required when status is ERROR")

    @property
    def ok(self) -> bool:
        return self.status == ToolStatus.SUCCESS

    @classmethod
    def success(
        cls, output: OutputT, metrics: ToolMetrics | None = None
    ) -> "ToolResult[OutputT]":
        return cls(status=ToolStatus.SUCCESS, output=output, metrics=metrics)

    @classmethod
    def error(
        cls,
        error_code: ToolErrorCode,
        error_message: str,
        metrics: ToolMetrics | None = None,
    ) -> "ToolResult[OutputT]":
        return cls(
            status=ToolStatus.ERROR,
            error_code=error_code,
            error_message=error_message,
            metrics=metrics,
        )


class BaseTool(ABC, Generic[InputT, OutputT]):
    """
    Base class for pipeline tools.

    Subclasses implement `execute` and may override `validate_input`;
    `run` never raises.
    """

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        self.tool_id = f"{tool_name}_{uuid.uuid4().hex[:8]}"
        self._started: float | None = None

    @abstractmethod
    def execute(self, input_data: InputT) -> ToolResult[OutputT]:
        """Do the tool's work; may raise."""

    def validate_input(self, input_data: InputT) -> bool:
        return True

    def _elapsed_ms(self) -> int:
        if self._started is None:
            return 0
        return int((time.perf_counter() - self._started) * 1000)

    def _create_metrics(self, **kwargs: Any) -> ToolMetrics:
        return ToolMetrics(processing_time_ms=self._elapsed_ms(), **kwargs)

    def run(self, input_data: InputT) -> ToolResult[OutputT]:
        """
        Validate, execute and time the tool.

        Args:
            input_data: Input for `execute`

        Returns:
            The tool's result, or an error result classified by exception type
        """
        self._started = time.perf_counter()
        logger.debug(f"Tool {self.tool_name} started: {self.tool_id}")
        logger.trace(f"Input data: {input_data}")

        try:
            if not self.validate_input(input_data):
                raise ValueError(f"Invalid input for {self.tool_name}")

            result = self.execute(input_data)
        except Exception as e:
            error_code = self._classify_error(e)
            logger.debug(
                f"Tool {self.tool_name} failed ({error_code.value}): {self.tool_id}: {e}"
            )
            return ToolResult.error(
                error_code=error_code,
                error_message=str(e),
                metrics=self._create_metrics(),
            )

        if not result.metrics:
            result.metrics = self._create_metrics()
        logger.debug(
            f"Tool {self.tool_name} finished in "
            f"{result.metrics.processing_time_ms}ms: {self.tool_id}"
        )
        return result

    def _classify_error(self, error: Exception) -> ToolErrorCode:
        for error_types, code in _ERROR_CODES:
            if isinstance(error, error_types):
                return code
        return ToolErrorCode.PROCESSING_ERROR
