"""Pull request review publishing."""

from .reviewer import InlineReviewer, ReviewOutcome

__all__ = ["InlineReviewer", "ReviewOutcome"]
