"""PipelineIdentifierResolver - maps user input to a canonical pipeline id."""

import logging
import re
from typing import Optional, Protocol

from src.bitbucket import Pipeline

from .exceptions import InvalidIdentifierError, PipelineNotFoundError

logger = logging.getLogger(__name__)

# Canonical ids are UUIDs, so any "-" marks one
CANONICAL_SEPARATOR = "-"
ORDINAL_MARKER = "#"
DEFAULT_WINDOW_SIZE = 100

_DIGITS = re.compile(r"[0-9]+")


class PipelineLister(Protocol):
    def list_pipelines(self, window_size: int) -> list[Pipeline]: ...


def parse_ordinal(identifier: str) -> int:
    """Parse ``42`` or ``#42`` into a positive build number.

    Raises:
        InvalidIdentifierError: If the text is not a positive base-10 integer.
    """
    text = identifier.strip()
    if text.startswith(ORDINAL_MARKER):
        text = text[len(ORDINAL_MARKER):]
    if not _DIGITS.fullmatch(text):
        raise InvalidIdentifierError(identifier)
    ordinal = int(text)
    if ordinal <= 0:
        raise InvalidIdentifierError(identifier)
    return ordinal


class PipelineIdentifierResolver:
    """Turns a canonical id or build number into a canonical pipeline id.

    Build numbers are looked up in a bounded window of recent pipelines
    only, trading complete history for one predictable list call.

    Example:
        resolver = PipelineIdentifierResolver(client)
        pipeline_id = resolver.resolve("#42")
    """

    def __init__(self, lister: PipelineLister, window_size: int = DEFAULT_WINDOW_SIZE):
        self._lister = lister
        self._window_size = window_size

    @property
    def window_size(self) -> int:
        return self._window_size

    @staticmethod
    def is_canonical(identifier: str) -> bool:
        return CANONICAL_SEPARATOR in identifier

    def resolve(self, identifier: str) -> str:
        """Resolve an identifier to a canonical pipeline id.

        Args:
            identifier: Pipeline UUID, or build number with optional ``#``.

        Returns:
            The canonical id, unchanged when one was supplied.

        Raises:
            InvalidIdentifierError: If a build number is unparseable or <= 0.
            PipelineNotFoundError: If the build number is outside the window.
            PipelineAPIError: If listing pipelines fails.
        """
        text = identifier.strip()
        if self.is_canonical(text):
            return text

        ordinal = parse_ordinal(text)
        match = self._find(ordinal)
        if match is None:
            raise PipelineNotFoundError(ordinal, self._window_size)
        logger.debug("Resolved pipeline #%d to %s", ordinal, match.uuid)
        return match.uuid

    def _find(self, ordinal: int) -> Optional[Pipeline]:
        for pipeline in self._lister.list_pipelines(self._window_size):
            if pipeline.build_number == ordinal:
                return pipeline
        return None
