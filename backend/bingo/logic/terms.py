"""Operator-managed term list and the derived list of announced terms."""

from __future__ import annotations

import structlog

from bingo.logic.enums import ErrorCode
from bingo.logic.exceptions import StateConflictError, ValidationError

logger = structlog.get_logger()


class TermRegistry:
    """
    Ordered active terms plus the ordered, append-only announced terms.

    Removing an active term leaves it announced (and on any card that already
    holds it). Announced terms are therefore a subset of every term ever added,
    not necessarily of the current active list.
    """

    def __init__(self, terms: list[str] | None = None) -> None:
        self._terms: list[str] = []
        self._announced: list[str] = []
        for term in terms or []:
            stripped = term.strip()
            if stripped and stripped not in self._terms:
                self._terms.append(stripped)

    @property
    def terms(self) -> list[str]:
        return list(self._terms)

    @property
    def announced(self) -> list[str]:
        return list(self._announced)

    def is_active(self, term: str) -> bool:
        return term in self._terms

    def is_announced(self, term: str) -> bool:
        return term in self._announced

    def card_pool(self) -> list[str]:
        """Active terms followed by announced terms no longer active, without duplicates."""
        pool = list(self._terms)
        pool.extend(term for term in self._announced if term not in self._terms)
        return pool

    def add_term(self, text: str) -> None:
        term = text.strip()
        if not term:
            raise ValidationError("Term must not be empty", code=ErrorCode.EMPTY_TERM)
        if term in self._terms:
            raise ValidationError(f"Duplicate term: {term}", code=ErrorCode.DUPLICATE_TERM)
        self._terms.append(term)
        logger.info("term added", term=term, term_count=len(self._terms))

    def remove_term(self, index: int) -> str:
        if not 0 <= index < len(self._terms):
            raise ValidationError(f"Invalid term index: {index}", code=ErrorCode.INVALID_INDEX)
        term = self._terms.pop(index)
        logger.info("term removed", term=term, still_announced=term in self._announced)
        return term

    def announce(self, term: str) -> None:
        if term not in self._terms:
            raise ValidationError(f"Unknown term: {term}", code=ErrorCode.UNKNOWN_TERM)
        if term in self._announced:
            raise StateConflictError(f"Term already announced: {term}", code=ErrorCode.ALREADY_ANNOUNCED)
        self._announced.append(term)
        logger.info("term announced", term=term, announced_count=len(self._announced))

    def unannounce(self, term: str) -> None:
        if term not in self._announced:
            raise StateConflictError(f"Term is not announced: {term}", code=ErrorCode.NOT_ANNOUNCED)
        self._announced.remove(term)
        logger.info("term unannounced", term=term, announced_count=len(self._announced))

    def reset(self) -> None:
        self._announced.clear()
