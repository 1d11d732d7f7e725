"""Finish-time enrichment: category and intelligence, written once."""

import dataclasses
import logging

from .analyzer import analyze
from .categorize import classify
from .models import SessionRecord
from .patterns import DEFAULT_PATTERNS, PatternSet

logger = logging.getLogger(__name__)


def enrich_session(record: SessionRecord, patterns: PatternSet = DEFAULT_PATTERNS) -> SessionRecord:
    """Classify and analyze a finished session.

    A record that already carries intelligence is returned as is. The input
    record is never modified; a copy with ``category`` and ``intelligence``
    filled in is returned for the store to persist.
    """
    if record.intelligence is not None:
        logger.debug("Session %s already enriched", record.id)
        return record

    category = record.category or classify(record.ticket_id, record.git_activity, record.conversations)
    intelligence = analyze(record.conversations, record.message_count, record.ticket_id, patterns)
    logger.debug(
        "Enriched session %s: category=%s quality=%s",
        record.id, category, intelligence.quality_score.overall,
    )
    return dataclasses.replace(record, category=category, intelligence=intelligence)
