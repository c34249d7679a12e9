"""Structured draft generation with heuristic fallback."""

from __future__ import annotations

import logging
from typing import Callable

from .core.cancel_token import CancelToken
from .core.ports import StructuringModel
from .drafts import DraftResult, coerce_draft, create_fallback_draft, normalize_draft
from .errors import DraftAborted

logger = logging.getLogger(__name__)

TRANSCRIBE_STRUCTURED_SYSTEM_PROMPT = (
    "You help users turn dictated email text into a finished draft. Keep the user's intent "
    "and wording, organize it into clear paragraphs, and always produce a concise subject "
    "line. Do not add extra commentary."
)

COMPOSE_STRUCTURED_GUIDANCE = (
    'Respond with JSON containing "subject", "content" and "paragraphs". Separate logical '
    "paragraphs in content with a blank line and list greetings, body paragraphs, sign-off "
    "and signature as separate entries in paragraphs."
)


class StructuringService:
    """Turns raw text into a draft, via the model when one is available.

    Model failures and unusable output never reach the caller: the
    heuristic draft is returned instead. Only cancellation propagates.
    """

    def __init__(self, model: StructuringModel | None = None, system_prompt: str = TRANSCRIBE_STRUCTURED_SYSTEM_PROMPT):
        self._model = model
        self._system_prompt = "\n\n".join(
            segment.strip() for segment in (system_prompt, COMPOSE_STRUCTURED_GUIDANCE) if segment.strip()
        )

    async def compose(
        self,
        text: str,
        cancel_token: CancelToken | None = None,
        on_chunk: Callable[[DraftResult], None] | None = None,
    ) -> DraftResult | None:
        trimmed = text.strip()
        if not trimmed:
            return None
        token = cancel_token or CancelToken()

        if self._model is None:
            token.raise_if_cancelled()
            return normalize_draft(create_fallback_draft(trimmed))

        last = None
        try:
            async for chunk in self._model.generate(trimmed, self._system_prompt):
                token.raise_if_cancelled()
                last = chunk
                partial = coerce_draft(chunk)
                if partial is not None and on_chunk is not None:
                    on_chunk(partial)
        except DraftAborted:
            raise
        except Exception as e:
            logger.warning("Unable to generate structured transcript draft: %s", e)
            token.raise_if_cancelled()
            return normalize_draft(create_fallback_draft(trimmed))

        token.raise_if_cancelled()
        draft = coerce_draft(last)
        if draft is None:
            source = last if isinstance(last, str) and last.strip() else trimmed
            logger.info("Structuring output was not a draft, using heuristic fallback")
            draft = create_fallback_draft(source)
        return normalize_draft(draft)
