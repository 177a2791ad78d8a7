"""AI categorization collaborator.

The engine only relies on the :class:`CategorizationAdvisor` protocol. The
value an advisor returns is untrusted: the categorization engine checks it
against the candidate accounts before using it.
"""

import json
import os
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

import anthropic

from ledgerflow.domain.entities import Account
from ledgerflow.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-3-5-haiku-latest"


class CategorizationAdvisor(Protocol):
    def suggest(self, description: str, amount: Decimal, candidates: Sequence[Account]) -> Any:
        """Return an account identifier from ``candidates`` or None."""
        ...


def build_prompt(description: str, amount: Decimal, candidates: Sequence[Account]) -> str:
    direction = "money out (expense or payment)" if amount < 0 else "money in (income or refund)"
    chart = "\n".join(
        f"- id={acc.id} code={acc.code} name={acc.name} type={acc.account_type.value}" for acc in candidates
    )
    return (
        "You categorize bank transactions for a small business ledger.\n\n"
        f"Transaction description: {description}\n"
        f"Amount: {abs(amount):.2f} ({direction})\n\n"
        "Choose the single best offsetting account from this chart of accounts:\n"
        f"{chart}\n\n"
        "Respond with JSON only, no prose:\n"
        '{"account_id": <id from the list, or null if none fits>, '
        '"memo": "<short memo>", "confidence": <0.0-1.0>}'
    )


def parse_response(response_text: str) -> Any:
    """Extract the JSON payload from a model reply.

    Returns:
        Decoded JSON value, or None if the reply is not JSON
    """
    text = response_text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.error("ai_response_parse_failed", response=response_text[:500], error=str(e))
        return None


class AnthropicAdvisor:
    """Categorization advisor backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        client: Optional[Any] = None,
        max_tokens: int = 256,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            model: Model name
            client: Preconfigured client, mainly for tests
            max_tokens: Reply budget
            timeout: Per-request HTTP timeout in seconds
        """
        self.model = model
        self.max_tokens = max_tokens
        if client is not None:
            self.client = client
            return
        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            logger.warning("anthropic_api_key_missing", message="AI categorization disabled")
            self.client = None
            return
        kwargs: dict[str, Any] = {"api_key": api_key}
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.Anthropic(**kwargs)

    def suggest(self, description: str, amount: Decimal, candidates: Sequence[Account]) -> Any:
        """Ask the model for an account. Returns the decoded JSON reply or None."""
        if self.client is None or not candidates:
            return None

        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=0.0,
            messages=[{"role": "user", "content": build_prompt(description, amount, candidates)}],
        )
        usage = getattr(response, "usage", None)
        logger.info(
            "ai_categorization_complete",
            model=self.model,
            input_tokens=getattr(usage, "input_tokens", None),
            output_tokens=getattr(usage, "output_tokens", None),
        )
        texts = [block.text for block in response.content if getattr(block, "type", "text") == "text"]
        if not texts:
            return None
        return parse_response("".join(texts))
