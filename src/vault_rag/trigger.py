"""Decide whether a chat message should run a knowledge base lookup."""

from dataclasses import dataclass

from vault_rag.config import TriggerConfig


@dataclass
class TriggerDecision:
    """Outcome of inspecting one message."""

    cleaned_message: str
    should_search: bool = False
    forced: bool = False
    skipped: bool = False
    matched_keyword: str = ""

    def as_dict(self) -> dict:
        return {
            "cleaned_message": self.cleaned_message,
            "should_search": self.should_search,
            "forced": self.forced,
            "skipped": self.skipped,
            "matched_keyword": self.matched_keyword,
        }


def decide_trigger(message: str, config: TriggerConfig) -> TriggerDecision:
    """
    Classify a message as forced, skipped, auto-matched or none.

    Force prefixes beat skip prefixes, which beat auto keywords. Within a
    category the first configured entry that matches wins.
    """
    trimmed = message.strip()
    if not trimmed:
        return TriggerDecision(cleaned_message=message)

    prefix = _match_prefix(trimmed, config.force_prefixes)
    if prefix is not None:
        return TriggerDecision(
            cleaned_message=trimmed[len(prefix) :].strip(),
            should_search=True,
            forced=True,
        )

    prefix = _match_prefix(trimmed, config.skip_prefixes)
    if prefix is not None:
        return TriggerDecision(
            cleaned_message=trimmed[len(prefix) :].strip(),
            skipped=True,
        )

    if not config.auto:
        return TriggerDecision(cleaned_message=trimmed)

    keyword = _match_keyword(trimmed, config.auto_keywords)
    if keyword:
        return TriggerDecision(
            cleaned_message=trimmed,
            should_search=True,
            matched_keyword=keyword,
        )
    return TriggerDecision(cleaned_message=trimmed)


def _match_prefix(message: str, prefixes: list[str]) -> str | None:
    for prefix in prefixes:
        if prefix and message.startswith(prefix):
            return prefix
    return None


def _match_keyword(message: str, keywords: list[str]) -> str:
    lower = message.lower()
    for keyword in keywords:
        if keyword and keyword.lower() in lower:
            return keyword
    return ""
