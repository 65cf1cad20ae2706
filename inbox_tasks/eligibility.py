"""
Promotional / automated mail filter.

A plain keyword heuristic: any hit in sender, subject or body marks the
message as ineligible for task extraction.
"""

from typing import Iterable

from .models import EmailMessage

PROMOTIONAL_KEYWORDS = (
    "unsubscribe",
    "newsletter",
    "promotion",
    "sale",
    "discount",
    "offer",
    "deal",
    "no-reply",
    "noreply",
    "automated",
)


def is_promotional(
    sender: str,
    subject: str,
    body: str,
    keywords: Iterable[str] = PROMOTIONAL_KEYWORDS,
) -> bool:
    content = f"{sender or ''}{subject or ''}{body or ''}".lower()
    return any(keyword.lower() in content for keyword in keywords)


def is_eligible(message: EmailMessage) -> bool:
    """True when the message should be passed to the task extractor."""
    return not is_promotional(message.sender, message.subject, message.body)
