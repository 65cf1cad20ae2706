# tests/test_eligibility.py

from __future__ import annotations

import pytest

from inbox_tasks.eligibility import PROMOTIONAL_KEYWORDS, is_eligible, is_promotional
from inbox_tasks.models import EmailMessage


@pytest.mark.parametrize("keyword", PROMOTIONAL_KEYWORDS)
def test_each_keyword_marks_body_promotional(keyword: str) -> None:
    assert is_promotional("bob@example.org", "Hi", f"text {keyword} text")


def test_matching_is_case_insensitive() -> None:
    assert is_promotional("News <NoReply@shop.com>", "Weekly", "")
    assert is_promotional("bob@example.org", "BIG SALE today", "")


def test_sender_alone_excludes_message() -> None:
    message = EmailMessage(
        id="m1",
        sender="Service <no-reply@bank.com>",
        subject="Action required",
        body="Please sign the form by Friday.",
    )
    assert not is_eligible(message)


def test_plain_request_is_eligible() -> None:
    message = EmailMessage(
        id="m1",
        sender="Alice <alice@example.org>",
        subject="Draft review",
        body="Could you review the draft by Thursday?",
    )
    assert is_eligible(message)


def test_substring_false_positive_is_accepted() -> None:
    # "wholesale" contains "sale"; the heuristic does not try to avoid this
    assert is_promotional("carol@example.org", "Wholesale contract", "Please sign.")
