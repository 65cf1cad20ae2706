"""
Prompt templates for per-message task extraction.
"""

from typing import Dict, List

from .models import EmailMessage

SYSTEM_PROMPT = (
    "You are an intelligent task extraction assistant that analyzes emails to"
    " identify actionable tasks such as requests, deadlines and action items.\n\n"
    "CRITICAL RULES:\n"
    "1. You MUST output a single JSON object, with no surrounding text.\n"
    '2. If there is an action item, the object MUST have "description" and'
    ' "priority", and MAY have "dueDate" and "context".\n'
    '3. "priority" is one of "high", "medium", "low" (lowercase).\n'
    '4. "dueDate" is an ISO date (YYYY-MM-DD) and only present if mentioned.\n'
    '5. If no actionable task exists, output exactly {"noTask": true}.\n'
    "6. DO NOT include comments or explanations in the JSON.\n"
)


def build_extraction_prompt(message: EmailMessage) -> str:
    """
    Build the user prompt for one message.
    """
    return (
        "Analyze the following email and extract any actionable tasks.\n"
        "If there are no clear action items, say so.\n\n"
        f"Email Subject: {message.subject}\n"
        f"From: {message.sender}\n"
        f"Date: {message.date}\n"
        "Body:\n"
        f"{message.body}\n\n"
        "Extract:\n"
        "1. Task description (clear, concise action item)\n"
        "2. Priority (high/medium/low based on urgency indicators)\n"
        "3. Due date (if mentioned, in ISO format)\n"
        "4. Any relevant context\n\n"
        "Return as JSON with fields: description, priority, dueDate (optional), context.\n"
        'If no actionable task exists, return {"noTask": true}.'
    )


def build_chat_messages(prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
