"""
inbox_tasks package

Periodic Gmail scan that turns unread messages into a managed task list
via an LLM.
"""

__all__ = [
    "config",
    "logging_config",
    "models",
    "gmail_client",
    "decoder",
    "eligibility",
    "prompts",
    "llm_client",
    "extractor",
    "task_store",
    "execution_log",
    "file_io",
    "pipeline",
    "task_api",
    "scheduler",
    "cli",
]
