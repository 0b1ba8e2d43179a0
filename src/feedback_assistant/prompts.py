"""Prompt scaffolding for question generation and feedback summaries."""

from __future__ import annotations

from string import Template

QUESTION_SYSTEM_PROMPT = (
    "You write short, neutral survey questions for customer feedback interviews."
)

QUESTION_GENERATION_TEMPLATE = Template(
    """
Generate $count specific questions for the feedback category "$category".

Ground the questions in the organisation's guidance:
- Core values: $core_values
- Quality focus areas: $quality_subsets

Each question should be clear, concise, open-ended, and directly related to $category.
Do not number the questions and do not add commentary.
Format the response as a JSON array of strings.""".strip()
)

SUMMARY_SYSTEM_PROMPT = (
    "You are an AI assistant tasked with summarizing customer feedback."
)

SUMMARY_TEMPLATE = Template(
    """
Summarize the following feedback, focusing on the key points and sentiment expressed by the customer. The feedback is related to the $category category. Keep the summary concise and easy to understand.

Feedback:
<<<
$feedback
>>>""".strip()
)


def build_question_prompt(
    *,
    category: str,
    core_values: str,
    quality_subsets: str,
    count: int,
) -> str:
    return QUESTION_GENERATION_TEMPLATE.substitute(
        category=category,
        core_values=core_values,
        quality_subsets=quality_subsets,
        count=count,
    )


def build_summary_prompt(*, category: str, feedback: str) -> str:
    return SUMMARY_TEMPLATE.substitute(category=category, feedback=feedback)
