"""Command line entry-point for the customer feedback assistant."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import (
    MAX_QUESTIONS_TO_GENERATE,
    MIN_QUESTIONS_TO_GENERATE,
    AppSettings,
    FeedbackCategory,
)
from .conversation import WELCOME_MESSAGE, FeedbackConversation
from .generation import GenerationEmptyError
from .normalizer import GenerationParseError
from .services import Services
from .store import FeedbackNotFoundError, StoreUnavailableError

CATEGORY_CHOICES = [category.value for category in FeedbackCategory]


def _question_count(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("count must be an integer") from exc
    if not MIN_QUESTIONS_TO_GENERATE <= value <= MAX_QUESTIONS_TO_GENERATE:
        raise argparse.ArgumentTypeError(
            f"count must be between {MIN_QUESTIONS_TO_GENERATE} and "
            f"{MAX_QUESTIONS_TO_GENERATE}"
        )
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feedback-assistant",
        description="Collect and summarize customer feedback",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface for the API server (default: 127.0.0.1)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="TCP port for the API server (default: 8080)",
    )
    serve_parser.add_argument(
        "--tracing",
        action="store_true",
        help="Enable OpenTelemetry tracing of model calls.",
    )

    chat_parser = subparsers.add_parser(
        "chat", help="Give feedback through the terminal"
    )
    chat_parser.add_argument("--name", default="", help="Your name")
    chat_parser.add_argument("--email", default="", help="Your email")
    chat_parser.add_argument(
        "--category",
        help="Feedback category (Leadership, Delivery, Vendor Management)",
    )

    generate_parser = subparsers.add_parser(
        "generate-questions",
        help="Generate and store questions for a category",
    )
    generate_parser.add_argument("category", help="Feedback category")
    generate_parser.add_argument(
        "-n",
        "--count",
        type=_question_count,
        default=None,
        help="Number of questions (default: FEEDBACK_QUESTION_COUNT)",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the questions without saving them.",
    )

    feedbacks_parser = subparsers.add_parser(
        "feedbacks", help="Review submitted feedback"
    )
    feedback_commands = feedbacks_parser.add_subparsers(dest="feedback_command")
    feedback_commands.required = True
    list_parser = feedback_commands.add_parser("list", help="Recent feedback")
    list_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=10,
        help="Maximum number of records to display (default: 10)",
    )
    show_parser = feedback_commands.add_parser("show", help="One record")
    show_parser.add_argument("id", help="Feedback record identifier")
    summarize_parser = feedback_commands.add_parser(
        "summarize", help="Regenerate the AI summary for a record"
    )
    summarize_parser.add_argument("id", help="Feedback record identifier")
    return parser


def _print_messages(messages: List[str]) -> None:
    for message in messages:
        print()  # noqa: T201 - CLI UX newline
        print(f"Assistant: {message}")  # noqa: T201 - CLI output


def _print_notices(conversation: FeedbackConversation) -> None:
    for notice in conversation.drain_notices():
        print(f"[{notice.level}] {notice.title}: {notice.message}")  # noqa: T201


async def run_chat(
    services: Services,
    *,
    name: str,
    email: str,
    category: Optional[str],
) -> FeedbackConversation:
    """Run one feedback conversation on stdin/stdout."""

    conversation = services.new_conversation()
    _print_messages([WELCOME_MESSAGE])
    for problem in conversation.update_details(name, email):
        print(f"  (note: {problem})")  # noqa: T201
    while True:
        raw_category = category or input(
            f"Category [{', '.join(CATEGORY_CHOICES)}]: "
        )  # noqa: PLW1514
        try:
            selected = FeedbackCategory.from_string(raw_category)
        except ValueError as exc:
            print(exc)  # noqa: T201
            category = None
            continue
        break
    _print_messages(await conversation.choose_category(selected))
    _print_notices(conversation)

    while not conversation.session.is_complete:
        answer = input("You: ")  # noqa: PLW1514 - intentional CLI input
        _print_messages(await conversation.handle_user_message(answer))
        _print_notices(conversation)

    while conversation.submission_failed:
        retry = input("Retry submission? [y/N] ").strip().lower()  # noqa: PLW1514
        if retry not in {"y", "yes"}:
            break
        _print_messages(await conversation.retry_submission())
        _print_notices(conversation)
    return conversation


def _run_feedbacks(services: Services, args: argparse.Namespace) -> None:
    if args.feedback_command == "list":
        records = services.admin.list_feedbacks(args.limit)
        if not records:
            print("No feedback submitted yet.")  # noqa: T201
        for record in records:
            summary = "summarized" if record.summary else "no summary"
            print(  # noqa: T201
                f"{record.id}  {record.submitted_at:%Y-%m-%d %H:%M}  "
                f"{record.category.value:<18} {record.name} ({summary})"
            )
        return
    if args.feedback_command == "show":
        record = services.store.get_feedback(args.id)
        print(f"{record.name} <{record.email}> - {record.category.value}")  # noqa: T201
        print()  # noqa: T201
        print(record.feedback_text())  # noqa: T201
        if record.summary:
            print()  # noqa: T201
            print(f"Summary: {record.summary}")  # noqa: T201
        return
    summary = asyncio.run(services.admin.regenerate_summary(args.id))
    print(summary)  # noqa: T201


def run_cli(argv: Optional[list[str]] = None) -> None:
    """Entry-point invoked from ``python -m feedback_assistant``."""

    logging.basicConfig(level=logging.INFO)
    arg_list = list(argv) if argv is not None else sys.argv[1:]
    args = _build_parser().parse_args(arg_list)
    try:
        settings = AppSettings.load()
    except RuntimeError as exc:
        logging.error("Failed to load AppSettings: %s", exc)
        raise SystemExit(1) from exc

    if args.command == "serve":
        import uvicorn

        from .api import create_app

        if args.tracing:
            from .observability import initialize_tracing

            initialize_tracing(endpoint=settings.otlp_endpoint)
        app = create_app(Services.from_settings(settings))
        uvicorn.run(app, host=args.host, port=args.port)
        return

    services = Services.from_settings(settings)
    try:
        if args.command == "chat":
            asyncio.run(
                run_chat(
                    services,
                    name=args.name,
                    email=args.email,
                    category=args.category,
                )
            )
        elif args.command == "generate-questions":
            category = FeedbackCategory.from_string(args.category)
            generated = asyncio.run(
                services.admin.generate_questions(
                    category, args.count, save=not args.dry_run
                )
            )
            for index, question in enumerate(generated.questions, start=1):
                print(f"{index}. {question}")  # noqa: T201
        else:
            _run_feedbacks(services, args)
    except FeedbackNotFoundError as exc:
        raise SystemExit(f"Unknown feedback id: {exc}") from exc
    except (
        GenerationEmptyError,
        GenerationParseError,
        StoreUnavailableError,
        ValueError,
    ) as exc:
        logging.error("%s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":  # pragma: no cover - manual execution hook
    run_cli()
